"""
Library API: list, search, inspect and delete an owner's books; undo an
upload batch.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response

from shelfscan.api.deps import Services, api_rate_limit, get_services, require_entitlement
from shelfscan.api.schemas import BookOut
from shelfscan.errors import NotFound

router = APIRouter(prefix="/api", tags=["books"], dependencies=[Depends(api_rate_limit)])


@router.get("/books", response_model=List[BookOut])
def list_books(
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> List[BookOut]:
    return [BookOut.from_record(r) for r in services.store.list_by_owner(owner)]


@router.get("/books/search", response_model=List[BookOut])
def search_books(
    q: str = Query("", description="substring of title or author"),
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> List[BookOut]:
    return [BookOut.from_record(r) for r in services.store.search_by_text(q, owner)]


@router.get("/books/{book_id}/details")
def book_details(
    book_id: int,
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> dict:
    """Full catalog entry behind one of the owner's books."""
    record = services.store.get_by_id(book_id, owner)
    if record is None or not record.external_id:
        raise NotFound("Book not found")
    return services.resolver.get_by_id(record.external_id)


@router.delete("/books/{book_id}", status_code=204)
def delete_book(
    book_id: int,
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> Response:
    services.store.delete_by_id(book_id, owner)
    return Response(status_code=204)


@router.delete("/uploads/{upload_id}", status_code=204)
def undo_upload(
    upload_id: str,
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> Response:
    services.pipeline.undo(upload_id, owner)
    return Response(status_code=204)
