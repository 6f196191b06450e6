"""
Export API: the owner's library as a CSV download.
"""

from fastapi import APIRouter, Depends, Response

from shelfscan.api.deps import Services, api_rate_limit, get_services, require_entitlement
from shelfscan.catalog.export import EXPORT_FILENAME, records_to_csv

router = APIRouter(prefix="/api", tags=["export"], dependencies=[Depends(api_rate_limit)])


@router.get("/export")
def export_library(
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> Response:
    content = records_to_csv(services.store.list_by_owner(owner))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
