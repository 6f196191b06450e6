"""
Ingest API: photograph a shelf, get catalogued books back.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from shelfscan.api.deps import (
    Services,
    api_rate_limit,
    get_services,
    upload_rate_limit,
)
from shelfscan.api.schemas import AnalyzeResponse, BookOut, DroppedCandidateOut
from shelfscan.errors import InvalidInput, PayloadTooLarge
from shelfscan.log import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["ingest"], dependencies=[Depends(api_rate_limit)])


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(
    image: Optional[UploadFile] = File(None),
    owner: str = Depends(upload_rate_limit),
    services: Services = Depends(get_services),
) -> AnalyzeResponse:
    """Extract books from the uploaded photo and add the matches to the owner's library."""
    if image is None:
        raise InvalidInput("No image provided")
    limit = services.max_image_bytes
    data = image.file.read(limit + 1)
    if len(data) > limit:
        raise PayloadTooLarge(f"Image exceeds the {limit} byte upload limit")
    if not data:
        raise InvalidInput("No image provided")

    result = services.pipeline.run(data, owner, image.content_type or "image/jpeg")
    return AnalyzeResponse(
        books=[BookOut.from_record(r) for r in result.records],
        upload_id=result.batch_id,
        dropped=[DroppedCandidateOut.from_outcome(o) for o in result.dropped],
    )
