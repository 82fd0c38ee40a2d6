"""Medical report analytics endpoints."""

from fastapi import APIRouter, File, UploadFile, status

from carebook.core.exceptions import BadRequestException
from carebook.dependencies import CurrentIdentity, SummarizerDep
from carebook.schemas.analytics import SummaryResponse

router = APIRouter()


@router.post(
    "/analytics",
    response_model=SummaryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Analytics"],
    summary="Summarize a medical report",
)
async def analyze_report(
    identity: CurrentIdentity,
    summarizer: SummarizerDep,
    file: UploadFile | None = File(None),
) -> SummaryResponse:
    """
    Summarize an uploaded medical report image or PDF.

    Args:
        identity: Authenticated caller
        summarizer: Report summarizer
        file: Report upload (multipart field ``file``)

    Returns:
        Markdown summary

    Raises:
        BadRequestException: If no file or an empty file was uploaded
        UpstreamFailureException: If the model call fails
    """
    if file is None:
        raise BadRequestException("No file uploaded")

    content = await file.read()
    if not content:
        raise BadRequestException("No file uploaded")

    summary = await summarizer.summarize(content, file.content_type, file.filename)
    return SummaryResponse(summary=summary)
