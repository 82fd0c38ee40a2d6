"""Report summarizer schemas."""

from pydantic import BaseModel


class SummaryResponse(BaseModel):
    """Markdown summary of an uploaded medical report."""

    summary: str
