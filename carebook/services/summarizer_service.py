"""Medical report summarization through a vision-capable chat model."""

import base64

import httpx
import openai
import structlog
from openai import AsyncOpenAI

from carebook.core.exceptions import ConfigurationException, UpstreamFailureException

logger = structlog.get_logger(__name__)

SUMMARY_PROMPT = """Analyze this medical report.
Identify:
- Patient name
- Report date
- Test names
- Key findings
- Diagnosis (if any)
Summarize clearly in bullet points."""

NO_SUMMARY = "No summary generated"
PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_IMAGE_TYPE = "image/jpeg"


class ReportSummarizer:
    """Stateless client turning an uploaded report into a markdown summary."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        api_url: str = "https://api.openai.com/v1",
        max_tokens: int = 1000,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the summarizer.

        Args:
            api_key: OpenAI API key
            model: Vision-capable chat model
            api_url: API base URL
            max_tokens: Completion token limit
            timeout: Request timeout in seconds
            transport: Optional httpx transport for the underlying client

        Raises:
            ConfigurationException: If the API key is not set
        """
        if not api_key:
            raise ConfigurationException("OPENAI_API_KEY is not configured")

        self.model = model
        self.max_tokens = max_tokens
        # No retries
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=api_url,
            timeout=timeout,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=transport, timeout=timeout) if transport else None,
        )

    def build_content(self, content: bytes, content_type: str | None, filename: str | None) -> list[dict]:
        """Build the user message parts for one report."""
        encoded = base64.b64encode(content).decode("ascii")
        mime_type = content_type or DEFAULT_IMAGE_TYPE

        if mime_type == PDF_CONTENT_TYPE:
            report_part = {
                "type": "file",
                "file": {
                    "filename": filename or "report.pdf",
                    "file_data": f"data:{mime_type};base64,{encoded}",
                },
            }
        else:
            report_part = {
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
            }

        return [{"type": "text", "text": SUMMARY_PROMPT}, report_part]

    async def summarize(
        self,
        content: bytes,
        content_type: str | None = None,
        filename: str | None = None,
    ) -> str:
        """
        Summarize a medical report.

        Args:
            content: Raw file bytes (image or PDF)
            content_type: MIME type of the upload
            filename: Original file name

        Returns:
            Markdown summary

        Raises:
            UpstreamFailureException: If the model call fails for any reason
        """
        messages = [
            {"role": "user", "content": self.build_content(content, content_type, filename)},
        ]

        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
            )
        except openai.APIError as e:
            logger.error(
                "report_summary_failed",
                content_type=content_type,
                size=len(content),
                error=str(e),
            )
            raise UpstreamFailureException("Failed to analyze medical report") from e

        summary = completion.choices[0].message.content if completion.choices else None

        logger.info("report_summarized", content_type=content_type, size=len(content))
        return summary or NO_SUMMARY
