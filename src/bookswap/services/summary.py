"""Summary generator client.

Asks an external text-generation API for a short summary of a book's
description. Used by the catalog when an owner lists a book without a
summary.

Response shapes accepted (first match wins):
    {"choices": [{"text": "..."}]}
    {"choices": [{"message": {"content": "..."}}]}
    {"text": "..."}
"""

import json
from typing import Any

import httpx
import structlog

from bookswap.config import Settings, get_settings
from bookswap.core.exceptions import SummaryGenerationError

logger = structlog.get_logger(__name__)

PROMPT_PREFIX = "Write a short summary of the book: "


class SummaryService:
    """Async client for the summary generation API.

    Usage:
        ```python
        service = SummaryService(settings)
        summary = await service.generate(book.description)
        await service.close()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Application settings (defaults to the cached settings)
            client: Pre-built HTTP client; created lazily when omitted
        """
        self._settings = settings or get_settings()
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._settings.summary_timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(self, text: str) -> str:
        """Generate a summary for ``text``.

        Args:
            text: Book description; truncated to ``summary_max_input_chars``

        Returns:
            The generated summary, stripped

        Raises:
            SummaryGenerationError: Missing API key, transport failure,
                non-2xx status, oversized or malformed response, or no text
        """
        api_key = self._settings.summary_api_key.get_secret_value()
        if not api_key:
            raise SummaryGenerationError("Summary generator API key is not configured")

        payload: dict[str, Any] = {
            "prompt": PROMPT_PREFIX + text[: self._settings.summary_max_input_chars],
        }
        if self._settings.summary_model:
            payload["model"] = self._settings.summary_model

        body = await self._post(payload, api_key)

        try:
            data = json.loads(body)
        except ValueError as e:
            logger.error("summary_response_malformed", error=str(e))
            raise SummaryGenerationError("Summary generator returned malformed JSON") from e

        summary = self._extract_text(data)
        if not summary:
            logger.error("summary_response_empty")
            raise SummaryGenerationError("Summary generator returned no text")

        logger.info("summary_generated", length=len(summary))
        return summary

    async def _post(self, payload: dict[str, Any], api_key: str) -> bytes:
        """Send the request and read at most ``summary_max_response_bytes``."""
        client = await self._get_client()
        limit = self._settings.summary_max_response_bytes
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with client.stream(
                "POST",
                self._settings.summary_api_url,
                json=payload,
                headers=headers,
                timeout=self._settings.summary_timeout,
            ) as response:
                if not response.is_success:
                    snippet = (await response.aread())[:1024]
                    logger.error(
                        "summary_request_failed",
                        status_code=response.status_code,
                        body=snippet.decode(errors="replace"),
                    )
                    raise SummaryGenerationError(
                        f"Summary generator responded with {response.status_code}"
                    )

                chunks: list[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > limit:
                        logger.error("summary_response_too_large", limit=limit)
                        raise SummaryGenerationError(
                            "Summary generator response is too large"
                        )
                    chunks.append(chunk)
                return b"".join(chunks)
        except httpx.TimeoutException as e:
            logger.error("summary_request_timeout", error=str(e))
            raise SummaryGenerationError("Summary generator timed out") from e
        except httpx.HTTPError as e:
            logger.error("summary_request_error", error=str(e))
            raise SummaryGenerationError(f"Request failed: {e}") from e

    @staticmethod
    def _extract_text(data: Any) -> str:
        """Pull the generated text out of a completion response."""
        if not isinstance(data, dict):
            return ""

        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            choice = choices[0]
            text = choice.get("text")
            if isinstance(text, str) and text.strip():
                return text.strip()
            message = choice.get("message")
            if isinstance(message, dict):
                content = message.get("content")
                if isinstance(content, str) and content.strip():
                    return content.strip()

        text = data.get("text")
        if isinstance(text, str):
            return text.strip()
        return ""
