# core/llm_interface.py
"""
Handles all direct interactions with the text generation API.
Includes the bounded (deadline-enforced) request executor, the retry
policy wrapped around it, and the Gemini request envelope.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from config import StorytellerSettings, settings
from core.errors import ErrorKind, StoryError, classify_error

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LLMRequest:
    """One outbound POST to the generation endpoint."""

    url: str
    payload: dict[str, Any]
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(
        default_factory=lambda: {"Content-Type": "application/json"}
    )


def build_generate_payload(prompt: str) -> dict[str, Any]:
    """Return the ``generateContent`` body for a single-turn prompt."""
    return {"contents": [{"parts": [{"text": prompt}]}]}


class LLMService:
    """Utility class for calling the generation endpoint under a deadline with retries."""

    def __init__(
        self,
        config: StorytellerSettings = settings,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.timeout = config.API_TIMEOUT_SECONDS
        self.max_attempts = config.LLM_RETRY_ATTEMPTS
        self.base_delay = config.LLM_RETRY_DELAY_SECONDS
        self.retry_client_errors = config.RETRY_CLIENT_ERRORS
        # Use a single async client for all requests to reuse connections
        self._client = client or httpx.AsyncClient(timeout=self.timeout)
        self.sleep = sleep
        self.request_count = 0

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def build_request(self, prompt: str) -> LLMRequest:
        url = (
            f"{self.config.GEMINI_API_BASE.rstrip('/')}"
            f"/models/{self.config.GEMINI_MODEL}:generateContent"
        )
        return LLMRequest(
            url=url,
            payload=build_generate_payload(prompt),
            params={"key": self.config.GEMINI_API_KEY},
        )

    async def execute(self, request: LLMRequest) -> httpx.Response:
        """Send exactly one request, cancelling it when the deadline passes."""
        self.request_count += 1
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    request.url,
                    params=request.params,
                    json=request.payload,
                    headers=request.headers,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"LLM request to '{request.url}' exceeded {self.timeout:.1f}s deadline and was cancelled."
            )
            raise StoryError(ErrorKind.TIMEOUT, "Request timed out") from None
        except httpx.HTTPError as exc:
            error = classify_error(exc)
            logger.warning(
                f"LLM request to '{request.url}' failed: {error.message}",
                kind=error.kind.value,
            )
            raise error from exc

        if not response.is_success:
            body_snippet = response.text[:200]
            logger.warning(
                f"LLM request to '{request.url}' returned HTTP {response.status_code}. Body: {body_snippet}"
            )
            raise StoryError(
                ErrorKind.NETWORK,
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _should_retry(self, error: StoryError) -> bool:
        return self.retry_client_errors or error.retryable

    async def execute_with_retry(
        self,
        request: LLMRequest,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> httpx.Response:
        """Run :meth:`execute` with linear backoff between attempts.

        Waits ``base_delay * k`` after failed attempt ``k``. The error of the
        last attempt is re-raised unchanged.
        """
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        delay = base_delay if base_delay is not None else self.base_delay

        for attempt in range(1, attempts + 1):
            try:
                return await self.execute(request)
            except StoryError as exc:
                if attempt >= attempts:
                    logger.error(
                        f"LLM: All {attempts} attempts failed. Last error: {exc.message}",
                        kind=exc.kind.value,
                    )
                    raise
                if not self._should_retry(exc):
                    logger.error(
                        f"LLM: Non-retryable error on attempt {attempt}/{attempts}. Aborting retries.",
                        kind=exc.kind.value,
                        status_code=exc.status_code,
                    )
                    raise
                wait = delay * attempt
                logger.info(
                    f"LLM: Attempt {attempt}/{attempts} failed ({exc.kind.value}). Retrying in {wait:.2f} seconds..."
                )
                await self.sleep(wait)
        raise StoryError(ErrorKind.UNKNOWN, "Max retries exceeded")

    async def generate_content(self, prompt: str) -> Any:
        """Call the generation endpoint and return the decoded JSON envelope."""
        request = self.build_request(prompt)
        logger.debug(
            f"Calling '{self.config.GEMINI_MODEL}' with prompt: '{prompt[:80].replace(chr(10), ' ')}...'"
        )
        response = await self.execute_with_retry(request)
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            logger.warning(
                f"LLM response was not valid JSON: {exc}. Body: {response.text[:200]}"
            )
            raise StoryError(
                ErrorKind.INVALID_RESPONSE,
                "Invalid API response format",
                retryable=False,
            ) from exc
