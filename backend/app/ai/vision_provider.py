"""
Vision caption provider backed by the OpenAI chat completions API.
Sends one system message and one user message carrying the image URL.
"""
import logging
import time
from typing import Optional

import openai
from openai import AsyncOpenAI

from app.ai.base import (
    CaptionRequest,
    CaptionResult,
    VisionCaptionProvider,
    DEFAULT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    confidence_for_finish_reason,
)
from app.config import settings
from app.exceptions import VisionAPIError, VisionConfigError
from app.utils.metrics import (
    ai_provider_requests_total,
    ai_provider_failures_total,
    ai_provider_latency_seconds,
    ai_provider_tokens_total
)
from app.utils.logging import log_provider_request, log_provider_failure

logger = logging.getLogger(__name__)

OPERATION = "generate_caption"


class OpenAIVisionProvider(VisionCaptionProvider):
    """
    OpenAI multimodal caption provider.

    One request per image, no SDK-level retries: the batch worker's
    concurrency bound is the only rate control.
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.timeout = timeout or settings.openai_timeout

        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        else:
            self.client = None

    def is_configured(self) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(self.api_key) and self.client is not None

    @staticmethod
    def build_messages(request: CaptionRequest) -> list:
        """System prompt + user prompt with the image attached (high detail)."""
        return [
            {
                "role": "system",
                "content": request.system_prompt
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": request.user_prompt
                    },
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": request.image_url,
                            "detail": "high"
                        }
                    }
                ]
            }
        ]

    async def generate_caption(self, request: CaptionRequest) -> CaptionResult:
        """
        Caption one image.

        Args:
            request: Image URL, prompts and sampling parameters

        Returns:
            CaptionResult with trimmed caption, reported model, total tokens
            and the finish-reason confidence heuristic

        Raises:
            VisionConfigError: If OPENAI_API_KEY is not set
            VisionAPIError: On non-2xx status (code and body in message),
                connection failure or empty content
        """
        if not self.is_configured():
            raise VisionConfigError("OPENAI_API_KEY is not configured")

        model = request.model or DEFAULT_MODEL
        max_tokens = request.max_tokens or DEFAULT_MAX_TOKENS
        temperature = request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE

        start_time = time.time()
        ai_provider_requests_total.labels(provider=self.name, operation=OPERATION).inc()

        try:
            response = await self.client.chat.completions.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=self.build_messages(request),
            )
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else str(e.body)
            error = VisionAPIError(
                f"OpenAI API error: {e.status_code} - {body}",
                status_code=e.status_code,
                body=body,
            )
            self._record_failure(start_time, str(error))
            raise error from e
        except openai.APIError as e:
            error = VisionAPIError(f"OpenAI API error: {e}")
            self._record_failure(start_time, str(error))
            raise error from e

        duration = time.time() - start_time
        ai_provider_latency_seconds.labels(provider=self.name, operation=OPERATION).observe(duration)

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message else None
        if not content:
            error = VisionAPIError("OpenAI returned empty response")
            ai_provider_failures_total.labels(provider=self.name, operation=OPERATION).inc()
            log_provider_failure(
                logger,
                provider=self.name,
                operation=OPERATION,
                error=str(error),
                duration_ms=duration * 1000
            )
            raise error

        tokens_used = 0
        if response.usage and response.usage.total_tokens:
            tokens_used = response.usage.total_tokens
            ai_provider_tokens_total.labels(provider=self.name, operation=OPERATION).inc(tokens_used)

        log_provider_request(
            logger,
            provider=self.name,
            operation=OPERATION,
            duration_ms=duration * 1000,
            model=response.model,
            tokens_used=tokens_used
        )

        return CaptionResult(
            caption=content.strip(),
            model=response.model,
            tokens_used=tokens_used,
            confidence=confidence_for_finish_reason(choice.finish_reason),
        )

    def _record_failure(self, start_time: float, error: str) -> None:
        duration = time.time() - start_time
        ai_provider_failures_total.labels(provider=self.name, operation=OPERATION).inc()
        ai_provider_latency_seconds.labels(provider=self.name, operation=OPERATION).observe(duration)
        log_provider_failure(
            logger,
            provider=self.name,
            operation=OPERATION,
            error=error,
            duration_ms=duration * 1000
        )
