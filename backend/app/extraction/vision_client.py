"""
Vision model client used by the extraction orchestrator.

The AsyncOpenAI client is created per call inside ``async with`` so no HTTP
connection pool outlives the event loop of the request that created it. The
whole call is bounded by ``asyncio.wait_for``; cancelling the awaiting task
cancels the in-flight request.
"""
import asyncio
import logging
import os
import time
from typing import Any, Dict, List, NamedTuple, Optional

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI

from .errors import UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger("roster_extraction.vision_client")

DEFAULT_VISION_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4.1")
VISION_TIMEOUT_SECONDS = float(os.environ.get("VISION_TIMEOUT_SECONDS", "600"))
VISION_MAX_OUTPUT_TOKENS = int(os.environ.get("VISION_MAX_OUTPUT_TOKENS", "32000"))


class VisionResponse(NamedTuple):
    text: str
    model: str
    finish_reason: Optional[str]
    duration_s: float


class OpenAIVisionClient:
    """Single-shot chat completion call with images; no retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_s: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or DEFAULT_VISION_MODEL
        self.timeout_s = timeout_s if timeout_s is not None else VISION_TIMEOUT_SECONDS
        self.max_output_tokens = max_output_tokens or VISION_MAX_OUTPUT_TOKENS

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _create(self, messages: List[Dict[str, Any]]):
        async with AsyncOpenAI(api_key=self.api_key, max_retries=0) as client:
            return await client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_output_tokens,
                temperature=0,
            )

    async def complete(self, messages: List[Dict[str, Any]]) -> VisionResponse:
        """
        Send the extraction request and return the raw model text.

        Raises:
            UpstreamUnavailableError: on missing key, API failure or timeout
        """
        if not self.is_configured:
            raise UpstreamUnavailableError("Vision model is not configured (OPENAI_API_KEY missing)")

        started_at = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._create(messages), timeout=self.timeout_s)
        except asyncio.TimeoutError as err:
            logger.error("Vision request timed out after %.0fs using model '%s'", self.timeout_s, self.model)
            raise UpstreamTimeoutError(
                f"Vision model did not respond within {self.timeout_s:.0f} seconds"
            ) from err
        except APITimeoutError as err:
            logger.error(
                "Vision request timed out after %.2fs using model '%s': %s",
                time.perf_counter() - started_at,
                self.model,
                err,
            )
            raise UpstreamTimeoutError("Vision model request timed out") from err
        except APIConnectionError as err:
            logger.error(
                "Vision request connection error after %.2fs using model '%s': %s",
                time.perf_counter() - started_at,
                self.model,
                err,
            )
            raise UpstreamUnavailableError("Vision model is unreachable") from err
        except APIError as err:
            logger.error(
                "Vision request failed after %.2fs using model '%s': %s",
                time.perf_counter() - started_at,
                self.model,
                err,
            )
            raise UpstreamUnavailableError(f"Vision model request failed: {err}") from err

        duration_s = time.perf_counter() - started_at
        choice = response.choices[0] if response.choices else None
        text = (choice.message.content or "") if choice else ""
        finish_reason = choice.finish_reason if choice else None
        if finish_reason == "length":
            logger.warning(
                "Vision response hit the output token limit (%s); truncation recovery may be needed",
                self.max_output_tokens,
            )

        logger.info(
            "Vision request completed in %.2fs using model '%s' (%d chars, finish_reason=%s)",
            duration_s,
            self.model,
            len(text),
            finish_reason,
        )
        return VisionResponse(text=text, model=response.model or self.model, finish_reason=finish_reason, duration_s=duration_s)
