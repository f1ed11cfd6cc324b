# services/openai_llm.py
from __future__ import annotations

import json
import logging
import re
from typing import Protocol

import openai
from openai import AsyncOpenAI

from api.app.config import get_settings
from services.errors import ParseError, ProviderError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?|\n?\s*```$")


class CompletionService(Protocol):
    async def complete(self, messages: list[dict], *, temperature: float = 0.3) -> str:
        ...


class OpenAICompletionService:
    """
    Completion service backed by the OpenAI SDK.

    Works against any OpenAI-compatible endpoint (set `openai_base_url`).
    Every call carries an explicit timeout; a timeout is reported as a
    ProviderError like any other transport failure.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.openai_model
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self._client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_retries=0,
        )

    async def complete(self, messages: list[dict], *, temperature: float = 0.3) -> str:
        logger.info("LLM: sending %d messages to %s", len(messages), self.model)
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except openai.APITimeoutError as exc:
            raise ProviderError("completion timed out", context={"model": self.model}) from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                "completion request rejected",
                context={"model": self.model, "status": exc.status_code},
            ) from exc
        except openai.APIError as exc:
            raise ProviderError("completion request failed", context={"model": self.model}) from exc

        text = response.choices[0].message.content or ""
        logger.info("LLM: got %d chars response", len(text))
        return text


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_json_object(text: str) -> dict:
    """
    Parse completion text as a JSON object.

    Markdown fences are tolerated. Anything that is not a JSON object
    raises ParseError; an empty reply parses as {}.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return {}
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError("completion is not valid JSON", context={"chars": len(cleaned)}) from exc
    if not isinstance(data, dict):
        raise ParseError("completion JSON is not an object", context={"type": type(data).__name__})
    return data
