"""Chat-completion client for strategy generation.

Speaks the OpenAI-compatible ``/chat/completions`` API over httpx, so any
compatible endpoint works by changing ``AI_BASE_URL``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from agencyhub.core.config import SETTINGS
from agencyhub.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str  # system|user|assistant
    content: str


@dataclass(frozen=True, slots=True)
class ChatResponse:
    content: str
    model: str
    total_tokens: int = 0


class AIProvider(Protocol):
    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> ChatResponse: ...


class OpenAICompatibleProvider:
    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> ChatResponse:
        if not self._api_key:
            raise UpstreamError("AI", "AI_API_KEY is not configured")

        body: dict = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            logger.error("AI provider returned %s: %s", e.response.status_code, e.response.text[:500])
            raise UpstreamError("AI", f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("AI provider request failed: %s", e)
            raise UpstreamError("AI", str(e)) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("AI provider returned an unexpected body: %s", e)
            raise UpstreamError("AI", "malformed completion response") from e

        return ChatResponse(
            content=content or "",
            model=data.get("model", self._model),
            total_tokens=(data.get("usage") or {}).get("total_tokens", 0),
        )


def build_provider() -> AIProvider:
    return OpenAICompatibleProvider(
        api_key=SETTINGS.ai_api_key,
        base_url=SETTINGS.ai_base_url,
        model=SETTINGS.ai_model,
        timeout=SETTINGS.ai_timeout_seconds,
    )
