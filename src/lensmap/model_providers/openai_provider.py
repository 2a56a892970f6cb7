"""OpenAI-compatible chat-completions provider over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from lensmap.core.config import LLMConfig
from lensmap.core.exceptions import EnhancementServiceError
from lensmap.core.protocols import ChatResult

logger = logging.getLogger(__name__)


class OpenAIChatProvider:
    """IModelProvider that POSTs to ``{base_url}/chat/completions``.

    Every failure surfaces as EnhancementServiceError. Nothing is retried.
    """

    def __init__(self, config: LLMConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        # Credential is read once, here.
        self._api_key = config.api_key.get_secret_value() if config.api_key else ""
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
        )
        logger.info(
            "OpenAI provider initialized (model=%s, credential=%s)",
            config.model, "present" if self._api_key else "missing",
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> ChatResult:
        if not self._api_key:
            raise EnhancementServiceError("No API credential configured")

        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.post(
                "/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            raise EnhancementServiceError(f"Transport error: {exc}") from exc

        if response.status_code >= 400:
            raise EnhancementServiceError(
                f"Service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EnhancementServiceError("Malformed chat-completions response") from exc

        usage = body.get("usage") or {}
        total_tokens = usage.get("total_tokens")
        return ChatResult(
            content=content or "",
            total_tokens=int(total_tokens) if isinstance(total_tokens, (int, float)) else None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
