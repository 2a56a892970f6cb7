"""Mock model provider for local development and testing.

Returns canned responses. No real service calls.
"""

from __future__ import annotations

from collections import deque

from lensmap.core.exceptions import EnhancementServiceError
from lensmap.core.protocols import ChatResult


class MockModelProvider:
    """IModelProvider implementation that returns deterministic mock responses."""

    def __init__(
        self,
        default_response: str = "[]",
        *,
        configured: bool = True,
        total_tokens: int | None = None,
    ) -> None:
        self._default_response = default_response
        self._configured = configured
        self._total_tokens = total_tokens
        self._canned_responses: dict[str, str] = {}
        self._queue: deque[str | Exception] = deque()
        self.calls: list[list[dict[str, str]]] = []
        self.closed = False

    @property
    def is_configured(self) -> bool:
        return self._configured

    def set_response(self, prompt_contains: str, response: str) -> None:
        """Register a canned response for prompts containing a keyword."""
        self._canned_responses[prompt_contains] = response

    def queue_response(self, response: str) -> None:
        """Queue a response for the next call, ahead of canned responses."""
        self._queue.append(response)

    def queue_failure(self, error: Exception | None = None) -> None:
        self._queue.append(error or EnhancementServiceError("Mock failure", status_code=500))

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> ChatResult:
        self.calls.append(messages)
        if self._queue:
            queued = self._queue.popleft()
            if isinstance(queued, Exception):
                raise queued
            return ChatResult(content=queued, total_tokens=self._total_tokens)

        last_content = messages[-1].get("content", "") if messages else ""
        for keyword, response in self._canned_responses.items():
            if keyword in last_content:
                return ChatResult(content=response, total_tokens=self._total_tokens)
        return ChatResult(content=self._default_response, total_tokens=self._total_tokens)

    async def aclose(self) -> None:
        self.closed = True
