"""
Inference boundary — what it means to be a text-generation backend.

Everything above this line (analysis, orchestration) talks to an
InferenceClient and nothing else. Implementations translate their
library's failures into the InferenceError family so callers can tell
"backend down" from "backend said no" from "backend too slow".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncGenerator

from clientnote.activity.models import SamplingParams


@dataclass(frozen=True)
class InferenceRequest:
    """One call to the backend: a system prompt plus a single user turn."""

    system_prompt: str
    user_prompt: str
    model: str
    sampling: SamplingParams = field(default_factory=SamplingParams)
    stream: bool = True

    def to_messages(self) -> list[dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.user_prompt})
        return messages


class InferenceClient(ABC):
    """Text-generation backend interface."""

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def reachable(self) -> bool:
        """True if the backend answers at all. Never raises."""
        ...

    @abstractmethod
    async def list_models(self) -> list[str]:
        ...

    @abstractmethod
    async def generate(self, request: InferenceRequest) -> AsyncGenerator[str, None]:
        """Yield text deltas as they arrive.

        A non-streaming request yields exactly one chunk. Closing the
        generator early (aclose) must release the underlying connection.
        """
        yield  # type: ignore

    async def complete(self, request: InferenceRequest) -> str:
        """Run a request to completion and return the whole text."""
        parts: list[str] = []
        stream = self.generate(request)
        try:
            async for delta in stream:
                parts.append(delta)
        finally:
            await stream.aclose()
        return "".join(parts)

    async def health_check(self) -> dict:
        return {"provider": self.__class__.__name__, "status": "unknown"}
