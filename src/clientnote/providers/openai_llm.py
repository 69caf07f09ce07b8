"""
OpenAI Inference Client — remote models via any OpenAI-compatible API.

base_url lets the same adapter talk to OpenRouter, vLLM, LM Studio or a
hosted Ollama /v1 endpoint. top_k has no OpenAI equivalent and is dropped.
"""

from __future__ import annotations

import logging
import time
from typing import AsyncGenerator

import openai
from openai import AsyncOpenAI

import clientnote.core.config as config_module
from clientnote.core.errors import BackendHTTPError, BackendTimeout, BackendUnreachable
from clientnote.core.metrics import metrics
from clientnote.providers.base import InferenceClient, InferenceRequest

logger = logging.getLogger(__name__)


class OpenAIInferenceClient(InferenceClient):
    def __init__(self, client: AsyncOpenAI | None = None):
        self.client: AsyncOpenAI | None = client

    async def start(self) -> None:
        if self.client:
            return  # Already started

        llm = config_module.config.llm
        client_kwargs: dict = {"timeout": llm.timeout, "max_retries": 0}
        if llm.api_key:
            client_kwargs["api_key"] = llm.api_key
        if llm.base_url:
            client_kwargs["base_url"] = llm.base_url
            logger.info(f"Using custom base_url: {llm.base_url}")

        self.client = AsyncOpenAI(**client_kwargs)
        logger.info(f"OpenAI client ready (model={llm.model})")

    async def stop(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None

    async def reachable(self) -> bool:
        if not self.client:
            return False
        try:
            await self.client.models.list()
            return True
        except openai.OpenAIError:
            return False

    async def list_models(self) -> list[str]:
        if not self.client:
            raise RuntimeError("OpenAI client not started")

        try:
            return [m.id async for m in self.client.models.list()]
        except openai.OpenAIError as e:
            raise _translate(e) from e

    async def generate(self, request: InferenceRequest) -> AsyncGenerator[str, None]:
        if not self.client:
            raise RuntimeError("OpenAI client not started")

        started = time.time()
        metrics.inc("provider.llm.requests", labels={"provider": "openai"})
        sampling = request.sampling
        kwargs: dict = {
            "model": request.model,
            "messages": request.to_messages(),
            "temperature": sampling.temperature,
            "top_p": sampling.top_p,
            "max_tokens": sampling.max_tokens or config_module.config.llm.max_tokens,
            "stream": request.stream,
        }

        try:
            if not request.stream:
                completion = await self.client.chat.completions.create(**kwargs)
                content = completion.choices[0].message.content if completion.choices else ""
                if content:
                    yield content
            else:
                stream = await self.client.chat.completions.create(**kwargs)
                try:
                    async for chunk in stream:
                        if not chunk.choices:
                            continue
                        delta = chunk.choices[0].delta
                        if delta.content:
                            yield delta.content
                finally:
                    await stream.close()
        except openai.OpenAIError as e:
            metrics.inc("provider.llm.errors", labels={"provider": "openai"})
            raise _translate(e) from e

        metrics.observe(
            "provider.llm.latency_ms",
            (time.time() - started) * 1000,
            labels={"provider": "openai"},
        )

    async def health_check(self) -> dict:
        return {
            "provider": "openai",
            "model": config_module.config.llm.model,
            "status": "ready" if self.client else "not_started",
        }


def _translate(exc: openai.OpenAIError) -> Exception:
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(exc, openai.APITimeoutError):
        return BackendTimeout(str(exc))
    if isinstance(exc, openai.APIConnectionError):
        return BackendUnreachable(str(exc))
    if isinstance(exc, openai.APIStatusError):
        return BackendHTTPError(exc.status_code, exc.message)
    return BackendUnreachable(str(exc))
