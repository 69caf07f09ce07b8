"""
Ollama Inference Client — local models over the Ollama HTTP API.

Endpoints used:
  GET  /           reachability ("Ollama is running")
  GET  /api/tags   installed models
  POST /api/chat   generation; with stream=true the body is NDJSON,
                   one {"message": {"content": ...}, "done": bool} per line

Uses httpx (already a transitive dep via openai).
"""

from __future__ import annotations

import json
import logging
import time
from typing import AsyncGenerator

import httpx

import clientnote.core.config as config_module
from clientnote.core.errors import BackendHTTPError, BackendTimeout, BackendUnreachable
from clientnote.core.metrics import metrics
from clientnote.providers.base import InferenceClient, InferenceRequest

logger = logging.getLogger(__name__)


class OllamaInferenceClient(InferenceClient):
    def __init__(
        self,
        host: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        llm = config_module.config.llm
        self.host = (host or llm.host).rstrip("/")
        self._transport = transport
        self.client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self.client:
            return  # Already started

        llm = config_module.config.llm
        self.client = httpx.AsyncClient(
            base_url=self.host,
            timeout=httpx.Timeout(llm.timeout, connect=llm.connect_timeout),
            transport=self._transport,
        )
        logger.info(f"Ollama client ready (host={self.host})")

    async def stop(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def reachable(self) -> bool:
        if not self.client:
            return False
        try:
            response = await self.client.get("/", timeout=2.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def list_models(self) -> list[str]:
        if not self.client:
            raise RuntimeError("Ollama client not started")

        try:
            response = await self.client.get("/api/tags")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise _translate(e) from e

        return [m["name"] for m in response.json().get("models", []) if m.get("name")]

    async def generate(self, request: InferenceRequest) -> AsyncGenerator[str, None]:
        if not self.client:
            raise RuntimeError("Ollama client not started")

        started = time.time()
        metrics.inc("provider.llm.requests", labels={"provider": "ollama"})

        try:
            async with self.client.stream(
                "POST", "/api/chat", json=self._payload(request)
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise BackendHTTPError(response.status_code, _error_message(body))

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed Ollama stream line")
                        continue
                    if chunk.get("error"):
                        raise BackendHTTPError(500, str(chunk["error"]))
                    content = (chunk.get("message") or {}).get("content") or ""
                    if content:
                        yield content
                    if chunk.get("done"):
                        break
        except httpx.HTTPError as e:
            metrics.inc("provider.llm.errors", labels={"provider": "ollama"})
            raise _translate(e) from e

        metrics.observe(
            "provider.llm.latency_ms",
            (time.time() - started) * 1000,
            labels={"provider": "ollama"},
        )

    def _payload(self, request: InferenceRequest) -> dict:
        llm = config_module.config.llm
        sampling = request.sampling
        options = {
            "temperature": sampling.temperature,
            "top_p": sampling.top_p,
            "top_k": sampling.top_k,
            "num_ctx": llm.num_ctx,
            "num_predict": sampling.max_tokens or llm.max_tokens,
        }
        return {
            "model": request.model,
            "messages": request.to_messages(),
            "stream": request.stream,
            "options": options,
        }

    async def health_check(self) -> dict:
        return {
            "provider": "ollama",
            "host": self.host,
            "status": "ready" if await self.reachable() else "unreachable",
        }


def _error_message(body: str) -> str:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body[:200]
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return body[:200]


def _translate(exc: httpx.HTTPError) -> Exception:
    if isinstance(exc, httpx.TimeoutException):
        return BackendTimeout(f"Ollama timed out: {exc.__class__.__name__}")
    if isinstance(exc, httpx.HTTPStatusError):
        return BackendHTTPError(exc.response.status_code)
    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
        return BackendUnreachable(f"Cannot reach Ollama: {exc}")
    return BackendUnreachable(f"Ollama request failed: {exc}")
