"""
ClientNote — clinical documentation generation service.

Wires the activity store, the inference backend and the generation
orchestrator into a FastAPI app.

Run: uvicorn clientnote.main:create_app --factory --host 127.0.0.1 --port 8000
  or: clientnote  (console script, reads CLIENTNOTE_HOST / CLIENTNOTE_PORT)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

import clientnote.core.config as config_module
from clientnote.activity.store import ActivityStore
from clientnote.core.logging import setup_logging
from clientnote.generation.orchestrator import GenerationOrchestrator
from clientnote.http.activities import create_activity_router
from clientnote.persistence.repository import ActivityRepository
from clientnote.providers import InferenceClient, get_inference_client

logger = logging.getLogger("clientnote")


def create_app(
    repository: ActivityRepository | None = None,
    client: InferenceClient | None = None,
) -> FastAPI:
    """Build the app. Pass a repository or client to override the configured ones."""
    app = FastAPI(title="ClientNote", version="0.1.0")

    repository = repository or ActivityRepository()
    client = client or get_inference_client()
    store = ActivityStore(repository)
    orchestrator = GenerationOrchestrator(store, client)

    app.state.store = store
    app.state.orchestrator = orchestrator
    app.include_router(create_activity_router(store, orchestrator))

    @app.on_event("startup")
    async def startup():
        await repository.start()
        await store.load()
        await client.start()
        logger.info(
            "ClientNote ready (provider=%s, model=%s)",
            config_module.config.llm.provider,
            orchestrator.model,
        )

    @app.on_event("shutdown")
    async def shutdown():
        cancelled = await orchestrator.shutdown()
        if cancelled:
            logger.info("Cancelled %d in-flight generations", cancelled)
        await client.stop()
        await repository.stop()

    return app


def run() -> None:
    import uvicorn

    setup_logging()
    server = config_module.config.server
    uvicorn.run(create_app(), host=server.host, port=server.port)


if __name__ == "__main__":
    run()
