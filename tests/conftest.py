"""Shared fixtures: temp-dir repository and a scripted inference backend."""

import asyncio
import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from clientnote.activity.store import ActivityStore
from clientnote.core.metrics import metrics
from clientnote.persistence.repository import ActivityRepository
from clientnote.providers.base import InferenceClient, InferenceRequest

MODALITIES_TEXT = "CBT: cognitive restructuring observed."
ENGAGEMENT_TEXT = "Client was engaged and receptive."


class ScriptedInferenceClient(InferenceClient):
    """Fake backend.

    Streaming requests yield `chunks`. If `hold` is set, the stream pauses
    after `hold_after` chunks until the event is set. Non-streaming
    (analysis) requests return canned text based on the prompt.
    """

    def __init__(
        self,
        chunks=("Hello", " world"),
        models=("qwen3:0.6b",),
        stream_error: Exception | None = None,
        analysis_error: Exception | None = None,
        analysis_delay: float = 0.0,
        hold: asyncio.Event | None = None,
        hold_after: int = 1,
    ):
        self.chunks = list(chunks)
        self.models = list(models)
        self.stream_error = stream_error
        self.analysis_error = analysis_error
        self.analysis_delay = analysis_delay
        self.hold = hold
        self.hold_after = hold_after
        self.requests: list[InferenceRequest] = []
        self.streams_opened = 0
        self.streams_closed = 0
        self.started = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    async def reachable(self) -> bool:
        return True

    async def list_models(self) -> list[str]:
        return list(self.models)

    @property
    def stream_requests(self) -> list[InferenceRequest]:
        return [r for r in self.requests if r.stream]

    @property
    def analysis_requests(self) -> list[InferenceRequest]:
        return [r for r in self.requests if not r.stream]

    async def generate(self, request: InferenceRequest) -> AsyncGenerator[str, None]:
        self.requests.append(request)
        if not request.stream:
            if self.analysis_delay:
                await asyncio.sleep(self.analysis_delay)
            if self.analysis_error is not None:
                raise self.analysis_error
            if request.user_prompt.startswith("Analyze"):
                yield MODALITIES_TEXT
            else:
                yield ENGAGEMENT_TEXT
            return

        self.streams_opened += 1
        try:
            for i, chunk in enumerate(self.chunks):
                if self.hold is not None and i == self.hold_after:
                    await self.hold.wait()
                yield chunk
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.streams_closed += 1


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest_asyncio.fixture
async def repository():
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = ActivityRepository(db_path=Path(tmpdir) / "test_clientnote.db")
        await repo.start()
        yield repo
        await repo.stop()


@pytest_asyncio.fixture
async def store(repository):
    return ActivityStore(repository)


@pytest.fixture
def scripted_client():
    return ScriptedInferenceClient()


async def fail_record_writes(repository: ActivityRepository) -> None:
    """Make every later record write on this repository fail with a SQLite error."""
    await repository._db.execute(
        "CREATE TRIGGER fail_record BEFORE UPDATE OF record ON activities "
        "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
    )
    await repository._db.commit()
