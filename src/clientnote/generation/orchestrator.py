"""
Generation Orchestrator — one generation job per activity, end to end.

    start(activity_id, raw_input)
      └── asyncio.Task per job
            analyzing  → AnalysisStage (session notes only)
            composing  → PromptComposer
            streaming  → InferenceClient.generate(), deltas published live
            completed  → ActivityStore.record_exchange (persist, then buffer pair)

Rules:
- at most one in-flight job per activity; different activities may
  generate concurrently and switching the active activity never cancels
  a background job;
- the buffer is cleared when a job starts and left untouched until the
  stream ends, then gets exactly one user and one assistant message;
- cancellation closes the backend stream and discards partial output;
  it is idempotent and a no-op once a job has finished;
- backend errors while streaming, and a failed record write, fail the job
  and persist nothing.

Progress reaches callers three ways: the GenerationHandle returned by
start(), registered GenerationObservers, and the ProgressBus topic
activity.{id}.events.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator, Literal, Protocol

import clientnote.core.config as config_module
from clientnote.activity.models import ActivityConfig, PersistedExchange
from clientnote.activity.store import ActivityStore
from clientnote.analysis.stage import AnalysisStage
from clientnote.core.errors import (
    AlreadyGenerating,
    ClientNoteError,
    ErrorKind,
    GenerationCancelled,
    InvalidActivitySelection,
    NoActiveModel,
)
from clientnote.core.logging import PipelineTimer
from clientnote.core.metrics import metrics
from clientnote.generation.contracts import (
    GenerationEvent,
    GenerationEventType,
    GenerationJob,
    JobState,
)
from clientnote.generation.events import ProgressBus, activity_topic
from clientnote.generation.reasoning import ReasoningTracker, close_open_reasoning
from clientnote.prompts.composer import PromptComposer
from clientnote.prompts.forms import Form, SessionNoteForm
from clientnote.providers.base import InferenceClient, InferenceRequest

logger = logging.getLogger(__name__)

# Sentinel closing a handle's queue when a job dies without a terminal event
_HANDLE_END = object()


class GenerationObserver(Protocol):
    def on_progress(self, activity_id: str, partial_text: str) -> None: ...

    def on_complete(self, activity_id: str, exchange: PersistedExchange) -> None: ...

    def on_error(self, activity_id: str, error_kind: ErrorKind) -> None: ...


class GenerationHandle:
    """Caller's view of one job.

    Consume either deltas() or events(), not both: they drain the same
    queue. result() can always be awaited.
    """

    def __init__(self, orchestrator: GenerationOrchestrator, job: GenerationJob):
        self._orchestrator = orchestrator
        self.job = job
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._sequence = 0
        self._closed = False

    @property
    def activity_id(self) -> str:
        return self.job.activity_id

    @property
    def job_id(self) -> str:
        return self.job.job_id

    @property
    def state(self) -> JobState:
        return self.job.state

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> bool:
        """Cancel this job. Returns False if it already finished."""
        return self._orchestrator._cancel_job(self.job)

    async def events(self) -> AsyncGenerator[GenerationEvent, None]:
        """Yield every event of the job, ending after the terminal one."""
        while True:
            item = await self._queue.get()
            if item is _HANDLE_END:
                return
            yield item
            if item.terminal:
                return

    async def deltas(self) -> AsyncGenerator[str, None]:
        """Yield streamed text deltas until the job ends. Use result() for the outcome."""
        async for event in self.events():
            if event.event_type is GenerationEventType.DELTA:
                yield event.payload["delta"]

    async def result(self) -> PersistedExchange:
        """Wait for the job. Raises GenerationCancelled or the job's error.

        Cancelling the awaiting task does not cancel the job.
        """
        assert self._task is not None
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                raise GenerationCancelled(
                    f"Generation for activity {self.activity_id} was cancelled"
                ) from None
            raise

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence


class GenerationOrchestrator:
    def __init__(
        self,
        store: ActivityStore,
        client: InferenceClient | None,
        model: str | None = None,
        bus: ProgressBus | None = None,
        analysis: AnalysisStage | None = None,
        composer: PromptComposer | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self.model = config_module.config.llm.model if model is None else model
        self._bus = bus or ProgressBus()
        self._analysis = analysis or (AnalysisStage(client) if client is not None else None)
        self._composer = composer or PromptComposer()
        self._observers: list[GenerationObserver] = []

        # activity_id → running job
        self._tasks: dict[str, asyncio.Task] = {}
        self._jobs: dict[str, GenerationJob] = {}
        self._cancelling: set[str] = set()
        # job ids whose record is being written; no longer cancellable
        self._finalizing: set[str] = set()

    @property
    def bus(self) -> ProgressBus:
        return self._bus

    def add_observer(self, observer: GenerationObserver) -> None:
        self._observers.append(observer)

    # ─── Starting ─────────────────────────────────────────────────

    async def start(
        self,
        activity_id: str,
        raw_input: str,
        note_format: str | None = None,
        form: Form | None = None,
        on_busy: Literal["reject", "replace"] = "reject",
    ) -> GenerationHandle:
        if self._client is None or self._analysis is None or not self.model:
            raise NoActiveModel("No inference backend or model is configured")

        activity = self._store.get_activity(activity_id)
        if activity is None:
            raise InvalidActivitySelection(
                f"Unknown activity {activity_id}", self._store.selection
            )

        running = self._tasks.get(activity_id)
        if running is not None and not running.done():
            if on_busy != "replace":
                raise AlreadyGenerating(activity_id)
            await self._cancel_and_wait(activity_id)
            if activity_id in self._tasks:
                # another caller started a job while we waited
                raise AlreadyGenerating(activity_id)

        if self._store.buffer.activity_id == activity_id:
            self._store.clear_buffer()

        config = self._store.config_for(activity_id)
        job = GenerationJob(
            activity_id=activity_id,
            activity_type=activity.type,
            raw_input=raw_input,
            selected_format=note_format,
        )
        handle = GenerationHandle(self, job)
        task = asyncio.create_task(self._run(job, handle, form, config))
        handle._task = task
        self._tasks[activity_id] = task
        self._jobs[activity_id] = job
        task.add_done_callback(lambda t: self._on_done(job, handle, t))

        metrics.inc("generation.started", labels={"type": activity.type.value})
        logger.info(
            "Generation started (%s)",
            activity.type.value,
            extra={"activity_id": activity_id, "job_id": job.job_id, "model": self.model},
        )
        return handle

    # ─── Cancellation ─────────────────────────────────────────────

    def request_cancel(self, activity_id: str) -> bool:
        """Cancel the activity's in-flight job. Returns True if a cancel was issued.

        Safe to call repeatedly, from any task, for unknown or finished jobs.
        """
        job = self._jobs.get(activity_id)
        if job is None:
            return False
        return self._cancel_job(job)

    def _cancel_job(self, job: GenerationJob) -> bool:
        task = self._tasks.get(job.activity_id)
        if (
            task is None
            or task.done()
            or self._jobs.get(job.activity_id) is not job
            or job.state.terminal
            or job.job_id in self._cancelling
            or job.job_id in self._finalizing
        ):
            return False

        self._cancelling.add(job.job_id)
        task.cancel()
        logger.info(
            "Generation cancel requested",
            extra={"activity_id": job.activity_id, "job_id": job.job_id, "state": job.state.value},
        )
        return True

    async def _cancel_and_wait(self, activity_id: str) -> None:
        task = self._tasks.get(activity_id)
        if task is None:
            return
        self.request_cancel(activity_id)
        await asyncio.wait({task})

    # ─── Introspection ────────────────────────────────────────────

    def active_jobs(self) -> list[str]:
        return [aid for aid, t in self._tasks.items() if not t.done()]

    def job_state(self, activity_id: str) -> JobState:
        job = self._jobs.get(activity_id)
        return job.state if job else JobState.IDLE

    async def available_models(self) -> list[str]:
        if self._client is None:
            return []
        return await self._client.list_models()

    async def backend_reachable(self) -> bool:
        if self._client is None:
            return False
        return await self._client.reachable()

    async def shutdown(self) -> int:
        """Cancel every in-flight job and wait for them. Returns the count cancelled."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        cancelled = sum(1 for aid in list(self._tasks) if self.request_cancel(aid))
        if tasks:
            await asyncio.wait(tasks)
        return cancelled

    # ─── The job ──────────────────────────────────────────────────

    async def _run(
        self,
        job: GenerationJob,
        handle: GenerationHandle,
        form: Form | None,
        config: ActivityConfig,
    ) -> PersistedExchange:
        timer = PipelineTimer()
        topic = activity_topic(job.activity_id)
        log_extra = {"activity_id": job.activity_id, "job_id": job.job_id}

        try:
            self._set_state(job, handle, JobState.ANALYZING)
            provided = form.modalities if isinstance(form, SessionNoteForm) else None
            job.analysis_outputs = await self._analysis.analyze(
                job.activity_type,
                _analysis_input(job.raw_input, form, job.selected_format),
                self.model,
                provided_modalities=provided,
            )
            timer.mark("analysis")

            self._set_state(job, handle, JobState.COMPOSING)
            composed = self._composer.compose(
                job.activity_type,
                job.raw_input,
                note_format=job.selected_format,
                form=form,
                analyses=job.analysis_outputs,
                config=config,
            )
            job.display_prompt = composed.display_prompt
            job.model_prompt = composed.model_prompt
            timer.mark("compose")

            self._set_state(job, handle, JobState.STREAMING)
            request = InferenceRequest(
                system_prompt=composed.system_prompt,
                user_prompt=composed.model_prompt,
                model=self.model,
                sampling=config.sampling,
                stream=True,
            )
            tracker = ReasoningTracker()
            stream = self._client.generate(request)
            try:
                async for chunk in stream:
                    self._emit_delta(job, handle, tracker.feed(chunk), tracker.in_reasoning)
            finally:
                await stream.aclose()
            self._emit_delta(job, handle, tracker.flush(), tracker.in_reasoning)
            timer.mark("stream")

            exchange = PersistedExchange(
                display_prompt=composed.display_prompt,
                final_response=close_open_reasoning(job.streamed_so_far),
                format_used=composed.format_used,
            )
            # Past this point the job can no longer be cancelled
            self._finalizing.add(job.job_id)
            await self._store.record_exchange(job.activity_id, exchange)
            job.state = JobState.COMPLETED

            self._emit(handle, topic, GenerationEvent.complete(job, exchange, handle._next_sequence()))
            self._notify("on_complete", job.activity_id, exchange)

            duration_ms = timer.total() * 1000
            metrics.inc("generation.completed", labels={"type": job.activity_type.value})
            metrics.observe("generation.duration_ms", duration_ms)
            logger.info(
                "Generation completed (%d chars) %s",
                len(exchange.final_response),
                timer.summary(),
                extra={**log_extra, "duration_ms": duration_ms},
            )
            return exchange

        except asyncio.CancelledError:
            self._finish_cancelled(job, handle)
            raise

        except ClientNoteError as e:
            job.state = JobState.FAILED
            self._emit(handle, topic, GenerationEvent.error(job, e, handle._next_sequence()))
            self._notify("on_error", job.activity_id, e.kind)
            metrics.inc("generation.failed", labels={"kind": e.kind.value})
            logger.error(f"Generation failed: {e}", extra={**log_extra, "kind": e.kind.value})
            raise

    # ─── Helpers ──────────────────────────────────────────────────

    def _set_state(self, job: GenerationJob, handle: GenerationHandle, state: JobState) -> None:
        job.state = state
        self._emit(handle, activity_topic(job.activity_id), GenerationEvent.state(job, handle._next_sequence()))
        logger.debug(
            "Generation state → %s",
            state.value,
            extra={"activity_id": job.activity_id, "job_id": job.job_id, "state": state.value},
        )

    def _emit_delta(
        self, job: GenerationJob, handle: GenerationHandle, text: str, in_reasoning: bool
    ) -> None:
        if not text:
            return
        job.streamed_so_far += text
        event = GenerationEvent.delta(job, text, handle._next_sequence(), in_reasoning)
        self._emit(handle, activity_topic(job.activity_id), event)
        self._notify("on_progress", job.activity_id, job.streamed_so_far)

    def _emit(self, handle: GenerationHandle, topic: str, event: GenerationEvent) -> None:
        if event.terminal:
            handle._closed = True
        handle._queue.put_nowait(event)
        self._bus.publish(topic, event)

    def _finish_cancelled(self, job: GenerationJob, handle: GenerationHandle) -> None:
        job.state = JobState.CANCELLED
        self._emit(
            handle,
            activity_topic(job.activity_id),
            GenerationEvent.cancelled(job, handle._next_sequence()),
        )
        self._notify("on_error", job.activity_id, ErrorKind.CANCELLED)
        metrics.inc("generation.cancelled", labels={"type": job.activity_type.value})
        logger.info(
            "Generation cancelled (partial output discarded)",
            extra={"activity_id": job.activity_id, "job_id": job.job_id},
        )

    def _notify(self, method: str, activity_id: str, arg) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, method)(activity_id, arg)
            except Exception:
                logger.exception("Observer %s.%s failed", type(observer).__name__, method)

    def _on_done(self, job: GenerationJob, handle: GenerationHandle, task: asyncio.Task) -> None:
        # Runs for every job, including one cancelled before its first step
        if not handle._closed:
            if task.cancelled():
                self._finish_cancelled(job, handle)
            else:
                job.state = JobState.FAILED
                handle._closed = True
                handle._queue.put_nowait(_HANDLE_END)
                logger.error(
                    "Generation ended without a result",
                    exc_info=task.exception(),
                    extra={"activity_id": job.activity_id, "job_id": job.job_id},
                )
        self._bus.publish_end(activity_topic(job.activity_id))

        if self._tasks.get(job.activity_id) is task:
            del self._tasks[job.activity_id]
            self._jobs.pop(job.activity_id, None)
        self._cancelling.discard(job.job_id)
        self._finalizing.discard(job.job_id)
        # Mark the exception retrieved; handles and observers already saw it
        if not task.cancelled():
            task.exception()


def _analysis_input(raw_input: str, form: Form | None, note_format: str | None) -> str:
    """What the analysis passes read: the rendered form plus any free text."""
    if form is None:
        return raw_input
    parts = (form.render(note_format), raw_input)
    return "\n\n".join(p for p in parts if p.strip())
