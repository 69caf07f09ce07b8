"""
Generation Contracts — the job record and the events it emits.

- JobState: lifecycle of one generation
- GenerationJob: everything the orchestrator tracks for an in-flight job
- GenerationEvent: what observers, handles and SSE clients receive

Event types:
- state:     {state}
- delta:     {delta, text}      text = everything streamed so far
- complete:  {display_prompt, final_response, format_used}
- error:     {error, kind, recoverable[, status]}
- cancelled: {}
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from clientnote.activity.models import ActivityType, PersistedExchange
from clientnote.analysis.stage import AnalysisResult
from clientnote.core.errors import ClientNoteError


class JobState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPOSING = "composing"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.CANCELLED, JobState.FAILED)


class GenerationEventType(str, Enum):
    STATE = "state"
    DELTA = "delta"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class GenerationJob:
    """One in-flight generation. Discarded once it reaches a terminal state."""

    activity_id: str
    activity_type: ActivityType
    raw_input: str
    selected_format: str | None = None
    job_id: str = field(default_factory=lambda: f"gen-{uuid.uuid4().hex[:8]}")
    state: JobState = JobState.IDLE
    analysis_outputs: list[AnalysisResult] = field(default_factory=list)
    display_prompt: str = ""
    model_prompt: str = ""
    streamed_so_far: str = ""
    started_at: float = field(default_factory=time.time)


@dataclass
class GenerationEvent:
    activity_id: str
    job_id: str
    event_type: GenerationEventType
    sequence: int = 0
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.event_type in (
            GenerationEventType.COMPLETE,
            GenerationEventType.ERROR,
            GenerationEventType.CANCELLED,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type.value,
            "activity_id": self.activity_id,
            "job_id": self.job_id,
            "sequence": self.sequence,
            **self.payload,
        }

    @classmethod
    def state(cls, job: GenerationJob, sequence: int) -> GenerationEvent:
        return cls(
            job.activity_id,
            job.job_id,
            GenerationEventType.STATE,
            sequence,
            {"state": job.state.value},
        )

    @classmethod
    def delta(
        cls, job: GenerationJob, text: str, sequence: int, in_reasoning: bool = False
    ) -> GenerationEvent:
        return cls(
            job.activity_id,
            job.job_id,
            GenerationEventType.DELTA,
            sequence,
            {"delta": text, "text": job.streamed_so_far, "in_reasoning": in_reasoning},
        )

    @classmethod
    def complete(
        cls, job: GenerationJob, exchange: PersistedExchange, sequence: int
    ) -> GenerationEvent:
        return cls(
            job.activity_id,
            job.job_id,
            GenerationEventType.COMPLETE,
            sequence,
            {
                "display_prompt": exchange.display_prompt,
                "final_response": exchange.final_response,
                "format_used": exchange.format_used,
            },
        )

    @classmethod
    def error(cls, job: GenerationJob, error: ClientNoteError, sequence: int) -> GenerationEvent:
        return cls(
            job.activity_id, job.job_id, GenerationEventType.ERROR, sequence, error.to_dict()
        )

    @classmethod
    def cancelled(cls, job: GenerationJob, sequence: int) -> GenerationEvent:
        return cls(job.activity_id, job.job_id, GenerationEventType.CANCELLED, sequence)
