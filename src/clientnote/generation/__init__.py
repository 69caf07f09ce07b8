"""
Generation — orchestration of analysis, composition and streaming.

Key components:
- GenerationOrchestrator: single-flight jobs per activity, cancellation
- GenerationHandle: delta iterator, result, cancel for one job
- ProgressBus: per-activity pub/sub of GenerationEvents
- reasoning: <think> segment handling while streaming
"""

from clientnote.generation.contracts import (
    GenerationEvent,
    GenerationEventType,
    GenerationJob,
    JobState,
)
from clientnote.generation.events import ProgressBus, activity_topic
from clientnote.generation.orchestrator import (
    GenerationHandle,
    GenerationObserver,
    GenerationOrchestrator,
)

__all__ = [
    "GenerationEvent",
    "GenerationEventType",
    "GenerationJob",
    "JobState",
    "ProgressBus",
    "activity_topic",
    "GenerationHandle",
    "GenerationObserver",
    "GenerationOrchestrator",
]
