"""
Activity Models — clients, activities, and the persisted exchange.

Hierarchy:
  Client → Activity → PersistedExchange

A client owns its activities (deleting a client deletes them). An activity
holds at most one PersistedExchange: the display prompt the clinician
supplied and the final model response. Scratch work from analysis passes
never lands here.

PersistedExchange, LegacyText and Message are frozen; Client and Activity
are mutable records owned by the ActivityStore.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ActivityType(str, Enum):
    """What the clinician is producing."""

    SESSION_NOTE = "session_note"
    TREATMENT_PLAN = "treatment_plan"
    BRAINSTORM = "brainstorm"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    ActivityType.SESSION_NOTE: "Session Note",
    ActivityType.TREATMENT_PLAN: "Treatment Plan",
    ActivityType.BRAINSTORM: "Brainstorm",
}


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class PersistedExchange:
    """The single (display prompt, final response) pair kept per activity."""

    display_prompt: str
    final_response: str
    format_used: str | None = None


@dataclass(frozen=True)
class LegacyText:
    """A record written before the structured schema existed.

    The whole blob is treated as a response; there is no display prompt.
    """

    text: str

    @property
    def display_prompt(self) -> str:
        return ""

    @property
    def final_response(self) -> str:
        return self.text

    @property
    def format_used(self) -> None:
        return None


Record = Union[PersistedExchange, LegacyText]


@dataclass(frozen=True)
class Message:
    """One turn in the transient conversation buffer."""

    role: Role
    content: str
    activity_id: str = ""
    created_at: float = field(default_factory=time.time)

    def to_chat_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class Activity:
    """One discrete task for a client."""

    client_id: str
    type: ActivityType
    title: str = ""
    activity_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    persisted_record: Record | None = None

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        if self.persisted_record is not None:
            first_line = self.persisted_record.display_prompt.strip().split("\n", 1)[0]
            if first_line:
                return first_line[:50]
        return self.type.label


@dataclass
class Client:
    """A person receiving care. Activities are kept in creation order."""

    display_name: str
    client_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    activities: list[Activity] = field(default_factory=list)

    def find_activity(self, activity_id: str) -> Activity | None:
        for activity in self.activities:
            if activity.activity_id == activity_id:
                return activity
        return None

    def latest_activity(self) -> Activity | None:
        return self.activities[-1] if self.activities else None


@dataclass(frozen=True)
class SamplingParams:
    """Sampling knobs forwarded to the backend."""

    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40
    max_tokens: int | None = None


@dataclass(frozen=True)
class ActivityConfig:
    """Type-specific configuration of the active activity.

    Reset to the type's defaults whenever the active activity changes.
    """

    system_prompt: str
    sampling: SamplingParams = field(default_factory=SamplingParams)


@dataclass(frozen=True)
class Selection:
    """The (client, activity) pair currently in focus. Either may be None."""

    client_id: str | None = None
    activity_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.client_id is None and self.activity_id is None
