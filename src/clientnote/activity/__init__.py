"""
Activity management — clients, activities, and the transient buffer.

Key components:
- models: Client, Activity, PersistedExchange and friends
- ConversationBuffer: messages of the active activity only
- ActivityStore: selection, fallback, config reset, write-through persistence
"""

from clientnote.activity.models import (
    Activity,
    ActivityConfig,
    ActivityType,
    Client,
    LegacyText,
    Message,
    PersistedExchange,
    Role,
    SamplingParams,
    Selection,
)
from clientnote.activity.buffer import ConversationBuffer
from clientnote.activity.store import ActivityStore

__all__ = [
    "Activity",
    "ActivityConfig",
    "ActivityType",
    "Client",
    "LegacyText",
    "Message",
    "PersistedExchange",
    "Role",
    "SamplingParams",
    "Selection",
    "ActivityStore",
    "ConversationBuffer",
]
