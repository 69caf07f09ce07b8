"""
Conversation Buffer — transient messages of the active activity.

The buffer is bound to exactly one activity id at a time. Rebinding it
(on select/create) wipes it, and appending a message that belongs to any
other activity raises, so content can never cross activities.
"""

from __future__ import annotations

import logging

from clientnote.activity.models import Message, Role

logger = logging.getLogger(__name__)


class ConversationBuffer:
    def __init__(self) -> None:
        self._activity_id: str | None = None
        self._messages: list[Message] = []

    @property
    def activity_id(self) -> str | None:
        return self._activity_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def bind(self, activity_id: str | None) -> None:
        """Attach to a (possibly different) activity. Always empties the buffer."""
        self._messages.clear()
        self._activity_id = activity_id

    def clear(self) -> None:
        self._messages.clear()

    def append(self, activity_id: str, role: Role, content: str) -> Message:
        if activity_id != self._activity_id:
            raise ValueError(
                f"Buffer is bound to {self._activity_id!r}, refusing message for {activity_id!r}"
            )
        message = Message(role=role, content=content, activity_id=activity_id)
        self._messages.append(message)
        return message

    def append_pair(self, activity_id: str, user: str, assistant: str) -> None:
        """Append one user turn and one assistant turn."""
        self.append(activity_id, Role.USER, user)
        self.append(activity_id, Role.ASSISTANT, assistant)

    def as_chat_messages(self) -> list[dict[str, str]]:
        return [m.to_chat_message() for m in self._messages]
