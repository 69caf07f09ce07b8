"""
Error kinds and the exception hierarchy.

Every failure that can reach a caller carries an ErrorKind, so the
presentation layer can decide between a retry affordance and a silent
recovery without string matching.

    ClientNoteError
    ├── InferenceError
    │   ├── BackendUnreachable
    │   ├── BackendHTTPError(status)
    │   └── BackendTimeout
    ├── GenerationCancelled
    ├── InvalidActivitySelection(fallback)
    ├── NoActiveModel
    ├── AlreadyGenerating
    ├── MalformedPersistedRecord   (codec-internal, always recovered)
    └── PersistenceError           (record write failed, nothing kept)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    BACKEND_UNREACHABLE = "backend_unreachable"
    BACKEND_HTTP_ERROR = "backend_http_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INVALID_ACTIVITY_SELECTION = "invalid_activity_selection"
    MALFORMED_PERSISTED_RECORD = "malformed_persisted_record"
    PERSISTENCE_FAILED = "persistence_failed"
    NO_ACTIVE_MODEL = "no_active_model"
    ALREADY_GENERATING = "already_generating"


class ClientNoteError(Exception):
    """Base class. Subclasses pin `kind`."""

    kind: ErrorKind = ErrorKind.BACKEND_UNREACHABLE
    recoverable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "kind": self.kind.value,
            "recoverable": self.recoverable,
        }


# ─── Backend errors ───────────────────────────────────────────


class InferenceError(ClientNoteError):
    """Raised by InferenceClient implementations."""

    recoverable = True


class BackendUnreachable(InferenceError):
    kind = ErrorKind.BACKEND_UNREACHABLE


class BackendHTTPError(InferenceError):
    kind = ErrorKind.BACKEND_HTTP_ERROR

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(message or f"Backend returned HTTP {status}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class BackendTimeout(InferenceError):
    kind = ErrorKind.TIMEOUT


# ─── Generation lifecycle ─────────────────────────────────────


class GenerationCancelled(ClientNoteError):
    kind = ErrorKind.CANCELLED
    recoverable = True


class NoActiveModel(ClientNoteError):
    kind = ErrorKind.NO_ACTIVE_MODEL


class AlreadyGenerating(ClientNoteError):
    kind = ErrorKind.ALREADY_GENERATING

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"A generation is already running for activity {activity_id}")


# ─── Selection & persistence ──────────────────────────────────


class InvalidActivitySelection(ClientNoteError):
    """The requested client/activity does not exist.

    By the time this is raised the store has already moved to `fallback`
    (a Selection, possibly empty), so the error is informational.
    """

    kind = ErrorKind.INVALID_ACTIVITY_SELECTION
    recoverable = True

    def __init__(self, message: str, fallback: Any = None):
        self.fallback = fallback
        super().__init__(message)


class MalformedPersistedRecord(ClientNoteError):
    kind = ErrorKind.MALFORMED_PERSISTED_RECORD
    recoverable = True


class PersistenceError(ClientNoteError):
    """A record could not be written. Memory and buffer were left as they were."""

    kind = ErrorKind.PERSISTENCE_FAILED
    recoverable = True
