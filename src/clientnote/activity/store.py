"""
Activity Store — clients, activities, the active selection, and the buffer.

The store owns the in-memory client tree, mirrors every change to the
ActivityRepository, and enforces activity isolation:

- selecting or creating an activity rebinds the ConversationBuffer, which
  empties it;
- switching resets the ActivityConfig to the new type's defaults;
- selecting something that no longer exists moves the selection to the
  most recent still-valid entry in the selection history (or the first
  client's newest activity, or nothing) and then raises
  InvalidActivitySelection carrying that fallback. The selection never
  points at a deleted activity.

Usage:
    store = ActivityStore(repository)
    await store.load()
    client = await store.create_client("J. Doe")
    activity = await store.create_activity(client.client_id, ActivityType.SESSION_NOTE)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import NoReturn

from clientnote.activity.buffer import ConversationBuffer
from clientnote.activity.models import (
    Activity,
    ActivityConfig,
    ActivityType,
    Client,
    PersistedExchange,
    Record,
    SamplingParams,
    Selection,
)
from clientnote.core.errors import InvalidActivitySelection
from clientnote.persistence.repository import ActivityRepository
from clientnote.prompts.system import default_config

logger = logging.getLogger(__name__)

MAX_SELECTION_HISTORY = 50


class ActivityStore:
    def __init__(self, repository: ActivityRepository | None = None) -> None:
        self._repository = repository
        self._clients: dict[str, Client] = {}
        self._selection = Selection()
        self._history: list[Selection] = []
        self._active_config: ActivityConfig | None = None
        self.buffer = ConversationBuffer()

    # ─── Loading ──────────────────────────────────────────────────

    async def load(self) -> int:
        """Hydrate clients from the repository. Returns the number loaded."""
        if self._repository is None:
            return 0
        clients = await self._repository.load_clients()
        self._clients = {c.client_id: c for c in clients}
        self._selection = Selection()
        self._history.clear()
        self._active_config = None
        self.buffer.bind(None)
        logger.info("Loaded %d clients", len(clients))
        return len(clients)

    # ─── Read access ──────────────────────────────────────────────

    @property
    def clients(self) -> list[Client]:
        return list(self._clients.values())

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def active_config(self) -> ActivityConfig | None:
        return self._active_config

    def get_client(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    def get_activity(self, activity_id: str) -> Activity | None:
        for client in self._clients.values():
            activity = client.find_activity(activity_id)
            if activity is not None:
                return activity
        return None

    def get_record(self, activity_id: str) -> Record | None:
        activity = self.get_activity(activity_id)
        return activity.persisted_record if activity else None

    def is_active(self, activity_id: str) -> bool:
        return self._selection.activity_id == activity_id

    def config_for(self, activity_id: str) -> ActivityConfig:
        """The configuration a generation for this activity should use.

        The active activity uses the (possibly overridden) active config;
        any other activity generating in the background uses its defaults.
        """
        activity = self.get_activity(activity_id)
        if activity is None:
            raise InvalidActivitySelection(f"Unknown activity {activity_id}")
        if self.is_active(activity_id) and self._active_config is not None:
            return self._active_config
        return default_config(activity.type)

    # ─── Clients ──────────────────────────────────────────────────

    async def create_client(self, display_name: str) -> Client:
        client = Client(display_name=display_name)
        self._clients[client.client_id] = client
        if self._repository is not None:
            await self._repository.save_client(client)
        logger.info("Client created", extra={"client_id": client.client_id})
        return client

    async def delete_client(self, client_id: str) -> bool:
        """Delete a client and all of its activities.

        If the selection belonged to that client it moves to the fallback.
        """
        client = self._clients.pop(client_id, None)
        if client is None:
            return False

        removed = {a.activity_id for a in client.activities}
        self._history = [s for s in self._history if s.client_id != client_id]
        if self._repository is not None:
            await self._repository.delete_client(client_id)

        if self._selection.client_id == client_id:
            self._apply(self._fallback(), remember=False)

        logger.info(
            "Client deleted (%d activities)", len(removed), extra={"client_id": client_id}
        )
        return True

    def select_client(self, client_id: str) -> Selection:
        """Focus a client and its newest activity (if any)."""
        client = self._clients.get(client_id)
        if client is None:
            self._fail(f"Unknown client {client_id}")

        latest = client.latest_activity()
        self._apply(Selection(client_id, latest.activity_id if latest else None))
        return self._selection

    # ─── Activities ───────────────────────────────────────────────

    async def create_activity(
        self, client_id: str, activity_type: ActivityType, title: str | None = None
    ) -> Activity:
        """Create an activity, make it active, and return it with an empty buffer."""
        client = self._clients.get(client_id)
        if client is None:
            self._fail(f"Cannot create activity: unknown client {client_id}")

        created = datetime.now()
        activity = Activity(
            client_id=client_id,
            type=activity_type,
            title=title or self._default_title(client, activity_type, created),
            created_at=created.timestamp(),
        )
        client.activities.append(activity)
        if self._repository is not None:
            await self._repository.save_activity(activity)

        self._apply(Selection(client_id, activity.activity_id))
        logger.info(
            "Activity created (%s)",
            activity_type.value,
            extra={"client_id": client_id, "activity_id": activity.activity_id},
        )
        return activity

    def select_activity(self, activity_id: str) -> Activity:
        activity = self.get_activity(activity_id)
        if activity is None or activity.client_id not in self._clients:
            self._fail(f"Unknown activity {activity_id}")

        self._apply(Selection(activity.client_id, activity.activity_id))
        return activity

    def clear_buffer(self) -> None:
        self.buffer.clear()

    def update_active_config(
        self, system_prompt: str | None = None, sampling: SamplingParams | None = None
    ) -> ActivityConfig:
        """Override the active activity's configuration until the next switch."""
        if self._active_config is None:
            raise InvalidActivitySelection("No active activity to configure", self._selection)

        updated = self._active_config
        if system_prompt is not None:
            updated = replace(updated, system_prompt=system_prompt)
        if sampling is not None:
            updated = replace(updated, sampling=sampling)
        self._active_config = updated
        return updated

    # ─── Exchanges ────────────────────────────────────────────────

    async def append_exchange(self, activity_id: str, exchange: PersistedExchange) -> None:
        """Replace the activity's record and write it through to the repository."""
        activity = self.get_activity(activity_id)
        if activity is None:
            raise InvalidActivitySelection(
                f"Activity {activity_id} no longer exists", self._selection
            )

        # Disk first: a failed write must not leave a record only in memory
        if self._repository is not None:
            await self._repository.save_record(activity_id, exchange)
        activity.persisted_record = exchange

    async def record_exchange(self, activity_id: str, exchange: PersistedExchange) -> None:
        """Finish a generation: persist, then one user/assistant pair in the buffer.

        The buffer is only touched once the write succeeded, and only while
        it is still bound to this activity. Raises PersistenceError otherwise.
        """
        await self.append_exchange(activity_id, exchange)
        if self.buffer.activity_id == activity_id:
            self.buffer.clear()
            self.buffer.append_pair(activity_id, exchange.display_prompt, exchange.final_response)

    # ─── Internals ────────────────────────────────────────────────

    def _apply(self, selection: Selection, remember: bool = True) -> None:
        self._selection = selection
        self.buffer.bind(selection.activity_id)

        activity = self.get_activity(selection.activity_id) if selection.activity_id else None
        self._active_config = default_config(activity.type) if activity else None

        if remember and selection.activity_id is not None:
            self._history = [s for s in self._history if s != selection]
            self._history.append(selection)
            del self._history[:-MAX_SELECTION_HISTORY]

    def _is_valid(self, selection: Selection) -> bool:
        client = self._clients.get(selection.client_id) if selection.client_id else None
        if client is None:
            return False
        return selection.activity_id is None or client.find_activity(selection.activity_id) is not None

    def _fallback(self) -> Selection:
        while self._history:
            candidate = self._history[-1]
            if self._is_valid(candidate):
                return candidate
            self._history.pop()

        for client in self._clients.values():
            latest = client.latest_activity()
            return Selection(client.client_id, latest.activity_id if latest else None)
        return Selection()

    def _fail(self, message: str) -> NoReturn:
        """Move to the fallback selection, then raise."""
        fallback = self._fallback()
        self._apply(fallback, remember=False)
        logger.warning(
            "%s; falling back to %s",
            message,
            fallback.activity_id or "no selection",
            extra={"activity_id": fallback.activity_id},
        )
        raise InvalidActivitySelection(message, fallback)

    @staticmethod
    def _default_title(client: Client, activity_type: ActivityType, created: datetime) -> str:
        base = f"{activity_type.label} - {created.strftime('%b %d, %Y at %I:%M %p')}"
        same_day = [
            a
            for a in client.activities
            if a.type is activity_type
            and datetime.fromtimestamp(a.created_at).date() == created.date()
        ]
        return f"{base} ({len(same_day) + 1})" if same_day else base
