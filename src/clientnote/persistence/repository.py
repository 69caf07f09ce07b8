"""
Activity Repository — SQLite-backed durable storage for clients and activities.

Two tables:
- clients: one row per client
- activities: one row per activity; `record` holds the codec blob (or NULL)

Deleting a client cascades to its activities. Records are written through
persistence.codec and read back with its legacy fallback, so a row written
by an older version still loads.

Usage:
    repo = ActivityRepository(Path("clientnote.db"))
    await repo.start()
    await repo.save_client(client)
    clients = await repo.load_clients()
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

import clientnote.core.config as config_module
from clientnote.activity.models import (
    Activity,
    ActivityType,
    Client,
    PersistedExchange,
)
from clientnote.core.errors import PersistenceError
from clientnote.persistence import codec

logger = logging.getLogger(__name__)


class ActivityRepository:
    def __init__(self, db_path: Path | None = None):
        if db_path is None:
            db_path = Path(config_module.config.store.db_path)
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def start(self) -> None:
        """Open the database and create tables."""
        self._db = await aiosqlite.connect(str(self.db_path))
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                client_id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                created_at REAL NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS activities (
                activity_id TEXT PRIMARY KEY,
                client_id TEXT NOT NULL,
                type TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                created_at REAL NOT NULL,
                record BLOB,
                FOREIGN KEY (client_id) REFERENCES clients(client_id) ON DELETE CASCADE
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_activities_client
            ON activities(client_id, created_at)
        """)

        await self._db.commit()
        logger.info("ActivityRepository started (db=%s)", self.db_path)

    async def stop(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ─── Clients ──────────────────────────────────────────────────

    async def save_client(self, client: Client) -> None:
        assert self._db is not None, "ActivityRepository not started"

        await self._db.execute(
            """
            INSERT INTO clients (client_id, display_name, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(client_id) DO UPDATE SET display_name = excluded.display_name
            """,
            (client.client_id, client.display_name, client.created_at),
        )
        await self._db.commit()

    async def delete_client(self, client_id: str) -> int:
        """Delete a client and its activities. Returns the number of activities removed."""
        assert self._db is not None, "ActivityRepository not started"

        async with self._db.execute(
            "SELECT COUNT(*) FROM activities WHERE client_id = ?", (client_id,)
        ) as cursor:
            row = await cursor.fetchone()
            removed = row[0] if row else 0

        await self._db.execute("DELETE FROM clients WHERE client_id = ?", (client_id,))
        await self._db.commit()
        return removed

    # ─── Activities ───────────────────────────────────────────────

    async def save_activity(self, activity: Activity) -> None:
        """Insert or update activity metadata. The record column is left alone."""
        assert self._db is not None, "ActivityRepository not started"

        await self._db.execute(
            """
            INSERT INTO activities (activity_id, client_id, type, title, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(activity_id) DO UPDATE SET title = excluded.title
            """,
            (
                activity.activity_id,
                activity.client_id,
                activity.type.value,
                activity.title,
                activity.created_at,
            ),
        )
        await self._db.commit()

    async def save_record(self, activity_id: str, exchange: PersistedExchange) -> None:
        """Replace the activity's record with this exchange."""
        assert self._db is not None, "ActivityRepository not started"

        try:
            async with self._db.execute(
                "UPDATE activities SET record = ? WHERE activity_id = ?",
                (codec.encode(exchange), activity_id),
            ) as cursor:
                updated = cursor.rowcount
            await self._db.commit()
        except aiosqlite.Error as e:
            await self._db.rollback()
            logger.error(f"Failed to save record: {e}", extra={"activity_id": activity_id})
            raise PersistenceError(f"Could not save the record: {e}") from e

        if not updated:
            logger.warning(
                "No activity row to store record in", extra={"activity_id": activity_id}
            )

    # ─── Loading ──────────────────────────────────────────────────

    async def load_clients(self) -> list[Client]:
        """Load every client with its activities in creation order."""
        assert self._db is not None, "ActivityRepository not started"

        clients: dict[str, Client] = {}
        async with self._db.execute(
            "SELECT client_id, display_name, created_at FROM clients ORDER BY created_at"
        ) as cursor:
            async for row in cursor:
                clients[row[0]] = Client(
                    client_id=row[0], display_name=row[1], created_at=row[2]
                )

        async with self._db.execute(
            "SELECT activity_id, client_id, type, title, created_at, record "
            "FROM activities ORDER BY created_at"
        ) as cursor:
            async for row in cursor:
                client = clients.get(row[1])
                if client is None:
                    continue
                try:
                    activity_type = ActivityType(row[2])
                except ValueError:
                    logger.warning(
                        "Skipping activity with unknown type %r",
                        row[2],
                        extra={"activity_id": row[0]},
                    )
                    continue
                client.activities.append(
                    Activity(
                        activity_id=row[0],
                        client_id=row[1],
                        type=activity_type,
                        title=row[3],
                        created_at=row[4],
                        persisted_record=codec.decode(row[5]) if row[5] is not None else None,
                    )
                )

        return list(clients.values())
