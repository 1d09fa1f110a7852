"""
Supabase database integration module.

Sloth Watch keeps an append-only log of game events for the statistics
commands. Snapshots live on disk (see snapshot_store); everything here is
history.

Tables required:
- alerts: Deaths and raises from the live blog (type, adventurer, doer, game_time, ts)
- sales: Auction items sold or bought out (seller, item, price, ts)
- groups: Raw group leadership sessions (id, leader, original_leader, size,
  continent, started, finished); finished is 0 while the session is open
- epics: Epic appearances and kills (name, event, ts, group_id, leader)
"""

import logging
from typing import Optional
from supabase import create_client, Client

from .config import get_supabase_config
from .models import (
    AlertRecord,
    EpicRecord,
    GroupSession,
    SaleRecord,
)

logger = logging.getLogger(__name__)


# Time column of every table, windowed reads filter on it
TIME_COLUMNS = (
    ("alerts", "ts"),
    ("sales", "ts"),
    ("groups", "started"),
    ("epics", "ts"),
)


class Database:
    """
    Supabase database client wrapper.

    Provides the stat event log used by the pipeline (writes) and by the
    statistics commands (windowed reads).
    """

    def __init__(self):
        """Initialize Supabase client."""
        config = get_supabase_config()
        if not config.url or not config.key:
            raise ValueError("Supabase URL and key must be set in environment variables")
        self._client: Client = create_client(config.url, config.key)

    @property
    def client(self) -> Client:
        """Get the Supabase client."""
        return self._client

    def _select_window(self, table: str, column: str, start: Optional[int], end: Optional[int]) -> list[dict]:
        query = self._client.table(table).select("*")
        if start is not None:
            query = query.gte(column, start)
        if end is not None:
            query = query.lte(column, end)
        result = query.order(column).execute()
        return result.data

    # =========================================================================
    # ALERT OPERATIONS
    # =========================================================================

    def store_alert(self, record: AlertRecord) -> None:
        """Append a death or a raise."""
        self._client.table("alerts").insert(record.to_dict()).execute()
        logger.info(f"Stored {record.type.value}: {record.adventurer} / {record.doer}")

    def fetch_alerts(self, start: Optional[int] = None, end: Optional[int] = None) -> list[AlertRecord]:
        """Deaths and raises logged between start and end (inclusive)."""
        return [AlertRecord.from_dict(row) for row in self._select_window("alerts", "ts", start, end)]

    def fetch_bounds(self) -> Optional[tuple[int, int]]:
        """
        Oldest and newest timestamps across the whole log, the span of "all time" reports.

        Returns:
            (min, max) or None if nothing was logged yet
        """
        stamps = []
        for table, column in TIME_COLUMNS:
            first = self._client.table(table).select(column).order(column).limit(1).execute()
            last = self._client.table(table).select(column).order(column, desc=True).limit(1).execute()
            stamps.extend(row[column] for row in first.data + last.data)
        if not stamps:
            return None
        return min(stamps), max(stamps)

    # =========================================================================
    # SALE OPERATIONS
    # =========================================================================

    def store_sale(self, record: SaleRecord) -> None:
        """Append an item that changed hands."""
        self._client.table("sales").insert(record.to_dict()).execute()
        logger.info(f"Stored sale: {record.seller} / {record.item} for {record.price}")

    def fetch_sales(self, start: Optional[int] = None, end: Optional[int] = None) -> list[SaleRecord]:
        return [SaleRecord.from_dict(row) for row in self._select_window("sales", "ts", start, end)]

    # =========================================================================
    # GROUP SESSION OPERATIONS
    # =========================================================================

    def store_group_started(
        self,
        leader: str,
        size: int,
        started: int,
        continent: str = "",
        original_leader: str = "",
    ) -> GroupSession:
        """
        Open a leadership session.

        A leader leads at most one group, so an open session of the same
        leader is closed first.

        Returns:
            The stored session, with its id
        """
        self.store_group_ended(leader, started)

        session = GroupSession(
            leader=leader,
            size=size,
            started=started,
            continent=continent,
            original_leader=original_leader or leader,
        )
        result = self._client.table("groups").insert(session.to_dict()).execute()
        stored = GroupSession.from_dict(result.data[0]) if result.data else session
        logger.info(f"Opened group session {stored.id} for {leader} ({size} adventurers)")
        return stored

    def store_group_ended(self, leader: str, finished: int) -> None:
        """Close every open session of a leader."""
        self._client.table("groups").update({"finished": finished}).eq("leader", leader).eq("finished", 0).execute()
        logger.debug(f"Closed open group sessions of {leader}")

    def get_active_group_session(self) -> Optional[GroupSession]:
        """The most recently opened session that is still open, if any."""
        result = (
            self._client.table("groups")
            .select("*")
            .eq("finished", 0)
            .order("started", desc=True)
            .order("id", desc=True)
            .limit(1)
            .execute()
        )
        return GroupSession.from_dict(result.data[0]) if result.data else None

    def fetch_group_sessions(self, start: Optional[int] = None, end: Optional[int] = None) -> list[GroupSession]:
        """Raw sessions in insertion order."""
        query = self._client.table("groups").select("*")
        if start is not None:
            query = query.gte("started", start)
        if end is not None:
            query = query.lte("started", end)
        result = query.order("id").execute()
        return [GroupSession.from_dict(row) for row in result.data]

    # =========================================================================
    # EPIC OPERATIONS
    # =========================================================================

    def store_epic_event(self, record: EpicRecord) -> None:
        self._client.table("epics").insert(record.to_dict()).execute()
        logger.info(f"Stored epic {record.event.value}: {record.name}")

    def fetch_epic_records(self, start: Optional[int] = None, end: Optional[int] = None) -> list[EpicRecord]:
        return [EpicRecord.from_dict(row) for row in self._select_window("epics", "ts", start, end)]


# Global database instance (lazy loaded)
_db: Optional[Database] = None


def get_db() -> Database:
    """Get database instance (singleton)."""
    global _db
    if _db is None:
        _db = Database()
    return _db
