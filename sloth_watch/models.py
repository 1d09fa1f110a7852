"""
Data models for Sloth Watch.

Defines the dataclasses the trackers reconcile (snapshot records) and the
append-only statistics records they emit. Snapshot records round-trip through
JSON via to_dict/from_dict; timestamps are unix seconds.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import time


def unix_now() -> int:
    """Current time as unix seconds."""
    return int(time.time())


def format_unix(value: int, with_time: bool = False) -> str:
    """Format a unix timestamp the way reports show dates ("March 3 2024")."""
    dt = datetime.fromtimestamp(value, tz=timezone.utc)
    text = f"{dt.strftime('%B')} {dt.day} {dt.year}"
    if with_time:
        text += f", {dt.strftime('%H:%M')}"
    return text


class AlertEventType(str, Enum):
    """Kinds of rows on the live blog."""
    DEATH = "death"
    RAISE = "raise"
    SHOCK = "shock"


class EpicEventType(str, Enum):
    """Epic history events."""
    APPEARED = "appeared"
    KILLED = "killed"


# =============================================================================
# SNAPSHOT RECORDS
# =============================================================================

@dataclass
class ListedItem:
    """An item on the live auction page, keyed by (seller, name)."""
    seller: str
    name: str
    bidder: str = "Nobody"
    price: str = ""
    buyout: str = ""
    ends_in: str = ""
    warned_ending_soon: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ListedItem":
        return cls(
            seller=data["seller"],
            name=data["name"],
            bidder=data.get("bidder", "Nobody"),
            price=data.get("price", ""),
            buyout=data.get("buyout", ""),
            ends_in=data.get("ends_in", ""),
            warned_ending_soon=data.get("warned_ending_soon", False),
        )


@dataclass
class Group:
    """
    An adventuring party.

    original_leader survives leader changes and identifies the group's
    notification message; started_at is set once when the group is first seen.
    """
    leader: str
    original_leader: str
    name: str
    continent: str = ""
    members: set[str] = field(default_factory=set)
    started_at: Optional[int] = None
    moved_to_continent_at: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> dict:
        return {
            "leader": self.leader,
            "original_leader": self.original_leader,
            "name": self.name,
            "continent": self.continent,
            "members": sorted(self.members),
            "started_at": self.started_at,
            "moved_to_continent_at": self.moved_to_continent_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        return cls(
            leader=data["leader"],
            original_leader=data.get("original_leader", data["leader"]),
            name=data.get("name", ""),
            continent=data.get("continent", ""),
            members=set(data.get("members", [])),
            started_at=data.get("started_at"),
            moved_to_continent_at=data.get("moved_to_continent_at"),
        )


@dataclass
class Epic:
    """A boss monster shown on the map server."""
    name: str
    area: str
    continent: str
    spawned_at: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Epic":
        return cls(
            name=data["name"],
            area=data.get("area", ""),
            continent=data.get("continent", ""),
            spawned_at=data.get("spawned_at"),
        )


@dataclass
class ForumPost:
    """A row of the "Last Forum Posts" table (newest first)."""
    thread_name: str
    thread_link: str = ""
    poster: str = ""
    poster_link: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ForumPost":
        return cls(
            thread_name=data["thread_name"],
            thread_link=data.get("thread_link", ""),
            poster=data.get("poster", ""),
            poster_link=data.get("poster_link", ""),
        )


@dataclass
class AlertEvent:
    """A classified live blog row (newest first)."""
    type: AlertEventType
    adventurer: str
    doer: str
    time: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "adventurer": self.adventurer,
            "doer": self.doer,
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertEvent":
        return cls(
            type=AlertEventType(data["type"]),
            adventurer=data["adventurer"],
            doer=data["doer"],
            time=data.get("time", ""),
        )


# =============================================================================
# STATISTICS RECORDS (append-only)
# =============================================================================

@dataclass
class AlertRecord:
    """A death or a raise."""
    type: AlertEventType
    adventurer: str
    doer: str
    game_time: str = ""
    ts: int = field(default_factory=unix_now)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "adventurer": self.adventurer,
            "doer": self.doer,
            "game_time": self.game_time,
            "ts": self.ts,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertRecord":
        return cls(
            type=AlertEventType(data["type"]),
            adventurer=data["adventurer"],
            doer=data["doer"],
            game_time=data.get("game_time", ""),
            ts=data["ts"],
        )


@dataclass
class SaleRecord:
    """An auction item that changed hands."""
    seller: str
    item: str
    price: int
    ts: int = field(default_factory=unix_now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SaleRecord":
        return cls(
            seller=data["seller"],
            item=data["item"],
            price=data.get("price") or 0,
            ts=data["ts"],
        )


@dataclass
class GroupSession:
    """
    One raw leadership record. finished stays 0 while the session is open and
    is set exactly once when it closes.
    """
    leader: str
    size: int
    started: int
    finished: int = 0
    continent: str = ""
    original_leader: str = ""
    id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.finished == 0

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.id is None:
            data.pop("id")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "GroupSession":
        return cls(
            leader=data["leader"],
            size=data.get("size", 0),
            started=data["started"],
            finished=data.get("finished") or 0,
            continent=data.get("continent") or "",
            original_leader=data.get("original_leader") or data["leader"],
            id=data.get("id"),
        )


@dataclass
class EpicRecord:
    """An epic appearing or being killed (group_id/leader set when a group got the kill)."""
    name: str
    event: EpicEventType
    ts: int = field(default_factory=unix_now)
    group_id: Optional[int] = None
    leader: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "event": self.event.value,
            "ts": self.ts,
            "group_id": self.group_id,
            "leader": self.leader,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EpicRecord":
        return cls(
            name=data["name"],
            event=EpicEventType(data["event"]),
            ts=data["ts"],
            group_id=data.get("group_id"),
            leader=data.get("leader"),
        )
