"""
Main Pipeline module for Sloth Watch.

One processor per tracked page. Every cycle follows the same flow:
1. Load → Previous snapshot from disk
2. Scrape → Fetch and parse the page
3. Reconcile → Pure diff of old vs new snapshot (events + next snapshot)
4. Apply → Post/edit Discord messages, append stat events
5. Persist → Save the next snapshot

A failure before step 4 leaves the previous snapshot untouched. Side effects
in step 4 are guarded one by one; the next snapshot is saved even when some
of them failed, so the same transition is never reported twice.

Processors guard against overlapping cycles of the same domain: a cycle that
finds the previous one still running aborts the in-flight request and gives up.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .auctions import reconcile_auctions
from .config import get_app_config
from .epics import DEFAULT_CONTINENT_ORDER, reconcile_epics, render_epics_report
from .feeds import (
    death_marker,
    death_message,
    follow_up_line,
    forum_post_message,
    new_alert_events,
    new_forum_posts,
)
from .groups import (
    GroupEventType,
    format_elapsed,
    reconcile_groups,
    started_marker,
)
from .models import (
    AlertEvent,
    AlertEventType,
    AlertRecord,
    Epic,
    EpicEventType,
    EpicRecord,
    ForumPost,
    Group,
    ListedItem,
    unix_now,
)
from .notifier import append_line

logger = logging.getLogger(__name__)


# =============================================================================
# SNAPSHOT CODECS
# =============================================================================

def encode_auctions(snapshot: dict[str, list[ListedItem]]) -> dict:
    return {seller: [i.to_dict() for i in items] for seller, items in snapshot.items()}


def decode_auctions(data: Any) -> Optional[dict[str, list[ListedItem]]]:
    if data is None:
        return None
    return {seller: [ListedItem.from_dict(i) for i in items] for seller, items in data.items()}


def encode_groups(snapshot: dict[str, Group]) -> dict:
    return {leader: group.to_dict() for leader, group in snapshot.items()}


def decode_groups(data: Any) -> Optional[dict[str, Group]]:
    if data is None:
        return None
    return {leader: Group.from_dict(g) for leader, g in data.items()}


def encode_list(items: list) -> list:
    return [item.to_dict() for item in items]


def list_decoder(cls) -> Callable[[Any], Optional[list]]:
    def decode(data: Any) -> Optional[list]:
        if data is None:
            return None
        return [cls.from_dict(item) for item in data]
    return decode


decode_epics = list_decoder(Epic)
decode_forum = list_decoder(ForumPost)
decode_alerts = list_decoder(AlertEvent)


# =============================================================================
# BASE PROCESSOR
# =============================================================================

class BaseProcessor(ABC):
    """
    Shared cycle plumbing: re-entrancy guard, snapshot IO, guarded side effects.

    Subclasses implement process(now) and set `name` (snapshot kind and
    channel key).
    """

    name: str

    def __init__(self, scraper, notifier, snapshots, stats, config=None):
        self.scraper = scraper
        self.notifier = notifier
        self.snapshots = snapshots
        self.stats = stats
        self.config = config or get_app_config()
        self._lock = threading.Lock()

    def run(self, now: Optional[int] = None) -> dict:
        """
        Run one cycle.

        Returns:
            Summary dict with status and counts
        """
        if not self._lock.acquire(blocking=False):
            logger.warning(f"Previous {self.name} cycle is still running, aborting its request")
            self.scraper.abort()
            return {"domain": self.name, "status": "overlap"}

        start_time = datetime.now(timezone.utc)
        try:
            summary = self.process(unix_now() if now is None else now)
            summary.setdefault("status", "success")
        except Exception as e:
            logger.error(f"{self.name} cycle failed: {e}")
            summary = {"status": "error", "error": str(e)}
        finally:
            self._lock.release()

        summary["domain"] = self.name
        summary["duration_seconds"] = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"{self.name} cycle complete: {summary}")
        return summary

    @abstractmethod
    def process(self, now: int) -> dict:
        pass

    def load_snapshot(self, decode: Callable[[Any], Any]) -> Any:
        return decode(self.snapshots.load_snapshot(self.name))

    def save_snapshot(self, value: Any) -> None:
        self.snapshots.save_snapshot(self.name, value)

    def guarded(self, description: str, action: Callable, *args, **kwargs) -> Any:
        """Run one side effect; log and swallow its failure."""
        try:
            return action(*args, **kwargs)
        except Exception as e:
            logger.error(f"Failed to {description}: {e}")
            return None

    def notify(self, text: str) -> Any:
        return self.guarded(f"post to {self.name}", self.notifier.notify, self.name, text)


# =============================================================================
# AUCTIONS
# =============================================================================

class AuctionProcessor(BaseProcessor):
    """Live auctions: listings, ending-soon warnings, sales."""

    name = "auctions"

    def process(self, now: int) -> dict:
        old = self.load_snapshot(decode_auctions)
        items = self.scraper.scrape()

        result = reconcile_auctions(
            old,
            items,
            now,
            ending_soon_minutes=self.config.ending_soon_minutes,
            buyout_min_minutes=self.config.buyout_min_minutes,
        )
        if result.skipped:
            return {"status": "skipped"}

        try:
            for event in result.events:
                self.notify(event.message(self.config.item_link_base))
            for sale in result.sales:
                self.guarded(f"store sale of {sale.item}", self.stats.store_sale, sale)
        finally:
            self.save_snapshot(encode_auctions(result.snapshot))

        return {"events": len(result.events), "sales": len(result.sales)}


# =============================================================================
# EPICS
# =============================================================================

def append_to_group(
    notifier,
    original_leader: str,
    started_at: Optional[int],
    text: str,
    now: int,
    limit: Optional[int] = None,
) -> bool:
    """Append a "(+HH:MM) text" line to a group's notification."""
    return append_line(
        notifier,
        "groups",
        started_marker(original_leader),
        f"{format_elapsed(started_at, now)} {text}",
        f"group of {original_leader}",
        limit,
    )


class EpicProcessor(BaseProcessor):
    """
    Epic spawns and kills.

    Not scheduled on its own: GroupProcessor runs it as part of the groups
    cycle so that kills are attributed to the right group.
    """

    name = "epics"

    def __init__(self, *args, continent_order=DEFAULT_CONTINENT_ORDER, **kwargs):
        super().__init__(*args, **kwargs)
        self.continent_order = continent_order

    def _group_started_at(self, leader: str) -> Optional[int]:
        groups = decode_groups(self.snapshots.load_snapshot("groups")) or {}
        group = groups.get(leader)
        return group.started_at if group else None

    def record_kill(self, epic: Epic, now: int) -> None:
        """Attribute a kill to the active group, if there is one, and log it."""
        session = self.guarded("look up the active group", self.stats.get_active_group_session)
        if session is None:
            logger.info(f"{epic.name} was killed without a group")
            record = EpicRecord(epic.name, EpicEventType.KILLED, now)
        else:
            logger.info(f"{epic.name} was killed by the group of {session.leader}")
            started_at = self._group_started_at(session.leader) or session.started
            self.guarded(
                f"append kill of {epic.name}",
                append_to_group,
                self.notifier,
                session.original_leader or session.leader,
                started_at,
                f"Defeated {epic.name}.",
                now,
                self.config.message_search_limit,
            )
            record = EpicRecord(epic.name, EpicEventType.KILLED, now, group_id=session.id, leader=session.leader)

        self.guarded(f"store kill of {epic.name}", self.stats.store_epic_event, record)

    def process(self, now: int) -> dict:
        old = self.load_snapshot(decode_epics)
        epics = self.scraper.scrape()

        result = reconcile_epics(old, epics, now)
        if result.skipped:
            return {"status": "skipped"}

        try:
            for epic in result.appeared:
                self.guarded(
                    f"store appearance of {epic.name}",
                    self.stats.store_epic_event,
                    EpicRecord(epic.name, EpicEventType.APPEARED, now),
                )
            for epic in result.killed:
                self.record_kill(epic, now)

            if result.changed:
                report = render_epics_report(result.snapshot, now, self.continent_order)
                self.guarded("clear epics channel", self.notifier.delete_all_recent_notifications, self.name)
                self.notify(report)
        finally:
            self.save_snapshot(encode_list(result.snapshot))

        return {"appeared": len(result.appeared), "killed": len(result.killed)}


# =============================================================================
# GROUPS
# =============================================================================

class GroupProcessor(BaseProcessor):
    """
    Adventuring parties: starts, renames, moves, resizes, leader changes, ends.

    Also drives the epics cycle. With a group session open, epics run first so
    a kill goes to the group that was active when the epic vanished even if
    that group ends in this cycle; otherwise they run after, so a group that
    just started gets the kill.
    """

    name = "groups"

    def __init__(self, *args, epics: Optional[EpicProcessor] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.epics = epics

    def run(self, now: Optional[int] = None) -> dict:
        now = unix_now() if now is None else now
        if self.epics is None:
            return super().run(now)

        active = self.guarded("look up the active group", self.stats.get_active_group_session)
        if active is not None:
            self.epics.run(now)
            return super().run(now)

        summary = super().run(now)
        self.epics.run(now)
        return summary

    def append(self, group: Group, text: str, now: int) -> None:
        self.guarded(
            f"append to group of {group.original_leader}",
            append_to_group,
            self.notifier,
            group.original_leader,
            group.started_at,
            text,
            now,
            self.config.message_search_limit,
        )

    def start_session(self, group: Group, now: int) -> None:
        self.guarded(
            f"open session of {group.leader}",
            self.stats.store_group_started,
            group.leader,
            group.size,
            now,
            group.continent,
            group.original_leader,
        )

    def end_session(self, leader: str, now: int) -> None:
        self.guarded(f"close session of {leader}", self.stats.store_group_ended, leader, now)

    def process(self, now: int) -> dict:
        old = self.load_snapshot(decode_groups)
        groups = self.scraper.scrape()

        result = reconcile_groups(
            old,
            groups,
            now,
            threshold=self.config.group_overlap_threshold,
            min_size=self.config.min_group_size,
            bucket=self.config.group_size_bucket,
        )

        try:
            restarted = set()
            for event in result.events:
                group = event.group
                if event.type == GroupEventType.STARTED:
                    self.notify(event.message)
                    self.start_session(group, now)
                elif event.type == GroupEventType.OVER:
                    self.append(group, event.message, now)
                    self.end_session(group.leader, now)
                elif event.type == GroupEventType.LEADER_CHANGED:
                    self.append(group, event.message, now)
                    self.end_session(event.previous_leader, now)
                    if not event.merged:
                        self.start_session(group, now)
                else:
                    self.append(group, event.message, now)
                    if event.restarts_session and group.leader not in restarted:
                        restarted.add(group.leader)
                        self.end_session(group.leader, now)
                        self.start_session(group, now)
        finally:
            self.save_snapshot(encode_groups(result.snapshot))

        return {"events": len(result.events), "groups": len(result.snapshot)}


# =============================================================================
# FORUM
# =============================================================================

class ForumProcessor(BaseProcessor):
    """New posts on the forum."""

    name = "forum"

    def process(self, now: int) -> dict:
        old = self.load_snapshot(decode_forum)
        posts = self.scraper.scrape()
        if not posts:
            logger.warning("No forum posts parsed, keeping the previous snapshot")
            return {"status": "skipped"}

        fresh = new_forum_posts(old, posts) or []
        try:
            for post in fresh:
                self.notify(forum_post_message(post))
        finally:
            self.save_snapshot(encode_list(posts))

        return {"new_posts": len(fresh)}


# =============================================================================
# ALERTS
# =============================================================================

class AlertProcessor(BaseProcessor):
    """Deaths, raises and shocks from the live blog."""

    name = "alerts"

    def is_excluded(self, adventurer: str) -> bool:
        return adventurer.lower() in {name.lower() for name in self.config.alerts_exclude}

    def record(self, event: AlertEvent, now: int) -> None:
        record = AlertRecord(event.type, event.adventurer, event.doer, event.time, now)
        self.guarded(f"store {event.type.value} of {event.adventurer}", self.stats.store_alert, record)

    def process(self, now: int) -> dict:
        old = self.load_snapshot(decode_alerts)
        events = self.scraper.scrape()
        if not events:
            logger.warning("No live blog events parsed, keeping the previous snapshot")
            return {"status": "skipped"}

        fresh = new_alert_events(old, events) or []
        try:
            for event in fresh:
                if event.type != AlertEventType.SHOCK:
                    self.record(event, now)

                if self.is_excluded(event.adventurer):
                    logger.info(f"Not announcing {event.type.value} of {event.adventurer}")
                    continue

                if event.type == AlertEventType.DEATH:
                    self.notify(death_message(event))
                else:
                    self.guarded(
                        f"append to death of {event.adventurer}",
                        append_line,
                        self.notifier,
                        self.name,
                        death_marker(event.adventurer),
                        follow_up_line(event),
                        f"death of {event.adventurer}",
                        self.config.message_search_limit,
                    )
        finally:
            self.save_snapshot(encode_list(events))

        return {"new_events": len(fresh)}
