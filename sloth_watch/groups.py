"""
Group continuity tracking for Sloth Watch.

The adventuring parties page only shows who is leading what right now, so a
group that vanished from the page is either over or now led by somebody else.
The two cases are told apart by member overlap: a newly appeared group that
shares a majority of members in both directions is the same group under a new
leader. Everything else follows from matching groups by leader between two
snapshots.

reconcile_groups() is pure: it takes the previous snapshot and the freshly
parsed groups and returns the events plus the next snapshot. Notifications and
statistics are applied by the pipeline.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .matching import match_lists
from .models import Group

logger = logging.getLogger(__name__)


DEFAULT_OVERLAP_THRESHOLD = 0.6
DEFAULT_MIN_GROUP_SIZE = 3
DEFAULT_SIZE_BUCKET = 4


class GroupEventType(str, Enum):
    STARTED = "started"
    RENAMED = "renamed"
    MOVED = "moved"
    GREW = "grew"
    SHRANK = "shrank"
    LEADER_CHANGED = "leader_changed"
    OVER = "over"


@dataclass
class GroupEvent:
    """
    A transition detected for one group.

    group is the record after the transition (the last known record for OVER).
    restarts_session marks changes that close the current statistics session
    and open a new one for the same leader. merged marks a leader change into
    a group that was already tracked; only the old leader's session closes.
    """
    type: GroupEventType
    group: Group
    previous_leader: Optional[str] = None
    restarts_session: bool = False
    merged: bool = False

    @property
    def message(self) -> str:
        group = self.group
        if self.type == GroupEventType.STARTED:
            where = f" on {group.continent}" if group.continent else ""
            return (
                f"{group.leader} started group '{group.name}'{where}. "
                f"Group consists of {group.size} adventurers."
            )
        if self.type == GroupEventType.RENAMED:
            return f"{group.leader} has changed group name to '{group.name}'."
        if self.type == GroupEventType.MOVED:
            return f"The group has moved to {group.continent}."
        if self.type == GroupEventType.GREW:
            return f"The group has become bigger. Now it has as many as {group.size} adventurers."
        if self.type == GroupEventType.SHRANK:
            return f"The group has become smaller. Now it has only {group.size} adventurers."
        if self.type == GroupEventType.LEADER_CHANGED:
            return f"{group.leader} became the new leader."
        return "The group was over."


@dataclass
class GroupReconciliation:
    """Events of one polling cycle and the snapshot to persist."""
    events: list[GroupEvent] = field(default_factory=list)
    snapshot: dict[str, Group] = field(default_factory=dict)


# =============================================================================
# HELPERS
# =============================================================================

def started_marker(original_leader: str) -> str:
    """Text that identifies a group's notification message."""
    return f"{original_leader} started"


def format_elapsed(started_at: Optional[int], now: int) -> str:
    """Prefix for appended lines: time since the group started, "(+HH:MM)"."""
    if started_at is None:
        return "(+00:00)"
    seconds = max(0, now - started_at)
    hours, rest = divmod(seconds, 3600)
    return f"(+{hours:02d}:{rest // 60:02d})"


def overlap_rates(old: Group, candidate: Group) -> tuple[float, float]:
    """Share of shared members relative to the old group and to the candidate."""
    if not old.members or not candidate.members:
        return 0.0, 0.0
    matches = len(old.members & candidate.members)
    return matches / len(old.members), matches / len(candidate.members)


def find_successor(
    old: Group,
    candidates: Iterable[Group],
    threshold: float = DEFAULT_OVERLAP_THRESHOLD,
) -> Optional[Group]:
    """
    Find the group that continues old under a new leader.

    Both overlap rates must reach the threshold so that two unrelated small
    groups sharing a couple of members are never chained together.

    Returns:
        The first qualifying candidate, or None if the group is over
    """
    for candidate in candidates:
        old_rate, new_rate = overlap_rates(old, candidate)
        logger.info(
            f"Overlap for {old.leader}/{candidate.leader}: {old_rate:.2f}/{new_rate:.2f}"
        )
        if old_rate >= threshold and new_rate >= threshold:
            return candidate
    return None


def _continue_group(old: Group, new: Group, now: int) -> Group:
    """Build the next record for a group seen in both snapshots (no shared state)."""
    moved_at = old.moved_to_continent_at
    if old.continent != new.continent:
        moved_at = now
    return Group(
        leader=new.leader,
        original_leader=old.original_leader,
        name=new.name,
        continent=new.continent,
        members=set(new.members),
        started_at=old.started_at if old.started_at is not None else now,
        moved_to_continent_at=moved_at,
    )


def _merged_group(old: Group, tracked: Group) -> Group:
    """The old group's identity under the leader of a group already tracked."""
    return Group(
        leader=tracked.leader,
        original_leader=old.original_leader,
        name=tracked.name,
        continent=tracked.continent,
        members=set(tracked.members),
        started_at=old.started_at,
        moved_to_continent_at=old.moved_to_continent_at,
    )


def _change_events(
    old: Group,
    current: Group,
    bucket: int,
    restart_sessions: bool,
) -> list[GroupEvent]:
    events = []

    if old.name != current.name:
        events.append(GroupEvent(GroupEventType.RENAMED, current))

    if old.continent != current.continent and current.continent:
        events.append(GroupEvent(GroupEventType.MOVED, current, restarts_session=restart_sessions))

    old_bucket = old.size // bucket
    new_bucket = current.size // bucket
    if new_bucket > old_bucket:
        events.append(GroupEvent(GroupEventType.GREW, current, restarts_session=restart_sessions))
    elif new_bucket < old_bucket:
        events.append(GroupEvent(GroupEventType.SHRANK, current, restarts_session=restart_sessions))

    return events


# =============================================================================
# RECONCILIATION
# =============================================================================

def reconcile_groups(
    old: Optional[dict[str, Group]],
    new_groups: Iterable[Group],
    now: int,
    threshold: float = DEFAULT_OVERLAP_THRESHOLD,
    min_size: int = DEFAULT_MIN_GROUP_SIZE,
    bucket: int = DEFAULT_SIZE_BUCKET,
) -> GroupReconciliation:
    """
    Reconcile the previous group snapshot with freshly parsed groups.

    Args:
        old: Previous snapshot keyed by current leader (None on first run)
        new_groups: Groups parsed from the page
        now: Current unix time
        threshold: Minimum overlap rate (both directions) for a leader change
        min_size: Groups with fewer members are ignored
        bucket: Size changes are reported when members // bucket changes

    Returns:
        GroupReconciliation with events in reporting order
    """
    fresh = [g for g in new_groups if g.size >= min_size]
    result = GroupReconciliation()

    if old is None:
        # First run: remember what is there without announcing it
        for group in fresh:
            result.snapshot[group.leader] = Group(
                leader=group.leader,
                original_leader=group.leader,
                name=group.name,
                continent=group.continent,
                members=set(group.members),
                started_at=now,
                moved_to_continent_at=now,
            )
        return result

    match = match_lists(list(old.values()), fresh, lambda a, b: a.leader == b.leader)

    # Disappeared leaders: leader change or the group is over. New groups are
    # tried first, then groups whose leader is already tracked.
    candidates = list(match.added)
    tracked = [new_group for _, new_group in match.matched]
    successors: list[tuple[Group, Group]] = []
    for old_group in match.removed:
        successor = find_successor(old_group, candidates, threshold)
        if successor is not None:
            candidates.remove(successor)
            current = _continue_group(old_group, successor, now)
            result.events.append(
                GroupEvent(GroupEventType.LEADER_CHANGED, current, previous_leader=old_group.leader)
            )
            successors.append((old_group, current))
            continue

        successor = find_successor(old_group, tracked, threshold)
        if successor is not None:
            # The tracked group keeps its own record and session
            tracked.remove(successor)
            result.events.append(GroupEvent(
                GroupEventType.LEADER_CHANGED,
                _merged_group(old_group, successor),
                previous_leader=old_group.leader,
                merged=True,
            ))
            continue

        result.events.append(GroupEvent(GroupEventType.OVER, old_group))

    # The leader change already reopened the session with the new size/continent
    for old_group, current in successors:
        result.events.extend(_change_events(old_group, current, bucket, restart_sessions=False))
        result.snapshot[current.leader] = current

    # Same leader in both snapshots
    for old_group, new_group in match.matched:
        current = _continue_group(old_group, new_group, now)
        result.events.extend(_change_events(old_group, current, bucket, restart_sessions=True))
        result.snapshot[current.leader] = current

    # Brand new groups
    for new_group in candidates:
        current = Group(
            leader=new_group.leader,
            original_leader=new_group.leader,
            name=new_group.name,
            continent=new_group.continent,
            members=set(new_group.members),
            started_at=now,
            moved_to_continent_at=now,
        )
        result.events.append(GroupEvent(GroupEventType.STARTED, current))
        result.snapshot[current.leader] = current

    return result
