"""
Epic tracking for Sloth Watch.

Epics are keyed by name on the map server. A name that shows up is a spawn, a
name that goes away is a kill. Kill attribution needs the currently active
group, which only the pipeline knows, so reconcile_epics() just reports which
epics appeared and which were killed.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .matching import match_lists
from .models import Epic

logger = logging.getLogger(__name__)


DEFAULT_CONTINENT_ORDER = ("Tamarael", "Valkyre")
NEW_EPIC_SECONDS = 60 * 60


@dataclass
class EpicReconciliation:
    """Result of one epics cycle."""
    appeared: list[Epic] = field(default_factory=list)
    killed: list[Epic] = field(default_factory=list)
    snapshot: Optional[list[Epic]] = None
    changed: bool = False
    skipped: bool = False


def reconcile_epics(
    old: Optional[list[Epic]],
    new_epics: Iterable[Epic],
    now: int,
) -> EpicReconciliation:
    """
    Reconcile the previous epics snapshot with freshly parsed epics.

    Args:
        old: Previous snapshot (None on first run)
        new_epics: Epics parsed from the map server
        now: Current unix time, used as the spawn time of new epics

    Returns:
        EpicReconciliation; skipped is True when nothing was parsed
    """
    fresh = list(new_epics)
    if not fresh:
        logger.warning("No epics parsed, keeping the previous snapshot")
        return EpicReconciliation(snapshot=old, skipped=True)

    if old is None:
        snapshot = [Epic(e.name, e.area, e.continent, now) for e in fresh]
        return EpicReconciliation(snapshot=snapshot, changed=True)

    result = EpicReconciliation(snapshot=[])
    match = match_lists(
        list(enumerate(old)),
        list(enumerate(fresh)),
        lambda a, b: a[1].name == b[1].name,
    )
    carried = {new[0]: old_epic[1].spawned_at for old_epic, new in match.matched}

    for index, epic in enumerate(fresh):
        if index in carried:
            spawned_at = carried[index] if carried[index] is not None else now
            result.snapshot.append(Epic(epic.name, epic.area, epic.continent, spawned_at))
        else:
            current = Epic(epic.name, epic.area, epic.continent, now)
            result.appeared.append(current)
            result.snapshot.append(current)

    result.killed = [epic for _, epic in match.removed]
    result.changed = bool(result.appeared or result.killed)
    return result


# =============================================================================
# REPORT
# =============================================================================

def format_age(seconds: int) -> str:
    """Human readable age of an epic."""
    if seconds < 60:
        return "just now"

    minutes = seconds // 60
    days, minutes = divmod(minutes, 24 * 60)
    hours, minutes = divmod(minutes, 60)

    if days:
        return f"{days}d {hours}h ago"
    if hours:
        return f"{hours}h {minutes}m ago"
    return f"{minutes}m ago"


def _continent_sort_key(continent: str, order: Sequence[str]) -> tuple[int, str]:
    lowered = [c.lower() for c in order]
    if continent.lower() in lowered:
        return lowered.index(continent.lower()), ""
    return len(order), continent.lower()


def render_epics_report(
    epics: Sequence[Epic],
    now: int,
    continent_order: Sequence[str] = DEFAULT_CONTINENT_ORDER,
) -> str:
    """
    Render the epics summary posted to the channel.

    Epics are grouped by continent in a fixed order (unknown continents last,
    alphabetically); epics that appeared within the last hour are bold.
    """
    by_continent: dict[str, list[Epic]] = {}
    for epic in epics:
        by_continent.setdefault(epic.continent, []).append(epic)

    lines = []
    number = 1
    for continent in sorted(by_continent, key=lambda c: _continent_sort_key(c, continent_order)):
        if lines:
            lines.append("")
        lines.append(f"**{continent}**")
        for epic in by_continent[continent]:
            age = now - epic.spawned_at if epic.spawned_at is not None else 0
            name = f"**{epic.name}**" if age < NEW_EPIC_SECONDS else epic.name
            lines.append(f"{number}. {name} in {epic.area}, appeared {format_age(age)}")
            number += 1

    return "\n".join(lines)
