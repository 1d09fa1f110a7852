"""
Statistics and leaderboards for Sloth Watch.

Works on the append-only records written by the pipeline: deaths and raises
from the live blog, auction sales, raw group sessions and epic events.

Group sessions need extra care. Every leader change, move or resize closes a
raw session and opens a new one a few seconds later, so the raw log is first
segmented into "real" groups: a row that starts within a few seconds of a
recent accumulator's end continues it. Leaders are then scored per row on
sqrt(lead time) * size, so that long sessions count but do not dominate.

The pure functions here take lists of records; the Statistics class fetches
records for a period from the stat store and feeds them through.
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Iterable, Optional, Sequence

from .config import get_app_config
from .models import (
    AlertEventType,
    AlertRecord,
    EpicEventType,
    EpicRecord,
    GroupSession,
    SaleRecord,
    unix_now,
)

logger = logging.getLogger(__name__)


DEFAULT_MERGE_SECONDS = 8
DEFAULT_WINDOW = 4
DEFAULT_MIN_SIZE = 3
DEFAULT_LEAD_FLOOR_SECONDS = 30 * 60
RATING_MAXIMUM = 10


class Period(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all"


PERIOD_LENGTHS = {
    Period.WEEK: timedelta(days=7),
    Period.MONTH: timedelta(days=30),
    Period.YEAR: timedelta(days=365),
}


def parse_period(text: Optional[str]) -> Period:
    """Parse a period argument; anything unknown means a year."""
    if text:
        for period in Period:
            if text.lower() == period.value:
                return period
    return Period.YEAR


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class StatInfo:
    """A named counter; raises counts how many of the deaths were raised."""
    name: str
    count: int = 0
    raises: int = 0

    @property
    def raise_rate(self) -> int:
        if self.count == 0:
            return 0
        return round(self.raises * 100.0 / self.count)


@dataclass
class SaleInfo:
    name: str
    count: int = 0
    sum: int = 0

    @property
    def average(self) -> int:
        return round(self.sum / self.count) if self.count else 0


@dataclass
class LeaderInfo:
    name: str
    real_groups_count: int = 0
    groups_count: int = 0
    total_size: int = 0
    score: int = 0

    @property
    def average_size(self) -> int:
        return round(self.total_size / self.groups_count) if self.groups_count else 0


@dataclass
class RealGroup:
    """Raw sessions merged into one continuous play session."""
    rows: list[GroupSession] = field(default_factory=list)
    finished: int = 0


@dataclass
class Rating:
    """A leaderboard for a time window."""
    start: int
    end: int
    entries: list = field(default_factory=list)


@dataclass
class GameStats:
    start: int
    end: int
    adventurers_died_count: int = 0
    deadly_count: int = 0
    adventurers_deaths_count: int = 0
    adventurers_raised_count: int = 0
    adventurers_raisers_count: int = 0
    adventurers_raises_count: int = 0
    groups_count: int = 0
    epic_kills_by_group: int = 0
    epic_kills_solo: int = 0
    items_sold_count: int = 0
    sellers_count: int = 0
    sales_sum: int = 0


@dataclass
class CharacterStats:
    name: str
    start: int
    end: int
    deaths_count: int = 0
    deaths_place: Optional[int] = None
    were_raised_count: int = 0
    raised_someone_count: int = 0
    raisers_place: Optional[int] = None
    sales_count: int = 0
    sales_sum: int = 0
    merchants_place: Optional[int] = None


@dataclass
class TopStatInfo:
    """Places of one adventurer across the combined rating."""
    name: str
    deaths_place: Optional[int] = None
    raisers_place: Optional[int] = None
    leaders_place: Optional[int] = None
    merchants_place: Optional[int] = None
    score: int = 0


# =============================================================================
# SESSION SEGMENTATION & LEADERS
# =============================================================================

def segment_sessions(
    rows: Iterable[GroupSession],
    merge_seconds: float = DEFAULT_MERGE_SECONDS,
    window: int = DEFAULT_WINDOW,
    min_size: int = DEFAULT_MIN_SIZE,
) -> list[RealGroup]:
    """
    Merge raw leadership rows into real groups.

    Rows must be in insertion order. Ongoing rows (finished == 0) and rows
    smaller than min_size are skipped. A row continues the most recent of the
    last `window` real groups whose end is less than merge_seconds away from
    the row's start; otherwise it opens a new real group.
    """
    real_groups: list[RealGroup] = []

    for row in rows:
        if row.size < min_size or row.is_open:
            continue

        target = None
        for candidate in reversed(real_groups[-window:]):
            if abs(candidate.finished - row.started) < merge_seconds:
                target = candidate
                break

        if target is None:
            target = RealGroup()
            real_groups.append(target)

        target.rows.append(row)
        target.finished = row.finished

    return real_groups


def _is_bordered_single(rows: Sequence[GroupSession], index: int) -> bool:
    """True if rows[index] is a one-row leader occupancy next to another leader."""
    if len(rows) < 2:
        return False
    leader = rows[index].leader
    if index > 0 and rows[index - 1].leader == leader:
        return False
    if index < len(rows) - 1 and rows[index + 1].leader == leader:
        return False
    return True


def row_score(row: GroupSession, lead_floor: Optional[int] = None) -> int:
    """round(sqrt(lead seconds) * size), with an optional minimum lead time."""
    lead = max(0, row.finished - row.started)
    if lead_floor is not None:
        lead = max(lead, lead_floor)
    return round(math.sqrt(lead) * row.size)


def compute_best_leaders(
    rows: Iterable[GroupSession],
    exclude: Iterable[str] = (),
    merge_seconds: float = DEFAULT_MERGE_SECONDS,
    window: int = DEFAULT_WINDOW,
    lead_floor_seconds: int = DEFAULT_LEAD_FLOOR_SECONDS,
) -> list[LeaderInfo]:
    """
    Score leaders over the raw session log.

    A leader is credited one real group per real group they led in, one group
    per row, and a row score. A one-row occupancy bordered by another leader
    is scored at no less than lead_floor_seconds: those are usually sync
    artifacts of the website during a leader change, not a real short lead.

    Returns:
        Leaders sorted by score, highest first (ties keep first-seen order)
    """
    stats: dict[str, LeaderInfo] = {}

    for real_group in segment_sessions(rows, merge_seconds, window):
        seen_leaders = set()
        for index, row in enumerate(real_group.rows):
            info = stats.setdefault(row.leader, LeaderInfo(name=row.leader))

            if row.leader not in seen_leaders:
                seen_leaders.add(row.leader)
                info.real_groups_count += 1

            info.groups_count += 1
            info.total_size += row.size

            floor = lead_floor_seconds if _is_bordered_single(real_group.rows, index) else None
            info.score += row_score(row, floor)

    excluded = {name.lower() for name in exclude}
    leaders = [info for name, info in stats.items() if name.lower() not in excluded]
    leaders.sort(key=lambda info: info.score, reverse=True)
    return leaders


# =============================================================================
# ALERTS & SALES AGGREGATES
# =============================================================================

def _sorted_by_count(infos: Iterable) -> list:
    return sorted(infos, key=lambda info: info.count, reverse=True)


def pair_deaths_with_raises(alerts: Iterable[AlertRecord]) -> list[tuple[AlertRecord, bool]]:
    """
    Pair every death with whether the adventurer was raised before dying again.

    Returns:
        (death, raised) tuples in time order
    """
    ordered = sorted(alerts, key=lambda a: a.ts)
    deaths: list[list] = []
    pending: dict[str, list] = {}

    for alert in ordered:
        key = alert.adventurer.lower()
        if alert.type == AlertEventType.DEATH:
            entry = [alert, False]
            deaths.append(entry)
            pending[key] = entry
        elif alert.type == AlertEventType.RAISE and key in pending:
            pending.pop(key)[1] = True

    return [(death, raised) for death, raised in deaths]


def top_deaths(alerts: Iterable[AlertRecord]) -> list[StatInfo]:
    players: dict[str, StatInfo] = {}
    for death, raised in pair_deaths_with_raises(alerts):
        info = players.setdefault(death.adventurer, StatInfo(death.adventurer))
        info.count += 1
        info.raises += int(raised)
    return _sorted_by_count(players.values())


def most_deadly(alerts: Iterable[AlertRecord]) -> list[StatInfo]:
    killers: dict[str, StatInfo] = {}
    for death, raised in pair_deaths_with_raises(alerts):
        info = killers.setdefault(death.doer, StatInfo(death.doer))
        info.count += 1
        info.raises += int(raised)
    return _sorted_by_count(killers.values())


def most_deadly_for(alerts: Iterable[AlertRecord], character: str) -> list[StatInfo]:
    killers: dict[str, StatInfo] = {}
    for alert in alerts:
        if alert.type == AlertEventType.DEATH and alert.adventurer.lower() == character.lower():
            killers.setdefault(alert.doer, StatInfo(alert.doer)).count += 1
    return _sorted_by_count(killers.values())


def victims_of(alerts: Iterable[AlertRecord], mobile: str) -> Optional[tuple[str, list[StatInfo]]]:
    """
    Adventurers killed by a mobile.

    Returns:
        (mobile name as logged, victims) or None if the mobile never killed anyone
    """
    name = None
    victims: dict[str, StatInfo] = {}
    for alert in alerts:
        if alert.type != AlertEventType.DEATH or alert.doer.lower() != mobile.lower():
            continue
        name = name or alert.doer
        victims.setdefault(alert.adventurer, StatInfo(alert.adventurer)).count += 1

    if name is None:
        return None
    return name, _sorted_by_count(victims.values())


def top_raisers(alerts: Iterable[AlertRecord]) -> list[StatInfo]:
    raisers: dict[str, StatInfo] = {}
    for alert in alerts:
        if alert.type == AlertEventType.RAISE:
            raisers.setdefault(alert.doer, StatInfo(alert.doer)).count += 1
    return _sorted_by_count(raisers.values())


def best_sellers(sales: Iterable[SaleRecord]) -> list[SaleInfo]:
    items: dict[str, SaleInfo] = {}
    for sale in sales:
        info = items.setdefault(sale.item, SaleInfo(sale.item))
        info.count += 1
        info.sum += sale.price
    return _sorted_by_count(items.values())


def top_merchants(sales: Iterable[SaleRecord], order_by_sum: bool = False) -> list[SaleInfo]:
    merchants: dict[str, SaleInfo] = {}
    for sale in sales:
        info = merchants.setdefault(sale.seller, SaleInfo(sale.seller))
        info.count += 1
        info.sum += sale.price
    if order_by_sum:
        return sorted(merchants.values(), key=lambda info: info.sum, reverse=True)
    return _sorted_by_count(merchants.values())


def _place(entries: Sequence, name: str) -> Optional[int]:
    for index, entry in enumerate(entries):
        if entry.name.lower() == name.lower():
            return index
    return None


def compute_game_stats(
    start: int,
    end: int,
    alerts: Sequence[AlertRecord],
    sales: Sequence[SaleRecord],
    sessions: Sequence[GroupSession],
    epic_records: Sequence[EpicRecord],
    merge_seconds: float = DEFAULT_MERGE_SECONDS,
    window: int = DEFAULT_WINDOW,
) -> GameStats:
    deaths = [a for a in alerts if a.type == AlertEventType.DEATH]
    raises = [a for a in alerts if a.type == AlertEventType.RAISE]
    kills = [e for e in epic_records if e.event == EpicEventType.KILLED]

    return GameStats(
        start=start,
        end=end,
        adventurers_died_count=len({a.adventurer for a in deaths}),
        deadly_count=len({a.doer for a in deaths}),
        adventurers_deaths_count=len(deaths),
        adventurers_raised_count=len({a.adventurer for a in raises}),
        adventurers_raisers_count=len({a.doer for a in raises}),
        adventurers_raises_count=len(raises),
        groups_count=len(segment_sessions(sessions, merge_seconds, window)),
        epic_kills_by_group=sum(1 for e in kills if e.group_id is not None),
        epic_kills_solo=sum(1 for e in kills if e.group_id is None),
        items_sold_count=len(sales),
        sellers_count=len({s.seller for s in sales}),
        sales_sum=sum(s.price for s in sales),
    )


def compute_character_stats(
    character: str,
    start: int,
    end: int,
    alerts: Sequence[AlertRecord],
    sales: Sequence[SaleRecord],
) -> CharacterStats:
    name = character.lower()
    stats = CharacterStats(name=character, start=start, end=end)

    for alert in alerts:
        if alert.type == AlertEventType.DEATH and alert.adventurer.lower() == name:
            stats.deaths_count += 1
        elif alert.type == AlertEventType.RAISE:
            if alert.adventurer.lower() == name:
                stats.were_raised_count += 1
            if alert.doer.lower() == name:
                stats.raised_someone_count += 1

    for sale in sales:
        if sale.seller.lower() == name:
            stats.sales_count += 1
            stats.sales_sum += sale.price

    stats.deaths_place = _place(top_deaths(alerts), character)
    stats.raisers_place = _place(top_raisers(alerts), character)
    stats.merchants_place = _place(top_merchants(sales), character)
    return stats


def epic_history(records: Iterable[EpicRecord], name: str) -> Optional[tuple[str, list[EpicRecord]]]:
    """All appearances and kills of one epic, oldest first; None if it was never seen."""
    matching = [r for r in records if r.name.lower() == name.lower()]
    if not matching:
        return None
    matching.sort(key=lambda r: r.ts)
    return matching[0].name, matching


def combined_top(
    deaths: Sequence[StatInfo],
    raisers: Sequence[StatInfo],
    leaders: Sequence[LeaderInfo],
    merchants: Sequence[SaleInfo],
    maximum: int = RATING_MAXIMUM,
) -> list[TopStatInfo]:
    """
    Combined rating: the first `maximum` places of each board earn
    maximum - place points, leader places count double.
    """
    stats: dict[str, TopStatInfo] = {}

    def credit(entries: Sequence, attribute: str, weight: int = 1) -> None:
        for place, entry in enumerate(entries[:maximum]):
            info = stats.setdefault(entry.name, TopStatInfo(entry.name))
            setattr(info, attribute, place)
            info.score += weight * (maximum - place)

    credit(deaths, "deaths_place")
    credit(raisers, "raisers_place")
    credit(leaders, "leaders_place", weight=2)
    credit(merchants, "merchants_place")

    return sorted(stats.values(), key=lambda info: info.score, reverse=True)


# =============================================================================
# STATISTICS SERVICE
# =============================================================================

class Statistics:
    """
    Period-filtered statistics on top of the stat store.

    Usage:
        stats = Statistics(get_db())
        rating = stats.best_leaders(Period.MONTH)
    """

    def __init__(self, store, config=None):
        self.store = store
        self.config = config or get_app_config()

    def window(self, period: Period, now: Optional[int] = None) -> tuple[int, int]:
        """Start and end of a period; all-time spans every logged record of every kind."""
        now = unix_now() if now is None else now
        if period == Period.ALL_TIME:
            bounds = self.store.fetch_bounds()
            if bounds is None:
                return now, now
            return bounds
        return now - int(PERIOD_LENGTHS[period].total_seconds()), now

    def top_deaths(self, period: Period) -> Rating:
        start, end = self.window(period)
        return Rating(start, end, top_deaths(self.store.fetch_alerts(start, end)))

    def most_deadly(self, period: Period) -> Rating:
        start, end = self.window(period)
        return Rating(start, end, most_deadly(self.store.fetch_alerts(start, end)))

    def most_deadly_for(self, character: str) -> Rating:
        start, end = self.window(Period.ALL_TIME)
        return Rating(start, end, most_deadly_for(self.store.fetch_alerts(start, end), character))

    def victims_of(self, mobile: str) -> Optional[tuple[str, Rating]]:
        start, end = self.window(Period.ALL_TIME)
        found = victims_of(self.store.fetch_alerts(start, end), mobile)
        if found is None:
            return None
        name, victims = found
        return name, Rating(start, end, victims)

    def top_raisers(self, period: Period) -> Rating:
        start, end = self.window(period)
        return Rating(start, end, top_raisers(self.store.fetch_alerts(start, end)))

    def best_sellers(self, period: Period) -> Rating:
        start, end = self.window(period)
        return Rating(start, end, best_sellers(self.store.fetch_sales(start, end)))

    def top_merchants(self, period: Period, order_by_sum: bool = False) -> Rating:
        start, end = self.window(period)
        return Rating(start, end, top_merchants(self.store.fetch_sales(start, end), order_by_sum))

    def best_leaders(self, period: Period) -> Rating:
        start, end = self.window(period)
        leaders = compute_best_leaders(
            self.store.fetch_group_sessions(start, end),
            exclude=self.config.leaderboard_exclude,
            merge_seconds=self.config.session_merge_seconds,
            window=self.config.session_window,
            lead_floor_seconds=self.config.single_lead_floor_seconds,
        )
        return Rating(start, end, leaders)

    def game_stats(self, period: Period) -> GameStats:
        start, end = self.window(period)
        return compute_game_stats(
            start,
            end,
            self.store.fetch_alerts(start, end),
            self.store.fetch_sales(start, end),
            self.store.fetch_group_sessions(start, end),
            self.store.fetch_epic_records(start, end),
            merge_seconds=self.config.session_merge_seconds,
            window=self.config.session_window,
        )

    def stat_for(self, character: str, period: Period) -> CharacterStats:
        start, end = self.window(period)
        return compute_character_stats(
            character,
            start,
            end,
            self.store.fetch_alerts(start, end),
            self.store.fetch_sales(start, end),
        )

    def epic_history(self, name: str) -> Optional[tuple[str, list[EpicRecord]]]:
        return epic_history(self.store.fetch_epic_records(None, None), name)

    def top(self, period: Period) -> Rating:
        deaths = self.top_deaths(period)
        raisers = self.top_raisers(period)
        leaders = self.best_leaders(period)
        merchants = self.top_merchants(period)
        entries = combined_top(deaths.entries, raisers.entries, leaders.entries, merchants.entries)
        return Rating(deaths.start, deaths.end, entries)
