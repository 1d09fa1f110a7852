"""
Statistics commands for Sloth Watch.

Parses "!command [args]" messages and renders the plain-text replies.
Leaderboards show the first RATING_MAXIMUM places; the first three places
of most boards get medals.
"""

import logging
from typing import Optional, Sequence

from .auctions import build_item_link
from .config import get_app_config
from .models import EpicEventType, format_unix
from .statistics import RATING_MAXIMUM, Period, Statistics, TopStatInfo, parse_period

logger = logging.getLogger(__name__)


HELP_TEXT = (
    "I know following commands:\n"
    "!topdeaths [week|month|**year**|all]\n"
    "!topraisers [week|month|**year**|all]\n"
    "!bestleaders [week|month|**year**|all]\n"
    "!topmerchants [week|month|**year**|all]\n"
    "!topmerchants2 [week|month|**year**|all]\n"
    "!top [week|month|**year**|all]\n"
    "!mostdeadly [week|month|**year**|all]\n"
    "!gamestats [week|month|**year**|all]\n"
    "!bestsellers [week|month|**year**|all]\n"
    "!mostdeadlyfor player_name\n"
    "!statfor player_name [week|month|**year**|all]\n"
    "!victimsof mobile_name\n"
    "!epichistory epic_name\n"
)

MEDALS = (":first_place:", ":second_place:", ":third_place:")


# =============================================================================
# FORMATTING
# =============================================================================

def format_number(value: int) -> str:
    return f"{value:,}"


def format_place_with_medal(place: int, add_medal: bool) -> str:
    """ "1. :first_place: " style prefix of a leaderboard line."""
    result = f"{place + 1}. "
    if add_medal and place < len(MEDALS):
        result += f"{MEDALS[place]} "
    return result


def format_place(place: Optional[int]) -> str:
    if place is None:
        return ""
    if place < len(MEDALS):
        return MEDALS[place]
    return f"{place + 1}th"


def _header(title: str, start: int, end: int) -> str:
    return f"{title} from {format_unix(start)} to {format_unix(end)}.\n\n"


# =============================================================================
# REPORTS
# =============================================================================

def render_top_deaths(stats: Statistics, period: Period) -> str:
    rating = stats.top_deaths(period)
    message = _header("Top deaths rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += (
            f"{format_place_with_medal(i, True)}{d.name} died {d.count} times. "
            f"Was raised {d.raises} times ({d.raise_rate}%).\n"
        )
    return message


def render_most_deadly(stats: Statistics, period: Period) -> str:
    rating = stats.most_deadly(period)
    message = _header("Most deadly rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += (
            f"{format_place_with_medal(i, True)}{d.name} killed {d.count} times. "
            f"Raised {d.raises} times ({d.raise_rate}%).\n"
        )
    return message


def render_most_deadly_for(stats: Statistics, character: str) -> str:
    rating = stats.most_deadly_for(character)
    message = _header(f"Most deadly rating for {character}", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += f"{format_place_with_medal(i, False)}{d.name} killed you {d.count} times.\n"
    return message


def render_victims_of(stats: Statistics, mobile: str) -> str:
    found = stats.victims_of(mobile)
    if found is None:
        return f"Unable to find mobile with name '{mobile}'"
    name, rating = found
    message = _header(f"Victims of rating for '{name}'", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += f"{format_place_with_medal(i, False)}Killed {d.name} {d.count} times.\n"
    return message


def render_epic_history(stats: Statistics, epic: str) -> str:
    found = stats.epic_history(epic)
    if found is None:
        return f"Unable to find epic with name '{epic}'"
    name, records = found
    message = f"Epic history for '{name}'.\n\n"
    for record in records:
        message += f"{format_unix(record.ts, with_time=True)}: "
        if record.event == EpicEventType.APPEARED:
            message += "Appeared\n"
        elif record.leader is None:
            message += "Disappeared\n"
        else:
            message += f"Defeated by {record.leader}'s group\n"
    return message


def render_top_raisers(stats: Statistics, period: Period) -> str:
    rating = stats.top_raisers(period)
    message = _header("Top raisers rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += f"{format_place_with_medal(i, True)}{d.name} raised {d.count} times.\n"
    return message


def render_best_sellers(stats: Statistics, period: Period) -> str:
    rating = stats.best_sellers(period)
    link_base = get_app_config().item_link_base
    message = _header("Best sellers rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += (
            f"{format_place_with_medal(i, False)}{build_item_link(d.name, link_base)} was sold "
            f"{d.count} times. Average price was {format_number(d.average)}.\n"
        )
    return message


def render_top_merchants(stats: Statistics, period: Period, order_by_sum: bool) -> str:
    rating = stats.top_merchants(period, order_by_sum)
    message = _header("Top merchants rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += (
            f"{format_place_with_medal(i, True)}{d.name} sold {d.count} items "
            f"for the total amount of {format_number(d.sum)} gold.\n"
        )
    return message


def render_best_leaders(stats: Statistics, period: Period) -> str:
    rating = stats.best_leaders(period)
    message = _header("Best leaders rating", rating.start, rating.end)
    for i, d in enumerate(rating.entries[:RATING_MAXIMUM]):
        message += (
            f"{format_place_with_medal(i, True)}{d.name} led {d.real_groups_count} groups. "
            f"Average group size was {d.average_size}. Overall score is {format_number(d.score)}.\n"
        )
    return message


def render_game_stats(stats: Statistics, period: Period) -> str:
    g = stats.game_stats(period)
    message = _header("Game statistics", g.start, g.end)
    message += (
        f"{g.adventurers_died_count} different adventurers were slain by {g.deadly_count} "
        f"different creatures {g.adventurers_deaths_count} times.\n"
    )
    message += (
        f"{g.adventurers_raised_count} different adventurers were raised by {g.adventurers_raisers_count} "
        f"different raisers {g.adventurers_raises_count} times.\n"
    )
    message += f"{g.groups_count} groups ran.\n"
    message += (
        f"{g.epic_kills_by_group}/{g.epic_kills_solo} epics were slain by groups/two-manned or soloed. "
        f"Total: {g.epic_kills_by_group + g.epic_kills_solo}.\n"
    )
    message += (
        f"{g.items_sold_count} items were sold by {g.sellers_count} different sellers "
        f"for the amount of {format_number(g.sales_sum)}.\n"
    )
    return message


def render_stat_for(stats: Statistics, character: str, period: Period) -> str:
    s = stats.stat_for(character, period)
    message = _header(f"Statistics for {character}", s.start, s.end)

    message += f"You died {s.deaths_count} times"
    if s.deaths_place is not None:
        message += f" ({format_place(s.deaths_place)})"
    message += ".\n"

    message += f"You were raised {s.were_raised_count} times.\n"

    message += f"You raised someone {s.raised_someone_count} times"
    if s.raisers_place is not None:
        message += f" ({format_place(s.raisers_place)})"
    message += ".\n"

    message += f"You sold {s.sales_count} items for {format_number(s.sales_sum)} gold coins at the auction"
    if s.merchants_place is not None:
        message += f" ({format_place(s.merchants_place)})"
    message += ".\n"
    return message


def _places(players: Sequence[TopStatInfo], attribute: str, weight: int = 1) -> Optional[str]:
    """ "Alice :first_place: (10), Bob :second_place: (9)" for one board."""
    ranked = [p for p in players if getattr(p, attribute) is not None]
    if not ranked:
        return None
    ranked.sort(key=lambda p: getattr(p, attribute))
    parts = []
    for p in ranked:
        place = getattr(p, attribute)
        prefix = f"{p.name} " if len(players) > 1 else ""
        parts.append(f"{prefix}{format_place(place)} ({(RATING_MAXIMUM - place) * weight})")
    return ", ".join(parts)


def render_top(stats: Statistics, period: Period) -> str:
    rating = stats.top(period)
    message = _header("Top rating", rating.start, rating.end)

    # Adventurers with equal scores share a place
    tiers: list[list[TopStatInfo]] = []
    for info in rating.entries:
        if tiers and tiers[-1][0].score == info.score:
            tiers[-1].append(info)
        else:
            tiers.append([info])

    for i, players in enumerate(tiers[:RATING_MAXIMUM]):
        names = ", ".join(p.name for p in players)
        message += f"{format_place_with_medal(i, False)}{names} ({players[0].score})\n"
        for label, attribute, weight in (
            ("Leaders", "leaders_place", 2),
            ("Raisers", "raisers_place", 1),
            ("Merchants", "merchants_place", 1),
            ("Deaths", "deaths_place", 1),
        ):
            places = _places(players, attribute, weight)
            if places is not None:
                message += f"> {label}: {places}\n"
    return message


# =============================================================================
# DISPATCH
# =============================================================================

PERIOD_COMMANDS = {
    "topdeaths": render_top_deaths,
    "mostdeadly": render_most_deadly,
    "topraisers": render_top_raisers,
    "bestsellers": render_best_sellers,
    "topmerchants": lambda stats, period: render_top_merchants(stats, period, False),
    "topmerchants2": lambda stats, period: render_top_merchants(stats, period, True),
    "bestleaders": render_best_leaders,
    "top": render_top,
    "gamestats": render_game_stats,
}


def handle_command(text: str, stats: Statistics) -> Optional[str]:
    """
    Answer a "!command" message.

    Returns:
        The reply, or None if text is not a known command
    """
    if not text.startswith("!"):
        return None

    logger.info(f"Command: {text[1:]}")
    body = text[1:].strip()
    parts = body.split()
    if not parts:
        return None

    command = parts[0].lower()
    argument = body[len(parts[0]):].strip()

    if command == "help":
        return HELP_TEXT

    if command in PERIOD_COMMANDS:
        period = parse_period(parts[1] if len(parts) > 1 else None)
        return PERIOD_COMMANDS[command](stats, period)

    if command == "mostdeadlyfor":
        if len(parts) != 2:
            return "Usage: !mostdeadlyfor adventurer_name"
        return render_most_deadly_for(stats, parts[1])

    if command == "victimsof":
        if not argument:
            return "Usage: !victimsof mobile"
        return render_victims_of(stats, argument)

    if command == "epichistory":
        if not argument:
            return "Usage: !epichistory epic"
        return render_epic_history(stats, argument)

    if command in ("statfor", "statsfor"):
        if len(parts) < 2:
            return "Usage: !statfor adventurer_name"
        period = parse_period(parts[2] if len(parts) > 2 else None)
        return render_stat_for(stats, parts[1], period)

    logger.info(f"Unknown command '{command}'")
    return None
