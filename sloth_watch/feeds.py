"""
Top-of-feed diffing for the forum and the live blog.

Both pages list their entries newest first. Rather than reconciling whole
lists, the previously seen top entry is searched for in the fresh list: every
entry above it is new. When it cannot be found the feed was reshuffled or the
old top scrolled away, and nothing is reported.
"""

import logging
from typing import Callable, Optional, Sequence, TypeVar

from .models import AlertEvent, AlertEventType, ForumPost

logger = logging.getLogger(__name__)

T = TypeVar("T")


def find_cursor(old_top: T, new_items: Sequence[T], same: Callable[[T, T], bool]) -> Optional[int]:
    """Index of the first fresh item equal to the old top item, or None."""
    for index, item in enumerate(new_items):
        if same(old_top, item):
            return index
    return None


def find_new_items(
    old_items: Optional[Sequence[T]],
    new_items: Sequence[T],
    same: Callable[[T, T], bool],
    secondary_changed: Optional[Callable[[T, T], bool]] = None,
) -> Optional[list[T]]:
    """
    Find the entries of a newest-first feed that were not there before.

    Args:
        old_items: Previous snapshot of the feed (None or empty on first run)
        new_items: Fresh feed, newest first
        same: Identity predicate called as same(old_top, item)
        secondary_changed: Optional predicate; if it holds for the item at
            the cursor, that item is reported as new too

    Returns:
        New items ordered oldest to newest, or None if the cursor could not
        be located
    """
    if not old_items:
        return []

    old_top = old_items[0]
    cursor = find_cursor(old_top, new_items, same)
    logger.info(f"Top cursor: {cursor}")

    if cursor is None:
        logger.warning("Could not find the previous top item, skipping this feed update")
        return None

    fresh = list(reversed(new_items[:cursor]))
    if secondary_changed is not None and secondary_changed(old_top, new_items[cursor]):
        # Older than everything above the cursor
        fresh.insert(0, new_items[cursor])
    return fresh


# =============================================================================
# FORUM
# =============================================================================

def new_forum_posts(old: Optional[Sequence[ForumPost]], new: Sequence[ForumPost]) -> Optional[list[ForumPost]]:
    """New forum posts; a different poster on the old top thread counts as a new post."""
    return find_new_items(
        old,
        new,
        same=lambda a, b: a.thread_name == b.thread_name,
        secondary_changed=lambda a, b: a.poster != b.poster,
    )


def forum_post_message(post: ForumPost) -> str:
    poster = f"[{post.poster}]({post.poster_link})" if post.poster_link else post.poster
    thread = f"[{post.thread_name}]({post.thread_link})" if post.thread_link else post.thread_name
    return f"{poster} made a new post in the thread '{thread}'"


# =============================================================================
# LIVE BLOG
# =============================================================================

def _same_alert(a: AlertEvent, b: AlertEvent) -> bool:
    return (a.type, a.adventurer, a.doer, a.time) == (b.type, b.adventurer, b.doer, b.time)


def new_alert_events(old: Optional[Sequence[AlertEvent]], new: Sequence[AlertEvent]) -> Optional[list[AlertEvent]]:
    """
    New live blog events in dispatch order.

    Deaths come first: raises and shocks are edits of the death message and
    need it to be posted already.
    """
    fresh = find_new_items(old, new, _same_alert)
    if fresh is None:
        return None
    deaths = [e for e in fresh if e.type == AlertEventType.DEATH]
    others = [e for e in fresh if e.type != AlertEventType.DEATH]
    return deaths + others


def death_marker(adventurer: str) -> str:
    """Text that identifies the death message of an adventurer."""
    return f"{adventurer} was slain by"


def death_message(event: AlertEvent) -> str:
    return f"{event.adventurer} was slain by {event.doer}."


def follow_up_line(event: AlertEvent) -> str:
    """Line appended to the death message for a raise or a shock."""
    if event.type == AlertEventType.RAISE:
        return f"Raised by {event.doer}."
    return "Shocked."
