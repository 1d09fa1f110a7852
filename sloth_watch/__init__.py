"""
Sloth Watch - SlothMUD live info notifier

Polls the SlothMUD live info pages (auctions, adventuring parties, epics,
forum, live blog), reconciles each page with the last seen snapshot, posts the
changes to Discord and keeps an event log for the statistics commands.

Modules:
- config: Configuration and environment variables
- models: Snapshot and stat event records (dataclasses)
- matching: Greedy order-preserving list matching
- groups: Group continuity (leader changes vs. groups that ended)
- auctions: Auction lifecycle (listed, ending soon, sold, bought out, expired)
- epics: Epic spawns and kills, epics report
- feeds: Top-of-feed diffing for the forum and the live blog
- statistics: Session segmentation, leaderboards and aggregates
- commands: "!command" parsing and replies
- snapshot_store: JSON snapshot persistence
- db: Supabase stat event log
- notifier: Discord notifications
- sources: Scrapers for the live info pages
- pipeline: Per-domain processors
- scheduler: APScheduler setup and CLI
- stats_server: Statistics command server
"""

__version__ = "0.1.0"

# Convenient imports
from .models import (
    AlertEvent,
    AlertEventType,
    AlertRecord,
    Epic,
    EpicEventType,
    EpicRecord,
    ForumPost,
    Group,
    GroupSession,
    ListedItem,
    SaleRecord,
)
from .matching import ListMatch, match_lists
from .groups import GroupEvent, GroupEventType, reconcile_groups
from .auctions import AuctionEvent, AuctionEventType, classify_removed, parse_ends_minutes, reconcile_auctions
from .epics import reconcile_epics, render_epics_report
from .feeds import find_new_items, new_alert_events, new_forum_posts
from .statistics import Period, Statistics, compute_best_leaders, segment_sessions
from .commands import handle_command
from .snapshot_store import SnapshotStore

__all__ = [
    # Models
    "AlertEvent",
    "AlertEventType",
    "AlertRecord",
    "Epic",
    "EpicEventType",
    "EpicRecord",
    "ForumPost",
    "Group",
    "GroupSession",
    "ListedItem",
    "SaleRecord",
    # Matching
    "ListMatch",
    "match_lists",
    # Trackers
    "GroupEvent",
    "GroupEventType",
    "reconcile_groups",
    "AuctionEvent",
    "AuctionEventType",
    "classify_removed",
    "parse_ends_minutes",
    "reconcile_auctions",
    "reconcile_epics",
    "render_epics_report",
    "find_new_items",
    "new_alert_events",
    "new_forum_posts",
    # Statistics
    "Period",
    "Statistics",
    "compute_best_leaders",
    "segment_sessions",
    "handle_command",
    # Storage
    "SnapshotStore",
]
