"""
Scheduler module for Sloth Watch.

Uses APScheduler to poll the live info pages:
- Every 5 minutes: auctions, groups (with epics), forum
- Every 30 seconds: live blog

Can also be run manually via command line.
"""

import logging
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import get_app_config
from .db import get_db
from .notifier import DiscordNotifier
from .pipeline import (
    AlertProcessor,
    AuctionProcessor,
    EpicProcessor,
    ForumProcessor,
    GroupProcessor,
)
from .snapshot_store import SnapshotStore
from .sources import (
    AdventuringPartiesScraper,
    EpicMapScraper,
    ForumPageScraper,
    LiveAuctionsScraper,
    LiveBlogScraper,
)

logger = logging.getLogger(__name__)


def create_processors() -> dict:
    """
    Build one processor per scheduled domain.

    The epics processor is owned by the groups processor and is not returned.
    """
    notifier = DiscordNotifier()
    snapshots = SnapshotStore()
    db = get_db()

    epics = EpicProcessor(EpicMapScraper(), notifier, snapshots, db)
    return {
        "auctions": AuctionProcessor(LiveAuctionsScraper(), notifier, snapshots, db),
        "groups": GroupProcessor(AdventuringPartiesScraper(), notifier, snapshots, db, epics=epics),
        "forum": ForumProcessor(ForumPageScraper(), notifier, snapshots, db),
        "alerts": AlertProcessor(LiveBlogScraper(), notifier, snapshots, db),
    }


def create_scheduler(processors: dict) -> BlockingScheduler:
    """
    Create and configure the APScheduler.

    Jobs:
    1. auctions: Listings, ending-soon warnings and sales
    2. groups: Group changes, then (or before) epic spawns and kills
    3. forum: New forum posts
    4. alerts: Deaths, raises and shocks

    Returns:
        Configured BlockingScheduler
    """
    config = get_app_config()
    intervals = {
        "auctions": config.auctions_interval,
        "groups": config.groups_interval,
        "forum": config.forum_interval,
        "alerts": config.alerts_interval,
    }

    scheduler = BlockingScheduler()
    for name, processor in processors.items():
        scheduler.add_job(
            processor.run,
            trigger=IntervalTrigger(seconds=intervals[name]),
            id=name,
            name=f"Check {name}",
            replace_existing=True,
            # A second instance only aborts the stuck request of the first
            max_instances=2,
        )

    logger.info(f"Scheduler configured with {len(processors)} jobs")
    return scheduler


def run_once(processors: dict) -> list[dict]:
    """Run every domain once."""
    return [processor.run() for processor in processors.values()]


def start_scheduler() -> None:
    """Start the scheduler (blocking)."""
    processors = create_processors()
    scheduler = create_scheduler(processors)

    logger.info("Starting Sloth Watch scheduler...")
    logger.info("Press Ctrl+C to stop")

    # Run initial checks immediately
    logger.info("Running initial checks...")
    run_once(processors)

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """CLI entry point for the scheduler."""
    import argparse

    parser = argparse.ArgumentParser(description="Sloth Watch Scheduler")
    parser.add_argument(
        "--mode",
        choices=["schedule", "once", "auctions", "groups", "forum", "alerts"],
        default="schedule",
        help="Mode to run: schedule (continuous), once (every domain once), or a single domain once"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level"
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if args.mode == "schedule":
        start_scheduler()
    elif args.mode == "once":
        logger.info("Running single check of every domain...")
        run_once(create_processors())
    else:
        logger.info(f"Running single {args.mode} check...")
        create_processors()[args.mode].run()


if __name__ == "__main__":
    main()
