"""
Sources package - Scrapers for the SlothMUD live info pages.

Each scraper module handles:
1. Fetching the page HTML
2. Classifying its rows
3. Building the records the trackers reconcile
"""

from .base import BaseScraper, ParsedRow, parse_rows
from .live_auctions import LiveAuctionsScraper
from .adventuring_parties import AdventuringPartiesScraper
from .epic_map import EpicMapScraper
from .forum_page import ForumPageScraper
from .live_blog import LiveBlogScraper, classify_alert

__all__ = [
    "BaseScraper",
    "ParsedRow",
    "parse_rows",
    "LiveAuctionsScraper",
    "AdventuringPartiesScraper",
    "EpicMapScraper",
    "ForumPageScraper",
    "LiveBlogScraper",
    "classify_alert",
]
