"""
Configuration module for Sloth Watch.

Loads environment variables and provides configuration constants.
All sensitive values (bot token, Supabase key) should be in .env file (never commit to git).

The numeric thresholds in AppConfig were tuned by watching the live site and
can be adjusted without touching the reconciliation code.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Channel keys used by the processors and the notifier
CHANNEL_KEYS = ("auctions", "groups", "epics", "forum", "alerts")


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class SupabaseConfig:
    """Supabase connection configuration (statistics log)."""
    url: str
    key: str  # Service role key for server-side operations

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        return cls(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_KEY", ""),
        )


@dataclass
class DiscordConfig:
    """Discord bot configuration."""
    bot_token: str
    # channel key ("groups", "alerts", ...) -> Discord channel id
    channels: dict[str, str] = field(default_factory=dict)
    api_base: str = "https://discord.com/api/v10"

    @classmethod
    def from_env(cls) -> "DiscordConfig":
        channels = {}
        for key in CHANNEL_KEYS:
            channel_id = os.getenv(f"DISCORD_CHANNEL_{key.upper()}", "")
            if channel_id:
                channels[key] = channel_id
        return cls(
            bot_token=os.getenv("DISCORD_BOT_TOKEN", ""),
            channels=channels,
            api_base=os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10"),
        )


@dataclass
class AppConfig:
    """Main application configuration."""
    # Live info pages
    auctions_url: str = "http://www.slothmud.org/wp/live-info/live-auctions"
    groups_url: str = "http://www.slothmud.org/wp/live-info/adventuring-parties"
    epics_url: str = "http://www.slothmud.org/support/mapserver2.php?filter=all"
    forum_url: str = "http://www.slothmud.org/wp/"
    alerts_url: str = "http://www.slothmud.org/wp/live-info/live-blog"
    item_link_base: str = "http://slothmudeq.ml/?search="

    # Polling intervals (seconds)
    auctions_interval: int = 5 * 60
    groups_interval: int = 5 * 60
    forum_interval: int = 5 * 60
    alerts_interval: int = 30

    # Scraping settings
    request_timeout: int = 30

    # Snapshot files (status.<domain>.json)
    snapshot_dir: str = "data"

    # How many recent channel messages are searched when appending to a notification
    message_search_limit: int = 10

    # Group continuity
    group_overlap_threshold: float = 0.6
    min_group_size: int = 3
    group_size_bucket: int = 4

    # Auctions
    ending_soon_minutes: int = 120
    buyout_min_minutes: int = 40

    # Session segmentation
    session_merge_seconds: float = 8
    session_window: int = 4
    single_lead_floor_seconds: int = 30 * 60

    # Adventurers whose deaths/raises are never announced
    alerts_exclude: list[str] = field(default_factory=list)
    # Leaders removed from the best leaders rating
    leaderboard_exclude: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            snapshot_dir=os.getenv("SNAPSHOT_DIR", "data"),
            message_search_limit=int(os.getenv("MESSAGE_SEARCH_LIMIT", "10")),
            group_overlap_threshold=float(os.getenv("GROUP_OVERLAP_THRESHOLD", "0.6")),
            ending_soon_minutes=int(os.getenv("ENDING_SOON_MINUTES", "120")),
            buyout_min_minutes=int(os.getenv("BUYOUT_MIN_MINUTES", "40")),
            alerts_exclude=_split_list(os.getenv("ALERTS_EXCLUDE", "")),
            leaderboard_exclude=_split_list(os.getenv("LEADERBOARD_EXCLUDE", "")),
        )


# Global configuration instances (lazy loaded)
_supabase_config: Optional[SupabaseConfig] = None
_discord_config: Optional[DiscordConfig] = None
_app_config: Optional[AppConfig] = None


def get_supabase_config() -> SupabaseConfig:
    """Get Supabase configuration (cached)."""
    global _supabase_config
    if _supabase_config is None:
        _supabase_config = SupabaseConfig.from_env()
    return _supabase_config


def get_discord_config() -> DiscordConfig:
    """Get Discord configuration (cached)."""
    global _discord_config
    if _discord_config is None:
        _discord_config = DiscordConfig.from_env()
    return _discord_config


def get_app_config() -> AppConfig:
    """Get app configuration (cached)."""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config
