"""
Discord notification module for Sloth Watch.

Posts one embed per notification to the channel configured for each domain
through the Discord REST API. Group and death notifications are living
messages: later events are appended to them, so the notifier can also find a
recent message by its text and edit it.

Rate limits (HTTP 429) are honoured using the retry_after value Discord sends.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .config import get_discord_config, get_app_config

logger = logging.getLogger(__name__)


EMBED_COLOR = 0x2C5282
USER_AGENT = "DiscordBot (https://github.com/sloth-watch, 1.0) SlothWatch/1.0"


class NotifierError(Exception):
    """A Discord request failed for good."""


@dataclass
class MessageHandle:
    """A message the bot posted; text is the embed description."""
    channel_id: str
    message_id: str
    text: str


def message_text(message: dict) -> str:
    """Text of a Discord message: the first embed's description, or the content."""
    embeds = message.get("embeds") or []
    if embeds and embeds[0].get("description"):
        return embeds[0]["description"]
    return message.get("content") or ""


class DiscordNotifier:
    """
    Send, edit, find and delete bot messages.

    Usage:
        notifier = DiscordNotifier()
        handle = notifier.notify("groups", "Alice started group 'x'. ...")
        notifier.edit_notification(handle, handle.text + "\\n(+00:05) ...")
    """

    def __init__(self, config=None, retries: int = 3, backoff: float = 2.0):
        self.config = config or get_discord_config()
        self.retries = retries
        self.backoff = backoff
        self.timeout = get_app_config().request_timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bot {self.config.bot_token}",
            "User-Agent": USER_AGENT,
        })
        self._bot_user_id: Optional[str] = None

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Call the Discord API, retrying on rate limits and server errors."""
        url = f"{self.config.api_base}{path}"
        kwargs.setdefault("timeout", self.timeout)

        for attempt in range(1, self.retries + 1):
            try:
                resp = self.session.request(method, url, **kwargs)
                if resp.status_code == 429:
                    retry_after = resp.json().get("retry_after", self.backoff * attempt)
                    logger.warning(f"Discord rate-limited, sleeping {retry_after:.1f}s")
                    time.sleep(retry_after)
                    continue
                if 400 <= resp.status_code < 500:
                    raise NotifierError(f"Discord client error {resp.status_code}: {resp.text[:300]}")
                if resp.status_code >= 500:
                    logger.warning(f"Discord server error {resp.status_code}, retrying")
                else:
                    return resp
            except requests.RequestException as e:
                logger.warning(f"Discord request failed: {e}")
            if attempt < self.retries:
                time.sleep(self.backoff * attempt)

        raise NotifierError(f"Failed {method} {path} after {self.retries} attempts")

    def channel_id(self, channel_key: str) -> str:
        channel_id = self.config.channels.get(channel_key)
        if not channel_id:
            raise NotifierError(f"No Discord channel configured for '{channel_key}'")
        return channel_id

    def bot_user_id(self) -> str:
        if self._bot_user_id is None:
            self._bot_user_id = self._request("GET", "/users/@me").json()["id"]
        return self._bot_user_id

    @staticmethod
    def _payload(text: str) -> dict:
        return {"embeds": [{"description": text, "color": EMBED_COLOR}]}

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def notify(self, channel_key: str, text: str) -> MessageHandle:
        """Post a new message to a domain's channel."""
        channel_id = self.channel_id(channel_key)
        resp = self._request("POST", f"/channels/{channel_id}/messages", json=self._payload(text))
        message = resp.json()
        logger.info(f"Posted to {channel_key}: {text[:80]}")
        return MessageHandle(channel_id, message["id"], text)

    def edit_notification(self, handle: MessageHandle, text: str) -> None:
        """Replace the text of a posted message."""
        self._request(
            "PATCH",
            f"/channels/{handle.channel_id}/messages/{handle.message_id}",
            json=self._payload(text),
        )
        handle.text = text

    def recent_messages(self, channel_key: str, limit: int) -> list[dict]:
        """The bot's own messages among the last `limit` of a channel, newest first."""
        channel_id = self.channel_id(channel_key)
        resp = self._request("GET", f"/channels/{channel_id}/messages", params={"limit": limit})
        bot_id = self.bot_user_id()
        return [m for m in resp.json() if m.get("author", {}).get("id") == bot_id]

    def find_recent_notification(
        self,
        channel_key: str,
        predicate: Callable[[str], bool],
        limit: Optional[int] = None,
    ) -> Optional[MessageHandle]:
        """
        Find the newest recent message whose text satisfies predicate.

        Returns:
            A handle for editing, or None if the message scrolled out of the window
        """
        limit = limit or get_app_config().message_search_limit
        for message in self.recent_messages(channel_key, limit):
            text = message_text(message)
            if predicate(text):
                return MessageHandle(message["channel_id"], message["id"], text)
        return None

    def delete_all_recent_notifications(self, channel_key: str, limit: int = 50) -> int:
        """Delete the bot's recent messages in a channel. Returns how many were deleted."""
        deleted = 0
        for message in self.recent_messages(channel_key, limit):
            self._request("DELETE", f"/channels/{message['channel_id']}/messages/{message['id']}")
            deleted += 1
        logger.info(f"Deleted {deleted} messages from {channel_key}")
        return deleted

    def abort(self) -> None:
        self.session.close()


def append_line(
    notifier,
    channel_key: str,
    marker: str,
    line: str,
    description: str,
    limit: Optional[int] = None,
) -> bool:
    """
    Append a line to the recent message containing marker.

    Args:
        notifier: Anything with find_recent_notification/edit_notification
        channel_key: Channel to search
        marker: Text identifying the message
        line: Line to append
        description: What the message is about, for the log

    Returns:
        True if the message was found and edited
    """
    handle = notifier.find_recent_notification(channel_key, lambda text: marker in text, limit)
    if handle is None:
        logger.warning(f"could not find message for {description}")
        return False
    notifier.edit_notification(handle, f"{handle.text}\n{line}")
    return True
