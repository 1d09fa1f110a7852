"""
Forum scraper.

The front page carries a "Last Forum Posts" table: after its header row, each
four-cell row holds the thread (with link) and the last poster (with link).
"""

import logging

from .base import BaseScraper, ParsedRow
from ..models import ForumPost

logger = logging.getLogger(__name__)


FORUM_HEADER = "Last Forum Posts"


def rows_to_posts(rows: list[ParsedRow]) -> list[ForumPost]:
    posts = []
    found_header = False
    for row in rows:
        if not found_header:
            found_header = FORUM_HEADER in row.cells[0]
            continue
        if len(row) != 4:
            continue
        posts.append(ForumPost(
            thread_name=row.cells[0],
            thread_link=row.links[0],
            poster=row.cells[1],
            poster_link=row.links[1],
        ))
    if not found_header:
        logger.warning(f"'{FORUM_HEADER}' header not found")
    return posts


class ForumPageScraper(BaseScraper):
    """Scraper for the forum posts on the front page."""

    url_attribute = "forum_url"

    def parse(self, html: str) -> list[ForumPost]:
        return rows_to_posts(self.parse_rows(html))
