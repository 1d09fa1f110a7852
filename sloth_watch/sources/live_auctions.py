"""
Live auctions scraper.

The live auctions page is one table; item rows start with the numeric auction
id followed by item name, seller, bidder, price, buyout and time left.
"""

import logging

from .base import BaseScraper, ParsedRow
from ..models import ListedItem

logger = logging.getLogger(__name__)


def is_item_row(row: ParsedRow) -> bool:
    return len(row) >= 6 and row.cells[0].isdigit()


def row_to_item(row: ParsedRow) -> ListedItem:
    cells = row.cells
    return ListedItem(
        seller=cells[2],
        name=cells[1],
        bidder=cells[3] or "Nobody",
        price=cells[4],
        buyout=cells[5],
        ends_in=cells[6] if len(cells) > 6 else "",
    )


class LiveAuctionsScraper(BaseScraper):
    """Scraper for the live auctions page."""

    url_attribute = "auctions_url"

    def parse(self, html: str) -> list[ListedItem]:
        items = []
        for row in self.parse_rows(html):
            if not is_item_row(row):
                continue
            item = row_to_item(row)
            logger.debug(f"{item.seller}: {item.name} ({item.bidder}, {item.price}/{item.buyout}, {item.ends_in})")
            items.append(item)
        return items
