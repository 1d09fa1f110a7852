"""
Auction lifecycle tracking for Sloth Watch.

Items on the live auction page are keyed by (seller, item name). Between two
polls an item can be listed, get close to its end, or disappear. The page does
not say why an item disappeared, so the last seen state decides:

- someone had bid on it          -> sold to that bidder
- nobody had bid, 40+ minutes left -> somebody used the instant buyout
- nobody had bid, less time left  -> the auction ran out unsold

reconcile_auctions() is pure and returns the events, the sales to record and
the next snapshot.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import quote

from .matching import match_lists
from .models import ListedItem, SaleRecord

logger = logging.getLogger(__name__)


DEFAULT_ENDING_SOON_MINUTES = 120
DEFAULT_BUYOUT_MIN_MINUTES = 40
DEFAULT_ITEM_LINK_BASE = "http://slothmudeq.ml/?search="

_MINUTES_PER_UNIT = {"d": 24 * 60, "h": 60, "m": 1}
_ENDS_TOKEN = re.compile(r"(\d+)([dhm])")


class AuctionEventType(str, Enum):
    LISTED = "listed"
    ENDING_SOON = "ending_soon"
    SOLD = "sold"
    BOUGHT_OUT = "bought_out"
    EXPIRED = "expired"


def build_item_link(name: str, link_base: str = DEFAULT_ITEM_LINK_BASE) -> str:
    """Markdown link to the item database search."""
    return f"[{name}]({link_base}{quote(name)})"


@dataclass
class AuctionEvent:
    """A transition of one listed item."""
    type: AuctionEventType
    item: ListedItem

    def message(self, link_base: str = DEFAULT_ITEM_LINK_BASE) -> str:
        item = self.item
        link = build_item_link(item.name, link_base)

        if self.type == AuctionEventType.LISTED:
            return (
                f"{item.seller} has put '{link}' on sale. "
                f"Price/buyout is {item.price}/{item.buyout}. The sale ends in {item.ends_in}."
            )
        if self.type == AuctionEventType.ENDING_SOON:
            text = f"The auction for {item.seller}'s item '{link}' will end in less than two hours."
            if not is_nobody(item.bidder):
                text += f" Current bid is {item.price} by {item.bidder}."
            return text
        if self.type == AuctionEventType.SOLD:
            return f"{item.seller}'s item '{link}' had been sold to {item.bidder} for {item.price}."
        if self.type == AuctionEventType.BOUGHT_OUT:
            return f"{item.seller}'s item '{link}' had been bought out for {item.buyout}."
        return f"{item.seller}'s item '{link}' is no longer available for sale."


@dataclass
class AuctionReconciliation:
    """Events of one polling cycle and the snapshot to persist."""
    events: list[AuctionEvent] = field(default_factory=list)
    sales: list[SaleRecord] = field(default_factory=list)
    snapshot: Optional[dict[str, list[ListedItem]]] = None
    skipped: bool = False


# =============================================================================
# PARSING HELPERS
# =============================================================================

def is_nobody(bidder: str) -> bool:
    return bidder.strip().lower() == "nobody"


def parse_ends_minutes(ends: str) -> int:
    """
    Convert a remaining time string ("1d 2h 3m") into minutes.

    Returns:
        Total minutes, or 0 for an empty or malformed string
    """
    tokens = ends.split()
    if not tokens:
        logger.info(f"Empty auction end time '{ends}'")
        return 0

    minutes = 0
    for token in tokens:
        m = _ENDS_TOKEN.fullmatch(token)
        if not m:
            logger.warning(f"Could not parse auction end time '{ends}'")
            return 0
        minutes += int(m.group(1)) * _MINUTES_PER_UNIT[m.group(2)]
    return minutes


def parse_price(price: str) -> int:
    """Parse a price cell ("12,500") into gold coins; 0 if there are no digits."""
    digits = re.sub(r"[^\d]", "", price)
    if not digits:
        logger.warning(f"Could not parse price '{price}'")
        return 0
    return int(digits)


def classify_removed(
    item: ListedItem,
    buyout_min_minutes: int = DEFAULT_BUYOUT_MIN_MINUTES,
) -> AuctionEventType:
    """Decide what happened to an item that is no longer listed."""
    if not is_nobody(item.bidder):
        return AuctionEventType.SOLD
    if parse_ends_minutes(item.ends_in) >= buyout_min_minutes:
        return AuctionEventType.BOUGHT_OUT
    return AuctionEventType.EXPIRED


def group_by_seller(items: Iterable[ListedItem]) -> dict[str, list[ListedItem]]:
    """Group parsed items by seller, keeping page order."""
    result: dict[str, list[ListedItem]] = {}
    for item in items:
        result.setdefault(item.seller, []).append(item)
    return result


# =============================================================================
# RECONCILIATION
# =============================================================================

def _copy_item(item: ListedItem, warned: bool) -> ListedItem:
    return ListedItem(
        seller=item.seller,
        name=item.name,
        bidder=item.bidder,
        price=item.price,
        buyout=item.buyout,
        ends_in=item.ends_in,
        warned_ending_soon=warned,
    )


def _removed_events(
    items: Iterable[ListedItem],
    now: int,
    buyout_min_minutes: int,
    result: AuctionReconciliation,
) -> None:
    for item in items:
        event_type = classify_removed(item, buyout_min_minutes)
        result.events.append(AuctionEvent(event_type, item))

        if event_type == AuctionEventType.SOLD:
            result.sales.append(SaleRecord(item.seller, item.name, parse_price(item.price), now))
        elif event_type == AuctionEventType.BOUGHT_OUT:
            result.sales.append(SaleRecord(item.seller, item.name, parse_price(item.buyout), now))


def reconcile_auctions(
    old: Optional[dict[str, list[ListedItem]]],
    new_items: Iterable[ListedItem],
    now: int,
    ending_soon_minutes: int = DEFAULT_ENDING_SOON_MINUTES,
    buyout_min_minutes: int = DEFAULT_BUYOUT_MIN_MINUTES,
) -> AuctionReconciliation:
    """
    Reconcile the previous auction snapshot with freshly parsed items.

    Args:
        old: Previous snapshot keyed by seller (None on first run)
        new_items: Items parsed from the page, in page order
        now: Current unix time (timestamp of recorded sales)
        ending_soon_minutes: Warn once when this little time is left
        buyout_min_minutes: Unbid items vanishing with at least this much
            time left are treated as bought out

    Returns:
        AuctionReconciliation; skipped is True when nothing was parsed, in
        which case the previous snapshot is returned unchanged
    """
    new_by_seller = group_by_seller(new_items)

    if not new_by_seller:
        logger.warning("No auction rows parsed, keeping the previous snapshot")
        return AuctionReconciliation(snapshot=old, skipped=True)

    result = AuctionReconciliation(snapshot={})

    if old is None:
        logger.info("Existing auctions data is empty.")
        for seller, items in new_by_seller.items():
            result.snapshot[seller] = [_copy_item(i, i.warned_ending_soon) for i in items]
        return result

    for seller, items in new_by_seller.items():
        old_items = old.get(seller)
        if old_items is None:
            logger.info(f"New seller {seller}")
            pairs = [(None, item) for item in items]
        else:
            match = match_lists(
                list(enumerate(old_items)),
                list(enumerate(items)),
                lambda a, b: a[1].name == b[1].name,
            )
            carried = {new[0]: old_item[1].warned_ending_soon for old_item, new in match.matched}
            pairs = [(carried.get(index), item) for index, item in enumerate(items)]
            _removed_events([i for _, i in match.removed], now, buyout_min_minutes, result)

        seller_items = []
        for warned, item in pairs:
            if warned is None:
                result.events.append(AuctionEvent(AuctionEventType.LISTED, item))
                warned = False

            current = _copy_item(item, warned)
            minutes_left = parse_ends_minutes(current.ends_in)
            if 0 < minutes_left <= ending_soon_minutes and not current.warned_ending_soon:
                current.warned_ending_soon = True
                result.events.append(AuctionEvent(AuctionEventType.ENDING_SOON, current))

            seller_items.append(current)

        result.snapshot[seller] = seller_items

    # Sellers that vanished entirely
    for seller, old_items in old.items():
        if seller not in new_by_seller:
            logger.info(f"Seller {seller} has no items left")
            _removed_events(old_items, now, buyout_min_minutes, result)

    return result
