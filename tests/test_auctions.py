"""Tests for the auction lifecycle: parsing, classification and reconciliation."""

import unittest

from sloth_watch.auctions import (
    AuctionEvent,
    AuctionEventType,
    build_item_link,
    classify_removed,
    parse_ends_minutes,
    parse_price,
    reconcile_auctions,
)
from sloth_watch.models import ListedItem


NOW = 1_700_000_000
LINK_BASE = "http://slothmudeq.ml/?search="


def _item(name, seller="Bob", bidder="Nobody", price="1,000", buyout="5,000", ends="3h"):
    return ListedItem(seller=seller, name=name, bidder=bidder, price=price, buyout=buyout, ends_in=ends)


class TestParseEnds(unittest.TestCase):
    def test_full(self):
        self.assertEqual(parse_ends_minutes("1d 2h 3m"), 1563)

    def test_minutes_only(self):
        self.assertEqual(parse_ends_minutes("45m"), 45)

    def test_empty_and_junk(self):
        self.assertEqual(parse_ends_minutes(""), 0)
        self.assertEqual(parse_ends_minutes("soon"), 0)
        self.assertEqual(parse_ends_minutes("2h soon"), 0)

    def test_price(self):
        self.assertEqual(parse_price("12,500"), 12500)
        self.assertEqual(parse_price("-"), 0)


class TestClassifyRemoved(unittest.TestCase):
    def test_grid(self):
        expected = {
            ("Nobody", "0m"): AuctionEventType.EXPIRED,
            ("Nobody", "39m"): AuctionEventType.EXPIRED,
            ("Nobody", "40m"): AuctionEventType.BOUGHT_OUT,
            ("Nobody", "41m"): AuctionEventType.BOUGHT_OUT,
            ("Nobody", "1000m"): AuctionEventType.BOUGHT_OUT,
        }
        for ends in ("0m", "39m", "40m", "41m", "1000m"):
            expected[("Carol", ends)] = AuctionEventType.SOLD

        for (bidder, ends), event_type in expected.items():
            with self.subTest(bidder=bidder, ends=ends):
                self.assertEqual(classify_removed(_item("Sword", bidder=bidder, ends=ends)), event_type)

    def test_nobody_is_case_insensitive(self):
        self.assertEqual(classify_removed(_item("Sword", bidder="nobody", ends="5m")), AuctionEventType.EXPIRED)


class TestReconcileAuctions(unittest.TestCase):
    def test_first_run_has_no_events(self):
        result = reconcile_auctions(None, [_item("Sword")], NOW)
        self.assertEqual(result.events, [])
        self.assertEqual(list(result.snapshot), ["Bob"])

    def test_no_rows_skips_cycle(self):
        old = {"Bob": [_item("Sword")]}
        result = reconcile_auctions(old, [], NOW)
        self.assertTrue(result.skipped)
        self.assertIs(result.snapshot, old)

    def test_new_seller_lists_every_item(self):
        result = reconcile_auctions({}, [_item("Sword"), _item("Shield")], NOW)
        self.assertEqual([e.type for e in result.events], [AuctionEventType.LISTED] * 2)
        self.assertEqual(
            result.events[0].message(LINK_BASE),
            f"Bob has put '{build_item_link('Sword', LINK_BASE)}' on sale. "
            "Price/buyout is 1,000/5,000. The sale ends in 3h.",
        )

    def test_vanished_seller_unbid_with_time_left_is_bought_out(self):
        old = {"Bob": [_item("Sword", ends="3h")]}
        result = reconcile_auctions(old, [_item("Axe", seller="Dave", ends="1d")], NOW)

        removed = [e for e in result.events if e.item.seller == "Bob"]
        self.assertEqual([e.type for e in removed], [AuctionEventType.BOUGHT_OUT])
        self.assertNotIn("Bob", result.snapshot)
        self.assertEqual(len(result.sales), 1)
        self.assertEqual(result.sales[0].price, 5000)

    def test_sold_records_the_bid(self):
        old = {"Bob": [_item("Sword", bidder="Carol", price="2,000"), _item("Shield")]}
        result = reconcile_auctions(old, [_item("Shield")], NOW)
        self.assertEqual([e.type for e in result.events], [AuctionEventType.SOLD])
        self.assertEqual(
            result.events[0].message(LINK_BASE),
            f"Bob's item '{build_item_link('Sword', LINK_BASE)}' had been sold to Carol for 2,000.",
        )
        self.assertEqual(result.sales[0].price, 2000)
        self.assertEqual(result.sales[0].ts, NOW)

    def test_expired_records_no_sale(self):
        old = {"Bob": [_item("Sword", ends="10m"), _item("Shield")]}
        result = reconcile_auctions(old, [_item("Shield")], NOW)
        self.assertEqual([e.type for e in result.events], [AuctionEventType.EXPIRED])
        self.assertEqual(result.sales, [])

    def test_ending_soon_fires_once(self):
        old = {"Bob": [_item("Sword", ends="3h")]}
        first = reconcile_auctions(old, [_item("Sword", bidder="Carol", ends="1h 50m")], NOW)
        self.assertEqual([e.type for e in first.events], [AuctionEventType.ENDING_SOON])
        self.assertEqual(
            first.events[0].message(LINK_BASE),
            f"The auction for Bob's item '{build_item_link('Sword', LINK_BASE)}' will end in less "
            "than two hours. Current bid is 1,000 by Carol.",
        )
        self.assertTrue(first.snapshot["Bob"][0].warned_ending_soon)

        second = reconcile_auctions(first.snapshot, [_item("Sword", bidder="Carol", ends="1h 45m")], NOW)
        self.assertEqual(second.events, [])
        self.assertTrue(second.snapshot["Bob"][0].warned_ending_soon)

    def test_duplicate_items_match_in_order(self):
        old = {"Bob": [_item("Potion"), _item("Potion")]}
        result = reconcile_auctions(old, [_item("Potion")], NOW)
        self.assertEqual(len(result.events), 1)
        self.assertEqual(len(result.snapshot["Bob"]), 1)

    def test_expired_message(self):
        event = AuctionEvent(AuctionEventType.EXPIRED, _item("Sword"))
        self.assertEqual(
            event.message(LINK_BASE),
            f"Bob's item '{build_item_link('Sword', LINK_BASE)}' is no longer available for sale.",
        )

    def test_item_link_is_url_encoded(self):
        self.assertEqual(
            build_item_link("a dragon scale", LINK_BASE),
            "[a dragon scale](http://slothmudeq.ml/?search=a%20dragon%20scale)",
        )


if __name__ == "__main__":
    unittest.main()
