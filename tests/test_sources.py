"""Tests for the page parsers, fed with small HTML fixtures."""

import unittest

from sloth_watch.models import AlertEventType
from sloth_watch.sources import (
    AdventuringPartiesScraper,
    EpicMapScraper,
    ForumPageScraper,
    LiveAuctionsScraper,
    LiveBlogScraper,
)
from sloth_watch.sources.base import parse_rows
from sloth_watch.sources.epic_map import keep_epic
from sloth_watch.sources.live_blog import classify_alert


AUCTIONS_HTML = """
<table>
  <tr><th>#</th><th>Item</th><th>Seller</th><th>Bidder</th><th>Price</th><th>Buyout</th><th>Ends</th></tr>
  <tr><td>12</td><td>a shiny sword</td><td>Bob</td><td>Nobody</td><td>1,000</td><td>5,000</td><td>1d 2h</td></tr>
  <tr><td>13</td><td>a wooden shield</td><td>Bob</td><td>Carol</td><td>200</td><td>-</td><td>45m</td></tr>
  <tr><td colspan="7">No more auctions</td></tr>
</table>
"""

GROUPS_HTML = """
<table>
  <tr><td colspan="3">Alice is leading 'Dragon hunt' on Tamarael</td></tr>
  <tr><td>50</td><td>Cleric</td><td>Alice</td></tr>
  <tr><td>48</td><td>Warrior</td><td>Bob</td></tr>
  <tr><td>47</td><td>Mage</td><td>Carol</td></tr>
  <tr><td colspan="3">Dave is leading 'just chilling'</td></tr>
  <tr><td>12</td><td>Thief</td><td>Dave</td></tr>
</table>
"""

EPICS_HTML = """
<div id="epics">
  <div area="Sewers" continent="Tamarael">Vermin King</div>
  <div area="Dark Hold" continent="Valkyre">Thordak</div>
  <div area="Sunny Plains" continent="Valkyre">Fake Epic</div>
  <div area="Heaven" continent="Godsland">A God</div>
</div>
"""

FORUM_HTML = """
<table>
  <tr><td><a href="/wp/forum/thread/9">Sticky</a></td><td>Admin</td><td>1</td><td>2</td></tr>
  <tr><th colspan="4">Last Forum Posts</th></tr>
  <tr>
    <td><a href="/wp/forum/thread/1">Raid night</a></td>
    <td><a href="/wp/members/alice">Alice</a></td>
    <td>3</td><td>10:00</td>
  </tr>
  <tr><td>broken row</td></tr>
</table>
"""

BLOG_HTML = """
<table>
  <tr><td>10:05</td><td>The clerical genius Cleric successfully raised Alice.</td></tr>
  <tr><td>10:00</td><td>Alice was slain by a huge dragon.</td></tr>
  <tr><td>09:55</td><td>Bob went shopping.</td></tr>
</table>
"""


class TestParseRows(unittest.TestCase):
    def test_cells_links_and_colspan(self):
        rows = parse_rows(FORUM_HTML, "http://www.slothmud.org/wp/")
        self.assertEqual(rows[1].first_colspan, 4)
        self.assertEqual(rows[2].cells[:2], ["Raid night", "Alice"])
        self.assertEqual(rows[2].links[0], "http://www.slothmud.org/wp/forum/thread/1")
        self.assertEqual(rows[2].links[2], "")


class TestScrapers(unittest.TestCase):
    def test_live_auctions(self):
        items = LiveAuctionsScraper(url="http://test/auctions").parse(AUCTIONS_HTML)
        self.assertEqual([i.name for i in items], ["a shiny sword", "a wooden shield"])
        first = items[0]
        self.assertEqual(
            (first.seller, first.bidder, first.price, first.buyout, first.ends_in),
            ("Bob", "Nobody", "1,000", "5,000", "1d 2h"),
        )
        self.assertEqual(items[1].bidder, "Carol")

    def test_adventuring_parties(self):
        groups = AdventuringPartiesScraper(url="http://test/groups").parse(GROUPS_HTML)
        self.assertEqual([g.leader for g in groups], ["Alice", "Dave"])
        self.assertEqual(groups[0].name, "Dragon hunt")
        self.assertEqual(groups[0].continent, "Tamarael")
        self.assertEqual(groups[0].members, {"Alice", "Bob", "Carol"})
        self.assertEqual(groups[1].continent, "")
        self.assertEqual(groups[1].members, {"Dave"})

    def test_epic_map_filters(self):
        epics = EpicMapScraper(url="http://test/epics").parse(EPICS_HTML)
        self.assertEqual([e.name for e in epics], ["Vermin King", "Thordak"])
        self.assertEqual((epics[1].area, epics[1].continent), ("Dark Hold", "Valkyre"))
        self.assertFalse(keep_epic("Heaven", "godsland"))
        self.assertTrue(keep_epic("Darkwood", "VALKYRE"))

    def test_forum_rows_after_header(self):
        posts = ForumPageScraper(url="http://www.slothmud.org/wp/").parse(FORUM_HTML)
        self.assertEqual(len(posts), 1)
        self.assertEqual(posts[0].thread_name, "Raid night")
        self.assertEqual(posts[0].poster, "Alice")
        self.assertEqual(posts[0].poster_link, "http://www.slothmud.org/wp/members/alice")

    def test_forum_without_header(self):
        self.assertEqual(ForumPageScraper(url="http://test/").parse(AUCTIONS_HTML), [])

    def test_live_blog(self):
        events = LiveBlogScraper(url="http://test/blog").parse(BLOG_HTML)
        self.assertEqual([e.type for e in events], [AlertEventType.RAISE, AlertEventType.DEATH])
        self.assertEqual((events[0].adventurer, events[0].doer, events[0].time), ("Alice", "Cleric", "10:05"))
        self.assertEqual((events[1].adventurer, events[1].doer), ("Alice", "a huge dragon"))


class TestClassifyAlert(unittest.TestCase):
    def test_doer_first_death(self):
        event = classify_alert("A fire giant mercilessly slaughtered Bob.")
        self.assertEqual(event.type, AlertEventType.DEATH)
        self.assertEqual((event.adventurer, event.doer), ("Bob", "A fire giant"))

    def test_doer_second_raise(self):
        event = classify_alert("Alice raised from the dead by Cleric.")
        self.assertEqual(event.type, AlertEventType.RAISE)
        self.assertEqual((event.adventurer, event.doer), ("Alice", "Cleric"))

    def test_shock(self):
        event = classify_alert("Alice was banished to ether by Cleric's lack of raising ability.")
        self.assertEqual(event.type, AlertEventType.SHOCK)
        self.assertEqual((event.adventurer, event.doer), ("Alice", "Cleric"))

    def test_unmatched(self):
        self.assertIsNone(classify_alert("Bob went shopping."))


if __name__ == "__main__":
    unittest.main()
