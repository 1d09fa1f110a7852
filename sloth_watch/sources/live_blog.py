"""
Live blog scraper.

Every live blog row has two cells: the game time and a free text event. The
text is classified with ordered regex templates per category (deaths first,
then raises, then shocks); the first template that matches wins. Each
template says whether the doer (killer, raiser) is named before the
adventurer.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from .base import BaseScraper, ParsedRow
from ..models import AlertEvent, AlertEventType

logger = logging.getLogger(__name__)


@dataclass
class EventTemplate:
    pattern: re.Pattern
    doer_first: bool

    @classmethod
    def of(cls, pattern: str, doer_first: bool) -> "EventTemplate":
        return cls(re.compile(pattern, re.DOTALL), doer_first)


DEATH_TEMPLATES = [
    EventTemplate.of(r"(.+) handidly dispatched (\w+) to to the next world\.", True),
    EventTemplate.of(r"(.+) mercilessly slaughtered (\w+)\.", True),
    EventTemplate.of(r"(.+) mercilessly butchered (\w+)\.", True),
    EventTemplate.of(r"(.+) obliterated (\w+)\.", True),
    EventTemplate.of(r"(.+) annihilated (\w+)\.", True),
    EventTemplate.of(r"(.+) defeated (\w+)\.", True),
    EventTemplate.of(r"(.+) slew (\w+)\.", True),
    EventTemplate.of(r"(.+) wasted (\w+)\.", True),
    EventTemplate.of(r"(.+) crushed (\w+) to a liveless pulp of blood and offals\.", True),
    EventTemplate.of(r"(\w+) was slain by (.+)\.", False),
    EventTemplate.of(r"(\w+) was defeated by (.+)\.", False),
    EventTemplate.of(r"(\w+) was messily dispatched by (.+)\.", False),
    EventTemplate.of(r"(\w+) was beaten down by (.+)\.", False),
    EventTemplate.of(r"(\w+) naively fought (.+) and lost\.", False),
    EventTemplate.of(r"(\w+) fought against (.+) and lost\.", False),
]

RAISE_TEMPLATES = [
    EventTemplate.of(r"(\w+) sold a piece of soul to the devil in exchange for (\w+)'s worthless soul", True),
    EventTemplate.of(r"The clerical genius (\w+) successfully raised (\w+)\.", True),
    EventTemplate.of(r"(\w+)'s prayers were answered and (\w+) was successfully raised\.", True),
    EventTemplate.of(r"(\w+) raised from the dead by (\w+)\.", False),
]

SHOCK_TEMPLATES = [
    EventTemplate.of(r"(\w+) shocked (\w+)\.", True),
    EventTemplate.of(r"(\w+) knelt, prayed, and still managed to shock (\w+)\.", True),
    EventTemplate.of(r"(\w+) was banished to ether by (\w+)'s lack of raising ability\.", False),
    EventTemplate.of(
        r"The gods liked (\w+)'s soul so much that they want to keep it\s+-\s+(\w+) was not convincing enough to cheat death\.",
        False,
    ),
]

TEMPLATES = [
    (AlertEventType.DEATH, DEATH_TEMPLATES),
    (AlertEventType.RAISE, RAISE_TEMPLATES),
    (AlertEventType.SHOCK, SHOCK_TEMPLATES),
]


def classify_alert(text: str, time: str = "") -> Optional[AlertEvent]:
    """
    Classify a live blog text.

    Returns:
        AlertEvent, or None if no template matched
    """
    for event_type, templates in TEMPLATES:
        for template in templates:
            m = template.pattern.search(text)
            if not m:
                continue
            if template.doer_first:
                doer, adventurer = m.group(1), m.group(2)
            else:
                adventurer, doer = m.group(1), m.group(2)
            return AlertEvent(type=event_type, adventurer=adventurer, doer=doer, time=time)
    return None


def rows_to_events(rows: list[ParsedRow]) -> list[AlertEvent]:
    events = []
    for row in rows:
        if len(row) != 2:
            continue
        time, text = row.cells
        event = classify_alert(text, time)
        if event is None:
            logger.info(f"'{text}' neither death or raise or shock.")
            continue
        events.append(event)
    return events


class LiveBlogScraper(BaseScraper):
    """Scraper for the live blog (deaths, raises, shocks), newest first."""

    url_attribute = "alerts_url"

    def parse(self, html: str) -> list[AlertEvent]:
        return rows_to_events(self.parse_rows(html))
