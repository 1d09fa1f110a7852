"""
Adventuring parties scraper.

Each group on the page is a header row spanning three columns
("Alice is leading 'Dragon hunt' on Tamarael") followed by one three-cell row
per member, the member name in the last cell. Rows are classified into tagged
variants before being folded into groups.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .base import BaseScraper, ParsedRow
from ..models import Group

logger = logging.getLogger(__name__)


HEADER_PATTERN = re.compile(r"(\w+) is leading '(.*)'(?:\s+on\s+(\w+))?")


@dataclass
class HeaderRow:
    leader: str
    name: str
    continent: str = ""


@dataclass
class MemberRow:
    member: str


ClassifiedRow = Union[HeaderRow, MemberRow, None]


def parse_header(row: ParsedRow) -> Optional[HeaderRow]:
    if row.first_colspan != 3:
        return None
    m = HEADER_PATTERN.search(row.cells[0])
    if not m:
        return None
    return HeaderRow(leader=m.group(1), name=m.group(2), continent=m.group(3) or "")


def parse_member(row: ParsedRow) -> Optional[MemberRow]:
    if len(row) != 3 or not row.cells[2]:
        return None
    return MemberRow(member=row.cells[2])


def classify_row(row: ParsedRow) -> ClassifiedRow:
    """Header, member, or None for anything else."""
    return parse_header(row) or parse_member(row)


def rows_to_groups(rows: list[ParsedRow]) -> list[Group]:
    """Fold classified rows into groups; member rows before any header are ignored."""
    groups = []
    current = None
    for row in rows:
        classified = classify_row(row)
        if isinstance(classified, HeaderRow):
            current = Group(
                leader=classified.leader,
                original_leader=classified.leader,
                name=classified.name,
                continent=classified.continent,
            )
            groups.append(current)
        elif isinstance(classified, MemberRow) and current is not None:
            current.members.add(classified.member)
    return groups


class AdventuringPartiesScraper(BaseScraper):
    """Scraper for the adventuring parties page."""

    url_attribute = "groups_url"

    def parse(self, html: str) -> list[Group]:
        groups = rows_to_groups(self.parse_rows(html))
        for group in groups:
            logger.debug(f"{group.leader} leads '{group.name}' on {group.continent or '?'} ({group.size})")
        return groups
