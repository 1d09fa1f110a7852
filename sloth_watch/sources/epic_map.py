"""
Epic map scraper.

The map server lists every epic as a <div> carrying area and continent
attributes with the epic name as its text. Godsland epics are never
reachable and only the dark areas of Valkyre hold real epics, so the rest is
filtered out.
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from .base import BaseScraper
from ..models import Epic

logger = logging.getLogger(__name__)


def keep_epic(area: str, continent: str) -> bool:
    continent = continent.lower()
    if continent == "godsland":
        return False
    if continent == "valkyre" and not area.lower().startswith("dark"):
        return False
    return True


def div_to_epic(div) -> Optional[Epic]:
    area = div.get("area")
    continent = div.get("continent")
    if area is None or continent is None:
        return None
    if not keep_epic(area, continent):
        return None
    return Epic(name=div.get_text(strip=True), area=area, continent=continent)


class EpicMapScraper(BaseScraper):
    """Scraper for the map server epics list."""

    url_attribute = "epics_url"

    def parse(self, html: str) -> list[Epic]:
        soup = BeautifulSoup(html, "html.parser")
        epics = []
        for div in soup.find_all("div"):
            epic = div_to_epic(div)
            if epic is None or not epic.name:
                continue
            logger.debug(f"{epic.name}; {epic.area}; {epic.continent}")
            epics.append(epic)
        return epics
