"""
Base scraper class for the SlothMUD live info pages.

All scrapers inherit from BaseScraper and implement:
- parse(): Extract records from the fetched HTML

Most pages are plain tables, so the base class also flattens every <tr> into a
ParsedRow (trimmed cell texts, first link of each cell, colspan of the first
cell) that the subclasses classify with small named predicates.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..config import get_app_config

logger = logging.getLogger(__name__)


@dataclass
class ParsedRow:
    """A table row reduced to its cell texts."""
    cells: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    first_colspan: Optional[int] = None

    def __len__(self) -> int:
        return len(self.cells)


def _colspan(cell) -> Optional[int]:
    value = cell.get("colspan")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_rows(html: str, base_url: str = "") -> list[ParsedRow]:
    """Flatten every table row of a page into a ParsedRow."""
    soup = BeautifulSoup(html, "html.parser")
    rows = []
    for tr in soup.find_all("tr"):
        cells = tr.find_all(["td", "th"], recursive=False)
        if not cells:
            continue

        links = []
        for cell in cells:
            anchor = cell.find("a", href=True)
            links.append(urljoin(base_url, anchor["href"]) if anchor else "")

        rows.append(ParsedRow(
            cells=[cell.get_text(" ", strip=True) for cell in cells],
            links=links,
            first_colspan=_colspan(cells[0]),
        ))
    return rows


class BaseScraper(ABC):
    """
    Abstract base class for page scrapers.

    Provides common functionality:
    - HTTP requests with a shared session and timeout
    - Table row flattening
    - Aborting an in-flight request

    Subclasses must implement:
    - url_attribute: Name of the AppConfig field holding the page URL
    - parse(): Parse the HTML into records
    """

    url_attribute: str  # Subclass must set this

    def __init__(self, url: Optional[str] = None):
        """Initialize the scraper."""
        self.config = get_app_config()
        self.url = url or getattr(self.config, self.url_attribute)
        self.session = self._new_session()

    @staticmethod
    def _new_session() -> requests.Session:
        session = requests.Session()
        # Set a reasonable user agent
        session.headers.update({
            "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) SlothWatch/1.0",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        })
        return session

    def _get(self, url: str, **kwargs) -> requests.Response:
        """
        Make a GET request.

        Raises:
            requests.RequestException: on network errors and non-2xx responses
        """
        kwargs.setdefault("timeout", self.config.request_timeout)
        logger.info(f"Fetching data at url \"{url}\"")
        try:
            response = self.session.get(url, **kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            logger.error(f"Request failed for {url}: {e}")
            raise

    def fetch_html(self) -> str:
        return self._get(self.url).text

    def parse_rows(self, html: str) -> list[ParsedRow]:
        return parse_rows(html, self.url)

    @abstractmethod
    def parse(self, html: str) -> list:
        """
        Parse a fetched page.

        Returns:
            Records in page order
        """
        pass

    def scrape(self) -> list:
        """Fetch and parse the page."""
        records = self.parse(self.fetch_html())
        logger.info(f"Parsed {len(records)} records from {self.url}")
        return records

    def abort(self) -> None:
        """Close the session, cancelling a request still in flight."""
        logger.warning(f"Aborting request to {self.url}")
        self.session.close()
        self.session = self._new_session()
