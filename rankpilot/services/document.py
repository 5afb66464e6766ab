"""
Parsed HTML document shared by the heuristic analyzers.
"""

import copy
import logging
from dataclasses import dataclass
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from rankpilot.core.exceptions import ParseError

logger = logging.getLogger(__name__)

# Elements that never carry the main readable content of a page
NON_CONTENT_TAGS = [
    "script", "style", "noscript", "template", "svg", "iframe",
    "nav", "header", "footer", "aside", "form",
]


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML with lxml, raising ParseError if the parser gives up."""
    try:
        return BeautifulSoup(html or "", "lxml")
    except Exception as e:
        raise ParseError(f"Could not parse HTML: {e}") from e


@dataclass
class ParsedDocument:
    url: str
    soup: BeautifulSoup
    parse_error: str | None = None

    @classmethod
    def from_html(cls, url: str, html: str) -> "ParsedDocument":
        """Parse ``html``; malformed input yields an empty document, never an error."""
        try:
            return cls(url=url, soup=parse_html(html))
        except ParseError as e:
            logger.warning(f"Treating {url} as an empty document: {e}")
            return cls(url=url, soup=BeautifulSoup("", "lxml"), parse_error=str(e))

    @property
    def host(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    def title(self) -> str:
        tag = self.soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    def first_h1(self) -> str:
        tag = self.soup.find("h1")
        return tag.get_text(strip=True) if tag else ""

    def meta_content(self, name: str) -> str | None:
        """Content of ``<meta name=...>``, or None when the tag is absent."""
        tag = self.soup.find("meta", attrs={"name": name})
        if tag is None:
            return None
        return tag.get("content", "") or ""

    def main_text(self) -> str:
        """Readable body text: the article/main region when present, else the body.

        Works on a copy so the shared soup stays untouched for other analyzers.
        """
        container = None
        for selector in ("article", "main", "body"):
            candidate = self.soup.find(selector)
            if candidate is not None and candidate.get_text(strip=True):
                container = candidate
                break
        if container is None:
            return ""

        container = copy.copy(container)
        for tag in container.find_all(NON_CONTENT_TAGS):
            tag.decompose()
        return container.get_text(separator=" ", strip=True)
