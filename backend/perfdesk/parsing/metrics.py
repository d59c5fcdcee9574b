from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Protocol, Sequence

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

logger = logging.getLogger(__name__)

HTML_TAG_RE = re.compile(r"<[a-z][^>]*>", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")

IGNORED_TAGS = ["script", "style", "noscript", "template"]
MAX_TABLES = 2
# label candidates longer than this are containers, not labels
_MAX_LABEL_TEXT = 200


def clean_text(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    normalized = WHITESPACE_RE.sub(" ", value).strip()
    if not normalized:
        return None
    if HTML_TAG_RE.search(normalized):
        return None
    return normalized


def parse_table_pairs(table: Tag) -> dict[str, Optional[str]]:
    """Read each row as label/value cell pairs (cells 0-1 and 2-3)."""
    entries: dict[str, Optional[str]] = {}
    for row in table.find_all("tr"):
        cells = row.find_all(["td", "th"], recursive=False)
        for offset in (0, 2):
            if len(cells) < offset + 2:
                break
            key = clean_text(cells[offset].get_text())
            value = clean_text(cells[offset + 1].get_text())
            if key and entries.get(key) is None:
                entries[key] = value
    return entries


class DashboardDocument:
    """Parsed dashboard markup with lazily built lookup indexes."""

    def __init__(self, markup: str):
        self.soup = BeautifulSoup(markup or "", "html.parser")
        for node in self.soup(IGNORED_TAGS):
            node.decompose()
        self._label_nodes: dict[str, Tag] | None = None
        self._table_pairs: list[dict[str, Optional[str]]] | None = None

    def label_node(self, label: str) -> Optional[Tag]:
        """First element in document order whose cleaned text is exactly `label`."""
        if self._label_nodes is None:
            index: dict[str, Tag] = {}
            for element in self.soup.find_all(True):
                text = element.get_text()
                if len(text) > _MAX_LABEL_TEXT:
                    continue
                key = clean_text(text)
                if key and key not in index:
                    index[key] = element
            self._label_nodes = index
        return self._label_nodes.get(label)

    @property
    def table_pairs(self) -> list[dict[str, Optional[str]]]:
        if self._table_pairs is None:
            tables = self.soup.find_all("table", limit=MAX_TABLES)
            self._table_pairs = [parse_table_pairs(table) for table in tables]
        return self._table_pairs


class ExtractionStrategy(Protocol):
    def try_extract(self, label: str) -> Optional[str]: ...


class TableStrategy:
    """Case-sensitive label lookup in the first two tables."""

    def __init__(self, document: DashboardDocument):
        self.document = document

    def try_extract(self, label: str) -> Optional[str]:
        for pairs in self.document.table_pairs:
            value = pairs.get(label)
            if value:
                return value
        return None


class SiblingStrategy:
    """
    Value next to the exact-text label node: the next sibling element with
    text, then a strong/span inside the parent, then the trailing text node.
    """

    VALUE_TAGS = ["strong", "span"]

    def __init__(self, document: DashboardDocument):
        self.document = document

    def try_extract(self, label: str) -> Optional[str]:
        node = self.document.label_node(label)
        if node is None:
            return None

        for sibling in node.find_next_siblings(True):
            text = clean_text(sibling.get_text())
            if text:
                return text

        parent = node.parent
        if isinstance(parent, Tag):
            for candidate in parent.find_all(self.VALUE_TAGS):
                if candidate is node or any(p is node for p in candidate.parents):
                    continue
                text = clean_text(candidate.get_text())
                if text and text != label:
                    return text

        trailing = node.next_sibling
        if isinstance(trailing, NavigableString) and not isinstance(trailing, Comment):
            return clean_text(str(trailing))
        return None


def default_strategies(document: DashboardDocument) -> list[ExtractionStrategy]:
    """Exact-text label node and its neighbours first, then the first two tables."""
    return [SiblingStrategy(document), TableStrategy(document)]


def tabular_strategies(document: DashboardDocument) -> list[ExtractionStrategy]:
    # stats and account info live in the tables; free text is the fallback
    return [TableStrategy(document), SiblingStrategy(document)]


class MetricExtractor:
    def __init__(
        self,
        document: DashboardDocument,
        strategies: Sequence[ExtractionStrategy] | None = None,
    ):
        self.document = document
        self.strategies = list(strategies) if strategies is not None else default_strategies(document)

    def extract(
        self,
        label: str,
        strategies: Sequence[ExtractionStrategy] | None = None,
    ) -> Optional[str]:
        for strategy in strategies if strategies is not None else self.strategies:
            try:
                value = clean_text(strategy.try_extract(label))
            except Exception as exc:
                logger.warning(
                    f"{strategy.__class__.__name__} failed for {label!r}: {exc}"
                )
                continue
            if value:
                return value
        logger.debug(f"No value found for metric {label!r}")
        return None

    def extract_group(
        self,
        labels: Iterable[str],
        strategies: Sequence[ExtractionStrategy] | None = None,
    ) -> dict[str, Optional[str]]:
        return {label: self.extract(label, strategies) for label in labels}
