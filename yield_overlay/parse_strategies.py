"""Row-location strategies and field extraction for scraped yield tables.

Each strategy is a pure ``HtmlElement -> HtmlElement | None`` callable; the
pipeline tries them in order and stops at the first match.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from yield_overlay.errors import ParseFailure
from yield_overlay.html_document import HtmlElement
from yield_overlay.series import SeriesDefinition

RowStrategy = Callable[[HtmlElement], Optional[HtmlElement]]

NUMBER_TOKEN = re.compile(r"[+-]?\d+\.\d+%?|[+-]?\d+%?")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

VALUE_COLUMN = 1
CHANGE_COLUMN = 3
TIME_COLUMN = 6


@dataclass(frozen=True)
class NamedStrategy:
    name: str
    locate: RowStrategy

    def __call__(self, document: HtmlElement) -> Optional[HtmlElement]:
        return self.locate(document)


def select_by_symbol(symbol: str, table_classes: Sequence[str] = ()) -> RowStrategy:
    """``table.<classes> tr[data-symbol=<symbol>]``."""

    required = set(table_classes)

    def locate(document: HtmlElement) -> Optional[HtmlElement]:
        for row in document.iter("tr"):
            if row.get("data-symbol") != symbol:
                continue
            if not required:
                return row
            table = row.closest("table")
            if table is not None and required.issubset(table.classes):
                return row
        return None

    return locate


def scan_table_rows(pattern: Pattern[str]) -> RowStrategy:
    """First ``table tr`` whose text matches *pattern*."""

    def locate(document: HtmlElement) -> Optional[HtmlElement]:
        for table in document.iter("table"):
            for row in table.find_all("tr"):
                if pattern.search(row.text_content()):
                    return row
        return None

    return locate


def scan_all_elements(pattern: Pattern[str]) -> RowStrategy:
    """Deepest element whose own text matches, widened to its enclosing row.

    Falls back to the first row of the enclosing table, then to the element
    itself so its text can still be scanned for numbers.
    """

    def locate(document: HtmlElement) -> Optional[HtmlElement]:
        for element in document.iter():
            if element is document or not pattern.search(element.own_text()):
                continue
            row = element.closest("tr")
            if row is not None:
                return row
            table = element.closest("table")
            if table is not None:
                rows = table.find_all("tr")
                if rows:
                    return rows[0]
            return element
        return None

    return locate


def default_strategies(series: SeriesDefinition) -> List[NamedStrategy]:
    return [
        NamedStrategy("symbol-selector", select_by_symbol(series.symbol, series.table_classes)),
        NamedStrategy("table-row-scan", scan_table_rows(series.pattern)),
        NamedStrategy("document-scan", scan_all_elements(series.pattern)),
    ]


def locate_row(document: HtmlElement, strategies: Sequence[NamedStrategy]) -> Tuple[str, HtmlElement]:
    for strategy in strategies:
        row = strategy(document)
        if row is not None:
            return strategy.name, row
    raise ParseFailure("Could not find data row in HTML")


@dataclass(frozen=True)
class RowFields:
    value_text: str
    change_text: str
    time_text: Optional[str]


def _cell_text(cells: Sequence[HtmlElement], index: int) -> str:
    if index < len(cells):
        return " ".join(cells[index].text_content().split())
    return ""


def extract_fields(row: HtmlElement, label_pattern: Optional[Pattern[str]] = None) -> RowFields:
    """Pull value/change/time text from *row* by column, falling back to numeric tokens.

    Maturity labels are removed before the token scan so ``US 10 Year 4.23%``
    yields ``4.23%`` rather than ``10``.
    """

    cells = row.cells()
    row_text = row.text_content()
    if label_pattern is not None:
        row_text = label_pattern.sub(" ", row_text)
    tokens = NUMBER_TOKEN.findall(row_text.replace("−", "-"))

    value_text = _cell_text(cells, VALUE_COLUMN) or (tokens[0] if tokens else "")
    change_text = _cell_text(cells, CHANGE_COLUMN) or (tokens[1] if len(tokens) > 1 else "0")
    time_text = _cell_text(cells, TIME_COLUMN) or None
    if not value_text:
        raise ParseFailure("Yield value not found")
    return RowFields(value_text=value_text, change_text=change_text, time_text=time_text)


def parse_percent(text: str) -> float:
    """Parse a leading decimal from *text*, ignoring ``%``; NaN when none is present."""

    cleaned = (text or "").replace("%", "").replace("−", "-").replace(",", "").strip()
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return math.nan
    return float(match.group(0))


def normalise_fields(fields: RowFields) -> Tuple[float, float]:
    value = parse_percent(fields.value_text)
    if not math.isfinite(value):
        raise ParseFailure(f"Parsed yield is not finite ({fields.value_text!r})")
    change = parse_percent(fields.change_text)
    if not math.isfinite(change):
        change = 0.0
    return value, change


def format_label(prefix: str, fields: RowFields, *, now: Optional[datetime] = None) -> str:
    change = fields.change_text.strip()
    if not change.endswith("%"):
        change = f"{change}%"
    time_text = fields.time_text or (now or datetime.now()).strftime("%H:%M:%S")
    return f"{prefix}: {fields.value_text}\nChange: {change}\nTime: {time_text}"
