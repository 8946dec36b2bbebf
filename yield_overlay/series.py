"""Bond series the overlay knows how to scrape."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Pattern, Tuple

TRADING_ECONOMICS_BASE = "https://tradingeconomics.com/united-states"


def maturity_pattern(years: int) -> Pattern[str]:
    """Match maturity labels such as ``10 Year``, ``US 10Y``, ``10-yr`` or ``USGG10YR``."""

    return re.compile(rf"USGG{years}YR?|(?<![\d.]){years}\s*-?\s*(?:years?|yrs?|y)\b", re.IGNORECASE)


@dataclass(frozen=True)
class SeriesDefinition:
    key: str
    symbol: str
    target_url: str
    years: int
    label_prefix: str
    interval_seconds: float = 60.0
    table_classes: Tuple[str, ...] = ()
    chart: str = ""
    pattern: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", maturity_pattern(self.years))


SERIES: Dict[str, SeriesDefinition] = {
    "10y": SeriesDefinition(
        key="10y",
        symbol="USGG10YR:IND",
        target_url=f"{TRADING_ECONOMICS_BASE}/government-bond-yield",
        years=10,
        label_prefix="US 10Y Yield",
        interval_seconds=30.0,
        table_classes=("table", "table-condensed"),
        chart="chart_after_x.svg",
    ),
    "20y": SeriesDefinition(
        key="20y",
        symbol="USGG20Y:IND",
        target_url=f"{TRADING_ECONOMICS_BASE}/20-year-bond-yield",
        years=20,
        label_prefix="US 20Y Yield",
        interval_seconds=60.0,
        chart="chart_after_20.svg",
    ),
    "cbo": SeriesDefinition(
        key="cbo",
        symbol="USGG10YR:IND",
        target_url=f"{TRADING_ECONOMICS_BASE}/government-bond-yield",
        years=10,
        label_prefix="US 10Y Yield",
        interval_seconds=60.0,
        table_classes=("table", "table-condensed"),
        chart="cbo_report.svg",
    ),
}

DEFAULT_SERIES = "10y"


def get_series(key: str) -> SeriesDefinition:
    try:
        return SERIES[key.strip().lower()]
    except KeyError:
        raise KeyError(f"Unknown series {key!r}; expected one of {', '.join(sorted(SERIES))}") from None
