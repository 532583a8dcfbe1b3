"""Normalization of localized financial text.

All functions here are pure: they never raise on malformed input and never
return NaN. Unparsable numeric text degrades to ``0`` so one bad cell cannot
abort a page-level scrape; an unparsable percentage degrades to ``None``
because a missing percentage is not the same thing as zero percent.

Because the zero fallback hides malformed input, numeric parses can be
observed with ``track_parses()``::

    with track_parses() as stats:
        ...  # scrape
    if stats.degraded_ratio > 0.3:
        ...

Outside a ``track_parses()`` block nothing is recorded.
"""

from __future__ import annotations

import re
import unicodedata
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Iterator

_SIGN_MARKERS = ("-", "−", "▲")  # ASCII minus, full-width minus, ▲
_SYMBOLS_RE = re.compile(r"[¥$円,+\s\-−▲]")
_OKU_RE = re.compile(r"(\d+)億")
_MAN_RE = re.compile(r"(\d+)万")
_LEADING_INT_RE = re.compile(r"\d+")
_LEADING_DECIMAL_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SHORT_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})")
_PLACEHOLDERS = frozenset({"-", "--", "−", "―", "—", "ー"})

OKU = 100_000_000
MAN = 10_000
MAX_DEGRADED_SAMPLES = 20


@dataclass
class ParseStats:
    """Counters for numeric parses made inside a ``track_parses()`` block.

    Attributes:
        total: Non-blank inputs handed to a numeric parser.
        degraded: Non-blank inputs that fell back to zero.
        samples: The first few degraded inputs, for log output.
    """

    total: int = 0
    degraded: int = 0
    samples: list[str] = field(default_factory=list)

    @property
    def degraded_ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.degraded / self.total


_active_stats: ContextVar[ParseStats | None] = ContextVar("mfcrawler_parse_stats", default=None)


@contextmanager
def track_parses() -> Iterator[ParseStats]:
    """Record numeric parse outcomes for the duration of the block."""
    stats = ParseStats()
    token = _active_stats.set(stats)
    try:
        yield stats
    finally:
        _active_stats.reset(token)


def _record(text: str, degraded: bool) -> None:
    stats = _active_stats.get()
    if stats is None or not text.strip():
        return
    stats.total += 1
    if degraded and text.strip() not in _PLACEHOLDERS:
        stats.degraded += 1
        if len(stats.samples) < MAX_DEGRADED_SAMPLES:
            stats.samples.append(text)


def _normalize(text: str) -> str:
    # NFKC folds full-width digits, commas and yen signs to their ASCII forms
    return unicodedata.normalize("NFKC", text)


def _is_negative(text: str) -> bool:
    return any(marker in text for marker in _SIGN_MARKERS)


def parse_large_unit_integer(text: str | None) -> int:
    """Parse an integer amount that may use 万/億 unit markers.

    Examples:
        "1億2345万6789" -> 123456789
        "¥1,234円" -> 1234
        "▲1,234" -> -1234
        "abc" -> 0

    A minus sign, full-width minus or ▲ anywhere in the text makes the whole
    value negative.
    """
    if not text:
        return 0

    normalized = _normalize(text)
    negative = _is_negative(normalized)
    remaining = _SYMBOLS_RE.sub("", normalized)

    total = 0
    has_unit = False

    oku = _OKU_RE.search(remaining)
    if oku:
        has_unit = True
        total += int(oku.group(1)) * OKU
        remaining = remaining.replace(oku.group(0), "", 1)

    man = _MAN_RE.search(remaining)
    if man:
        has_unit = True
        total += int(man.group(1)) * MAN
        remaining = remaining.replace(man.group(0), "", 1)

    if has_unit:
        rest = re.sub(r"\D", "", remaining)
        if rest:
            total += int(rest)
        _record(text, degraded=False)
        return -total if negative else total

    match = _LEADING_INT_RE.match(remaining)
    if match is None:
        _record(text, degraded=True)
        return 0

    _record(text, degraded=False)
    value = int(match.group(0))
    return -value if negative else value


def parse_decimal(text: str | None) -> float:
    """Parse an amount keeping its decimal part (unit prices, fund NAVs).

    Unit markers are not expanded. Sign handling matches
    ``parse_large_unit_integer``.
    """
    if not text:
        return 0.0

    normalized = _normalize(text)
    negative = _is_negative(normalized)
    cleaned = _SYMBOLS_RE.sub("", normalized)

    match = _LEADING_DECIMAL_RE.match(cleaned)
    if match is None:
        _record(text, degraded=True)
        return 0.0

    _record(text, degraded=False)
    value = float(match.group(0))
    return -value if negative else value


def parse_percentage(text: str | None) -> float | None:
    """Parse a percentage such as ``"+2.2%"`` or ``"1.5％"``.

    Returns:
        The numeric percentage, or None when the text is empty or unparsable.
    """
    if not text:
        return None

    cleaned = re.sub(r"[%\s]", "", _normalize(text)).replace("−", "-")
    match = _FLOAT_RE.match(cleaned)
    if match is None:
        return None
    return float(match.group(0))


def normalize_date_to_iso(text: str | None, year_hint: int) -> str:
    """Convert ``"04/22(火)"`` or ``"4/5"`` to ``"YYYY-MM-DD"``.

    Text that already starts with an ISO date is returned as is, so the
    function is idempotent. No year rollover is inferred; see
    ``resolve_year`` for callers whose dates may cross a year boundary.
    Text matching neither form is returned unchanged.
    """
    if not text:
        return ""

    value = _normalize(text).strip()
    if not value or _ISO_DATE_RE.match(value):
        return text

    match = _SHORT_DATE_RE.match(value)
    if match is None:
        return text

    month = match.group(1).zfill(2)
    day = match.group(2).zfill(2)
    return f"{year_hint}-{month}-{day}"


def resolve_year(month: int, reference_year: int, reference_month: int) -> int:
    """Pick the year for a month-only date relative to a reference month.

    A month numerically smaller than the reference month belongs to the
    following year (a December-based range listing January dates).
    """
    if month < reference_month:
        return reference_year + 1
    return reference_year


def format_yen(value: int) -> str:
    """Render an integer amount as shown on the service: ``"¥1,234"``."""
    return f"¥{value:,}"


def format_signed_delta(current: str, previous: str) -> str:
    """Render ``current - previous`` as a yen amount.

    Non-negative results carry an explicit ``+`` before the currency sign;
    negative results keep the minus after it: ``"+¥1,000"``, ``"¥-1,000"``.
    """
    diff = parse_large_unit_integer(current) - parse_large_unit_integer(previous)
    sign = "+" if diff >= 0 else ""
    return f"{sign}¥{diff:,}"
