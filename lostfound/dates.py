# dates.py
"""
Date handling for found-item records.

Office exports write dates in many ways: ``13.07.2024``, ``2024-07-13``,
``13 lipca 2024 r.``, ``13 VII 2024`` or as a two-day range like
``13-14 lipca 2024 r.``. Records only ever store ISO dates (``YYYY-MM-DD``);
anything that cannot be resolved with certainty becomes an empty string.
"""

import re
from datetime import date, datetime
from typing import List, Optional

# Numeric formats, tried in order. Day-first is assumed (Polish exports).
DATE_FORMATS = [
    '%Y-%m-%d',      # 2024-07-13
    '%Y.%m.%d',      # 2024.07.13
    '%Y/%m/%d',      # 2024/07/13
    '%d.%m.%Y',      # 13.07.2024
    '%d-%m-%Y',      # 13-07-2024
    '%d/%m/%Y',      # 13/07/2024
    '%d %m %Y',      # 13 07 2024
]

MIN_YEAR = 1900
MAX_YEAR = 2100

# Genitive month names, as used in "13 lipca 2024"
GENITIVE_MONTHS = {
    1: "stycznia", 2: "lutego", 3: "marca", 4: "kwietnia",
    5: "maja", 6: "czerwca", 7: "lipca", 8: "sierpnia",
    9: "września", 10: "października", 11: "listopada", 12: "grudnia",
}

MONTH_NAMES = {
    # Polish, genitive
    "stycznia": 1, "lutego": 2, "marca": 3, "kwietnia": 4, "maja": 5, "czerwca": 6,
    "lipca": 7, "sierpnia": 8, "września": 9, "wrzesnia": 9, "października": 10,
    "pazdziernika": 10, "listopada": 11, "grudnia": 12,
    # Polish, nominative
    "styczeń": 1, "styczen": 1, "luty": 2, "marzec": 3, "kwiecień": 4, "kwiecien": 4,
    "maj": 5, "czerwiec": 6, "lipiec": 7, "sierpień": 8, "sierpien": 8,
    "wrzesień": 9, "wrzesien": 9, "październik": 10, "pazdziernik": 10,
    "listopad": 11, "grudzień": 12, "grudzien": 12,
    # Polish, abbreviated
    "sty": 1, "lut": 2, "mar": 3, "kwi": 4, "cze": 6, "lip": 7, "sie": 8,
    "wrz": 9, "paź": 10, "paz": 10, "lis": 11, "gru": 12,
    # Roman numerals
    "i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6,
    "vii": 7, "viii": 8, "ix": 9, "x": 10, "xi": 11, "xii": 12,
    # English
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}

_YEAR_SUFFIX = re.compile(r"(?<=\d)\s*(?:r\.?|roku)$")
_TIME_SUFFIX = re.compile(r"(?:[t\s]+\d{1,2}:\d{2}(?::\d{2})?)$")
_TEXTUAL_DATE = re.compile(r"^(\d{1,2})[\s./-]*([^\W\d_]+)\.?[\s./-]*(\d{4})$")
_RANGE_SEPARATOR = re.compile(r"\s*[–—]\s*|\s+-\s+|(?<=\d)\s*-\s*(?=\d{1,2}[./\s])")
_DAY_ONLY = re.compile(r"^\d{1,2}$")
_DAY_MONTH = re.compile(r"^(\d{1,2})[./\s-]+(\d{1,2}|[^\W\d_]+)\.?$")


def _in_range(value: date) -> bool:
    return MIN_YEAR <= value.year <= MAX_YEAR


def _month_number(token: str) -> Optional[int]:
    if token.isdigit():
        month = int(token)
        return month if 1 <= month <= 12 else None
    return MONTH_NAMES.get(token.lower())


def _build(year: int, month: Optional[int], day: int) -> Optional[date]:
    if month is None:
        return None
    try:
        value = date(year, month, day)
    except ValueError:
        return None
    return value if _in_range(value) else None


def _parse_single(text: str) -> Optional[date]:
    """Parse one date expression (no range)"""
    for fmt in DATE_FORMATS:
        try:
            value = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        if _in_range(value):
            return value

    match = _TEXTUAL_DATE.match(text)
    if match:
        day, month_token, year = match.groups()
        return _build(int(year), _month_number(month_token), int(day))
    return None


def _parse_range_start(left: str, right: str) -> Optional[date]:
    """First date of a range, borrowing month/year from the end date"""
    end = _parse_single(right)
    if end is None:
        return None

    start = _parse_single(left)
    if start is not None:
        return start

    if _DAY_ONLY.match(left):
        return _build(end.year, end.month, int(left))

    match = _DAY_MONTH.match(left)
    if match:
        day, month_token = match.groups()
        return _build(end.year, _month_number(month_token), int(day))
    return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Resolve a free-form date expression, or None when not certain"""
    if value is None:
        return None
    text = " ".join(str(value).strip().lower().split())
    if not text:
        return None
    text = _YEAR_SUFFIX.sub("", text).strip()
    text = _TIME_SUFFIX.sub("", text).strip()

    single = _parse_single(text)
    if single is not None:
        return single

    parts = _RANGE_SEPARATOR.split(text, maxsplit=1)
    if len(parts) == 2:
        return _parse_range_start(parts[0].strip(), parts[1].strip())
    return None


def canonicalize_date(value: Optional[str]) -> str:
    """
    Rewrite a date to ``YYYY-MM-DD``.

    A two-day range collapses to its first day and month names become
    numbers. Returns "" when the date cannot be determined, never the
    original text.

        >>> canonicalize_date("13-14 lipca 2024 r.")
        '2024-07-13'
    """
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else ""


def date_patterns(value: Optional[str]) -> List[str]:
    """
    Renderings of a date that may appear in the source row.

    Covers hyphen, dot, slash and space separators in year-first and
    day-first order, unpadded day/month and the Polish month name.
    An unparseable value is returned as its only pattern.
    """
    if not value:
        return []
    parsed = parse_date(value)
    if parsed is None:
        return [value]

    year = str(parsed.year)
    day, month = f"{parsed.day:02d}", f"{parsed.month:02d}"
    short_day, short_month = str(parsed.day), str(parsed.month)

    patterns = []
    for sep in ("-", ".", "/", " "):
        patterns.append(sep.join((year, month, day)))
        patterns.append(sep.join((day, month, year)))
        patterns.append(sep.join((short_day, short_month, year)))
    patterns.append(f"{short_day} {GENITIVE_MONTHS[parsed.month]} {year}")

    unique = []
    for pattern in patterns:
        if pattern not in unique:
            unique.append(pattern)
    return unique


def to_input_format(value: Optional[str]) -> str:
    """
    Value for a date input (``YYYY-MM-DD``).

    Recognized dates are converted; other text is returned unchanged so the
    reviewer can still see and correct it.
    """
    if not value:
        return ""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else value
