# highlight.py
"""
Marking a field's value inside the original CSV row.

When a reviewer points at a field, the matching text in ``source_row`` is
wrapped in ``<mark>``. Matching is done on the normalized value:

- date fields: every common rendering of the date (see ``date_patterns``)
- ``location``: the whole phrase ("Nowy Sącz"), else its words
- other fields: each word of the value, on word boundaries

Matching is case-insensitive. Overlapping matches are merged so marks never
nest, and all text is HTML-escaped.
"""

import html
import re
from typing import List, Tuple

from lostfound.dates import date_patterns
from lostfound.schema import DATE_FIELDS

MARK_CLASS = "import-verification__source-row-highlight"

_WORD_SEPARATORS = re.compile(r"[\s,;:.\-()\[\]/\\]+")

Span = Tuple[int, int]


def extract_words(text: str) -> List[str]:
    """Split a value into words, dropping whitespace and punctuation"""
    if not text:
        return []
    return [w for w in (part.strip() for part in _WORD_SEPARATORS.split(text)) if w]


def _find(pattern: str, text: str) -> List[Span]:
    return [m.span() for m in re.finditer(pattern, text, re.IGNORECASE) if m.end() > m.start()]


def _phrase_spans(phrases: List[str], text: str) -> List[Span]:
    spans = []
    for phrase in phrases:
        spans.extend(_find(re.escape(phrase), text))
    return spans


def _word_spans(words: List[str], text: str) -> List[Span]:
    spans = []
    for word in words:
        spans.extend(_find(r"(?<!\w)" + re.escape(word) + r"(?!\w)", text))
    return spans


def _merge(spans: List[Span]) -> List[Span]:
    merged: List[List[int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(start, end) for start, end in merged]


def find_highlight_spans(source_row: str, field_name: str, value: str) -> List[Span]:
    """Sorted, non-overlapping (start, end) offsets of ``value`` in ``source_row``"""
    value = (value or "").strip()
    if not source_row or not value or value == "-":
        return []

    if field_name in DATE_FIELDS:
        spans = _phrase_spans(date_patterns(value), source_row)
    elif field_name == "location":
        spans = _phrase_spans([value], source_row) or _word_spans(extract_words(value), source_row)
    else:
        spans = _word_spans(extract_words(value), source_row)
    return _merge(spans)


def highlight_source_row(source_row: str, field_name: str, value: str) -> str:
    """
    HTML for ``source_row`` with matches of ``value`` marked.

        >>> highlight_source_row("Portfel, Warszawa", "location", "warszawa")
        'Portfel, <mark class="import-verification__source-row-highlight">Warszawa</mark>'
    """
    if not source_row:
        return ""

    parts = []
    position = 0
    for start, end in find_highlight_spans(source_row, field_name, value):
        parts.append(html.escape(source_row[position:start], quote=False))
        parts.append(f'<mark class="{MARK_CLASS}">{html.escape(source_row[start:end], quote=False)}</mark>')
        position = end
    parts.append(html.escape(source_row[position:], quote=False))
    return "".join(parts)
