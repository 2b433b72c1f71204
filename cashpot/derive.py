"""Derived-field helpers shared by the API and the client.

Counts are computed from newline-delimited text (or a list of lines) and
certificate expiry dates from issue dates. Both are recomputed on every write
so stored values never drift from their source fields.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

EXPIRY_PERIOD = timedelta(days=365)

LinesInput = Union[str, Iterable[str], None]


def split_lines(text: LinesInput) -> list[str]:
    """Return the trimmed, non-empty lines of ``text``.

    ``text`` may be a newline-delimited string or an iterable of strings,
    in which case each element is trimmed the same way.
    """
    if text is None:
        return []
    if isinstance(text, str):
        parts = text.split("\n")
    else:
        parts = list(text)
    return [part.strip() for part in parts if part is not None and part.strip()]


def derive_count(text: LinesInput) -> int:
    return len(split_lines(text))


def _as_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.split("T")[0])


def derive_expiry(issue_date: Union[date, datetime, str]) -> date:
    """Expiry is exactly 365 calendar days after the issue date."""
    return _as_date(issue_date) + EXPIRY_PERIOD


def build_patch(
    form: Mapping[str, Any], touched: Optional[Iterable[str]] = None
) -> dict[str, Any]:
    """Build a sparse patch from a bulk-edit form.

    Without ``touched`` every field equal to ``""`` or ``None`` is left out and
    the remaining values are kept unchanged. With ``touched`` exactly those
    fields are kept, blanks included, so a bulk edit can clear a field.
    """
    if touched is not None:
        names = set(touched)
        return {key: value for key, value in form.items() if key in names}
    return {key: value for key, value in form.items() if value is not None and value != ""}
