"""Trade timestamp normalization.

Trade records carry their time either as a Unix-milliseconds digit string
("1771229700000") or as an ISO-8601 string ("2026-02-16T15:58:12.992362Z").
Everything that orders or buckets trades goes through ``normalize_timestamp``
so both encodings compare on the same epoch-millisecond scale.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

UNKNOWN_TIME = 0
NOT_AVAILABLE = "N/A"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DIGITS = re.compile(r"[0-9]+")
_ONE_MS = timedelta(milliseconds=1)
_FRACTION = re.compile(r"(?<=:\d{2})\.(\d+)")


def normalize_timestamp(raw: Any) -> int:
    """Return epoch milliseconds for ``raw``, or 0 when it cannot be read.

    Never raises. Digit-only strings are taken as milliseconds verbatim.
    """
    if raw is None or isinstance(raw, bool):
        return UNKNOWN_TIME
    if isinstance(raw, int):
        return raw if raw >= 0 else UNKNOWN_TIME
    if isinstance(raw, float):
        if raw != raw or raw < 0 or raw == float("inf"):
            return UNKNOWN_TIME
        return int(raw)
    if not isinstance(raw, str):
        return UNKNOWN_TIME

    text = raw.strip()
    if not text:
        return UNKNOWN_TIME
    if _DIGITS.fullmatch(text):
        return int(text)

    parsed = _parse_iso(text)
    if parsed is None:
        return UNKNOWN_TIME
    try:
        millis = (parsed - _EPOCH) // _ONE_MS
    except OverflowError:
        return UNKNOWN_TIME
    return millis if millis >= 0 else UNKNOWN_TIME


def format_timestamp(raw: Any, tz: tzinfo | None = None) -> str:
    millis = normalize_timestamp(raw)
    if millis == UNKNOWN_TIME:
        return NOT_AVAILABLE
    moment = timestamp_to_datetime(millis, tz)
    if moment is None:
        return NOT_AVAILABLE
    return moment.strftime("%x %X")


def format_date(raw: Any, tz: tzinfo | None = None) -> str:
    millis = normalize_timestamp(raw)
    if millis == UNKNOWN_TIME:
        return NOT_AVAILABLE
    moment = timestamp_to_datetime(millis, tz)
    if moment is None:
        return NOT_AVAILABLE
    return moment.strftime("%x")


def timestamp_to_datetime(millis: int, tz: tzinfo | None = None) -> datetime | None:
    """Convert epoch ms to an aware datetime in ``tz`` (local time when None)."""
    try:
        moment = _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None
    try:
        return moment.astimezone(tz) if tz is not None else moment.astimezone()
    except (OverflowError, OSError, ValueError):
        return None


def timestamp_to_iso(millis: int) -> str:
    try:
        moment = _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return ""
    return moment.isoformat(timespec="milliseconds")


def _parse_iso(text: str) -> datetime | None:
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits.
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed
