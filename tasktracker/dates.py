"""Due-date parsing with the fallback cascade used by create/update.

Unparseable input is never an error: the caller supplies a fallback
(now on create, the stored value on update) and gets it back.
All results are naive UTC datetimes, matching the DateTime columns.
"""

import logging
import re
from datetime import UTC, datetime

logger = logging.getLogger("tasktracker.dates")

DAY_FORMAT = "%Y-%m-%d"

# Tried in order; first match wins. Seconds may carry a fraction.
DUE_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%Y-%m-%dT%H:%M:%S%z",  # RFC 3339
    "%Y-%m-%dT%H:%M:%S.%f%z",  # RFC 3339 with fraction
)

# strptime takes "3" for %m; every numeric field here must be zero padded
_FIELD_SHAPES = {
    "%Y": r"\d{4}",
    "%m": r"\d{2}",
    "%d": r"\d{2}",
    "%H": r"\d{2}",
    "%M": r"\d{2}",
    "%S": r"\d{2}",
    "%f": r"\d{1,6}",
    "%z": r"(?:Z|[+-]\d{2}:?\d{2})",
}


def _shape(fmt: str) -> re.Pattern:
    parts = re.split(r"(%[A-Za-z])", fmt)
    return re.compile("".join(_FIELD_SHAPES.get(part, re.escape(part)) for part in parts))


_SHAPES = {fmt: _shape(fmt) for fmt in DUE_DATE_FORMATS}


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _try(raw: str, fmt: str) -> datetime | None:
    if not _SHAPES[fmt].fullmatch(raw):
        return None
    try:
        return _to_utc(datetime.strptime(raw, fmt))
    except ValueError:
        return None


def parse_day(raw: str | None) -> datetime | None:
    """Parse a YYYY-MM-DD day (midnight UTC); None when empty or invalid."""
    if not raw:
        return None
    return _try(raw, DAY_FORMAT)


def parse_due_date(raw: str) -> datetime | None:
    if len(raw) == 10 and raw[4] == "-" and raw[7] == "-":
        return _try(raw, DAY_FORMAT)

    for fmt in DUE_DATE_FORMATS:
        parsed = _try(raw, fmt)
        if parsed is not None:
            logger.debug("parsed due date %r with format %s", raw, fmt)
            return parsed

    if len(raw) > 10:
        parsed = _try(raw[:10], DAY_FORMAT)
        if parsed is not None:
            logger.debug("parsed due date %r using its first 10 chars", raw)
        return parsed
    return None


def normalize_due_date(raw: str | None, fallback: datetime) -> datetime:
    """Apply the due-date cascade; return `fallback` when nothing matches."""
    if not raw:
        return fallback
    parsed = parse_due_date(raw)
    if parsed is None:
        logger.info("could not parse due date %r; using fallback %s", raw, fallback.isoformat())
        return fallback
    return parsed
