from datetime import UTC, datetime

from dateutil import parser as date_parser

from threatfeed.core.time import now_utc


def parse_published(value: str | datetime | None) -> datetime | None:
    """Best-effort parse of a listing date hint into an aware UTC datetime.

    Hints come straight from page markup ("Oct 17, 2025", ISO attributes,
    "October 17, 2025 at 10:30 AM"), so parsing is fuzzy. Naive results are
    taken as UTC. Returns None when nothing usable is found.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = " ".join(value.split())
        if not text:
            return None
        try:
            parsed = date_parser.parse(text, fuzzy=True)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def coerce_published(value: str | datetime | None, fallback: datetime | None = None) -> datetime:
    parsed = parse_published(value)
    if parsed is not None:
        return parsed
    return fallback or now_utc()
