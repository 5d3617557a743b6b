"""
Date primitives shared by the recurrence and budget engines.

Every instant handled by the engines is a timezone-aware datetime.
Naive values (and plain dates) coming from loosely-typed storage are
interpreted as UTC so that comparisons never mix aware and naive values.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

import structlog
from dateutil.parser import isoparse


logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


def ensure_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a stored value into an aware datetime.

    Accepts datetimes, dates and ISO-8601 strings. Anything else,
    including unparseable strings, yields None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            logger.debug("date_parse_failed", value=value, error=str(e))
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def start_of_day(value: datetime) -> datetime:
    """Midnight of the day containing value, in value's own timezone."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)
