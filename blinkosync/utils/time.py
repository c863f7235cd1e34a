import time
from typing import Optional, cast

import pendulum

LOCAL_TIMESTAMP_FORMAT = "YYYY-MM-DDTHH:mm:ssZ"
DEFAULT_DATE_FORMAT = "YYYY-MM-DD"


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_instant(value: Optional[str]) -> Optional[pendulum.DateTime]:
    if not value:
        return None
    try:
        parsed = pendulum.parse(value)
    except ValueError:
        return None
    if not isinstance(parsed, pendulum.DateTime):
        return None
    return cast(pendulum.DateTime, parsed)


def instant_to_epoch_ms(value: Optional[str]) -> Optional[int]:
    parsed = parse_instant(value)
    if parsed is None:
        return None
    # Integer arithmetic; float timestamps can land one millisecond short
    return parsed.int_timestamp * 1000 + parsed.microsecond // 1000


def to_local_timestamp(value: Optional[str]) -> str:
    """Convert an ISO-8601 instant to local time with explicit offset.

    Unparsable values are returned verbatim, missing ones as ''.
    """
    if not value:
        return ""
    parsed = parse_instant(value)
    if parsed is None:
        return value
    return parsed.in_tz("local").format(LOCAL_TIMESTAMP_FORMAT)


def format_local_date(value: Optional[str], pattern: Optional[str] = None) -> str:
    parsed = parse_instant(value)
    if parsed is None:
        return ""
    return parsed.in_tz("local").format(pattern or DEFAULT_DATE_FORMAT)


def local_day(value: Optional[str]) -> Optional[pendulum.DateTime]:
    parsed = parse_instant(value)
    if parsed is None:
        return None
    return parsed.in_tz("local").start_of("day")
