"""Resolution of resurfacing expressions into absolute timestamps.

The model suggests when a thought should come back to the user either as an
ISO timestamp or as a relative phrase ("tomorrow morning", "2 days before
deadline"). Everything here is pure: the current time is always passed in,
never read from the clock.
"""

import logging
import re
from datetime import datetime, time, timedelta, timezone, tzinfo

logger = logging.getLogger(__name__)

ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
IN_DAYS = re.compile(r"\bin (\d+) days?\b")
IN_HOURS = re.compile(r"\bin (\d+) hours?\b")
DAYS_BEFORE = re.compile(r"(\d+) days? before")

MORNING = time(9)
AFTERNOON = time(14)
EVENING = time(18)

# Checked in order, first substring match wins
TOMORROW_PHRASES: list[tuple[str, time]] = [
    ("tomorrow morning", MORNING),
    ("tomorrow afternoon", AFTERNOON),
    ("tomorrow evening", EVENING),
    ("tomorrow", MORNING),
]

# Values follow datetime.weekday() (Monday == 0)
WEEKDAYS: list[tuple[str, int]] = [
    ("sunday", 6),
    ("monday", 0),
    ("tuesday", 1),
    ("wednesday", 2),
    ("thursday", 3),
    ("friday", 4),
    ("saturday", 5),
]


def parse_timestamp(value: object, default_tz: tzinfo | None = None) -> datetime | None:
    """Parse an ISO 8601 value into a datetime.

    Accepts a trailing "Z" and date-only strings. Naive results get
    `default_tz` attached when one is given.

    Args:
        value: A string or datetime; anything else yields None.
        default_tz: Zone for values without an offset.

    Returns:
        The parsed datetime, or None if the value is not a timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None and default_tz is not None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def at_wall_clock(moment: datetime, wall: time) -> datetime:
    """Move `moment` to the given local time of day, same date and zone."""
    return moment.replace(
        hour=wall.hour, minute=wall.minute, second=0, microsecond=0
    )


def add_elapsed(moment: datetime, delta: timedelta) -> datetime:
    """Add real elapsed time, stepping through UTC for aware datetimes."""
    if moment.tzinfo is None:
        return moment + delta
    shifted = moment.astimezone(timezone.utc) + delta
    return shifted.astimezone(moment.tzinfo)


def next_weekday(reference_now: datetime, weekday: int) -> datetime:
    """Next occurrence of `weekday` at 09:00, never the current day."""
    days_until = (weekday - reference_now.weekday()) % 7 or 7
    return at_wall_clock(reference_now + timedelta(days=days_until), MORNING)


def resolve(
    expression: str,
    reference_now: datetime,
    anchor_deadline: datetime | None = None,
) -> datetime | None:
    """Resolve a resurfacing expression into an absolute timestamp.

    Args:
        expression: ISO timestamp, bare ISO date (09:00 that day) or
            relative phrase.
        reference_now: The pipeline's notion of "now". Wall-clock anchors
            (09:00, 14:00, 18:00) are taken in its zone.
        anchor_deadline: The item's deadline, used by "N days before
            deadline".

    Returns:
        The resolved timestamp. Unrecognized phrases fall back to tomorrow
        at 09:00. None only if resolution itself broke.
    """
    try:
        return _resolve(expression, reference_now, anchor_deadline)
    except Exception as e:
        logger.error(f"Error resolving resurface timing {expression!r}: {e}")
        return None


def _resolve(
    expression: str,
    reference_now: datetime,
    anchor_deadline: datetime | None,
) -> datetime:
    text = expression.strip()

    if ISO_PREFIX.match(text):
        parsed = parse_timestamp(text, reference_now.tzinfo)
        if parsed is not None:
            # A bare date resurfaces that morning
            if DATE_ONLY.match(text):
                return at_wall_clock(parsed, MORNING)
            return parsed

    lower = text.lower()
    tomorrow = reference_now + timedelta(days=1)

    for phrase, wall in TOMORROW_PHRASES:
        if phrase in lower:
            return at_wall_clock(tomorrow, wall)

    if "next week" in lower:
        return at_wall_clock(reference_now + timedelta(days=7), MORNING)

    match = IN_DAYS.search(lower)
    if match:
        days = int(match.group(1))
        return at_wall_clock(reference_now + timedelta(days=days), MORNING)

    match = IN_HOURS.search(lower)
    if match:
        return add_elapsed(reference_now, timedelta(hours=int(match.group(1))))

    if anchor_deadline is not None and "before deadline" in lower:
        match = DAYS_BEFORE.search(lower)
        if match:
            anchor = anchor_deadline
            if anchor.tzinfo is None:
                anchor = anchor.replace(tzinfo=reference_now.tzinfo)
            days_before = int(match.group(1))
            return at_wall_clock(anchor - timedelta(days=days_before), MORNING)

    for name, weekday in WEEKDAYS:
        if name in lower:
            return next_weekday(reference_now, weekday)

    logger.warning(
        f"Could not parse resurface timing {expression!r}, defaulting to tomorrow morning"
    )
    return at_wall_clock(tomorrow, MORNING)


def resurface_schedule_for_deadline(
    deadline: datetime, reference_now: datetime
) -> list[datetime]:
    """Candidate resurface points for a deadline that are still ahead.

    Candidates are two days before at 09:00, the day itself at 09:00 and two
    hours before the deadline.

    Args:
        deadline: The task deadline.
        reference_now: Points at or before this instant are dropped.

    Returns:
        Remaining candidates in ascending order.
    """
    candidates = [
        at_wall_clock(deadline - timedelta(days=2), MORNING),
        at_wall_clock(deadline, MORNING),
        add_elapsed(deadline, timedelta(hours=-2)),
    ]
    return sorted({c for c in candidates if c > reference_now})
