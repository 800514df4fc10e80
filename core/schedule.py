"""Time-of-day rule matching.

Rules are checked in list order and the first enabled rule whose window
contains the current minute wins, so an earlier rule shadows any later
rule it overlaps. Windows are half-open ([start, end)); a rule whose
start is after its end runs overnight, e.g. 22:00-06:00 covers 23:00 and
05:59 but not 06:00.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from core.models import TimeRule

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def parse_time(value: str) -> int:
    """'HH:MM' -> minutes since midnight. Raises ValueError on bad input."""
    try:
        hours, minutes = str(value).strip().split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM") from None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def minute_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def window_contains(start: int, end: int, minute: int) -> bool:
    if start <= end:
        return start <= minute < end
    return minute >= start or minute < end


def _window(rule: TimeRule) -> Optional[Tuple[int, int]]:
    try:
        return parse_time(rule.start_time), parse_time(rule.end_time)
    except ValueError as exc:
        logger.warning("Skipping time rule %s: %s", rule.id, exc)
        return None


def rule_matches(rule: TimeRule, minute: int) -> bool:
    if not rule.enabled:
        return False
    window = _window(rule)
    return window is not None and window_contains(window[0], window[1], minute)


def resolve_rule(rules: Iterable[TimeRule], now) -> Optional[TimeRule]:
    """First enabled rule containing now (a datetime or a minute of the day)."""
    minute = minute_of_day(now) if isinstance(now, datetime) else int(now)
    for rule in rules:
        if rule_matches(rule, minute):
            return rule
    return None


def seconds_until_next_change(rules: List[TimeRule], now: datetime) -> Optional[float]:
    """Seconds from now until the next start or end boundary of an enabled rule.

    None when there are no usable rules.
    """
    boundaries = set()
    for rule in rules:
        if not rule.enabled:
            continue
        window = _window(rule)
        if window is not None:
            boundaries.update(window)
    if not boundaries:
        return None

    current = minute_of_day(now)
    ahead = min((b - current) % MINUTES_PER_DAY or MINUTES_PER_DAY for b in boundaries)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    target = midnight + timedelta(minutes=current + ahead)
    return (target - now).total_seconds()
