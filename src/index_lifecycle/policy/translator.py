"""Policy translator: turns policy fields into schedules and thresholds.

All functions here are pure. Errors are scoped to the policy mapping
being translated; the caller decides whether to skip that mapping.
"""

from __future__ import annotations

import re

from index_lifecycle.errors import InvalidDurationError, InvalidScheduleError
from index_lifecycle.models import HotPhase, RolloverConditions

MILLIS_PER_SECOND = 1000
MILLIS_PER_MINUTE = 60 * MILLIS_PER_SECOND
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR
MILLIS_PER_WEEK = 7 * MILLIS_PER_DAY

_UNIT_MILLIS: dict[str, int] = {
    "s": MILLIS_PER_SECOND,
    "m": MILLIS_PER_MINUTE,
    "h": MILLIS_PER_HOUR,
    "H": MILLIS_PER_HOUR,
    "d": MILLIS_PER_DAY,
    "w": MILLIS_PER_WEEK,
}

_RE_SCHEDULE = re.compile(r"^(\d+)([smhd])$")
_RE_DURATION_PART = re.compile(r"(\d+)([A-Za-z]+)")

# unit -> (cron template, largest value the cron field accepts)
_CRON_TEMPLATES: dict[str, tuple[str, int]] = {
    "m": ("*/{n} * * * *", 59),
    "h": ("0 */{n} * * *", 23),
    "d": ("0 0 */{n} * *", 31),
}


def schedule_for(poll_interval: str) -> str:
    """Convert a poll interval such as ``15m`` into a cron expression.

    Sub-minute intervals poll every minute, the finest granularity cron
    offers. Raises InvalidScheduleError for anything cron cannot express.
    """
    match = _RE_SCHEDULE.match(poll_interval.strip())
    if match is None:
        raise InvalidScheduleError(
            "unable to convert poll interval to a cron schedule",
            poll_interval=poll_interval,
        )
    value, unit = int(match.group(1)), match.group(2)
    if value == 0:
        raise InvalidScheduleError(
            "poll interval must be greater than zero",
            poll_interval=poll_interval,
        )
    if unit == "s":
        return "*/1 * * * *"

    template, upper = _CRON_TEMPLATES[unit]
    if value > upper:
        raise InvalidScheduleError(
            f"poll interval exceeds the cron range for unit '{unit}' (max {upper})",
            poll_interval=poll_interval,
        )
    return template.format(n=value)


def threshold_millis(duration: str) -> int:
    """Convert a duration such as ``7d`` or ``1d12h`` into milliseconds.

    Contiguous unit groups accumulate. Raises InvalidDurationError on empty
    input, unknown unit suffixes or non-numeric magnitudes.
    """
    text = duration.strip()
    if not text:
        raise InvalidDurationError("duration is empty", duration=duration)

    total = 0
    position = 0
    for match in _RE_DURATION_PART.finditer(text):
        if match.start() != position:
            break
        number, unit = match.groups()
        factor = _UNIT_MILLIS.get(unit)
        if factor is None:
            raise InvalidDurationError(
                f"unknown time unit '{unit}'", duration=duration,
            )
        total += int(number) * factor
        position = match.end()

    if position != len(text):
        raise InvalidDurationError(
            "unable to convert duration to milliseconds", duration=duration,
        )
    return total


def rollover_conditions(
    hot_phase: HotPhase,
    primary_shards: int,
    shard_size_gb: int = 40,
) -> RolloverConditions:
    """Build the rollover conditions for a hot phase.

    ``max_age`` and ``max_docs`` pass through unchanged. ``max_size``
    defaults to ``shard_size_gb * primary_shards`` when the policy leaves
    it unset. A hot phase without a rollover action yields an empty
    condition set; the rollover script treats that as a no-op.
    """
    rollover = hot_phase.actions.rollover
    if rollover is None:
        return RolloverConditions()

    max_size = rollover.max_size
    if not max_size and primary_shards > 0:
        max_size = f"{shard_size_gb * primary_shards}gb"

    return RolloverConditions(
        max_age=rollover.max_age or None,
        max_docs=rollover.max_docs,
        max_size=max_size or None,
    )
