"""ScheduleCursor — walks the fire times of a cron expression."""

from __future__ import annotations

import logging
import zoneinfo
from datetime import datetime, timedelta

from apscheduler.triggers.cron import CronTrigger

from cronjob.config import settings
from cronjob.scheduler.errors import ScheduleInvalidError

logger = logging.getLogger(__name__)

# Crontab field order; the six-field form adds a leading seconds field.
_CRONTAB_FIELDS = ("minute", "hour", "day", "month", "day_of_week")
_CRONTAB_FIELDS_WITH_SECONDS = ("second", *_CRONTAB_FIELDS)

_TICK = timedelta(microseconds=1)

# Crontab numbers weekdays from Sunday (0 or 7); APScheduler numbers them from Monday.
_WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _weekday_number(token: str) -> int:
    token = token.strip().lower()
    if token in _WEEKDAY_NAMES:
        return _WEEKDAY_NAMES.index(token)
    if token.isdigit() and int(token) <= 7:
        return int(token)
    msg = f"Invalid day of week: {token!r}"
    raise ValueError(msg)


def crontab_day_of_week(field: str) -> str:
    """Rewrite a crontab day-of-week field as an explicit list of weekday names.

    Accepts numbers (0 and 7 are Sunday), names, ranges, lists and steps, so
    ``"1-5"`` becomes ``"mon,tue,wed,thu,fri"`` and ``"*/2"`` becomes
    ``"sun,tue,thu,sat"``. A bare ``*`` is returned unchanged.

    Raises:
        ValueError: On an unparseable part.
    """
    if field in ("*", "?"):
        return "*"
    days: set[int] = set()
    for part in field.split(","):
        base, _, step_text = part.partition("/")
        step = int(step_text) if step_text.isdigit() else 0 if step_text else 1
        if step < 1:
            msg = f"Invalid step in day of week: {part!r}"
            raise ValueError(msg)
        if base in ("*", "?"):
            first, last = 0, 7
        elif "-" in base:
            first_text, _, last_text = base.partition("-")
            first, last = _weekday_number(first_text), _weekday_number(last_text)
            if last == 0 and first > 0:
                last = 7
        else:
            first = _weekday_number(base)
            last = 7 if step_text else first
        if first > last:
            msg = f"Invalid range in day of week: {part!r}"
            raise ValueError(msg)
        days.update(day % 7 for day in range(first, last + 1, step))
    return ",".join(_WEEKDAY_NAMES[day] for day in sorted(days))


def resolve_timezone(name: str | None) -> zoneinfo.ZoneInfo:
    """Return the ZoneInfo for ``name`` (default: ``settings.scheduler_timezone``)."""
    name = name or settings.scheduler_timezone
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        msg = f"Unknown timezone: {name!r}"
        raise ScheduleInvalidError(msg) from exc


def build_trigger(
    schedule: str,
    timezone: str | None = None,
    *,
    end: datetime | None = None,
) -> CronTrigger:
    """Convert a 5- or 6-field cron expression into an APScheduler trigger.

    Raises:
        ScheduleInvalidError: On a wrong field count, a bad field value, or an
            unknown timezone.
    """
    tz = resolve_timezone(timezone)
    values = schedule.split() if isinstance(schedule, str) else []
    if len(values) == len(_CRONTAB_FIELDS):
        names = _CRONTAB_FIELDS
    elif len(values) == len(_CRONTAB_FIELDS_WITH_SECONDS):
        names = _CRONTAB_FIELDS_WITH_SECONDS
    else:
        msg = f"Wrong number of fields in schedule {schedule!r}; expected 5 or 6"
        raise ScheduleInvalidError(msg)

    fields = dict(zip(names, values))
    try:
        fields["day_of_week"] = crontab_day_of_week(fields["day_of_week"])
        return CronTrigger(timezone=tz, end_date=end, **fields)
    except (ValueError, TypeError) as exc:
        msg = f"Invalid schedule {schedule!r}: {exc}"
        raise ScheduleInvalidError(msg) from exc


def validate_schedule(schedule: str, timezone: str | None = None) -> None:
    """Raise ScheduleInvalidError if ``schedule`` cannot be parsed."""
    build_trigger(schedule, timezone)


class ScheduleCursor:
    """Stateful iterator over the fire times of a schedule.

    Each call to :meth:`next` returns the first fire time strictly after the
    previously returned one, so timestamps are strictly increasing. The cursor
    does not look at the clock after construction; a caller that falls behind
    gets timestamps in the past.

    Args:
        schedule: Cron expression, 5 fields or 6 with leading seconds.
        timezone: IANA timezone string (default from settings).
        start: Origin to search from (default: now).
        end: Optional last instant; the cursor is exhausted after it.
    """

    def __init__(
        self,
        schedule: str,
        timezone: str | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> None:
        self._trigger = build_trigger(schedule, timezone, end=end)
        self._tz = self._trigger.timezone
        if start is None:
            start = datetime.now(self._tz)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=self._tz)
        self._current = start
        self._exhausted = False
        self.schedule = schedule

    @property
    def timezone(self) -> zoneinfo.ZoneInfo:
        return self._tz

    @property
    def current(self) -> datetime:
        """The last timestamp returned, or the origin before the first call."""
        return self._current

    def next(self) -> datetime | None:
        """Advance to the next fire time. Returns None once the schedule is exhausted."""
        if self._exhausted:
            return None
        fire_time = self._trigger.get_next_fire_time(None, self._current + _TICK)
        if fire_time is None:
            self._exhausted = True
            logger.debug("Schedule %r has no further fire times", self.schedule)
            return None
        self._current = fire_time
        return fire_time

    def __iter__(self) -> ScheduleCursor:
        return self

    def __next__(self) -> datetime:
        fire_time = self.next()
        if fire_time is None:
            raise StopIteration
        return fire_time
