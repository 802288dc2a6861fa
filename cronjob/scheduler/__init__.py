"""Cron-scheduled task execution — cursor, engine, and errors."""

from cronjob.scheduler.cursor import (
    ScheduleCursor,
    build_trigger,
    crontab_day_of_week,
    validate_schedule,
)
from cronjob.scheduler.errors import (
    E_RUNNING,
    E_SCHEDULE_INVALID,
    AlreadyRunningError,
    JobError,
    ScheduleInvalidError,
)
from cronjob.scheduler.task import ScheduledTask, TaskEvent

__all__ = [
    "E_RUNNING",
    "E_SCHEDULE_INVALID",
    "AlreadyRunningError",
    "JobError",
    "ScheduleCursor",
    "ScheduleInvalidError",
    "ScheduledTask",
    "TaskEvent",
    "build_trigger",
    "crontab_day_of_week",
    "validate_schedule",
]
