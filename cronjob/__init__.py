"""cronjob — run a unit of work on a cron schedule, never overlapping itself."""

from cronjob.scheduler import (
    E_RUNNING,
    AlreadyRunningError,
    ScheduledTask,
    ScheduleInvalidError,
    TaskEvent,
)

__all__ = [
    "E_RUNNING",
    "AlreadyRunningError",
    "ScheduleInvalidError",
    "ScheduledTask",
    "TaskEvent",
]
