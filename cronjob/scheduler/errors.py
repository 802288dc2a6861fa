"""Errors raised by the scheduler."""

E_RUNNING = "E_RUNNING"
E_SCHEDULE_INVALID = "E_SCHEDULE_INVALID"


class JobError(Exception):
    """Base class for scheduler errors. ``code`` identifies the kind."""

    code: str = ""


class AlreadyRunningError(JobError):
    """The task's work is already executing; the caller lost the race for the gate."""

    code = E_RUNNING

    def __init__(self, message: str = "Job is already running.") -> None:
        super().__init__(message)


class ScheduleInvalidError(JobError, ValueError):
    """The schedule expression or timezone could not be parsed."""

    code = E_SCHEDULE_INVALID
