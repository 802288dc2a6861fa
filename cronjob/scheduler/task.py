"""ScheduledTask — runs a unit of work on a cron schedule, one invocation at a time."""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from cronjob.scheduler.cursor import ScheduleCursor
from cronjob.scheduler.errors import AlreadyRunningError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class TaskEvent(str, Enum):
    RESULT = "result"
    ERROR = "error"


class ScheduledTask:
    """A unit of work fired on a cron schedule and guarded by a single-slot gate.

    Scheduled firings and manual :meth:`run` calls compete for the same gate;
    whichever arrives second fails fast with :class:`AlreadyRunningError`.
    Scheduled firings report through ``result`` and ``error`` listeners,
    manual calls return or raise directly.

    Args:
        schedule: Cron expression (5 fields, or 6 with leading seconds).
            Only parsed when the task is started.
        work: Callable (sync or async) invoked on each firing.
        timezone: IANA timezone string (default from settings).
        name: Label for log lines (default: the work's ``__name__``).
    """

    def __init__(
        self,
        schedule: str,
        work: Callable[..., Any],
        *,
        timezone: str | None = None,
        name: str | None = None,
    ) -> None:
        self.schedule = schedule
        self.work = work
        self.name = name or getattr(work, "__name__", "task")
        self._timezone = timezone
        self._cursor: ScheduleCursor | None = None
        self._stop_event: asyncio.Event | None = None
        self._timer: asyncio.Task | None = None
        self._loop_task: asyncio.Task | None = None
        self._gate = asyncio.Lock()
        self._listeners: dict[TaskEvent, list[Callable[[Any], Any]]] = {
            event: [] for event in TaskEvent
        }

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Build a fresh cursor and launch the background loop.

        Starting an active task stops the previous loop first.

        Raises:
            ScheduleInvalidError: If the schedule cannot be parsed.
            RuntimeError: If called outside a running event loop.
        """
        cursor = ScheduleCursor(self.schedule, self._timezone)
        loop = asyncio.get_running_loop()
        if self._stop_event is not None and not self._stop_event.is_set():
            logger.warning("Task '%s' started while already active", self.name)
            self._halt()
        self._cursor = cursor
        self._stop_event = asyncio.Event()
        self._loop_task = loop.create_task(
            self._loop(cursor, self._stop_event), name=f"cronjob:{self.name}"
        )
        logger.info("Task '%s' started (schedule=%r)", self.name, self.schedule)

    def stop(self) -> None:
        """Stop scheduling further firings. An invocation in progress is left to finish."""
        if self._stop_event is None or self._stop_event.is_set():
            return
        self._halt()
        logger.info("Task '%s' stopped", self.name)

    def _halt(self) -> None:
        self._stop_event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_stopped(self) -> None:
        """Wait for the background loop to finish after :meth:`stop`."""
        if self._loop_task is None:
            return
        await asyncio.shield(self._loop_task)

    @property
    def active(self) -> bool:
        """Whether the background loop is alive (not whether work is executing)."""
        return self._loop_task is not None and not self._loop_task.done()

    def is_running(self) -> bool:
        """Whether an invocation of the work currently holds the gate."""
        return self._gate.locked()

    # -- Invocation ------------------------------------------------------------

    async def run(self, *args: Any) -> Any:
        """Invoke the work now, passing ``args`` through.

        Raises:
            AlreadyRunningError: If another invocation holds the gate.
        """
        if self._gate.locked():
            raise AlreadyRunningError
        async with self._gate:
            result = self.work(*args)
            if inspect.isawaitable(result):
                result = await result
            return result

    # -- Listeners -------------------------------------------------------------

    def on(self, event: TaskEvent | str, listener: Callable[[Any], Any]) -> None:
        """Register a listener for ``"result"`` or ``"error"`` notifications."""
        self._listeners[_event(event)].append(listener)

    def off(self, event: TaskEvent | str, listener: Callable[[Any], Any]) -> None:
        """Remove a previously registered listener. Unknown listeners are ignored."""
        listeners = self._listeners[_event(event)]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: TaskEvent | str) -> int:
        return len(self._listeners[_event(event)])

    async def _emit(self, event: TaskEvent, payload: Any) -> None:
        """Call each ``event`` listener in order. A raising listener skips the rest."""
        for listener in list(self._listeners[event]):
            outcome = listener(payload)
            if inspect.isawaitable(outcome):
                await outcome

    # -- Internal --------------------------------------------------------------

    async def _loop(self, cursor: ScheduleCursor, stop_event: asyncio.Event) -> None:
        try:
            while not stop_event.is_set():
                fire_time = cursor.next()
                if fire_time is None:
                    logger.info("Task '%s' schedule exhausted", self.name)
                    break

                delay = (fire_time - datetime.now(fire_time.tzinfo)).total_seconds()
                if delay < 0:
                    logger.debug("Task '%s' skipping past fire time %s", self.name, fire_time)
                    continue

                if not await self._wait(delay, stop_event):
                    break
                await self._fire()
        finally:
            stop_event.set()
            logger.info("Task '%s' loop exited", self.name)

    async def _wait(self, delay: float, stop_event: asyncio.Event) -> bool:
        """Sleep for ``delay`` seconds. Returns False if the loop was stopped meanwhile."""
        timer = asyncio.ensure_future(asyncio.sleep(delay))
        self._timer = timer
        try:
            await timer
        except asyncio.CancelledError:
            if not stop_event.is_set() or not timer.cancelled():
                raise
            return False
        finally:
            if self._timer is timer:
                self._timer = None
        return not stop_event.is_set()

    async def _fire(self) -> None:
        # Result listener failures are reported like failures of the work.
        try:
            result = await self.run()
            await self._emit(TaskEvent.RESULT, result)
        except AlreadyRunningError:
            return
        except Exception as exc:
            if self.listener_count(TaskEvent.ERROR) > 0:
                await self._report(exc)

    async def _report(self, exc: Exception) -> None:
        try:
            await self._emit(TaskEvent.ERROR, exc)
        except Exception:
            logger.exception("error listener failed for task '%s'", self.name)


def _event(event: TaskEvent | str) -> TaskEvent:
    try:
        return TaskEvent(event)
    except ValueError:
        msg = f"Unknown event: {event!r} (expected 'result' or 'error')"
        raise ValueError(msg) from None
