"""
Task definitions for the LADS node engine
"""

import asyncio
import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union
from pydantic import BaseModel

from .errors import AlreadyRunningError, InvalidArgumentError, TaskStoppedError

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 1.0


class NodeClass(Enum):
    """Capability tags shared by nodes and tasks"""
    BACKUP = "backup"
    COMPUTE = "compute"
    STORAGE = "storage"
    NETWORK = "network"
    DATABASE = "database"
    GENERIC = "generic"  # Wildcard on either side

    @classmethod
    def parse(cls, value: str) -> "NodeClass":
        """Look up a class by name, case-insensitively"""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidArgumentError(
                f"Invalid node class: {value}. "
                f"Available classes: {', '.join(c.value for c in cls)}",
                argument="class",
            ) from None

    def compatible_with(self, other: "NodeClass") -> bool:
        return self == other or NodeClass.GENERIC in (self, other)


class TaskSnapshot(BaseModel):
    """Point-in-time view of a task"""
    id: int
    name: str
    cpu_cores: int
    task_class: NodeClass
    duration_seconds: float
    remaining_seconds: float
    is_running: bool
    finished: bool

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def _as_seconds(duration: Union[int, float, timedelta]) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise InvalidArgumentError(f"Task duration must be a number of seconds, got {duration!r}", argument="duration")
    return float(duration)


def _consume_outcome(signal: "asyncio.Future") -> None:
    # Mark a stop error as retrieved so unobserved disposals stay quiet
    if not signal.cancelled():
        signal.exception()


class Task:
    """
    A unit of synthetic work with a fixed core demand and planned duration.

    The task is inert until start() is called by the node that admits it.
    Its countdown then runs on the event loop; finishing fires on_complete
    exactly once, dispose() stops it without firing the hook.
    """

    def __init__(
        self,
        name: str,
        duration: Union[int, float, timedelta],
        cpu_cores: int,
        task_class: NodeClass = NodeClass.GENERIC,
        on_complete: Optional[Callable[["Task"], Any]] = None,
    ):
        if isinstance(cpu_cores, bool) or not isinstance(cpu_cores, int) or cpu_cores <= 0:
            raise InvalidArgumentError("Cpu cores must be greater than 0", argument="cpu_cores")
        seconds = _as_seconds(duration)
        if seconds < 0:
            raise InvalidArgumentError("Task duration must be greater than or equal to 0", argument="duration")

        self.name = name
        self.cpu_cores = cpu_cores
        self.duration = seconds
        self.task_class = task_class
        self.on_complete = on_complete

        # Assigned by the admitting node
        self.id = 0

        self._remaining = seconds
        self._is_running = False
        self._started = False
        self._finished = False
        self._hook_fired = False
        self._signal: Optional[asyncio.Future] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._on_settled: Optional[Callable[["Task"], None]] = None

    @property
    def remaining(self) -> float:
        """Seconds left on the countdown"""
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> bool:
        """True once the countdown reached zero"""
        return self._finished

    @property
    def completion(self) -> Optional[asyncio.Future]:
        return self._signal

    def start(
        self,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        on_settled: Optional[Callable[["Task"], None]] = None,
    ) -> asyncio.Future:
        """
        Begin the countdown and return its completion signal.

        The signal resolves with the task when the countdown reaches zero,
        or with TaskStoppedError when the task is disposed first.
        on_settled runs exactly once in both cases, before the hook.
        """
        if self._started:
            raise AlreadyRunningError(self.name, self.id)
        if tick_interval <= 0:
            raise InvalidArgumentError("tick_interval must be positive", argument="tick_interval")

        loop = asyncio.get_running_loop()
        self._started = True
        self._is_running = True
        self._remaining = self.duration
        self._on_settled = on_settled

        self._signal = loop.create_future()
        self._signal.add_done_callback(_consume_outcome)
        self._countdown_task = loop.create_task(
            self._countdown(tick_interval), name=f"lads-task-{self.name}-{self.id}"
        )
        return self._signal

    async def _countdown(self, tick_interval: float) -> None:
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        while True:
            self._remaining = max(self.duration - (loop.time() - started_at), 0.0)
            if self._remaining <= 0:
                break
            await asyncio.sleep(min(tick_interval, self._remaining))
        self._finish()

    def _finish(self) -> None:
        self._remaining = 0.0
        self._is_running = False
        self._finished = True
        self._settle()
        self._fire_complete()
        if self._signal is not None and not self._signal.done():
            self._signal.set_result(self)

    def _settle(self) -> None:
        callback, self._on_settled = self._on_settled, None
        if callback is not None:
            callback(self)

    def _fire_complete(self) -> None:
        if self._hook_fired or self.on_complete is None:
            return
        self._hook_fired = True
        try:
            self.on_complete(self)
        except Exception as e:
            logger.error(f"Error in on_complete for task {self.id} ({self.name}): {e}")

    def dispose(self) -> None:
        """Stop the countdown early without firing on_complete. Idempotent."""
        if not self._is_running:
            return
        self._is_running = False
        if self._countdown_task is not None and not self._countdown_task.done():
            self._countdown_task.cancel()
        self._settle()
        if self._signal is not None and not self._signal.done():
            self._signal.set_exception(TaskStoppedError(self.name, self.id))

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            id=self.id,
            name=self.name,
            cpu_cores=self.cpu_cores,
            task_class=self.task_class,
            duration_seconds=self.duration,
            remaining_seconds=round(self._remaining, 3),
            is_running=self._is_running,
            finished=self._finished,
        )

    def __str__(self) -> str:
        if self._is_running:
            timing = f"remaining: {timedelta(seconds=int(self._remaining))}"
        else:
            timing = f"length: {timedelta(seconds=int(self.duration))}"
        return f"Task{{name: {self.name}, id: {self.id}, {timing}}}"

    def __repr__(self) -> str:
        return f"Task(id={self.id}, name={self.name!r}, cpu_cores={self.cpu_cores}, class={self.task_class.value})"
