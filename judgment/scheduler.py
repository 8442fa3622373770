from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Tuple


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of time and deferred callbacks.

    ``asyncio`` event loops already satisfy this shape (``time`` and
    ``call_later``); tests drive a manual clock instead.
    """

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class TaskPurpose(str, Enum):
    TURN = "turn"
    TRICK_REVIEW = "trick_review"
    ROUND_END = "round_end"
    GRACE = "grace"
    TEARDOWN = "teardown"


@dataclass
class DeferredTask:
    # ``generation`` and ``target`` describe what the task was armed for;
    # the callback compares them against live state before acting.
    purpose: TaskPurpose
    key: Optional[str]
    generation: int
    deadline: float
    target: Tuple[object, ...] = ()
    handle: Optional[Cancellable] = field(default=None, repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


TaskKey = Tuple[TaskPurpose, Optional[str]]


class TaskBoard:
    """Holds at most one pending task per (purpose, key)."""

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self.tasks: Dict[TaskKey, DeferredTask] = {}

    def now(self) -> float:
        return self.scheduler.time()

    def arm(
        self,
        purpose: TaskPurpose,
        delay_ms: int,
        callback: Callable[[DeferredTask], None],
        *,
        generation: int,
        key: Optional[str] = None,
        target: Tuple[object, ...] = (),
    ) -> DeferredTask:
        self.cancel(purpose, key)
        delay = max(delay_ms, 0) / 1000
        task = DeferredTask(
            purpose=purpose,
            key=key,
            generation=generation,
            deadline=self.now() + delay,
            target=target,
        )

        def fire() -> None:
            if task.cancelled:
                return
            if self.tasks.get((purpose, key)) is task:
                del self.tasks[(purpose, key)]
            callback(task)

        task.handle = self.scheduler.call_later(delay, fire)
        self.tasks[(purpose, key)] = task
        return task

    def cancel(self, purpose: TaskPurpose, key: Optional[str] = None) -> bool:
        task = self.tasks.pop((purpose, key), None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for task in list(self.tasks.values()):
            task.cancel()
        self.tasks.clear()

    def get(self, purpose: TaskPurpose, key: Optional[str] = None) -> Optional[DeferredTask]:
        return self.tasks.get((purpose, key))

    def pending(self, purpose: TaskPurpose) -> List[DeferredTask]:
        return [task for (task_purpose, _), task in self.tasks.items() if task_purpose == purpose]
