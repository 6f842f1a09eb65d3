"""Per-content-type job lifecycle: idle -> running -> succeeded|failed -> idle."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InvalidTransition(RuntimeError):
    """Raised when a trigger has no transition from the current state."""


@dataclass(frozen=True, slots=True)
class _Transition:
    trigger: str
    source: JobStatus
    dest: JobStatus


_JOB_TRANSITIONS: tuple[_Transition, ...] = (
    _Transition("start", JobStatus.IDLE, JobStatus.RUNNING),
    _Transition("start", JobStatus.SUCCEEDED, JobStatus.RUNNING),
    _Transition("start", JobStatus.FAILED, JobStatus.RUNNING),
    _Transition("succeed", JobStatus.RUNNING, JobStatus.SUCCEEDED),
    _Transition("fail", JobStatus.RUNNING, JobStatus.FAILED),
    _Transition("cancel", JobStatus.RUNNING, JobStatus.IDLE),
    _Transition("reset", JobStatus.SUCCEEDED, JobStatus.IDLE),
    _Transition("reset", JobStatus.FAILED, JobStatus.IDLE),
    _Transition("reset", JobStatus.IDLE, JobStatus.IDLE),
)


class JobStateMachine:
    """
    Minimal FSM for one job record.
    Single event loop only; raises on invalid triggers so double starts surface loudly.
    """

    def __init__(
        self,
        initial: JobStatus = JobStatus.IDLE,
        on_change: Callable[[JobStatus, JobStatus], None] | None = None,
    ) -> None:
        self._state = initial
        self._on_change = on_change

    @property
    def state(self) -> JobStatus:
        return self._state

    def can(self, trigger: str) -> bool:
        return any(t.trigger == trigger and t.source is self._state for t in _JOB_TRANSITIONS)

    def trigger(self, trigger: str) -> JobStatus:
        for t in _JOB_TRANSITIONS:
            if t.trigger == trigger and t.source is self._state:
                previous, self._state = self._state, t.dest
                if self._on_change and previous is not t.dest:
                    self._on_change(previous, t.dest)
                return self._state
        raise InvalidTransition(f"No transition for trigger '{trigger}' from state '{self._state.value}'")

    def start(self) -> JobStatus:
        return self.trigger("start")

    def succeed(self) -> JobStatus:
        return self.trigger("succeed")

    def fail(self) -> JobStatus:
        return self.trigger("fail")

    def cancel(self) -> JobStatus:
        return self.trigger("cancel")

    def reset(self) -> JobStatus:
        return self.trigger("reset")
