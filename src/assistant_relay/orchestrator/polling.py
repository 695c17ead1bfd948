"""Run polling as an explicit state machine.

RunPoller tracks one run from the snapshot returned when it was started
until it completes, fails or exhausts its time budget. ``observe`` applies
a remote status, ``expire`` applies the budget, and ``wait`` drives both
against an AssistantsBackend.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

from ..models import RunSnapshot
from ..services.assistants_api import AssistantsBackend

logger = logging.getLogger(__name__)

FAILED_STATUSES = frozenset({"failed", "expired", "cancelling", "cancelled"})


class RunState(str, Enum):
    CREATED = "created"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT)


def state_for_status(status: str) -> RunState:
    """Map a remote run status onto a poller state."""
    if status == "completed":
        return RunState.COMPLETED
    if status in FAILED_STATUSES:
        return RunState.FAILED
    if status == "queued":
        return RunState.QUEUED
    return RunState.IN_PROGRESS


class RunPoller:
    """Wait-then-recheck loop for a single run, bounded by a wall-clock budget."""

    def __init__(
        self,
        backend: AssistantsBackend,
        thread_id: str,
        run: RunSnapshot,
        *,
        interval_seconds: float = 0.7,
        budget_seconds: float = 20.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._thread_id = thread_id
        self._interval = interval_seconds
        self._budget = budget_seconds
        self._clock = clock
        self._sleep = sleep
        self.run = run
        self.state = RunState.CREATED
        self.polls = 0

    @property
    def last_status(self) -> str:
        return self.run.status

    def observe(self, run: RunSnapshot) -> RunState:
        """Apply a freshly fetched snapshot and return the new state."""
        if self.state.is_terminal:
            raise RuntimeError(f"Run {self.run.run_id} is already {self.state.value}")
        if run.run_id != self.run.run_id:
            raise RuntimeError(
                f"Snapshot for run {run.run_id} does not belong to run {self.run.run_id}"
            )
        previous = self.state
        self.run = run
        self.state = state_for_status(run.status)
        if self.state != previous:
            logger.debug(
                "Run %s: %s -> %s (status=%s)",
                run.run_id,
                previous.value,
                self.state.value,
                run.status,
            )
        return self.state

    def expire(self) -> RunState:
        """Move a still-running poller to TIMED_OUT."""
        if self.state.is_terminal:
            raise RuntimeError(f"Run {self.run.run_id} is already {self.state.value}")
        self.state = RunState.TIMED_OUT
        return self.state

    async def wait(self) -> RunState:
        """Poll until the run reaches a terminal state and return it.

        The budget starts when this is called, i.e. right after the run
        was created. Remote errors propagate unchanged.
        """
        started = self._clock()
        self.observe(self.run)
        while not self.state.is_terminal:
            if self._clock() - started > self._budget:
                logger.warning(
                    "Run %s on thread %s exceeded %.1fs budget (status=%s)",
                    self.run.run_id,
                    self._thread_id,
                    self._budget,
                    self.run.status,
                )
                return self.expire()
            self.polls += 1
            snapshot = await self._backend.get_run(self._thread_id, self.run.run_id)
            if self.observe(snapshot).is_terminal:
                break
            await self._sleep(self._interval)
        return self.state
