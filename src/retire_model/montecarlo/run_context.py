# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""Run state shared between the Monte Carlo orchestrator and its workers."""

import threading
import time
from enum import Enum
from typing import Dict, Optional


class RunState(Enum):
    """Lifecycle of one analysis run: IDLE -> RUNNING -> terminal state."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED)


class RunContext:
    """Mutable state of a single run, owned by the run and passed to workers.

    Workers read ``cancelled`` and record when each trial starts; counters
    are updated by the orchestrator thread.
    """

    def __init__(self, total: int, seed: int):
        self.total = total
        self.seed = seed
        self.state = RunState.RUNNING
        self.completed = 0
        self.failed = 0
        self.started_at = time.monotonic()
        self.finished_at: Optional[float] = None
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._trial_starts: Dict[int, float] = {}

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def failure_rate(self) -> float:
        return self.failed / self.processed if self.processed else 0.0

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def cancel(self):
        """Ask workers to stop before their next trial."""
        self._cancel_event.set()

    def mark_started(self, index: int):
        """Record that a worker began running trial ``index``."""
        with self._lock:
            self._trial_starts[index] = time.monotonic()

    def trial_started_at(self, index: int) -> Optional[float]:
        with self._lock:
            return self._trial_starts.get(index)

    def finish(self, state: RunState):
        self.state = state
        self.finished_at = time.monotonic()

    def to_dict(self) -> dict:
        return {
            'state': self.state.value,
            'total': self.total,
            'completed': self.completed,
            'failed': self.failed,
            'seed': self.seed,
            'elapsedSeconds': round(self.elapsed, 3),
        }
