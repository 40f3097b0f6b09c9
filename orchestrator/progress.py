"""Progress tracking for pipeline runs."""

import logging
import time
from typing import Callable

from schemas.progress import ProgressState, ProgressStatus

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressState], None]


def format_time(seconds: float) -> str:
    """Format a duration for display: "45s", "2m 5s", "1h 3m"."""
    seconds = int(round(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class ProgressTracker:
    """Tracks stage progress and notifies subscribed listeners.

    Listeners receive a copy of the state after every change. A listener
    that raises is logged and skipped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._state = ProgressState()
        self._listeners: list[ProgressListener] = []
        self._stage_started_at: float | None = None
        self._durations: list[float] = []

    @property
    def state(self) -> ProgressState:
        return self._state.model_copy()

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Add a listener. Returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self, total_stages: int) -> None:
        self._state = ProgressState(total_stages=total_stages)
        self._stage_started_at = None
        self._durations.clear()
        self._notify()

    def start_stage(self, stage: str, agent: str) -> None:
        self._state.current_stage = stage
        self._state.current_agent = agent
        self._state.status = ProgressStatus.RUNNING
        self._stage_started_at = self._clock()
        self._update_percentage()
        self._notify()

    def add_stages(self, count: int) -> None:
        """Grow the total of the running session, e.g. for a retried stage."""
        self._state.total_stages += count
        self._update_percentage()
        self._notify()

    def complete_stage(self) -> None:
        if self._stage_started_at is not None:
            self._durations.append(self._clock() - self._stage_started_at)
            self._stage_started_at = None
        self._state.completed_stages += 1
        self._update_percentage()
        self._notify()

    def error(self, message: str) -> None:
        self._state.status = ProgressStatus.ERROR
        self._state.error = message
        self._stage_started_at = None
        self._notify()

    def complete(self) -> None:
        self._state.status = ProgressStatus.COMPLETED
        self._state.percentage = 100
        self._notify()

    def reset(self) -> None:
        self._state = ProgressState()
        self._stage_started_at = None
        self._durations.clear()
        self._notify()

    def estimated_time_remaining(self) -> float | None:
        """Seconds left, from the average finished stage duration."""
        if self._state.status == ProgressStatus.COMPLETED:
            return 0.0
        if not self._durations:
            return None
        average = sum(self._durations) / len(self._durations)
        remaining = max(self._state.total_stages - self._state.completed_stages, 0)
        return average * remaining

    def _update_percentage(self) -> None:
        total = self._state.total_stages
        if total <= 0:
            self._state.percentage = 0
            return
        self._state.percentage = min(round(self._state.completed_stages / total * 100), 100)

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("PIPELINE: progress listener failed")
