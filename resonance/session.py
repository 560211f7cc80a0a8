"""
Session lifecycle around the breathing engine.

A BreathingSession is the scheduler-side owner of one engine: it reads the
clock, keeps the running-time counter separate from phase timing, and turns
the finished run into a summary for the history store.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from resonance.breathing import BreathingEngine, BreathPattern, Frame, SessionState

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    pass


class SessionKind(str, Enum):
    QUICK = "quick"
    FULL = "full"
    CALIBRATION = "calibration"
    CUSTOM = "custom"


TARGET_SECONDS = {
    SessionKind.QUICK: 5 * 60,
    SessionKind.FULL: 10 * 60,
    SessionKind.CALIBRATION: 60,
    SessionKind.CUSTOM: 10 * 60,
}


@dataclass(frozen=True)
class SessionSummary:
    started_at: datetime
    duration_seconds: int
    breaths: int
    week: int
    kind: SessionKind

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "breaths": self.breaths,
            "week": self.week,
            "kind": self.kind.value,
        }


class BreathingSession:
    def __init__(
        self,
        pattern: BreathPattern,
        kind: SessionKind = SessionKind.FULL,
        week: int = 1,
        target_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        wallclock: Callable[[], datetime] = datetime.now,
    ):
        self.pattern = pattern
        self.kind = SessionKind(kind)
        self.week = week
        self.target_seconds = (
            TARGET_SECONDS[self.kind] if target_seconds is None else target_seconds
        )
        self.clock = clock
        self.wallclock = wallclock

        self.engine = BreathingEngine()
        self.started_at = None
        self._run_seconds = 0.0
        self._running_since = None

    @property
    def state(self) -> SessionState:
        return self.engine.state

    @property
    def elapsed_seconds(self) -> float:
        """Running time only; paused intervals are excluded."""
        total = self._run_seconds
        if self._running_since is not None:
            total += self.clock() - self._running_since
        return total

    @property
    def is_complete(self) -> bool:
        return self.elapsed_seconds >= self.target_seconds

    def start(self) -> Frame:
        if self.state is not SessionState.IDLE or self.started_at is not None:
            raise SessionStateError("Session has already been started")
        now = self.clock()
        frame = self.engine.start(self.pattern, now)
        self.started_at = self.wallclock()
        self._running_since = now
        logger.info(
            "Session started: kind=%s week=%d target=%ds",
            self.kind.value, self.week, self.target_seconds,
        )
        return frame

    def tick(self) -> Frame:
        if self.started_at is None:
            raise SessionStateError("Session has not been started")
        return self.engine.tick(self.clock())

    def pause(self) -> None:
        if self.state is not SessionState.RUNNING:
            raise SessionStateError(f"Cannot pause a {self.state.value} session")
        now = self.clock()
        self.engine.pause(now)
        self._run_seconds += now - self._running_since
        self._running_since = None
        logger.info("Session paused at %.1fs", self._run_seconds)

    def resume(self) -> None:
        if self.state is not SessionState.PAUSED:
            raise SessionStateError(f"Cannot resume a {self.state.value} session")
        now = self.clock()
        self.engine.resume(now)
        self._running_since = now
        logger.info("Session resumed")

    def toggle(self) -> SessionState:
        if self.state is SessionState.RUNNING:
            self.pause()
        elif self.state is SessionState.PAUSED:
            self.resume()
        else:
            raise SessionStateError("Session is not active")
        return self.state

    def end(self) -> SessionSummary:
        if self.started_at is None or self.state is SessionState.IDLE:
            raise SessionStateError("Session is not active")
        if self.state is SessionState.RUNNING:
            now = self.clock()
            self.engine.tick(now)
            self._run_seconds += now - self._running_since
            self._running_since = None
        breaths = self.engine.stop()
        summary = SessionSummary(
            started_at=self.started_at,
            duration_seconds=int(self._run_seconds),
            breaths=breaths,
            week=self.week,
            kind=self.kind,
        )
        logger.info(
            "Session ended: %ds, %d breaths", summary.duration_seconds, summary.breaths
        )
        return summary
