"""
Breathing phase engine.

Advances the inhale -> inhale-hold -> exhale -> exhale-hold cycle from
timestamps supplied by a scheduler, and derives the per-frame progress,
circle scale and tone frequency for the rendering and audio collaborators.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

SCALE_MIN = 1.0
SCALE_MAX = 1.5
TONE_LOW_HZ = 200.0
TONE_HIGH_HZ = 400.0


class InvalidPattern(ValueError):
    """Raised when a pattern would produce an empty or undefined phase."""


class Phase(str, Enum):
    INHALE = "inhale"
    INHALE_HOLD = "inhaleHold"
    EXHALE = "exhale"
    EXHALE_HOLD = "exhaleHold"


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


PHASE_LABELS = {
    Phase.INHALE: "Breathe In",
    Phase.INHALE_HOLD: "Hold",
    Phase.EXHALE: "Breathe Out",
    Phase.EXHALE_HOLD: "Hold",
}


@dataclass(frozen=True)
class BreathPattern:
    inhale: float
    exhale: float
    inhale_hold: float = 0.0
    exhale_hold: float = 0.0

    def duration_of(self, phase) -> float:
        phase = Phase(phase)
        if phase is Phase.INHALE:
            return self.inhale
        if phase is Phase.INHALE_HOLD:
            return self.inhale_hold
        if phase is Phase.EXHALE:
            return self.exhale
        return self.exhale_hold

    @property
    def cycle_seconds(self) -> float:
        return self.inhale + self.inhale_hold + self.exhale + self.exhale_hold

    @property
    def breaths_per_minute(self) -> float:
        if self.cycle_seconds <= 0:
            return 0.0
        return 60.0 / self.cycle_seconds

    def to_dict(self) -> dict:
        return {
            "inhale": self.inhale,
            "exhale": self.exhale,
            "inhaleHold": self.inhale_hold,
            "exhaleHold": self.exhale_hold,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BreathPattern":
        """Build a pattern from either camelCase or snake_case keys."""
        return cls(
            inhale=float(data["inhale"]),
            exhale=float(data["exhale"]),
            inhale_hold=float(data.get("inhaleHold", data.get("inhale_hold", 0.0))),
            exhale_hold=float(data.get("exhaleHold", data.get("exhale_hold", 0.0))),
        )


@dataclass
class PhaseState:
    current_phase: Phase
    phase_start_time: float
    breath_count: int = 0


@dataclass(frozen=True)
class Frame:
    phase: Phase
    progress: float
    scale: float
    frequency: float
    elapsed: float
    breath_count: int

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "label": PHASE_LABELS[self.phase],
            "progress": round(self.progress, 4),
            "scale": round(self.scale, 4),
            "frequency": round(self.frequency, 2),
            "elapsed": round(self.elapsed, 3),
            "breath_count": self.breath_count,
        }


def validate_pattern(pattern: BreathPattern) -> None:
    durations = (pattern.inhale, pattern.exhale, pattern.inhale_hold, pattern.exhale_hold)
    if not all(math.isfinite(d) for d in durations):
        raise InvalidPattern(f"Phase durations must be finite numbers (got {pattern.to_dict()})")
    if pattern.inhale <= 0 or pattern.exhale <= 0:
        raise InvalidPattern(
            f"Inhale and exhale must be positive (got inhale={pattern.inhale}, "
            f"exhale={pattern.exhale})"
        )
    if pattern.inhale_hold < 0 or pattern.exhale_hold < 0:
        raise InvalidPattern(
            f"Hold durations cannot be negative (got inhaleHold={pattern.inhale_hold}, "
            f"exhaleHold={pattern.exhale_hold})"
        )


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def scale_for(phase, progress: float) -> float:
    phase = Phase(phase)
    if phase is Phase.INHALE:
        return SCALE_MIN + (SCALE_MAX - SCALE_MIN) * progress
    if phase is Phase.INHALE_HOLD:
        return SCALE_MAX
    if phase is Phase.EXHALE:
        return SCALE_MAX - (SCALE_MAX - SCALE_MIN) * progress
    return SCALE_MIN


def tone_frequency_for(phase, progress: float) -> float:
    # Rising pitch while inhaling, falling while exhaling; mirrors scale_for.
    phase = Phase(phase)
    if phase is Phase.INHALE:
        return TONE_LOW_HZ + (TONE_HIGH_HZ - TONE_LOW_HZ) * progress
    if phase is Phase.INHALE_HOLD:
        return TONE_HIGH_HZ
    if phase is Phase.EXHALE:
        return TONE_HIGH_HZ - (TONE_HIGH_HZ - TONE_LOW_HZ) * progress
    return TONE_LOW_HZ


class BreathingEngine:
    """
    A single finite-state breathing timer.

    The engine never reads a clock itself: every operation that depends on
    time takes ``now`` (seconds, monotonic non-decreasing) from the caller.
    Each phase's elapsed time is measured from its stored start timestamp, so
    a dropped frame delays a transition but never accumulates drift.
    """

    def __init__(self):
        self.state = SessionState.IDLE
        self.pattern = None
        self.phase_state = None
        self._frozen_elapsed = 0.0

    def start(self, pattern: BreathPattern, now: float) -> Frame:
        """
        Begin a fresh cycle at ``inhale``.

        Raises InvalidPattern before touching any state, so a rejected
        pattern leaves the previous PhaseState exactly as it was.
        """
        validate_pattern(pattern)
        self.pattern = pattern
        self.phase_state = PhaseState(Phase.INHALE, now, 0)
        self._frozen_elapsed = 0.0
        self.state = SessionState.RUNNING
        logger.debug("Engine started with pattern %s", pattern.to_dict())
        return self._frame(0.0)

    def tick(self, now: float) -> Frame:
        if self.phase_state is None:
            raise RuntimeError("Engine has not been started")
        if self.state is not SessionState.RUNNING:
            return self._frame(self._frozen_elapsed)

        ps = self.phase_state
        elapsed = now - ps.phase_start_time
        if elapsed >= self.pattern.duration_of(ps.current_phase):
            ps.current_phase, completed = self._next_phase(ps.current_phase)
            if completed:
                ps.breath_count += 1
            ps.phase_start_time = now
            elapsed = 0.0
            logger.debug(
                "Phase -> %s (breaths=%d)", ps.current_phase.value, ps.breath_count
            )
        self._frozen_elapsed = max(0.0, elapsed)
        return self._frame(elapsed)

    def pause(self, now: float) -> None:
        if self.state is not SessionState.RUNNING:
            raise RuntimeError(f"Cannot pause from {self.state.value}")
        self._frozen_elapsed = max(0.0, now - self.phase_state.phase_start_time)
        self.state = SessionState.PAUSED

    def resume(self, now: float) -> None:
        if self.state is not SessionState.PAUSED:
            raise RuntimeError(f"Cannot resume from {self.state.value}")
        # Re-anchor so the paused interval is not counted as phase time.
        self.phase_state.phase_start_time = now - self._frozen_elapsed
        self.state = SessionState.RUNNING

    def stop(self) -> int:
        """Halt the engine and return the completed breath count."""
        self.state = SessionState.IDLE
        return self.phase_state.breath_count if self.phase_state else 0

    @property
    def breath_count(self) -> int:
        return self.phase_state.breath_count if self.phase_state else 0

    def _next_phase(self, phase: Phase):
        """Return (next phase, whether a full cycle just completed)."""
        if phase is Phase.INHALE:
            if self.pattern.inhale_hold > 0:
                return Phase.INHALE_HOLD, False
            return Phase.EXHALE, False
        if phase is Phase.INHALE_HOLD:
            return Phase.EXHALE, False
        if phase is Phase.EXHALE:
            if self.pattern.exhale_hold > 0:
                return Phase.EXHALE_HOLD, False
            return Phase.INHALE, True
        return Phase.INHALE, True

    def _frame(self, elapsed: float) -> Frame:
        phase = self.phase_state.current_phase
        duration = self.pattern.duration_of(phase)
        progress = _clamp(elapsed / duration) if duration > 0 else 0.0
        return Frame(
            phase=phase,
            progress=progress,
            scale=scale_for(phase, progress),
            frequency=tone_frequency_for(phase, progress),
            elapsed=max(0.0, elapsed),
            breath_count=self.phase_state.breath_count,
        )


def simulate(pattern: BreathPattern, seconds: float, step: float = 0.5) -> list[Frame]:
    """Run a fresh engine over synthetic timestamps 0, step, 2*step, ..."""
    if step <= 0:
        raise ValueError("step must be positive")
    engine = BreathingEngine()
    frames = [engine.start(pattern, 0.0)]
    ticks = int(seconds / step)
    for i in range(1, ticks + 1):
        frames.append(engine.tick(round(i * step, 6)))
    return frames
