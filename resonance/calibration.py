import logging
from dataclasses import dataclass

import numpy as np

from resonance.breathing import BreathingEngine, BreathPattern, Frame

logger = logging.getLogger(__name__)

CALIBRATION_PATTERN = BreathPattern(inhale=3, exhale=3, inhale_hold=0, exhale_hold=0)
CALIBRATION_SECONDS = 60.0
DEFAULT_RATE = 6
MIN_RATE = 5
MAX_RATE = 7
INHALE_SHARE = 0.4


@dataclass(frozen=True)
class CalibrationResult:
    breath_count: int
    rate: int
    pattern: BreathPattern

    def to_dict(self) -> dict:
        return {
            "breath_count": self.breath_count,
            "rate": self.rate,
            "pattern": self.pattern.to_dict(),
        }


def rate_from_breaths(breath_count: int) -> int:
    """Clamp a one-minute breath count into the 5-7 breaths/min resonance band."""
    if breath_count < 0:
        raise ValueError(f"breath_count cannot be negative, got {breath_count}")
    return int(np.clip(breath_count, MIN_RATE, MAX_RATE))


def pattern_for_rate(rate: float) -> BreathPattern:
    """Split a 60/rate second cycle into a 40/60 inhale/exhale pattern."""
    if rate <= 0:
        raise ValueError(f"rate must be positive, got {rate}")
    cycle = 60.0 / rate
    inhale = round(cycle * INHALE_SHARE, 1)
    exhale = round(cycle - inhale, 1)
    return BreathPattern(inhale=inhale, exhale=exhale)


def result_for_breaths(breath_count: int) -> CalibrationResult:
    rate = rate_from_breaths(breath_count)
    return CalibrationResult(
        breath_count=breath_count,
        rate=rate,
        pattern=pattern_for_rate(rate),
    )


class Calibration:
    """
    One-minute calibration run.

    Paces the user at a fixed 3s/3s rhythm for a minute and takes the number
    of completed cycles as their natural rate.
    """

    def __init__(self, duration_seconds: float = CALIBRATION_SECONDS):
        self.duration_seconds = duration_seconds
        self.engine = BreathingEngine()
        self.started_at = None

    def start(self, now: float) -> Frame:
        self.started_at = now
        logger.info("Calibration started (%.0fs)", self.duration_seconds)
        return self.engine.start(CALIBRATION_PATTERN, now)

    def tick(self, now: float) -> Frame:
        return self.engine.tick(now)

    def is_complete(self, now: float) -> bool:
        return self.started_at is not None and now - self.started_at >= self.duration_seconds

    def finish(self, now: float) -> CalibrationResult:
        if not self.is_complete(now):
            raise RuntimeError("Calibration has not run for its full duration")
        self.engine.tick(now)
        breaths = self.engine.stop()
        result = result_for_breaths(breaths)
        logger.info(
            "Calibration complete: %d breaths -> rate %d", breaths, result.rate
        )
        return result
