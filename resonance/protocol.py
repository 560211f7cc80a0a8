"""
10-week progressive breathing protocol.

Each week lengthens the breath and the holds a little; week 1 is a plain
4s in / 6s out resonance pace.
"""
from resonance.breathing import BreathPattern

FIRST_WEEK = 1
LAST_WEEK = 10


class InvalidWeek(ValueError):
    pass


PROTOCOL = {
    1: BreathPattern(inhale=4, exhale=6, inhale_hold=0, exhale_hold=0),
    2: BreathPattern(inhale=4, exhale=6, inhale_hold=1, exhale_hold=0),
    3: BreathPattern(inhale=4, exhale=6, inhale_hold=2, exhale_hold=1),
    4: BreathPattern(inhale=5, exhale=7, inhale_hold=2, exhale_hold=1),
    5: BreathPattern(inhale=5, exhale=7, inhale_hold=3, exhale_hold=2),
    6: BreathPattern(inhale=6, exhale=8, inhale_hold=3, exhale_hold=2),
    7: BreathPattern(inhale=6, exhale=8, inhale_hold=4, exhale_hold=3),
    8: BreathPattern(inhale=7, exhale=9, inhale_hold=4, exhale_hold=3),
    9: BreathPattern(inhale=7, exhale=9, inhale_hold=5, exhale_hold=4),
    10: BreathPattern(inhale=8, exhale=10, inhale_hold=5, exhale_hold=4),
}

WEEK_LABELS = {
    1: "Foundation",
    2: "Building",
    3: "Deepening",
    4: "Expanding",
    5: "Refinement",
    6: "Integration",
    7: "Strength",
    8: "Mastery",
    9: "Application",
    10: "Autonomy",
}

DEFAULT_PATTERN = PROTOCOL[FIRST_WEEK]


def _check_week(week: int) -> int:
    if isinstance(week, bool) or not isinstance(week, int):
        raise InvalidWeek(f"Week must be an integer, got {week!r}")
    if week < FIRST_WEEK or week > LAST_WEEK:
        raise InvalidWeek(f"Week must be between {FIRST_WEEK} and {LAST_WEEK}, got {week}")
    return week


def pattern_for_week(week: int) -> BreathPattern:
    return PROTOCOL[_check_week(week)]


def next_week(week: int) -> int:
    _check_week(week)
    if week == LAST_WEEK:
        raise InvalidWeek(f"Week {LAST_WEEK} is the final week of the protocol")
    return week + 1


def describe_week(week: int) -> dict:
    pattern = pattern_for_week(week)
    return {
        "week": week,
        "label": WEEK_LABELS[week],
        "pattern": pattern.to_dict(),
        "cycle_seconds": pattern.cycle_seconds,
        "breaths_per_minute": round(pattern.breaths_per_minute, 2),
    }


def describe_protocol() -> list[dict]:
    return [describe_week(week) for week in sorted(PROTOCOL)]
