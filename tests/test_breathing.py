import pytest

from resonance.breathing import (
    BreathingEngine,
    BreathPattern,
    InvalidPattern,
    Phase,
    SessionState,
    scale_for,
    simulate,
    tone_frequency_for,
)
from resonance.protocol import PROTOCOL

WEEK_1 = BreathPattern(inhale=4, exhale=6, inhale_hold=0, exhale_hold=0)
WEEK_6 = BreathPattern(inhale=6, exhale=8, inhale_hold=3, exhale_hold=2)


class TestScaleAndTone:
    def test_scale_endpoints(self):
        assert scale_for("inhale", 0) == 1.0
        assert scale_for("inhale", 1) == 1.5
        assert scale_for("exhale", 0) == 1.5
        assert scale_for("exhale", 1) == 1.0

    def test_scale_holds_are_constant(self):
        for p in (0.0, 0.3, 1.0):
            assert scale_for(Phase.INHALE_HOLD, p) == 1.5
            assert scale_for(Phase.EXHALE_HOLD, p) == 1.0

    def test_inhale_exhale_symmetry(self):
        for i in range(11):
            p = i / 10
            assert scale_for("inhale", p) + scale_for("exhale", p) == pytest.approx(2.5)

    def test_tone_frequency_curve(self):
        assert tone_frequency_for("inhale", 0) == 200
        assert tone_frequency_for("inhale", 1) == 400
        assert tone_frequency_for("exhale", 0) == 400
        assert tone_frequency_for("exhale", 1) == 200
        assert tone_frequency_for("inhaleHold", 0.5) == 400
        assert tone_frequency_for("exhaleHold", 0.5) == 200

    def test_pure_functions_repeatable(self):
        assert scale_for("inhale", 0.37) == scale_for("inhale", 0.37)
        assert tone_frequency_for("exhale", 0.81) == tone_frequency_for("exhale", 0.81)

    def test_unknown_phase_rejected(self):
        with pytest.raises(ValueError):
            scale_for("sigh", 0.5)


class TestPattern:
    def test_from_dict_accepts_both_key_styles(self):
        camel = BreathPattern.from_dict({"inhale": 4, "exhale": 6, "inhaleHold": 1, "exhaleHold": 2})
        snake = BreathPattern.from_dict({"inhale": 4, "exhale": 6, "inhale_hold": 1, "exhale_hold": 2})
        assert camel == snake
        assert camel.cycle_seconds == 13

    def test_to_dict_uses_phase_names(self):
        assert WEEK_1.to_dict() == {"inhale": 4, "exhale": 6, "inhaleHold": 0, "exhaleHold": 0}

    def test_breaths_per_minute(self):
        assert WEEK_1.breaths_per_minute == pytest.approx(6.0)


class TestEngine:
    def test_week_one_scenario(self):
        engine = BreathingEngine()
        frame = engine.start(WEEK_1, 0.0)
        assert (frame.phase, frame.progress, frame.scale) == (Phase.INHALE, 0.0, 1.0)

        frame = engine.tick(2.0)
        assert frame.progress == pytest.approx(0.5)
        assert frame.scale == pytest.approx(1.25)

        frame = engine.tick(4.0)
        assert frame.phase is Phase.EXHALE
        assert frame.progress == 0.0
        assert frame.scale == 1.5

        frame = engine.tick(10.0)
        assert frame.phase is Phase.INHALE
        assert frame.breath_count == 1

    def test_week_six_three_cycles(self):
        engine = BreathingEngine()
        engine.start(WEEK_6, 0.0)
        assert WEEK_6.cycle_seconds == 19
        for t in range(1, 57):
            engine.tick(float(t))
        assert engine.breath_count == 2
        frame = engine.tick(57.0)
        assert frame.breath_count == 3
        assert frame.phase is Phase.INHALE

    def test_hold_phase_sequence(self):
        engine = BreathingEngine()
        engine.start(WEEK_6, 0.0)
        seen = [engine.tick(float(t)).phase for t in (6, 9, 17, 19)]
        assert seen == [Phase.INHALE_HOLD, Phase.EXHALE, Phase.EXHALE_HOLD, Phase.INHALE]

    def test_exhale_to_inhale_counts_without_exhale_hold(self):
        pattern = BreathPattern(inhale=4, exhale=6, inhale_hold=1, exhale_hold=0)
        frames = simulate(pattern, pattern.cycle_seconds, step=1.0)
        assert frames[-2].breath_count == 0
        assert frames[-1].breath_count == 1
        assert frames[-1].phase is Phase.INHALE

    @pytest.mark.parametrize("week", sorted(PROTOCOL))
    def test_one_cycle_counts_exactly_once(self, week):
        pattern = PROTOCOL[week]
        frames = simulate(pattern, pattern.cycle_seconds, step=0.5)
        assert frames[-2].breath_count == 0
        assert frames[-1].breath_count == 1
        frames = simulate(pattern, pattern.cycle_seconds * 4, step=0.5)
        assert frames[-1].breath_count == 4

    def test_zero_holds_never_visited(self):
        phases = {f.phase for f in simulate(WEEK_1, 60, step=0.5)}
        assert phases == {Phase.INHALE, Phase.EXHALE}

        week_2 = PROTOCOL[2]
        phases = {f.phase for f in simulate(week_2, 60, step=0.5)}
        assert Phase.INHALE_HOLD in phases
        assert Phase.EXHALE_HOLD not in phases

    def test_progress_stays_in_range(self):
        for frame in simulate(WEEK_6, 40, step=0.25):
            assert 0.0 <= frame.progress <= 1.0
            assert 1.0 <= frame.scale <= 1.5
            assert 200.0 <= frame.frequency <= 400.0

    def test_late_frame_applies_one_transition(self):
        engine = BreathingEngine()
        engine.start(WEEK_1, 0.0)
        frame = engine.tick(30.0)
        assert frame.phase is Phase.EXHALE
        assert frame.breath_count == 0
        assert engine.phase_state.phase_start_time == 30.0

    def test_pause_excludes_paused_interval(self):
        pattern = PROTOCOL[10]
        engine = BreathingEngine()
        engine.start(pattern, 0.0)
        engine.tick(1.0)
        engine.tick(2.0)
        engine.pause(2.0)

        frozen = engine.tick(7.0)
        assert engine.state is SessionState.PAUSED
        assert frozen.elapsed == pytest.approx(2.0)

        engine.resume(12.0)
        frame = engine.tick(14.0)
        assert frame.phase is Phase.INHALE
        assert frame.elapsed == pytest.approx(4.0)
        assert frame.progress == pytest.approx(0.5)

    def test_pause_requires_running(self):
        engine = BreathingEngine()
        engine.start(WEEK_1, 0.0)
        engine.pause(1.0)
        with pytest.raises(RuntimeError):
            engine.pause(2.0)
        engine.resume(3.0)
        with pytest.raises(RuntimeError):
            engine.resume(4.0)

    def test_invalid_start_leaves_state_untouched(self):
        engine = BreathingEngine()
        engine.start(WEEK_1, 0.0)
        engine.tick(3.0)
        before = (engine.phase_state.current_phase, engine.phase_state.phase_start_time,
                  engine.phase_state.breath_count)

        with pytest.raises(InvalidPattern):
            engine.start(BreathPattern(inhale=0, exhale=6), 5.0)

        after = (engine.phase_state.current_phase, engine.phase_state.phase_start_time,
                 engine.phase_state.breath_count)
        assert after == before
        assert engine.state is SessionState.RUNNING
        assert engine.pattern == WEEK_1

    def test_invalid_start_on_fresh_engine(self):
        engine = BreathingEngine()
        with pytest.raises(InvalidPattern):
            engine.start(BreathPattern(inhale=4, exhale=-1), 0.0)
        assert engine.phase_state is None
        assert engine.state is SessionState.IDLE

    def test_negative_hold_rejected(self):
        with pytest.raises(InvalidPattern):
            BreathingEngine().start(BreathPattern(inhale=4, exhale=6, inhale_hold=-1), 0.0)

    def test_tick_before_start(self):
        with pytest.raises(RuntimeError, match="not been started"):
            BreathingEngine().tick(1.0)

    def test_stop_keeps_final_count(self):
        engine = BreathingEngine()
        engine.start(WEEK_1, 0.0)
        engine.tick(4.0)
        engine.tick(10.0)
        assert engine.stop() == 1
        assert engine.state is SessionState.IDLE
        frame = engine.tick(50.0)
        assert frame.breath_count == 1
        assert engine.phase_state.phase_start_time == 10.0

    def test_restart_resets_count(self):
        engine = BreathingEngine()
        engine.start(WEEK_1, 0.0)
        engine.tick(4.0)
        engine.tick(10.0)
        frame = engine.start(WEEK_1, 20.0)
        assert frame.breath_count == 0
        assert engine.phase_state.phase_start_time == 20.0


class TestSimulate:
    def test_frame_count(self):
        assert len(simulate(WEEK_1, 10, step=1.0)) == 11

    def test_rejects_non_positive_step(self):
        with pytest.raises(ValueError):
            simulate(WEEK_1, 10, step=0)

    def test_frame_to_dict(self):
        data = simulate(WEEK_1, 2, step=1.0)[-1].to_dict()
        assert data["phase"] == "inhale"
        assert data["label"] == "Breathe In"
        assert data["scale"] == 1.25
        assert data["frequency"] == 300.0


class TestNonFiniteDurations:
    @pytest.mark.parametrize("pattern", [
        BreathPattern(inhale=float("nan"), exhale=6),
        BreathPattern(inhale=4, exhale=float("nan")),
        BreathPattern(inhale=float("inf"), exhale=6),
        BreathPattern(inhale=4, exhale=6, inhale_hold=float("nan")),
        BreathPattern(inhale=4, exhale=6, exhale_hold=float("inf")),
    ])
    def test_rejected_at_start(self, pattern):
        engine = BreathingEngine()
        with pytest.raises(InvalidPattern, match="finite"):
            engine.start(pattern, 0.0)
        assert engine.phase_state is None
        assert engine.state is SessionState.IDLE
