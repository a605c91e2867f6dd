"""Tests for goosebumps humanization helpers."""
import numpy as np
import pytest

from synthforge.humanize import (
    ExoticFxType,
    GoosebumpsConfig,
    NotePosition,
    exotic_fx_placement,
    micro_timing_offset,
    parse_placements,
    should_have_micro_silence,
    should_inject_tension_note,
    tension_note_for,
)
from synthforge.utils import TICKS_PER_16TH, TICKS_PER_BAR, TICKS_PER_BEAT, in_scale


@pytest.fixture
def enabled():
    return GoosebumpsConfig(enabled=True, micro_timing_ms=20, tension_notes_enabled=True,
                            tension_amount=100)


class TestMicroTiming:

    def test_disabled_is_zero(self):
        rng = np.random.default_rng(1)
        assert micro_timing_offset(GoosebumpsConfig(), rng) == 0.0

    def test_within_window(self, enabled):
        rng = np.random.default_rng(1)
        offsets = [micro_timing_offset(enabled, rng, 'hihat') for _ in range(200)]
        assert all(-20 <= o <= 20 for o in offsets)
        assert any(o != 0 for o in offsets)

    def test_kick_is_never_moved(self, enabled):
        rng = np.random.default_rng(1)
        assert all(micro_timing_offset(enabled, rng, 'kick') == 0.0 for _ in range(20))

    def test_window_is_clamped(self):
        config = GoosebumpsConfig(enabled=True, micro_timing_ms=500)
        assert config.window_ms == 30.0


class TestTensionNotes:

    def test_never_on_drop_downbeat(self, enabled):
        rng = np.random.default_rng(3)
        position = NotePosition('drop', 2 * TICKS_PER_BAR)
        assert not any(should_inject_tension_note(enabled, position, rng) for _ in range(100))

    @pytest.mark.parametrize("beat", [1, 2, 3])
    def test_never_on_later_beats_of_a_drop(self, enabled, beat):
        rng = np.random.default_rng(3)
        position = NotePosition('drop', 5 * TICKS_PER_BAR + beat * TICKS_PER_BEAT)
        assert position.is_downbeat
        assert not any(should_inject_tension_note(enabled, position, rng) for _ in range(100))

    def test_drop_offbeats_can_carry_tension(self, enabled):
        rng = np.random.default_rng(3)
        position = NotePosition('drop', TICKS_PER_BEAT + TICKS_PER_16TH)
        assert not position.is_downbeat
        assert any(should_inject_tension_note(enabled, position, rng) for _ in range(100))

    def test_off_when_disabled(self):
        rng = np.random.default_rng(3)
        config = GoosebumpsConfig(enabled=True, tension_notes_enabled=False, tension_amount=100)
        assert not should_inject_tension_note(config, NotePosition('breakdown', 240), rng)

    def test_probability_scales_with_amount(self, enabled):
        rng = np.random.default_rng(3)
        hits = sum(should_inject_tension_note(enabled, NotePosition('breakdown', 240), rng)
                   for _ in range(2000))
        # tension_amount 100 -> 25% chance
        assert 350 < hits < 650

    def test_tension_note_is_outside_scale(self):
        for scale in ('minor', 'phrygian', 'harmonicMinor', 'dorian', 'locrian'):
            note = tension_note_for(scale, 'A')
            assert not in_scale(note, 'A', scale)


class TestExoticFx:

    def test_none_when_disabled(self):
        config = GoosebumpsConfig(exotic_fx_type=ExoticFxType.BREATH,
                                  exotic_fx_placements=['breakdown'])
        assert exotic_fx_placement(config, 'breakdown') is None

    def test_reverse_impact_on_last_bar_before_drop(self):
        config = GoosebumpsConfig(enabled=True, exotic_fx_type=ExoticFxType.REVERSE_IMPACT,
                                  exotic_fx_placements=['pre_drop'])
        event = exotic_fx_placement(config, 'buildup', 1, bars=8, next_type='drop')
        assert event is not None
        assert event.tick == 7 * TICKS_PER_BAR
        assert event.articulation == 'reverse_impact'
        assert event.note is None

    def test_index_marker(self):
        config = GoosebumpsConfig(enabled=True, exotic_fx_type=ExoticFxType.RITUAL_HIT,
                                  exotic_fx_placements=[2])
        assert exotic_fx_placement(config, 'intro', 1) is None
        assert exotic_fx_placement(config, 'intro', 2).tick == 0

    def test_post_drop_marker(self):
        config = GoosebumpsConfig(enabled=True, exotic_fx_type=ExoticFxType.METAL_SCRAPE,
                                  exotic_fx_placements=['post_drop'])
        event = exotic_fx_placement(config, 'breakdown', 3, bars=8, prev_type='drop')
        assert event.tick == 4 * TICKS_PER_BAR


def test_micro_silence_only_between_buildup_and_drop():
    assert should_have_micro_silence('buildup', 'drop')
    assert not should_have_micro_silence('breakdown', 'drop')
    assert not should_have_micro_silence('buildup', 'outro')


def test_parse_placements_filters_junk():
    assert parse_placements([0, 'breakdown', 'nowhere', -1, True, 'pre_drop']) == [0, 'breakdown', 'pre_drop']
