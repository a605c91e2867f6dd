"""Tests for section arrangement and cross-instrument rules."""
import pytest

from synthforge.arranger import (
    EXOTIC_FX_STREAM,
    Arranger,
    compose,
    derive_seed,
    effective_layers,
    limit_high_end,
    silence,
)
from synthforge.config import GlobalRules, SectionConfig, TrackConfig
from synthforge.events import NoteEvent
from synthforge.humanize import ExoticFxType, GoosebumpsConfig
from synthforge.utils import TICKS_PER_8TH, TICKS_PER_BAR, TICKS_PER_BEAT, ConfigurationError


def two_section_config(**kwargs):
    return TrackConfig(sections=[
        SectionConfig.with_layers('buildup', 8, ('kick', 'bass', 'hihat', 'fx'), 60),
        SectionConfig.with_layers('drop', 8, ('kick', 'bass', 'melody', 'hihat', 'pad'), 90),
    ], **kwargs)


class TestLayerCap:
    """Scenario: too many layers for the rules."""

    def test_keeps_highest_priority(self):
        section = SectionConfig.with_layers(
            'drop', 8, ('kick', 'bass', 'melody', 'hihat', 'pad', 'arp'), 80)
        kept, dropped = effective_layers(section, GlobalRules(max_simultaneous_layers=3))
        assert kept == ['kick', 'bass', 'melody']
        assert dropped == ['hihat', 'pad', 'arp']

    def test_allowed_layers_intersect(self):
        section = SectionConfig.with_layers('intro', 8, ('kick', 'pad', 'hihat'), 30,
                                            allowed_layers=frozenset({'pad', 'strings'}))
        assert effective_layers(section) == (['pad'], [])

    def test_cap_applies_in_composition(self):
        config = TrackConfig(sections=[SectionConfig.with_layers(
            'drop', 4, ('kick', 'bass', 'melody', 'hihat', 'pad', 'arp'), 80)])
        composition = compose(config, 1, GlobalRules(max_simultaneous_layers=3))
        assert composition.active_instruments() == ['kick', 'bass', 'melody']
        assert composition.sections[0].dropped_layers == ('hihat', 'pad', 'arp')


class TestArrangement:
    """Timeline layout."""

    def test_total_bars(self, track_config):
        composition = compose(track_config, 42)
        assert composition.total_bars == track_config.total_bars() == 64
        assert [p.start_bar for p in composition.sections] == [0, 8, 16, 32, 40, 56]

    def test_disabled_instruments_are_silent(self, track_config):
        composition = compose(track_config, 42)
        for index, section in enumerate(track_config.sections):
            for instrument in ('kick', 'bass', 'melody', 'hihat', 'pad'):
                events = composition.events_in_section(instrument, index)
                if not section.has(instrument):
                    assert events == [], (index, instrument)

    def test_streams_are_time_ordered(self, track_config):
        composition = compose(track_config, 42)
        for events in composition.events.values():
            ticks = [e.tick for e in events]
            assert ticks == sorted(ticks)

    def test_deterministic(self, track_config):
        assert compose(track_config, 5).events == compose(track_config, 5).events

    def test_config_is_not_modified(self, track_config):
        before = track_config.copy()
        compose(track_config, 5)
        assert track_config == before

    def test_empty_track_raises(self):
        with pytest.raises(ConfigurationError):
            Arranger().compose(TrackConfig(sections=[]))


class TestSeeding:
    """Per-section seeds are independent."""

    def test_derive_seed_is_stable(self):
        assert derive_seed(1, 0, 'kick') == derive_seed(1, 0, 'kick')
        assert derive_seed(1, 0, 'kick') != derive_seed(1, 1, 'kick')
        assert derive_seed(1, 0, 'kick') != derive_seed(1, 0, 'bass')

    def test_base_seed_uses_its_full_width(self):
        assert derive_seed(1, 0, 'kick') != derive_seed(1 + 2 ** 32, 0, 'kick')
        assert derive_seed(5, 2, 'pad') != derive_seed(5 + 2 ** 40, 2, 'pad')

    def test_negative_base_seed(self):
        assert derive_seed(-1, 0, 'kick') == derive_seed(-1, 0, 'kick')
        assert derive_seed(-1, 0, 'kick') != derive_seed(-2, 0, 'kick')
        config = two_section_config()
        assert compose(config, -7).events == compose(config, -7).events
        assert compose(config, -7).events != compose(config, 7).events

    def test_editing_one_section_leaves_others(self, track_config):
        before = compose(track_config, 9)
        track_config.update_section(3, intensity=90)
        after = compose(track_config, 9)
        assert before.events_in_section('melody', 2) == after.events_in_section('melody', 2)
        assert before.events_in_section('pad', 5) == after.events_in_section('pad', 5)


class TestRules:
    """Silence before drop and the high-end limit."""

    def test_silence_before_drop(self):
        rules = GlobalRules(silence_before_drop=True, max_simultaneous_layers=8)
        composition = compose(two_section_config(), 3, rules)
        drop_start = 8 * TICKS_PER_BAR
        for events in composition.events.values():
            for event in events:
                assert not (drop_start - TICKS_PER_BEAT <= event.tick < drop_start)
                if event.tick < drop_start - TICKS_PER_BEAT:
                    assert event.end_tick <= drop_start - TICKS_PER_BEAT
        assert composition.events_in_section('kick', 1)[0].tick == drop_start

    def test_goosebumps_micro_silence(self):
        config = two_section_config(goosebumps=GoosebumpsConfig(enabled=True))
        composition = compose(config, 3)
        drop_start = 8 * TICKS_PER_BAR
        kicks = [e.tick for e in composition.events['kick']]
        assert not any(drop_start - TICKS_PER_8TH <= t < drop_start for t in kicks)
        # The kick on the last beat of the buildup is before the gap
        assert drop_start - TICKS_PER_BEAT in kicks

    def test_high_end_limit(self):
        config = two_section_config()
        config.update_instrument('melody', filter_cutoff=18000)
        composition = compose(config, 3, GlobalRules(high_end_limit_hz=9000,
                                                     max_simultaneous_layers=8))
        filtered = [e for events in composition.events.values() for e in events
                    if e.filter_hz is not None]
        assert filtered
        assert all(e.filter_hz <= 9000 for e in filtered)

    def test_silence_truncates_ringing_notes(self):
        events = [NoteEvent('A3', 0, 1000, 0.8), NoteEvent('C4', 900, 100, 0.8)]
        assert silence(events, 800, 1000) == [NoteEvent('A3', 0, 800, 0.8)]

    def test_limit_high_end_leaves_unfiltered(self):
        events = [NoteEvent('A3', 0, 10, 0.5), NoteEvent(None, 0, 10, 0.5, filter_hz=15000.0)]
        limited = limit_high_end(events, 12000)
        assert limited[0].filter_hz is None
        assert limited[1].filter_hz == 12000.0


def test_exotic_fx_stream():
    config = two_section_config(goosebumps=GoosebumpsConfig(
        enabled=True, exotic_fx_type=ExoticFxType.REVERSE_IMPACT, exotic_fx_placements=['pre_drop']))
    composition = compose(config, 3)
    fx = composition.events[EXOTIC_FX_STREAM]
    assert len(fx) == 1
    assert fx[0].tick == 7 * TICKS_PER_BAR
