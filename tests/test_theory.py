"""Tests for scales, chords, progressions and timing helpers."""
import logging

import pytest

from synthforge.utils import (
    SCALE_INTERVALS,
    TICKS_PER_BAR,
    ChordProgression,
    ConfigurationError,
    Scale,
    chord_from_degree,
    chord_notes,
    fifth_degree,
    in_scale,
    midi_to_note_name,
    normalize_key,
    notation_to_ticks,
    note_frequency,
    note_name,
    note_name_to_midi,
    progression_degrees,
    resolve_progression,
    resolve_scale,
    roman_to_degree,
    scale_intervals,
    scale_notes,
    ticks_to_notation,
    ticks_to_seconds,
    ticks_to_transport,
    transport_to_ticks,
)


class TestScales:
    """Scale tables and lookups."""

    def test_every_scale_has_intervals(self):
        for scale in Scale:
            intervals = SCALE_INTERVALS[scale]
            assert intervals[0] == 0
            assert list(intervals) == sorted(set(intervals))
            assert all(0 <= i < 12 for i in intervals)

    def test_wire_names_resolve(self):
        assert resolve_scale('harmonicMinor') is Scale.HARMONIC_MINOR
        assert resolve_scale('HARMONIC_MINOR') is Scale.HARMONIC_MINOR
        assert resolve_scale('Phrygian') is Scale.PHRYGIAN

    def test_strict_lookup_raises(self):
        with pytest.raises(ConfigurationError):
            resolve_scale('klingon')

    def test_unknown_scale_falls_back_to_minor_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger='synthforge.utils'):
            assert scale_intervals('klingon') == SCALE_INTERVALS[Scale.MINOR]
        assert 'klingon' in caplog.text

    def test_scale_notes_a_minor(self):
        assert scale_notes('A', Scale.MINOR, 4) == ['A4', 'B4', 'C5', 'D5', 'E5', 'F5', 'G5']

    def test_note_name_wraps_octaves(self):
        assert note_name('A', 3, 7, 'minor') == 'A4'
        assert note_name('A', 3, -1, 'minor') == 'G3'

    def test_in_scale(self):
        assert in_scale('C5', 'A', 'minor')
        assert not in_scale('G#4', 'A', 'minor')
        assert in_scale('G#4', 'A', 'harmonicMinor')

    def test_fifth_degree(self):
        assert fifth_degree(Scale.MINOR) == 4
        # Locrian has no perfect fifth; the diminished fifth is closest
        assert SCALE_INTERVALS[Scale.LOCRIAN][fifth_degree(Scale.LOCRIAN)] == 6


class TestNotes:
    """Note name conversions."""

    def test_note_name_to_midi(self):
        assert note_name_to_midi('C', 4) == 60
        assert note_name_to_midi('A4') == 69
        assert note_name_to_midi('Bb', 3) == 58

    def test_midi_to_note_name(self):
        assert midi_to_note_name(60) == 'C4'
        assert midi_to_note_name(70) == 'A#4'

    def test_frequency(self):
        assert note_frequency('A4') == pytest.approx(440.0)
        assert note_frequency('A3') == pytest.approx(220.0)

    def test_normalize_key(self):
        assert normalize_key('bb') == 'A#'
        assert normalize_key(' f# ') == 'F#'
        with pytest.raises(ConfigurationError):
            normalize_key('H')


class TestChords:
    """Scale-degree chords and progressions."""

    def test_tonic_triad_minor(self):
        assert chord_from_degree(Scale.MINOR, 1) == (0, 3, 7)

    def test_submediant_wraps_octave(self):
        assert chord_from_degree(Scale.MINOR, 6) == (8, 12, 15)

    def test_extensions(self):
        assert chord_from_degree(Scale.MINOR, 1, ('7',)) == (0, 3, 7, 10)
        assert chord_from_degree(Scale.MINOR, 1, ('sus2',)) == (0, 2, 7)
        assert chord_from_degree(Scale.MINOR, 1, ('sus4',)) == (0, 5, 7)

    def test_chords_stay_in_scale(self):
        for scale in (Scale.MINOR, Scale.PHRYGIAN, Scale.HARMONIC_MINOR, Scale.DORIAN):
            intervals = set(SCALE_INTERVALS[scale])
            for degree in range(1, 8):
                for offset in chord_from_degree(scale, degree, ('7', '9')):
                    assert offset % 12 in intervals

    def test_chord_notes(self):
        assert chord_notes('A', 'minor', 1, 3) == ['A3', 'C4', 'E4']

    def test_roman_numerals(self):
        assert roman_to_degree('iv') == 4
        assert roman_to_degree('VII') == 7
        with pytest.raises(ConfigurationError):
            roman_to_degree('X')

    def test_progressions(self):
        assert progression_degrees(ChordProgression.EPIC_MINOR) == [1, 6, 3, 7]
        assert resolve_progression('hypnotic') is ChordProgression.HYPNOTIC
        assert resolve_progression('i-iv-v-i') is ChordProgression.DARK_CADENCE
        with pytest.raises(ConfigurationError):
            resolve_progression('nope')


class TestTiming:
    """Tick conversions at 480 PPQ."""

    def test_transport_round_trip(self):
        tick = TICKS_PER_BAR + 480 + 120
        assert ticks_to_transport(tick) == '1:1:1'
        assert transport_to_ticks('1:1:1') == tick

    def test_notation(self):
        assert ticks_to_notation(240) == '8n'
        assert ticks_to_notation(2 * TICKS_PER_BAR) == '2m'
        assert ticks_to_notation(100) == '100i'
        assert notation_to_ticks('4n') == 480
        with pytest.raises(ConfigurationError):
            notation_to_ticks('forever')

    def test_seconds(self):
        assert ticks_to_seconds(480, 120) == pytest.approx(0.5)
