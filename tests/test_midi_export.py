"""Tests for MIDI export with mido."""
import mido
import pytest

from synthforge.arranger import Composition, compose
from synthforge.config import SectionConfig, TrackConfig
from synthforge.midi_export import (
    GM_DRUM_CHANNEL,
    composition_to_midi,
    key_signature,
    midi_velocity,
    write_midi,
)
from synthforge.events import NoteEvent
from synthforge.utils import Scale


@pytest.fixture
def config():
    return TrackConfig(bpm=124, sections=[
        SectionConfig.with_layers('intro', 4, ('hihat', 'pad'), 30),
        SectionConfig.with_layers('drop', 4, ('kick', 'bass', 'melody', 'hihat'), 90),
    ])


@pytest.fixture
def composition(config):
    return compose(config, 21)


def notes_on(track):
    return [m for m in track if m.type == 'note_on']


class TestCompositionToMidi:

    def test_tracks(self, composition, config):
        mid = composition_to_midi(composition, config)
        assert mid.type == 1
        assert mid.ticks_per_beat == 480
        names = [track.name for track in mid.tracks]
        assert names == ['SynthForge'] + composition.active_instruments()

    def test_meta_track(self, composition, config):
        meta = composition_to_midi(composition, config).tracks[0]
        tempo = next(m for m in meta if m.type == 'set_tempo')
        assert round(mido.tempo2bpm(tempo.tempo)) == 124
        key = next(m for m in meta if m.type == 'key_signature')
        assert key.key == 'Am'

    def test_no_key_signature_without_config(self, composition):
        meta = composition_to_midi(composition).tracks[0]
        assert not any(m.type == 'key_signature' for m in meta)

    def test_one_note_per_event(self, composition, config):
        mid = composition_to_midi(composition, config)
        for track in mid.tracks[1:]:
            assert len(notes_on(track)) == len(composition.events[track.name])

    def test_drums_on_channel_ten(self, composition, config):
        mid = composition_to_midi(composition, config)
        tracks = {track.name: track for track in mid.tracks}
        assert {m.channel for m in notes_on(tracks['kick'])} == {GM_DRUM_CHANNEL}
        assert {m.note for m in notes_on(tracks['kick'])} == {36}
        assert {m.channel for m in notes_on(tracks['bass'])} != {GM_DRUM_CHANNEL}

    def test_unhumanized_notes_on_grid(self, composition, config):
        mid = composition_to_midi(composition, config, humanize=False)
        track = next(t for t in mid.tracks if t.name == 'kick')
        elapsed, starts = 0, []
        for message in track:
            elapsed += message.time
            if message.type == 'note_on':
                starts.append(elapsed)
        assert starts == [e.tick for e in composition.events['kick']]

    def test_overlapping_same_pitch_notes_do_not_cut_each_other(self):
        glide = Composition(
            events={'bass': [NoteEvent('A2', 0, 960, 0.8), NoteEvent('A2', 480, 480, 0.8),
                             NoteEvent('C3', 480, 240, 0.8)]},
            sections=[], total_bars=1, bpm=120)
        track = composition_to_midi(glide, humanize=False).tracks[1]
        elapsed, timeline = 0, []
        for message in track:
            elapsed += message.time
            if message.type in ('note_on', 'note_off'):
                timeline.append((elapsed, message.type, message.note))
        a2 = [item for item in timeline if item[2] == 45]
        assert a2 == [(0, 'note_on', 45), (480, 'note_off', 45),
                      (480, 'note_on', 45), (960, 'note_off', 45)]
        assert (720, 'note_off', 48) in timeline

    def test_same_pitch_on_one_tick_is_one_note(self):
        doubled = Composition(
            events={'pad': [NoteEvent('E3', 0, 480, 0.5), NoteEvent('E3', 0, 960, 0.5)]},
            sections=[], total_bars=1, bpm=120)
        track = composition_to_midi(doubled, humanize=False).tracks[1]
        assert len(notes_on(track)) == 1
        assert track[-2].type == 'note_off'
        assert sum(m.time for m in track) == 960


def test_write_midi(composition, config, temp_dir):
    path = write_midi(composition, temp_dir / 'out' / 'track.mid', config)
    assert path.exists()
    loaded = mido.MidiFile(str(path))
    assert len(loaded.tracks) == 1 + len(composition.active_instruments())


def test_key_signature_names():
    assert key_signature('A', Scale.MINOR) == 'Am'
    assert key_signature('F#', 'phrygian') == 'F#m'
    assert key_signature('D#', Scale.MAJOR) == 'Eb'
    assert key_signature('C', Scale.MAJOR) == 'C'


def test_midi_velocity_range():
    assert midi_velocity(0.0) == 1
    assert midi_velocity(1.0) == 127
    assert midi_velocity(0.5) == 64
