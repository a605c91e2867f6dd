"""
MIDI Export Module

Writes a Composition to a Standard MIDI File with mido: one meta track
carrying tempo, meter and key, then one track per instrument stream.
Unpitched streams (kick, hats, percussion, fx) go to the General MIDI
drum channel.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import mido
from mido import Message, MetaMessage, MidiFile, MidiTrack

from .arranger import EXOTIC_FX_STREAM, Composition
from .config import INSTRUMENTS, TrackConfig
from .events import NoteEvent
from .utils import (
    TICKS_PER_BEAT,
    ConfigurationError,
    clamp,
    ms_to_ticks,
    normalize_key,
    note_name_to_midi,
    scale_intervals,
)

logger = logging.getLogger(__name__)

GM_DRUM_CHANNEL = 9  # Channel 10 in 1-indexed

# Drum note per (stream, articulation); None covers events without one
GM_DRUM_MAP: Dict[str, Dict[Optional[str], int]] = {
    'kick': {None: 36, 'ghost': 35},
    'hihat': {None: 42, 'closed': 42, 'open': 46},
    'perc': {None: 39, 'clap': 39, 'snare': 38, 'rim': 37, 'shaker': 70, 'tom': 45},
    'fx': {None: 49, 'impact': 49, 'riser': 57, 'sweep': 55, 'texture': 53, 'atmosphere': 52},
    EXOTIC_FX_STREAM: {None: 49, 'metal_scrape': 74, 'breath': 72,
                       'reverse_impact': 57, 'ritual_hit': 47},
}

# 0-indexed General MIDI programs for pitched streams
GM_PROGRAMS: Dict[str, int] = {
    'bass': 38,      # Synth Bass 1
    'melody': 81,    # Lead 2 (sawtooth)
    'pad': 89,       # Pad 2 (warm)
    'pluck': 45,     # Pizzicato Strings
    'stab': 62,      # Synth Brass 1
    'piano': 0,      # Acoustic Grand Piano
    'strings': 48,   # String Ensemble 1
    'acid': 87,      # Lead 8 (bass + lead)
    'arp': 80,       # Lead 1 (square)
    'vocal': 52,     # Choir Aahs
}

# mido only accepts conventional key signature spellings
_MAJOR_SPELLING = {'D#': 'Eb', 'G#': 'Ab', 'A#': 'Bb'}


def key_signature(key: str, scale) -> str:
    """
    Key signature name for mido, e.g. 'Am' or 'Eb'.

    Scales with a minor third are written as minor keys, everything else
    as major.
    """
    root = normalize_key(key)
    intervals = scale_intervals(scale)
    if 3 in intervals or 4 not in intervals:
        return f"{root}m"
    return _MAJOR_SPELLING.get(root, root)


def midi_velocity(velocity: float) -> int:
    return int(clamp(round(velocity * 127), 1, 127))


def _assign_channels(streams: List[str]) -> Dict[str, int]:
    channels = {}
    free = [c for c in range(16) if c != GM_DRUM_CHANNEL]
    for name in streams:
        if name in GM_DRUM_MAP:
            channels[name] = GM_DRUM_CHANNEL
        elif free:
            channels[name] = free.pop(0)
        else:
            raise ConfigurationError(f"No MIDI channel left for {name}")
    return channels


def _event_pitch(stream: str, event: NoteEvent) -> int:
    drums = GM_DRUM_MAP.get(stream)
    if drums is not None:
        return drums.get(event.articulation, drums[None])
    if event.note is None:
        raise ConfigurationError(f"Pitched stream {stream} has an event without a note")
    return note_name_to_midi(event.note)


def _stream_messages(stream: str, events: List[NoteEvent], channel: int,
                     bpm: float, humanize: bool) -> List[Tuple[int, int, Message]]:
    """
    Absolute-time (tick, order, message) triples for one stream.

    A note that is still sounding when the same pitch starts again ends
    at that start, so its note_off never cuts the newer note short.
    """
    notes: List[List[int]] = []
    for event in events:
        start = event.tick
        if humanize and event.offset_ms:
            start = max(0, event.tick + int(round(ms_to_ticks(event.offset_ms, bpm))))
        notes.append([start, start + max(1, event.duration_ticks),
                      _event_pitch(stream, event), midi_velocity(event.velocity)])
    notes.sort(key=lambda note: note[0])

    sounding: Dict[int, List[int]] = {}
    kept = []
    for note in notes:
        start, end, pitch, _ = note
        previous = sounding.get(pitch)
        if previous is not None and previous[1] > start:
            if previous[0] == start:
                # Same pitch struck twice on one tick: one note, longest tail
                previous[1] = max(previous[1], end)
                continue
            previous[1] = start
        sounding[pitch] = note
        kept.append(note)

    timed = []
    for start, end, pitch, velocity in kept:
        timed.append((start, 1, Message('note_on', note=pitch, velocity=velocity, channel=channel)))
        timed.append((end, 0, Message('note_off', note=pitch, velocity=0, channel=channel)))
    # Note-offs before note-ons at the same tick
    timed.sort(key=lambda item: (item[0], item[1]))
    return timed


def _to_track(name: str, timed: List[Tuple[int, int, Message]],
              channel: int, program: Optional[int]) -> MidiTrack:
    track = MidiTrack()
    track.append(MetaMessage('track_name', name=name, time=0))
    if program is not None:
        track.append(Message('program_change', program=program, channel=channel, time=0))
    prev_time = 0
    for abs_time, _, message in timed:
        track.append(message.copy(time=abs_time - prev_time))
        prev_time = abs_time
    track.append(MetaMessage('end_of_track', time=0))
    return track


def composition_to_midi(composition: Composition,
                        config: Optional[TrackConfig] = None,
                        humanize: bool = True) -> MidiFile:
    """
    Build a MidiFile from a composition.

    Args:
        composition: Arranged event timeline
        config: Track configuration, used for the scale in the key signature
        humanize: Shift notes by their micro-timing offsets

    Returns:
        Type 1 MidiFile at 480 PPQ; empty streams get no track
    """
    mid = MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)

    meta = MidiTrack()
    meta.append(MetaMessage('track_name', name='SynthForge', time=0))
    meta.append(MetaMessage('time_signature', numerator=4, denominator=4, time=0))
    meta.append(MetaMessage('set_tempo', tempo=mido.bpm2tempo(composition.bpm), time=0))
    if config is not None:
        meta.append(MetaMessage('key_signature', key=key_signature(config.key, config.scale), time=0))
    meta.append(MetaMessage('end_of_track', time=composition.end_tick))
    mid.tracks.append(meta)

    order = [name for name in list(INSTRUMENTS) + [EXOTIC_FX_STREAM]
             if composition.events.get(name)]
    channels = _assign_channels(order)
    for name in order:
        timed = _stream_messages(name, composition.events[name], channels[name],
                                 composition.bpm, humanize)
        mid.tracks.append(_to_track(name, timed, channels[name], GM_PROGRAMS.get(name)))

    logger.debug("MIDI export: %d tracks, %d ticks", len(mid.tracks), composition.end_tick)
    return mid


def write_midi(composition: Composition, path: Union[str, Path],
               config: Optional[TrackConfig] = None, humanize: bool = True) -> Path:
    """Export a composition to `path` and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    composition_to_midi(composition, config, humanize).save(str(path))
    logger.info("Wrote MIDI file %s", path)
    return path
