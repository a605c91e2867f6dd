"""
Melodic family generators.

Melody, arp, pluck, stab, piano, strings and acid all pick their pitches
from the scale transposed to the key. Two knobs behave the same way
everywhere they exist:

- `density`: fraction of grid slots that sound rather than rest
- `variation`: probability that the next note leaps more than one scale
  step away from the previous one
"""
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .base import PatternGenerator, Voice, chance, jitter
from .textures import voiced_chord
from ..config import (
    AcidParams,
    ArpParams,
    GrooveType,
    MelodyParams,
    PianoParams,
    PluckParams,
    StabParams,
    StringsParams,
    TechnoStyle,
)
from ..events import NoteEvent
from ..utils import (
    TICKS_PER_16TH,
    TICKS_PER_8TH,
    TICKS_PER_BAR,
    TICKS_PER_BEAT,
    chord_from_degree,
    clamp,
    midi_to_note_name,
    scale_intervals,
)


# Contours as 0-based scale degrees; a phrase drifts toward these targets
MELODY_PHRASES: Tuple[Tuple[int, ...], ...] = (
    (0, 2, 4, 5, 4, 2),
    (7, 5, 4, 2, 0),
    (0, 2, 4, 2, 4, 5, 4),
    (4, 5, 7, 5, 4, 2, 0),
    (0, 4, 7, 9, 7, 4),
)

LEAP_STEPS = (-4, -3, -2, 2, 3, 4)
NEIGHBOUR_STEPS = (-1, 0, 1)
DEGREE_RANGE = (-3, 10)


def degree_to_midi(voice: Voice, degree: int, octave: int) -> int:
    intervals = scale_intervals(voice.scale)
    shift, index = divmod(degree, len(intervals))
    return voice.root_midi(octave) + intervals[index] + 12 * shift


def walk(rng: np.random.Generator, degree: int, variation: float,
         bounds: Tuple[int, int] = DEGREE_RANGE) -> int:
    """Next scale degree: a leap with probability `variation`%, else a neighbour step."""
    if chance(rng, variation / 100.0):
        step = int(rng.choice(LEAP_STEPS))
    else:
        step = int(rng.choice(NEIGHBOUR_STEPS))
    return int(clamp(degree + step, *bounds))


def chord_midi(voice: Voice, degree: int, octave: int, extensions: Sequence[str] = ()) -> List[int]:
    root = voice.root_midi(octave)
    return [root + offset for offset in chord_from_degree(voice.scale, degree, extensions)]


def density_cap(voice: Voice, name: str) -> Optional[float]:
    rules = voice.context.rules
    return getattr(rules, name) if rules is not None else None


class MelodyGenerator(PatternGenerator):
    """
    Lead melody built from a short phrase that repeats across the section.

    The phrase is one bar under the hypnotic style and two bars otherwise;
    repeats mutate single notes with a probability tied to `variation`.
    """

    tension_capable = True

    @property
    def instrument(self) -> str:
        return 'melody'

    @property
    def aliases(self) -> List[str]:
        return ['lead']

    @property
    def params_type(self):
        return MelodyParams

    def _phrase(self, voice: Voice, rng: np.random.Generator, slots: int) -> List[Tuple[int, int]]:
        params: MelodyParams = voice.params
        density = voice.density(params.density, density_cap(voice, 'melody_density_cap'))
        motif = MELODY_PHRASES[int(rng.integers(len(MELODY_PHRASES)))]
        degree = motif[0]
        position = 0
        phrase = []
        for slot in range(slots):
            if not chance(rng, density):
                continue
            if phrase:
                if chance(rng, params.variation / 100.0):
                    degree = int(clamp(degree + int(rng.choice(LEAP_STEPS)), *DEGREE_RANGE))
                else:
                    target = motif[position % len(motif)]
                    degree += int(np.sign(target - degree))
                    position += 1
            phrase.append((slot, degree))
        return phrase

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: MelodyParams = voice.params
        phrase_bars = 1 if voice.context.style == TechnoStyle.HYPNOTIC else 2
        slots = phrase_bars * 8
        phrase = self._phrase(voice, rng, slots)
        if not phrase:
            return
        level = 0.62 + 0.2 * voice.intensity / 100.0
        mutation = params.variation / 200.0

        for start_bar in range(0, voice.bars, phrase_bars):
            repeat = start_bar // phrase_bars
            for i, (slot, degree) in enumerate(phrase):
                if repeat > 0 and chance(rng, mutation):
                    degree = walk(rng, degree, 0.0)
                next_slot = phrase[i + 1][0] if i + 1 < len(phrase) else slots
                duration = min(next_slot - slot, 2) * TICKS_PER_8TH
                tick = start_bar * TICKS_PER_BAR + slot * TICKS_PER_8TH
                pitch = degree_to_midi(voice, degree, params.octave)
                yield NoteEvent(midi_to_note_name(pitch), tick, duration,
                                jitter(rng, level + (0.08 if i == 0 else 0.0), 0.06),
                                filter_hz=float(params.filter_cutoff))


ARP_PATTERNS = ('up', 'down', 'updown', 'random', 'order', 'chord')


class ArpGenerator(PatternGenerator):
    """Arpeggiator over the current progression chord."""

    @property
    def instrument(self) -> str:
        return 'arp'

    @property
    def params_type(self):
        return ArpParams

    @staticmethod
    def sequence(pattern: str, offsets: Sequence[int], octaves: int) -> List[int]:
        """Traversal of chord offsets (semitones) across octaves for a fixed pattern."""
        if pattern == 'order':
            return [offset + 12 * o for offset in offsets for o in range(octaves)]
        up = sorted(offset + 12 * o for o in range(octaves) for offset in offsets)
        if pattern == 'down':
            return up[::-1]
        if pattern == 'updown':
            return up + up[-2:0:-1]
        return up

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: ArpParams = voice.params
        sixteenths = params.speed >= 50
        step_ticks = TICKS_PER_16TH if sixteenths else TICKS_PER_8TH
        steps_per_bar = TICKS_PER_BAR // step_ticks
        swing = int(step_ticks / 2 * params.swing / 100.0)
        if sixteenths and voice.context.groove == GrooveType.SHUFFLE:
            swing = max(swing, TICKS_PER_16TH // 3)
        duration = max(TICKS_PER_16TH // 4, int(step_ticks * params.gate / 100.0))
        density = voice.density(80.0, density_cap(voice, 'arp_density_cap'))
        octave = 4 if params.octaves <= 2 else 3
        extensions = ('7',) if voice.intensity >= 60 else ()
        level = 0.55 + 0.25 * voice.intensity / 100.0
        # Seeded starting tone within the traversal
        index = int(rng.integers(0, 16))

        for bar in range(voice.bars):
            root = voice.root_midi(octave)
            offsets = chord_from_degree(voice.scale, voice.chord_degree(bar), extensions)
            order = self.sequence(params.pattern, offsets, params.octaves)
            for step in range(steps_per_bar):
                tick = bar * TICKS_PER_BAR + step * step_ticks + (swing if step % 2 else 0)
                if chance(rng, density):
                    velocity = jitter(rng, level, 0.06)
                    if params.pattern == 'chord':
                        for offset in offsets:
                            yield NoteEvent(midi_to_note_name(root + offset), tick, duration, velocity)
                    else:
                        if params.pattern == 'random':
                            offset = int(rng.choice(order))
                        else:
                            offset = order[index % len(order)]
                        yield NoteEvent(midi_to_note_name(root + offset), tick, duration, velocity)
                index += 1


class PluckGenerator(PatternGenerator):
    """Short plucked notes on a sixteenth grid, random-walking the scale."""

    tension_capable = True

    @property
    def instrument(self) -> str:
        return 'pluck'

    @property
    def params_type(self):
        return PluckParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: PluckParams = voice.params
        density = voice.density(params.density)
        duration = TICKS_PER_8TH if params.decay > 500 else TICKS_PER_16TH
        filter_hz = 800.0 + params.brightness * 80.0
        degree = int(rng.integers(0, 5))
        for bar in range(voice.bars):
            for step in range(16):
                # Offbeat sixteenths are favoured
                weight = 1.0 if step % 4 else 0.6
                if not chance(rng, density * weight):
                    continue
                degree = walk(rng, degree, params.variation, (0, 9))
                pitch = degree_to_midi(voice, degree, params.octave)
                yield NoteEvent(midi_to_note_name(pitch), voice.grid_tick(bar, step), duration,
                                jitter(rng, 0.6 + 0.2 * (step % 4 == 2), 0.07), filter_hz=filter_hz)


class StabGenerator(PatternGenerator):
    """Chord stabs on the offbeats."""

    @property
    def instrument(self) -> str:
        return 'stab'

    @property
    def params_type(self):
        return StabParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: StabParams = voice.params
        steps = (2, 6, 10, 14)
        if voice.context.groove == GrooveType.SYNCOPATED:
            steps = (3, 6, 11, 14)
        extensions: Tuple[str, ...] = ()
        if params.voices >= 5:
            extensions = ('7', '9')
        elif params.voices >= 4:
            extensions = ('7',)
        duration = TICKS_PER_8TH if params.release > 300 else TICKS_PER_16TH
        density = voice.density(params.density)

        for bar in range(voice.bars):
            tones = chord_midi(voice, voice.chord_degree(bar), 4, extensions)[:params.voices]
            for step in steps:
                if not chance(rng, density):
                    continue
                velocity = jitter(rng, 0.7, 0.08)
                tick = voice.grid_tick(bar, step)
                for pitch in tones:
                    yield NoteEvent(midi_to_note_name(pitch), tick, duration, velocity,
                                    filter_hz=float(params.filter_cutoff))


class PianoGenerator(PatternGenerator):
    """Half-note chords on the bar with a sparse top line."""

    @property
    def instrument(self) -> str:
        return 'piano'

    @property
    def params_type(self):
        return PianoParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: PianoParams = voice.params
        level = params.velocity / 100.0
        density = voice.density(params.density)
        chord_octave = max(2, params.octave - 1)
        degree = 4
        for bar in range(voice.bars):
            chord_degree = voice.chord_degree(bar)
            tick = bar * TICKS_PER_BAR
            velocity = jitter(rng, level * 0.85, 0.05)
            for pitch in chord_midi(voice, chord_degree, chord_octave):
                yield NoteEvent(midi_to_note_name(pitch), tick, 2 * TICKS_PER_BEAT, velocity)
            for slot in range(1, 8):
                if not chance(rng, density * 0.6):
                    continue
                degree = walk(rng, degree, 30.0, (0, 9))
                pitch = degree_to_midi(voice, degree, params.octave)
                yield NoteEvent(midi_to_note_name(pitch), tick + slot * TICKS_PER_8TH,
                                TICKS_PER_8TH, jitter(rng, level * 0.7, 0.08))


class StringsGenerator(PatternGenerator):
    """
    Sustained string chords.

    Chords normally last two bars; `variation` is the chance that a block
    changes chord after a single bar instead. Each chord gets a seeded
    inversion, and enters on the downbeat with a probability set by
    `density`, otherwise swelling in a beat or two late.
    """

    @property
    def instrument(self) -> str:
        return 'strings'

    @property
    def params_type(self):
        return StringsParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: StringsParams = voice.params
        extensions = ('7',) if params.ensemble > 50 else ()
        level = 0.45 + 0.3 * voice.intensity / 100.0
        on_beat = voice.density(params.density)
        bar = 0
        while bar < voice.bars:
            span = 1 if chance(rng, params.variation / 100.0) else 2
            span = min(span, voice.bars - bar)
            degree = voice.chord_degree(bar, span)
            inversion = int(rng.integers(0, 3))
            tones = voiced_chord(voice, degree, params.octave, extensions, inversion)
            delay = 0 if chance(rng, on_beat) else int(rng.integers(1, 3)) * TICKS_PER_BEAT
            start = bar * TICKS_PER_BAR + delay
            velocity = jitter(rng, level * (1.0 if delay == 0 else 0.85), 0.05)
            for pitch in tones:
                yield NoteEvent(midi_to_note_name(pitch), start, span * TICKS_PER_BAR - delay,
                                velocity, articulation='legato' if delay == 0 else 'swell')
            bar += span


class AcidGenerator(PatternGenerator):
    """Sixteenth-note acid line with accents and slides."""

    tension_capable = True

    @property
    def instrument(self) -> str:
        return 'acid'

    @property
    def params_type(self):
        return AcidParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: AcidParams = voice.params
        density = voice.density(params.density)
        onsets: List[Tuple[int, int]] = []
        degree = 0
        for bar in range(voice.bars):
            for step in range(16):
                if chance(rng, density):
                    degree = walk(rng, degree, params.variation, (-2, 7))
                    onsets.append((voice.grid_tick(bar, step), degree))

        section_end = voice.bars * TICKS_PER_BAR
        for i, (tick, degree) in enumerate(onsets):
            following = onsets[i + 1][0] if i + 1 < len(onsets) else section_end
            accent = chance(rng, params.accent / 100.0)
            slide = chance(rng, params.slide / 100.0)
            if slide:
                duration = following - tick + TICKS_PER_16TH // 2
            else:
                duration = min(following - tick, TICKS_PER_16TH)
            env = 1.0 if accent else 0.3
            yield NoteEvent(
                midi_to_note_name(degree_to_midi(voice, degree, params.octave)),
                tick,
                max(1, duration),
                jitter(rng, 0.95 if accent else 0.7, 0.04),
                filter_hz=round(params.cutoff * (1.0 + params.env_mod / 100.0 * env * 4.0), 1),
                articulation='slide' if slide else ('accent' if accent else None),
            )
