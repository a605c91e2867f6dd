"""Texture generators - pads, vocal pads and one-shot FX."""
from typing import Dict, Iterator, List, Tuple

import numpy as np

from .base import PatternGenerator, Voice, chance, jitter
from ..config import FxParams, PadParams, SectionType, VocalParams
from ..events import NoteEvent
from ..utils import TICKS_PER_BAR, TICKS_PER_BEAT, chord_from_degree, clamp, midi_to_note_name


# Pad chord types mapped to scale-chord extensions. Quality comes from the
# scale itself so every voicing stays diatonic; 'dim' and 'aug' are voiced
# as plain scale triads.
PAD_CHORD_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    'minor': (),
    'major': (),
    'dim': (),
    'aug': (),
    'sus2': ('sus2',),
    'sus4': ('sus4',),
    'minor7': ('7',),
    'add9': ('9',),
}

VOCAL_PHRASE_BARS = 4
VOCAL_PHRASE_CHOICES = (2, 4)
FX_PHRASE_BARS = 8
VOCAL_OCTAVES = {'female': (4,), 'male': (3,), 'both': (3, 4)}


def voiced_chord(voice: Voice, degree: int, octave: int, extensions: Tuple[str, ...],
                 inversion: int = 0) -> List[int]:
    """Chord tones in MIDI, with the lowest `inversion` tones raised an octave."""
    root = voice.root_midi(octave)
    tones = [root + offset for offset in chord_from_degree(voice.scale, degree, extensions)]
    for i in range(min(inversion, len(tones) - 1)):
        tones[i] += 12
    return sorted(tones)


class PadGenerator(PatternGenerator):
    """
    Sustained chords following the progression.

    Chords change every bar when `movement` is high and every two bars
    otherwise, each held until the next change.
    """

    @property
    def instrument(self) -> str:
        return 'pad'

    @property
    def params_type(self):
        return PadParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: PadParams = voice.params
        bars_per_chord = 1 if params.movement >= 50 else 2
        extensions = PAD_CHORD_EXTENSIONS[params.chord]
        level = 0.4 + 0.3 * params.brightness / 100.0
        for bar in range(0, voice.bars, bars_per_chord):
            inversion = int(rng.integers(0, 2)) if params.movement > 0 else 0
            tones = voiced_chord(voice, voice.chord_degree(bar, bars_per_chord), 3, extensions, inversion)
            velocity = jitter(rng, level, 0.05)
            for pitch in tones:
                yield NoteEvent(midi_to_note_name(pitch), bar * TICKS_PER_BAR,
                                bars_per_chord * TICKS_PER_BAR, velocity,
                                filter_hz=float(params.filter_cutoff))


class VocalGenerator(PatternGenerator):
    """
    Wordless vocal pads.

    Phrases last two or four bars and may come in a beat late. Choirs
    sing the full chord; solo voices pick two chord tones per phrase.
    """

    @property
    def instrument(self) -> str:
        return 'vocal'

    @property
    def params_type(self):
        return VocalParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: VocalParams = voice.params
        level = 0.35 + 0.4 * params.mix / 100.0
        bar = 0
        while bar < voice.bars:
            span = min(int(rng.choice(VOCAL_PHRASE_CHOICES)), voice.bars - bar)
            offsets = chord_from_degree(voice.scale, voice.chord_degree(bar, VOCAL_PHRASE_BARS))
            if params.type != 'choir':
                # Root or third, always with the fifth on top
                offsets = (offsets[int(rng.integers(0, 2))], offsets[-1])
            entry = int(rng.integers(0, 2)) * TICKS_PER_BEAT
            start = bar * TICKS_PER_BAR + entry
            velocity = jitter(rng, level, 0.05)
            for octave in VOCAL_OCTAVES[params.gender]:
                root = voice.root_midi(octave)
                for offset in offsets:
                    yield NoteEvent(midi_to_note_name(root + offset), start,
                                    span * TICKS_PER_BAR - entry, velocity,
                                    articulation=params.type)
            bar += span


class FxGenerator(PatternGenerator):
    """
    Transition one-shots.

    Risers fill the end of a section that leads into a drop, impacts land
    on the first downbeat of a drop. Other sections get the configured
    FX type: sweeps once per eight-bar phrase, textures and atmospheres
    held in four- or eight-bar swells. The seeded stream picks riser
    length, sweep placement and which later phrases get another impact.
    """

    @property
    def instrument(self) -> str:
        return 'fx'

    @property
    def params_type(self):
        return FxParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: FxParams = voice.params
        filter_hz = 2000.0 + params.filter / 100.0 * 12000.0
        level = clamp(0.4 + 0.5 * params.intensity / 100.0, 0.0, 1.0)
        section = voice.section.type
        leads_into_drop = (section == SectionType.BUILDUP
                           or voice.context.next_section_type == SectionType.DROP)
        riser = leads_into_drop or (params.type == 'riser' and section != SectionType.DROP)
        riser_bars = (4 if params.duration >= 4000 else 2) * int(rng.choice((1, 2)))
        riser_start = voice.bars - min(voice.bars, riser_bars) if riser else voice.bars

        if section == SectionType.DROP or (params.type == 'impact' and not leads_into_drop):
            yield NoteEvent(None, 0, TICKS_PER_BAR, jitter(rng, level, 0.04),
                            filter_hz=filter_hz, articulation='impact')
            for bar in range(FX_PHRASE_BARS, riser_start, FX_PHRASE_BARS):
                if chance(rng, 0.25 + 0.5 * params.intensity / 100.0):
                    yield NoteEvent(None, bar * TICKS_PER_BAR, TICKS_PER_BAR,
                                    jitter(rng, level * 0.85, 0.04),
                                    filter_hz=filter_hz, articulation='impact')
        elif params.type == 'sweep' and not leads_into_drop:
            for phrase in range(0, voice.bars, FX_PHRASE_BARS):
                length = min(FX_PHRASE_BARS, voice.bars - phrase)
                start = phrase + int(rng.integers(0, max(1, length - 1)))
                yield NoteEvent(None, start * TICKS_PER_BAR, min(2, voice.bars - start) * TICKS_PER_BAR,
                                jitter(rng, level, 0.05), filter_hz=filter_hz, articulation='sweep')
        elif params.type in ('texture', 'atmosphere') and not leads_into_drop:
            bar = 0
            while bar < voice.bars:
                span = min(int(rng.choice((4, FX_PHRASE_BARS))), voice.bars - bar)
                yield NoteEvent(None, bar * TICKS_PER_BAR, span * TICKS_PER_BAR,
                                jitter(rng, level * 0.8, 0.05),
                                filter_hz=filter_hz, articulation=params.type)
                bar += span

        if riser:
            yield NoteEvent(None, riser_start * TICKS_PER_BAR, (voice.bars - riser_start) * TICKS_PER_BAR,
                            jitter(rng, level, 0.04), filter_hz=filter_hz, articulation='riser')
