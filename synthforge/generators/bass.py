"""Bass generator - root/fifth lines with density and glide control."""
from typing import Dict, Iterator, List, Tuple

import numpy as np

from .base import PatternGenerator, Voice, chance, jitter
from ..config import BassMovement, BassParams, GrooveType
from ..events import NoteEvent
from ..utils import (
    TICKS_PER_16TH,
    TICKS_PER_8TH,
    TICKS_PER_BAR,
    clamp,
    fifth_degree,
    midi_to_note_name,
    scale_intervals,
)


# Candidate sixteenth steps per bass type
BASS_SLOTS: Dict[str, Tuple[int, ...]] = {
    'sub': (0, 2, 4, 6, 8, 10, 12, 14),
    'reese': (0, 2, 4, 6, 8, 10, 12, 14),
    'analog': (0, 2, 4, 6, 8, 10, 12, 14),
    'pluck': (2, 6, 10, 14, 3, 7, 11, 15),
    'rolling': (1, 2, 3, 5, 6, 7, 9, 10, 11, 13, 14, 15),
    'acid': tuple(range(16)),
}
SYNCOPATED_SLOTS = (0, 3, 6, 10, 13)

# Offbeat eighths are placed first so sparse lines still pump against the kick
OFFBEAT_STEPS = (2, 6, 10, 14)

FIFTH_CHANCE = 0.25
OCTAVE_CHANCE = 0.1


class BassGenerator(PatternGenerator):
    """
    Bass line on the scale root and fifth.

    `density` sets how many candidate slots sound per bar and `glide`
    stretches each note past the next onset so the backend slides between
    them. Under a `filter_only` rule the line is one sustained root per
    bar and all movement goes into the filter target.
    """

    @property
    def instrument(self) -> str:
        return 'bass'

    @property
    def params_type(self):
        return BassParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: BassParams = voice.params
        octave = int(clamp(2 + params.octave, 0, 4))
        root = voice.root_midi(octave)
        fifth = root + scale_intervals(voice.scale)[fifth_degree(voice.scale)]

        rules = voice.context.rules
        if rules is not None and rules.bass_movement == BassMovement.FILTER_ONLY:
            yield from self._sustained(voice, rng, root)
            return

        onsets = self._onsets(voice, rng)
        overlap = int(round(TICKS_PER_16TH * params.glide / 100.0))
        section_end = voice.bars * TICKS_PER_BAR

        for i, tick in enumerate(onsets):
            following = onsets[i + 1] if i + 1 < len(onsets) else min(section_end, tick + TICKS_PER_8TH)
            gap = following - tick
            if overlap > 0:
                duration = gap + overlap
            else:
                duration = max(TICKS_PER_16TH // 2, int(min(gap, TICKS_PER_8TH) * 0.9))

            pitch = root
            roll = rng.random()
            if roll < FIFTH_CHANCE:
                pitch = fifth
            elif roll < FIFTH_CHANCE + OCTAVE_CHANCE:
                pitch = root + 12
            downbeat = tick % TICKS_PER_BAR == 0
            yield NoteEvent(
                midi_to_note_name(pitch), tick, duration,
                jitter(rng, 0.78 if downbeat else 0.7, 0.08),
                filter_hz=float(params.cutoff),
                articulation='glide' if overlap > 0 else None,
            )

    def _slots(self, voice: Voice) -> List[int]:
        if voice.context.groove == GrooveType.SYNCOPATED:
            return list(SYNCOPATED_SLOTS)
        slots = BASS_SLOTS[voice.params.type]
        preferred = [s for s in OFFBEAT_STEPS if s in slots]
        return preferred + [s for s in slots if s not in preferred]

    def _onsets(self, voice: Voice, rng: np.random.Generator) -> List[int]:
        slots = self._slots(voice)
        density = voice.density(voice.params.density)
        count = int(clamp(round(len(slots) * density), 1, len(slots)))
        onsets: List[int] = []
        for bar in range(voice.bars):
            # Keep the preferred slots, shuffle in extras from the rest
            fixed = slots[:min(count, len(OFFBEAT_STEPS))]
            rest = slots[len(fixed):]
            extra = count - len(fixed)
            chosen = list(fixed)
            if extra > 0:
                chosen += [int(s) for s in rng.choice(rest, size=extra, replace=False)]
            elif len(fixed) > 1 and chance(rng, 0.3):
                chosen[int(rng.integers(len(chosen)))] = int(rng.choice(slots))
            onsets += sorted({voice.grid_tick(bar, step) for step in chosen})
        return onsets

    def _sustained(self, voice: Voice, rng: np.random.Generator, root: int) -> Iterator[NoteEvent]:
        cutoff = float(voice.params.cutoff)
        for bar in range(voice.bars):
            sweep = cutoff * (0.6 + 0.8 * rng.random())
            yield NoteEvent(midi_to_note_name(root), bar * TICKS_PER_BAR, TICKS_PER_BAR,
                            jitter(rng, 0.72, 0.05), filter_hz=round(sweep, 1),
                            articulation='filter')
