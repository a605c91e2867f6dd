"""Drum family generators - kick, hi-hats and percussion."""
from typing import Dict, Iterator, List, Tuple

import numpy as np

from .base import PatternGenerator, Voice, chance, jitter
from ..config import GrooveType, HiHatParams, KickParams, PercParams
from ..events import NoteEvent
from ..utils import (
    BEATS_PER_BAR,
    TICKS_PER_16TH,
    TICKS_PER_8TH,
    TICKS_PER_BAR,
    TICKS_PER_BEAT,
    clamp,
)


# Hi-hat templates as sixteenth steps within a bar
HIHAT_TEMPLATES: Dict[str, Tuple[int, ...]] = {
    'straight': (0, 2, 4, 6, 8, 10, 12, 14),
    'offbeat': (2, 6, 10, 14),
    'shuffle': (2, 5, 6, 10, 13, 14),
    'complex': (0, 2, 3, 4, 6, 7, 8, 10, 11, 12, 14, 15),
    'minimal': (2, 10),
    'rolling': tuple(range(16)),
}

# Groove-specific replacements for the plain templates
HIHAT_GROOVE_TEMPLATES: Dict[GrooveType, Tuple[int, ...]] = {
    GrooveType.SYNCOPATED: (2, 3, 6, 10, 11, 14),
    GrooveType.BROKEN: (0, 3, 6, 10, 12, 15),
}

# Percussion templates; 'fill' adds a roll in the last bar of each phrase
PERC_TEMPLATES: Dict[str, Tuple[int, ...]] = {
    'sparse': (12,),
    'regular': (4, 12),
    'busy': (4, 7, 12, 14),
    'fill': (4, 12),
}
PERC_FILL_STEPS = (8, 10, 12, 13, 14, 15)
PHRASE_BARS = 4

# Below this intensity the kick thins out off the downbeat
SPARSE_KICK_INTENSITY = 50


def keeps_hit(voice: Voice, rng: np.random.Generator) -> bool:
    """Seeded template thinning: quieter sections play fewer of their steps."""
    return chance(rng, voice.intensity / 100.0 * 1.2)


class KickGenerator(PatternGenerator):
    """
    Four-on-the-floor kick.

    One hit per beat; at very high intensity with a hard punch, half-beat
    ghost hits double the pulse. Below half intensity the seeded stream
    drops some of beats 2-4, but the bar downbeat always plays.
    """

    @property
    def instrument(self) -> str:
        return 'kick'

    @property
    def params_type(self):
        return KickParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: KickParams = voice.params
        half_beat = voice.intensity >= 90 and params.punch >= 85
        base_velocity = 0.55 + params.punch / 100.0 * 0.3 + params.drive / 100.0 * 0.15
        ghost_velocity = base_velocity * 0.55
        broken = voice.context.groove == GrooveType.BROKEN

        for bar in range(voice.bars):
            for beat in range(BEATS_PER_BAR):
                if voice.intensity < SPARSE_KICK_INTENSITY and beat != 0 and not chance(rng, 0.6):
                    continue
                tick = bar * TICKS_PER_BAR + beat * TICKS_PER_BEAT
                accent = 0.04 if beat == 0 else 0.0
                yield NoteEvent(None, tick, TICKS_PER_8TH, jitter(rng, base_velocity + accent, 0.03))
                if half_beat:
                    yield NoteEvent(None, tick + TICKS_PER_8TH, TICKS_PER_16TH,
                                    jitter(rng, ghost_velocity, 0.03), articulation='ghost')
                elif broken and beat == 2 and chance(rng, 0.3):
                    yield NoteEvent(None, tick + 3 * TICKS_PER_16TH, TICKS_PER_16TH,
                                    jitter(rng, ghost_velocity, 0.03), articulation='ghost')


class HiHatGenerator(PatternGenerator):
    """
    Fixed-template hats; velocity and pitch shape amplitude and filter only.

    Below roughly 85 intensity the seeded stream leaves out some template
    hits, so timing varies with the seed but never with the knobs.
    """

    @property
    def instrument(self) -> str:
        return 'hihat'

    @property
    def aliases(self) -> List[str]:
        return ['hats', 'openhat']

    @property
    def params_type(self):
        return HiHatParams

    @staticmethod
    def template(pattern: str, groove: GrooveType) -> Tuple[int, ...]:
        if pattern in ('straight', 'offbeat') and groove in HIHAT_GROOVE_TEMPLATES:
            return HIHAT_GROOVE_TEMPLATES[groove]
        return HIHAT_TEMPLATES[pattern]

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: HiHatParams = voice.params
        steps = self.template(params.pattern, voice.context.groove)
        level = params.velocity / 100.0 * (0.7 + 0.3 * voice.intensity / 100.0)
        filter_hz = 6000.0 + params.pitch / 100.0 * 8000.0
        open_chance = params.open_ratio / 100.0
        closed_ticks = max(TICKS_PER_16TH // 2, int(TICKS_PER_16TH * (0.3 + params.decay / 100.0)))

        for bar in range(voice.bars):
            for step in steps:
                if not keeps_hit(voice, rng):
                    continue
                tick = voice.grid_tick(bar, step)
                offbeat = step % 4 == 2
                velocity = level * (1.0 if offbeat else 0.75)
                if offbeat and chance(rng, open_chance):
                    yield NoteEvent(None, tick, TICKS_PER_8TH, jitter(rng, velocity, 0.06),
                                    filter_hz=filter_hz, articulation='open')
                else:
                    yield NoteEvent(None, tick, closed_ticks, jitter(rng, velocity, 0.08),
                                    filter_hz=filter_hz, articulation='closed')


class PercGenerator(PatternGenerator):
    """Claps, snares, rims, shakers and toms on fixed templates."""

    @property
    def instrument(self) -> str:
        return 'perc'

    @property
    def params_type(self):
        return PercParams

    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        params: PercParams = voice.params
        base = PERC_TEMPLATES[params.pattern]
        filter_hz = 1000.0 + params.pitch / 100.0 * 7000.0
        duration = int(clamp(TICKS_PER_16TH * (0.5 + params.decay / 50.0), TICKS_PER_16TH // 2,
                             TICKS_PER_BEAT))
        level = 0.65 + 0.25 * voice.intensity / 100.0

        for bar in range(voice.bars):
            steps = base
            if params.pattern == 'fill' and bar % PHRASE_BARS == PHRASE_BARS - 1:
                steps = tuple(sorted(set(base) | set(PERC_FILL_STEPS)))
            for step in steps:
                if not keeps_hit(voice, rng):
                    continue
                tick = voice.grid_tick(bar, step)
                accent = 1.0 if step in (4, 12) else 0.8
                yield NoteEvent(None, tick, min(duration, TICKS_PER_BAR - step * TICKS_PER_16TH),
                                jitter(rng, level * accent, 0.07),
                                filter_hz=filter_hz, articulation=params.type)
