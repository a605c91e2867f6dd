"""
Goosebumps Humanization - micro-timing, tension notes and exotic one-shots.

All helpers read a small GoosebumpsConfig and have no effect while it is
disabled. Randomness always comes from the caller's seeded generator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np

from .events import NoteEvent
from .utils import (
    TICKS_PER_BAR,
    TICKS_PER_BEAT,
    ScaleLike,
    clamp,
    midi_to_note_name,
    normalize_key,
    note_name_to_midi,
    scale_intervals,
)


class ExoticFxType(Enum):
    """One-shot ear-catching effects."""
    METAL_SCRAPE = "metal_scrape"
    BREATH = "breath"
    REVERSE_IMPACT = "reverse_impact"
    RITUAL_HIT = "ritual_hit"
    NONE = "none"


# Synthesis targets for each exotic FX
EXOTIC_FX_PRESETS: Dict[ExoticFxType, Dict[str, Union[str, float]]] = {
    ExoticFxType.METAL_SCRAPE: {
        'type': 'noise_resonant', 'filter_freq': 800, 'filter_q': 15, 'decay': 2.5, 'reverb': 0.7,
    },
    ExoticFxType.BREATH: {
        'type': 'noise_formant', 'filter_freq': 1200, 'filter_q': 3, 'decay': 1.5, 'reverb': 0.6,
    },
    ExoticFxType.REVERSE_IMPACT: {
        'type': 'reverse_envelope', 'filter_freq': 600, 'filter_q': 2, 'decay': 3.0, 'reverb': 0.8,
    },
    ExoticFxType.RITUAL_HIT: {
        'type': 'low_impact', 'filter_freq': 200, 'filter_q': 1, 'decay': 4.0, 'reverb': 0.5,
    },
}

# Fraction of the micro-timing window applied per instrument.
# The kick anchors the groove and is never jittered.
MICRO_TIMING_SCALE: Dict[str, float] = {
    'hihat': 1.0,
    'perc': 0.8,
    'bass': 0.5,
    'kick': 0.0,
}
DEFAULT_MICRO_TIMING_SCALE = 0.3

MICRO_TIMING_RANGE = (5.0, 30.0)

PLACEMENT_MARKERS = ('breakdown', 'pre_drop', 'post_drop')

PlacementMarker = Union[int, str]


@dataclass
class GoosebumpsConfig:
    """Process-wide humanization switches, toggled from the UI."""
    enabled: bool = False
    micro_timing_ms: float = 15.0
    exotic_fx_type: ExoticFxType = ExoticFxType.NONE
    exotic_fx_placements: List[PlacementMarker] = field(default_factory=list)
    tension_notes_enabled: bool = False
    tension_amount: float = 20.0  # 0-100

    @property
    def window_ms(self) -> float:
        return clamp(float(self.micro_timing_ms), *MICRO_TIMING_RANGE)


@dataclass
class NotePosition:
    """Where a candidate note sits, for tension-note decisions."""
    section_type: str
    tick: int

    @property
    def is_downbeat(self) -> bool:
        return self.tick % TICKS_PER_BEAT == 0


def micro_timing_offset(
    config: GoosebumpsConfig,
    rng: np.random.Generator,
    instrument: str = 'hihat',
) -> float:
    """
    Signed timing offset in milliseconds within +/- the configured window.

    Returns 0.0 when goosebumps mode is off or the instrument is not jittered.
    """
    if not config.enabled:
        return 0.0
    window = config.window_ms * MICRO_TIMING_SCALE.get(instrument, DEFAULT_MICRO_TIMING_SCALE)
    if window <= 0:
        return 0.0
    return float(rng.uniform(-window, window))


def should_inject_tension_note(
    config: GoosebumpsConfig,
    position: NotePosition,
    rng: np.random.Generator,
) -> bool:
    """Low-probability coin flip for a chromatic passing tone."""
    if not (config.enabled and config.tension_notes_enabled):
        return False
    if position.section_type == 'drop' and position.is_downbeat:
        return False
    probability = clamp(config.tension_amount, 0.0, 100.0) / 100.0 * 0.25
    return bool(rng.random() < probability)


def tension_note_for(scale: ScaleLike, key: str, octave: int = 3) -> str:
    """
    A chromatic tone just outside the scale: b2 or #4 above the root when
    those are not scale members, otherwise the nearest non-scale pitch class.
    """
    intervals = set(scale_intervals(scale))
    candidates = [1, 6] + [i for i in range(1, 12) if i not in (1, 6)]
    offset = next((i for i in candidates if i not in intervals), 1)
    root_midi = note_name_to_midi(normalize_key(key), octave)
    return midi_to_note_name(root_midi + offset)


def _placement_matches(
    marker: PlacementMarker,
    section_type: str,
    section_index: int,
    next_type: Optional[str],
    prev_type: Optional[str],
) -> bool:
    if isinstance(marker, int):
        return marker == section_index
    if marker == 'breakdown':
        return section_type == 'breakdown'
    if marker == 'pre_drop':
        return next_type == 'drop' and section_type != 'drop'
    if marker == 'post_drop':
        return prev_type == 'drop' and section_type != 'drop'
    return False


def exotic_fx_placement(
    config: GoosebumpsConfig,
    section_type: str,
    section_index: int = 0,
    bars: int = 8,
    next_type: Optional[str] = None,
    prev_type: Optional[str] = None,
) -> Optional[NoteEvent]:
    """
    Decide whether a section gets its (single) exotic one-shot, and where.

    Reverse impacts land on the last bar so they suck into what follows,
    ritual hits on the first, scrapes and breaths mid-section.
    """
    if not config.enabled or config.exotic_fx_type == ExoticFxType.NONE:
        return None
    if not any(_placement_matches(m, section_type, section_index, next_type, prev_type)
               for m in config.exotic_fx_placements):
        return None

    fx_type = config.exotic_fx_type
    if fx_type == ExoticFxType.REVERSE_IMPACT:
        bar = max(0, bars - 1)
    elif fx_type == ExoticFxType.RITUAL_HIT:
        bar = 0
    else:
        bar = bars // 2
    preset = EXOTIC_FX_PRESETS[fx_type]
    return NoteEvent(
        note=None,
        tick=bar * TICKS_PER_BAR,
        duration_ticks=TICKS_PER_BAR,
        velocity=0.7,
        filter_hz=float(preset['filter_freq']),
        articulation=fx_type.value,
    )


def should_have_micro_silence(section_type: str, next_type: Optional[str]) -> bool:
    """A breath gap belongs at the end of a buildup that leads into a drop."""
    return section_type == 'buildup' and next_type == 'drop'


def parse_placements(markers: List[PlacementMarker]) -> List[PlacementMarker]:
    """Keep valid markers: section indices and the known placement names."""
    result: List[PlacementMarker] = []
    for marker in markers:
        if isinstance(marker, bool):
            continue
        if isinstance(marker, int) and marker >= 0:
            result.append(marker)
        elif isinstance(marker, str) and marker in PLACEMENT_MARKERS:
            result.append(marker)
    return result


__all__ = [
    'ExoticFxType',
    'EXOTIC_FX_PRESETS',
    'GoosebumpsConfig',
    'NotePosition',
    'micro_timing_offset',
    'should_inject_tension_note',
    'tension_note_for',
    'exotic_fx_placement',
    'should_have_micro_silence',
    'parse_placements',
]
