"""
Section Arranger Module

Walks the ordered section list, runs the enabled generators for each
section and lays the results out on one continuous timeline.

Cross-instrument rules applied here:
- Blueprint allowed-layers intersect the section's own enable flags
- A layer cap keeps only the highest-priority layers of a section
- An optional one-beat rest before every drop
- A ceiling on every filter target (high-end limit)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

import numpy as np

from .config import (
    INSTRUMENTS,
    LAYER_PRIORITY,
    GlobalRules,
    SectionConfig,
    SectionType,
    TrackConfig,
)
from .events import NoteEvent
from .generators import GenerationContext, GeneratorRegistry
from .humanize import exotic_fx_placement, should_have_micro_silence
from .utils import TICKS_PER_8TH, TICKS_PER_BAR, TICKS_PER_BEAT, seed_entropy, ticks_to_seconds

logger = logging.getLogger(__name__)

EXOTIC_FX_STREAM = 'exotic_fx'


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class SectionPlan:
    """Where a section landed on the timeline and what played in it."""
    index: int
    type: SectionType
    start_bar: int
    bars: int
    intensity: int
    layers: Tuple[str, ...]
    dropped_layers: Tuple[str, ...] = ()
    seed: int = 0

    @property
    def start_tick(self) -> int:
        return self.start_bar * TICKS_PER_BAR

    @property
    def end_tick(self) -> int:
        return (self.start_bar + self.bars) * TICKS_PER_BAR


@dataclass
class Composition:
    """Complete event timeline for a track."""
    events: Dict[str, List[NoteEvent]]
    sections: List[SectionPlan]
    total_bars: int
    bpm: int
    key: str = 'A'
    base_seed: int = 0
    rules: Optional[GlobalRules] = field(default=None, repr=False)

    @property
    def end_tick(self) -> int:
        return self.total_bars * TICKS_PER_BAR

    def duration_seconds(self) -> float:
        return ticks_to_seconds(self.end_tick, self.bpm)

    def events_in_section(self, instrument: str, index: int) -> List[NoteEvent]:
        plan = self.sections[index]
        return [e for e in self.events.get(instrument, [])
                if plan.start_tick <= e.tick < plan.end_tick]

    def active_instruments(self) -> List[str]:
        return [name for name, events in self.events.items() if events]

    def event_count(self) -> int:
        return sum(len(events) for events in self.events.values())


# =============================================================================
# SEEDING
# =============================================================================

def derive_seed(base_seed: int, section_index: int, instrument: str) -> int:
    """
    Per-(section, instrument) seed.

    Depends only on the section's position and the instrument, so editing
    one section leaves every other section's material unchanged.
    """
    instrument_index = INSTRUMENTS.index(instrument) if instrument in INSTRUMENTS else len(INSTRUMENTS)
    sequence = np.random.SeedSequence([seed_entropy(base_seed), section_index, instrument_index])
    return int(sequence.generate_state(1)[0])


# =============================================================================
# LAYER SELECTION
# =============================================================================

def effective_layers(section: SectionConfig,
                     rules: Optional[GlobalRules] = None) -> Tuple[List[str], List[str]]:
    """
    Layers that will play in a section, and the layers the cap removed.

    The section's enable flags are intersected with blueprint allowed-layers,
    then cut to `max_simultaneous_layers` keeping the highest priority.
    """
    enabled = [name for name in LAYER_PRIORITY if section.has(name)]
    if section.allowed_layers is not None:
        enabled = [name for name in enabled if name in section.allowed_layers]
    if rules is None or len(enabled) <= rules.max_simultaneous_layers:
        return enabled, []
    cap = max(0, int(rules.max_simultaneous_layers))
    return enabled[:cap], enabled[cap:]


# =============================================================================
# ARRANGER
# =============================================================================

class Arranger:
    """
    Turns a TrackConfig into a Composition.

    Runs synchronously to completion; nothing here touches I/O, so a
    whole track is ready ahead of playback.
    """

    def __init__(self, registry=GeneratorRegistry):
        self.registry = registry

    def compose(self, config: TrackConfig, base_seed: int = 0,
                rules: Optional[GlobalRules] = None) -> Composition:
        """
        Generate every section and apply cross-instrument rules.

        Args:
            config: Track configuration (not modified)
            base_seed: Seed every per-section seed is derived from
            rules: Global rules; falls back to config.rules

        Returns:
            Composition with one time-ordered event list per instrument

        Raises:
            ConfigurationError: invalid sections, scale, key, style or groove
        """
        config.validate()
        rules = rules if rules is not None else config.rules
        streams: Dict[str, List[NoteEvent]] = {name: [] for name in INSTRUMENTS}
        streams[EXOTIC_FX_STREAM] = []
        plans: List[SectionPlan] = []
        start_bar = 0

        for index, section in enumerate(config.sections):
            layers, dropped = effective_layers(section, rules)
            if dropped:
                logger.debug("Section %d (%s): layer cap dropped %s",
                             index, section.type.value, ', '.join(dropped))
            context = GenerationContext.for_section(config, index, rules)
            offset = start_bar * TICKS_PER_BAR

            for instrument in layers:
                generator = self.registry.require(instrument)
                sequence = generator.generate(
                    section, config.key, config.scale,
                    config.instrument_params(instrument),
                    derive_seed(base_seed, index, instrument),
                    context,
                )
                streams[instrument].extend(replace(e, tick=e.tick + offset) for e in sequence)

            fx = exotic_fx_placement(
                config.goosebumps, section.type.value, index, section.bars,
                context.next_section_type.value if context.next_section_type else None,
                context.prev_section_type.value if context.prev_section_type else None,
            )
            if fx is not None:
                streams[EXOTIC_FX_STREAM].append(replace(fx, tick=fx.tick + offset))

            plans.append(SectionPlan(
                index=index,
                type=section.type,
                start_bar=start_bar,
                bars=section.bars,
                intensity=section.intensity,
                layers=tuple(layers),
                dropped_layers=tuple(dropped),
                seed=derive_seed(base_seed, index, ''),
            ))
            start_bar += section.bars

        for start, end in self._silence_windows(config, plans, rules):
            for name in streams:
                streams[name] = silence(streams[name], start, end)

        if rules is not None:
            for name in streams:
                streams[name] = limit_high_end(streams[name], rules.high_end_limit_hz)

        for events in streams.values():
            events.sort(key=lambda e: e.tick)

        composition = Composition(
            events=streams,
            sections=plans,
            total_bars=start_bar,
            bpm=config.bpm,
            key=config.key,
            base_seed=base_seed,
            rules=rules,
        )
        logger.info("Composed %d bars, %d sections, %d events",
                    composition.total_bars, len(plans), composition.event_count())
        return composition

    @staticmethod
    def _silence_windows(config: TrackConfig, plans: List[SectionPlan],
                         rules: Optional[GlobalRules]) -> List[Tuple[int, int]]:
        windows = []
        for i, plan in enumerate(plans):
            if i == 0 or plan.type != SectionType.DROP:
                continue
            gap = 0
            if rules is not None and rules.silence_before_drop:
                gap = TICKS_PER_BEAT
            elif config.goosebumps.enabled and should_have_micro_silence(
                    plans[i - 1].type.value, plan.type.value):
                gap = TICKS_PER_8TH
            if gap:
                windows.append((plan.start_tick - gap, plan.start_tick))
        return windows


def silence(events: List[NoteEvent], start: int, end: int) -> List[NoteEvent]:
    """Drop events starting in [start, end) and cut notes that would ring into it."""
    result = []
    for event in events:
        if start <= event.tick < end:
            continue
        if event.tick < start < event.end_tick:
            event = replace(event, duration_ticks=start - event.tick)
        result.append(event)
    return result


def limit_high_end(events: List[NoteEvent], limit_hz: float) -> List[NoteEvent]:
    return [replace(e, filter_hz=float(limit_hz))
            if e.filter_hz is not None and e.filter_hz > limit_hz else e
            for e in events]


def compose(config: TrackConfig, base_seed: int = 0,
            rules: Optional[GlobalRules] = None) -> Composition:
    """Convenience function to compose a track."""
    return Arranger().compose(config, base_seed, rules)
