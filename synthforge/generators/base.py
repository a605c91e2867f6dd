"""Base pattern generator interface for per-instrument note generation."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, List, Optional, Type

import numpy as np

from ..config import (
    GlobalRules,
    GrooveType,
    InstrumentParams,
    SectionConfig,
    SectionType,
    TechnoStyle,
    TrackConfig,
    lookup_enum,
)
from ..events import NoteEvent
from ..humanize import (
    GoosebumpsConfig,
    NotePosition,
    micro_timing_offset,
    should_inject_tension_note,
    tension_note_for,
)
from ..utils import (
    TICKS_PER_16TH,
    TICKS_PER_BAR,
    ChordProgression,
    ConfigurationError,
    Scale,
    ScaleLike,
    clamp,
    normalize_key,
    note_name_to_midi,
    progression_degrees,
    resolve_progression,
    resolve_scale,
    seed_entropy,
)


# Density multiplier per style: minimal thins out, acid/industrial get busier
STYLE_DENSITY = {
    TechnoStyle.MELODIC: 1.0,
    TechnoStyle.DARK: 1.0,
    TechnoStyle.HYPNOTIC: 0.9,
    TechnoStyle.PROGRESSIVE: 1.0,
    TechnoStyle.MINIMAL: 0.7,
    TechnoStyle.ACID: 1.15,
    TechnoStyle.INDUSTRIAL: 1.2,
}

# Delay applied to off-beat sixteenths under a shuffle groove
SHUFFLE_TICKS = TICKS_PER_16TH // 3


@dataclass
class GenerationContext:
    """
    Track-level inputs shared by every generator call in a regeneration.

    Defaults describe a plain straight-groove melodic track, so generators
    can be called standalone with only a section and parameters.
    """
    style: TechnoStyle = TechnoStyle.MELODIC
    groove: GrooveType = GrooveType.STRAIGHT
    chord_progression: ChordProgression = ChordProgression.EPIC_MINOR
    goosebumps: GoosebumpsConfig = field(default_factory=GoosebumpsConfig)
    rules: Optional[GlobalRules] = None
    section_index: int = 0
    next_section_type: Optional[SectionType] = None
    prev_section_type: Optional[SectionType] = None

    def resolved(self) -> 'GenerationContext':
        """Resolve string enum values, raising ConfigurationError on unknown names."""
        return replace(
            self,
            style=lookup_enum(TechnoStyle, self.style),
            groove=lookup_enum(GrooveType, self.groove),
            chord_progression=resolve_progression(self.chord_progression),
        )

    @classmethod
    def for_section(cls, config: TrackConfig, index: int,
                    rules: Optional[GlobalRules] = None) -> 'GenerationContext':
        sections = config.sections
        return cls(
            style=config.style,
            groove=config.groove,
            chord_progression=config.chord_progression,
            goosebumps=config.goosebumps,
            rules=rules if rules is not None else config.rules,
            section_index=index,
            next_section_type=sections[index + 1].type if index + 1 < len(sections) else None,
            prev_section_type=sections[index - 1].type if index > 0 else None,
        )


@dataclass
class Voice:
    """Resolved musical inputs handed to a family's `_events` implementation."""
    section: SectionConfig
    key: str
    scale: Scale
    params: InstrumentParams
    context: GenerationContext

    @property
    def bars(self) -> int:
        return self.section.bars

    @property
    def intensity(self) -> float:
        return clamp(self.section.intensity, 0, 100)

    @property
    def section_type(self) -> str:
        return self.section.type.value

    def root_midi(self, octave: int) -> int:
        return note_name_to_midi(self.key, octave)

    def chord_degree(self, bar: int, bars_per_chord: int = 1) -> int:
        """1-based scale degree of the progression chord sounding at `bar`."""
        degrees = progression_degrees(self.context.chord_progression)
        return degrees[(bar // bars_per_chord) % len(degrees)]

    def density(self, base: float, cap: Optional[float] = None) -> float:
        """
        Effective 0-1 emission probability: the instrument's density knob,
        shaped by style and section intensity, limited by a rule cap.
        """
        factor = STYLE_DENSITY.get(self.context.style, 1.0) * (0.5 + self.intensity / 100.0)
        value = clamp(base * factor, 0.0, 100.0)
        if cap is not None:
            value = min(value, clamp(cap, 0.0, 100.0))
        return value / 100.0

    def grid_tick(self, bar: int, step: int) -> int:
        """Tick of a sixteenth step, with shuffle swing on off-beat sixteenths."""
        tick = bar * TICKS_PER_BAR + step * TICKS_PER_16TH
        if self.context.groove == GrooveType.SHUFFLE and step % 2 == 1:
            tick += SHUFFLE_TICKS
        return tick


class EventSequence(Iterable[NoteEvent]):
    """
    Lazy, restartable event sequence.

    Every iteration re-seeds a fresh generator from the stored seed, so
    iterating twice yields identical events and nothing carries over.
    """

    def __init__(self, generator: 'PatternGenerator', voice: Voice, seed: int):
        self._generator = generator
        self._voice = voice
        self._seed = seed

    def __iter__(self) -> Iterator[NoteEvent]:
        pattern_seq, humanize_seq = np.random.SeedSequence(self._seed).spawn(2)
        return self._generator._finish(
            self._generator._events(self._voice, np.random.default_rng(pattern_seq)),
            self._voice,
            np.random.default_rng(humanize_seq),
        )

    def to_list(self) -> List[NoteEvent]:
        return list(self)


class PatternGenerator(ABC):
    """
    Abstract base class for one instrument family's pattern generator.

    Subclasses implement `_events`, a generator of section-relative
    NoteEvents in non-decreasing tick order. The base class validates
    inputs, clamps parameters, keeps events inside the section, and
    applies goosebumps humanization on a separate random stream so that
    toggling it never changes the underlying pattern.
    """

    # Whether chromatic tension notes may replace pitched events
    tension_capable: bool = False

    @property
    @abstractmethod
    def instrument(self) -> str:
        """Return the instrument family name."""
        pass

    @property
    def aliases(self) -> List[str]:
        """Other names this generator answers to in the registry."""
        return []

    @property
    @abstractmethod
    def params_type(self) -> Type[InstrumentParams]:
        pass

    def generate(
        self,
        section: SectionConfig,
        key: str,
        scale: ScaleLike,
        params: Optional[InstrumentParams] = None,
        seed: int = 0,
        context: Optional[GenerationContext] = None,
    ) -> EventSequence:
        """
        Build the event sequence for one section.

        Args:
            section: Section being generated (bar count, intensity, type)
            key: Pitch-class name of the key
            scale: Scale enum or wire name
            params: This family's parameter record (defaults when None)
            seed: Seed for the pattern's random stream
            context: Track-level style, groove and rules

        Returns:
            EventSequence yielding NoteEvents within [0, section.bars)

        Raises:
            ConfigurationError: unknown scale/key/style/groove or non-positive bars
        """
        resolved_scale = resolve_scale(scale)
        resolved_key = normalize_key(key)
        if section.bars <= 0:
            raise ConfigurationError(f"Section bar count must be positive, got {section.bars}")
        if params is None:
            params = self.params_type()
        elif not isinstance(params, self.params_type):
            raise ConfigurationError(
                f"{self.instrument} generator expects {self.params_type.__name__}, "
                f"got {type(params).__name__}")
        context = (context or GenerationContext()).resolved()
        voice = Voice(section, resolved_key, resolved_scale, params.clamped(), context)
        return EventSequence(self, voice, seed_entropy(seed))

    @abstractmethod
    def _events(self, voice: Voice, rng: np.random.Generator) -> Iterator[NoteEvent]:
        """Yield raw events for the section."""
        pass

    def _finish(self, events: Iterator[NoteEvent], voice: Voice,
                rng: np.random.Generator) -> Iterator[NoteEvent]:
        end = voice.bars * TICKS_PER_BAR
        goosebumps = voice.context.goosebumps
        tension = None
        if self.tension_capable and goosebumps.enabled and goosebumps.tension_notes_enabled:
            tension = tension_note_for(voice.scale, voice.key, self._tension_octave(voice))

        for event in events:
            if event.tick < 0 or event.tick >= end:
                continue
            if event.end_tick > end:
                event = replace(event, duration_ticks=end - event.tick)
            if tension is not None and event.note is not None:
                position = NotePosition(voice.section_type, event.tick)
                if should_inject_tension_note(goosebumps, position, rng):
                    event = replace(event, note=tension, tension=True,
                                    duration_ticks=min(event.duration_ticks, TICKS_PER_16TH))
            offset = micro_timing_offset(goosebumps, rng, self.instrument)
            yield replace(
                event,
                velocity=round(clamp(event.velocity, 0.0, 1.0), 4),
                offset_ms=round(offset, 3),
            )

    def _tension_octave(self, voice: Voice) -> int:
        return int(getattr(voice.params, 'octave', 4))


def jitter(rng: np.random.Generator, value: float, amount: float = 0.05) -> float:
    """Velocity with a small random deviation, clamped to [0, 1]."""
    return clamp(value + rng.uniform(-amount, amount), 0.0, 1.0)


def chance(rng: np.random.Generator, probability: float) -> bool:
    return bool(rng.random() < probability)


