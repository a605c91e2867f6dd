"""
Track Configuration Module

The long-lived configuration record the UI and the blueprint applier
mutate and the generators read on every regeneration: global musical
settings, the ordered section list, one parameter record per instrument
family and the goosebumps switches.

Every mutation goes through the update API, which emits a
ParameterChange event to subscribers (synthesis backend, UI).
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, FrozenSet, List, Optional, Tuple, Type, Union

from .humanize import GoosebumpsConfig
from .utils import (
    ChordProgression,
    ConfigurationError,
    Scale,
    clamp,
    normalize_key,
    resolve_progression,
    resolve_scale,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class SectionType(Enum):
    """Structural role of a section."""
    INTRO = 'intro'
    BUILDUP = 'buildup'
    DROP = 'drop'
    BREAKDOWN = 'breakdown'
    BRIDGE = 'bridge'
    OUTRO = 'outro'


class TechnoStyle(Enum):
    MELODIC = 'melodic'
    DARK = 'dark'
    HYPNOTIC = 'hypnotic'
    PROGRESSIVE = 'progressive'
    MINIMAL = 'minimal'
    ACID = 'acid'
    INDUSTRIAL = 'industrial'


class GrooveType(Enum):
    STRAIGHT = 'straight'
    SHUFFLE = 'shuffle'
    SYNCOPATED = 'syncopated'
    BROKEN = 'broken'


class SynthType(Enum):
    SINE = 'sine'
    TRIANGLE = 'triangle'
    SAWTOOTH = 'sawtooth'
    SQUARE = 'square'
    FM = 'fm'
    SUBTRACTIVE = 'subtractive'
    GRANULAR = 'granular'


class SectionFocus(Enum):
    SPACE = 'space'
    GROOVE = 'groove'
    TENSION = 'tension'
    EMOTION = 'emotion'
    RELEASE = 'release'


class BassMovement(Enum):
    FILTER_ONLY = 'filter_only'
    NOTE_SPARSE = 'note_sparse'


# Instrument families, in the order used for seeding and reporting
INSTRUMENTS: Tuple[str, ...] = (
    'kick', 'bass', 'melody', 'hihat', 'pad', 'pluck', 'stab',
    'piano', 'strings', 'acid', 'perc', 'fx', 'arp', 'vocal',
)

# Layer-cap priority: earlier entries survive longer
LAYER_PRIORITY: Tuple[str, ...] = (
    'kick', 'bass', 'melody', 'hihat', 'pad', 'arp', 'pluck',
    'stab', 'acid', 'strings', 'piano', 'perc', 'vocal', 'fx',
)

BPM_RANGE = (80, 180)
SECTION_BARS_RANGE = (2, 64)

EnumChoices = Union[Type[Enum], Tuple[str, ...]]


def lookup_enum(enum_cls: Type[Enum], value: Any) -> Enum:
    """Case-insensitive lookup by value or member name."""
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if text.lower() == str(member.value).lower() or text.upper() == member.name:
            return member
    raise ConfigurationError(f"Unknown {enum_cls.__name__} value: {value!r}")


# =============================================================================
# INSTRUMENT PARAMETERS
# =============================================================================

@dataclass
class InstrumentParams:
    """
    Base for per-instrument parameter records.

    RANGES declares the numeric domain of each knob, ENUMS the accepted
    values of categorical fields. `clamped()` is what generators consume.
    """
    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {}
    ENUMS: ClassVar[Dict[str, EnumChoices]] = {}

    def clamped(self) -> 'InstrumentParams':
        changes: Dict[str, Any] = {}
        defaults = type(self)()
        int_fields = {f.name for f in fields(self) if f.type in ('int', int)}
        for name, (low, high) in self.RANGES.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning("%s.%s=%r is not numeric, using default",
                               type(self).__name__, name, value)
                changes[name] = getattr(defaults, name)
                continue
            bounded = clamp(value, low, high)
            if name in int_fields:
                bounded = int(round(bounded))
            changes[name] = bounded
        for name, choices in self.ENUMS.items():
            value = getattr(self, name)
            try:
                changes[name] = coerce_choice(choices, value)
            except ConfigurationError:
                logger.warning("%s.%s=%r is not a known value, using default",
                               type(self).__name__, name, value)
                changes[name] = getattr(defaults, name)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result


def coerce_choice(choices: EnumChoices, value: Any) -> Any:
    """Canonical categorical value, or ConfigurationError."""
    if isinstance(choices, tuple):
        text = str(value).strip().lower()
        for choice in choices:
            if choice.lower() == text:
                return choice
        raise ConfigurationError(f"Unknown value {value!r}, expected one of {choices}")
    return lookup_enum(choices, value)


@dataclass
class KickParams(InstrumentParams):
    style: str = 'punchy'
    punch: float = 70      # 0-100 high frequency click
    sub: float = 80        # 0-100 sub amount
    decay: float = 50      # 0-100 tail length
    pitch: float = 55      # Hz base frequency
    drive: float = 30      # 0-100 distortion
    tone: float = 50

    RANGES: ClassVar = {
        'punch': (0, 100), 'sub': (0, 100), 'decay': (0, 100),
        'pitch': (30, 120), 'drive': (0, 100), 'tone': (0, 100),
    }
    ENUMS: ClassVar = {'style': ('punchy', 'deep', 'hard', 'soft', 'distorted', 'rumble')}


@dataclass
class BassParams(InstrumentParams):
    type: str = 'sub'
    synth_type: SynthType = SynthType.SAWTOOTH
    cutoff: float = 800        # Hz
    resonance: float = 40
    attack: float = 5          # ms
    decay: float = 200         # ms
    sustain: float = 60
    release: float = 100       # ms
    octave: int = -1           # -2 to 2
    glide: float = 20          # 0-100 portamento
    distortion: float = 0
    sub_mix: float = 50
    density: float = 50        # 0-100 events per bar

    RANGES: ClassVar = {
        'cutoff': (20, 20000), 'resonance': (0, 100), 'attack': (0, 2000),
        'decay': (0, 5000), 'sustain': (0, 100), 'release': (0, 5000),
        'octave': (-2, 2), 'glide': (0, 100), 'distortion': (0, 100),
        'sub_mix': (0, 100), 'density': (0, 100),
    }
    ENUMS: ClassVar = {
        'type': ('sub', 'reese', 'acid', 'pluck', 'analog', 'rolling'),
        'synth_type': SynthType,
    }


@dataclass
class MelodyParams(InstrumentParams):
    octave: int = 4
    density: float = 50        # fraction of grid slots that sound
    variation: float = 30      # melodic jumpiness
    arp_speed: float = 50
    synth_type: SynthType = SynthType.TRIANGLE
    attack: float = 10
    release: float = 300
    filter_cutoff: float = 2000
    reverb_mix: float = 40
    delay_mix: float = 30

    RANGES: ClassVar = {
        'octave': (3, 6), 'density': (0, 100), 'variation': (0, 100),
        'arp_speed': (0, 100), 'attack': (0, 2000), 'release': (0, 5000),
        'filter_cutoff': (20, 20000), 'reverb_mix': (0, 100), 'delay_mix': (0, 100),
    }
    ENUMS: ClassVar = {'synth_type': SynthType}


@dataclass
class HiHatParams(InstrumentParams):
    decay: float = 30
    pitch: float = 50
    pattern: str = 'straight'
    velocity: float = 70
    open_ratio: float = 20

    RANGES: ClassVar = {
        'decay': (0, 100), 'pitch': (0, 100), 'velocity': (0, 100), 'open_ratio': (0, 100),
    }
    ENUMS: ClassVar = {
        'pattern': ('straight', 'offbeat', 'shuffle', 'complex', 'minimal', 'rolling'),
    }


@dataclass
class PadParams(InstrumentParams):
    synth_type: SynthType = SynthType.SINE
    attack: float = 500
    release: float = 1000
    filter_cutoff: float = 1500
    lfo_rate: float = 0.5
    lfo_depth: float = 30
    reverb_mix: float = 60
    chord: str = 'minor'
    brightness: float = 50
    movement: float = 30

    RANGES: ClassVar = {
        'attack': (0, 5000), 'release': (0, 10000), 'filter_cutoff': (20, 20000),
        'lfo_rate': (0, 10), 'lfo_depth': (0, 100), 'reverb_mix': (0, 100),
        'brightness': (0, 100), 'movement': (0, 100),
    }
    ENUMS: ClassVar = {
        'synth_type': SynthType,
        'chord': ('minor', 'major', 'sus2', 'sus4', 'dim', 'aug', 'minor7', 'add9'),
    }


@dataclass
class PluckParams(InstrumentParams):
    synth_type: SynthType = SynthType.TRIANGLE
    decay: float = 300
    brightness: float = 60
    resonance: float = 40
    reverb_mix: float = 50
    delay_mix: float = 40
    octave: int = 4
    density: float = 50
    variation: float = 30

    RANGES: ClassVar = {
        'decay': (10, 5000), 'brightness': (0, 100), 'resonance': (0, 100),
        'reverb_mix': (0, 100), 'delay_mix': (0, 100), 'octave': (2, 6),
        'density': (0, 100), 'variation': (0, 100),
    }
    ENUMS: ClassVar = {'synth_type': SynthType}


@dataclass
class StabParams(InstrumentParams):
    synth_type: SynthType = SynthType.SAWTOOTH
    attack: float = 5
    release: float = 200
    filter_cutoff: float = 3000
    voices: int = 4
    detune: float = 20
    reverb_mix: float = 30
    density: float = 40

    RANGES: ClassVar = {
        'attack': (0, 2000), 'release': (0, 5000), 'filter_cutoff': (20, 20000),
        'voices': (1, 8), 'detune': (0, 100), 'reverb_mix': (0, 100), 'density': (0, 100),
    }
    ENUMS: ClassVar = {'synth_type': SynthType}


@dataclass
class PianoParams(InstrumentParams):
    brightness: float = 60
    reverb: float = 40
    velocity: float = 70
    octave: int = 4
    density: float = 40

    RANGES: ClassVar = {
        'brightness': (0, 100), 'reverb': (0, 100), 'velocity': (0, 100),
        'octave': (2, 6), 'density': (0, 100),
    }


@dataclass
class StringsParams(InstrumentParams):
    attack: float = 800
    release: float = 1500
    brightness: float = 50
    ensemble: float = 60
    reverb_mix: float = 70
    octave: int = 3
    density: float = 60    # 0-100 chance a chord enters on the downbeat
    variation: float = 30  # 0-100 chance of a one-bar chord change

    RANGES: ClassVar = {
        'attack': (0, 5000), 'release': (0, 10000), 'brightness': (0, 100),
        'ensemble': (0, 100), 'reverb_mix': (0, 100), 'octave': (2, 5),
        'density': (0, 100), 'variation': (0, 100),
    }


@dataclass
class AcidParams(InstrumentParams):
    cutoff: float = 400
    resonance: float = 70
    env_mod: float = 80
    decay: float = 200
    accent: float = 60
    slide: float = 30
    density: float = 60
    variation: float = 50
    octave: int = 2

    RANGES: ClassVar = {
        'cutoff': (20, 20000), 'resonance': (0, 100), 'env_mod': (0, 100),
        'decay': (0, 5000), 'accent': (0, 100), 'slide': (0, 100),
        'density': (0, 100), 'variation': (0, 100), 'octave': (1, 4),
    }


@dataclass
class PercParams(InstrumentParams):
    type: str = 'clap'
    pitch: float = 50
    decay: float = 50
    reverb: float = 30
    pattern: str = 'regular'

    RANGES: ClassVar = {'pitch': (0, 100), 'decay': (0, 100), 'reverb': (0, 100)}
    ENUMS: ClassVar = {
        'type': ('clap', 'snare', 'rim', 'shaker', 'tom'),
        'pattern': ('sparse', 'regular', 'busy', 'fill'),
    }


@dataclass
class FxParams(InstrumentParams):
    type: str = 'riser'
    intensity: float = 50
    duration: float = 4000     # ms
    filter: float = 50

    RANGES: ClassVar = {'intensity': (0, 100), 'duration': (100, 30000), 'filter': (0, 100)}
    ENUMS: ClassVar = {'type': ('riser', 'impact', 'sweep', 'texture', 'atmosphere')}


@dataclass
class ArpParams(InstrumentParams):
    pattern: str = 'up'
    speed: float = 50
    octaves: int = 2
    gate: float = 50
    swing: float = 0

    RANGES: ClassVar = {'speed': (0, 100), 'octaves': (1, 4), 'gate': (5, 100), 'swing': (0, 100)}
    ENUMS: ClassVar = {'pattern': ('up', 'down', 'updown', 'random', 'order', 'chord')}


@dataclass
class VocalParams(InstrumentParams):
    type: str = 'ooh'
    gender: str = 'female'
    brightness: float = 40
    attack: float = 400
    release: float = 1200
    reverb_mix: float = 70
    mix: float = 65

    RANGES: ClassVar = {
        'brightness': (0, 100), 'attack': (0, 5000), 'release': (0, 10000),
        'reverb_mix': (0, 100), 'mix': (0, 100),
    }
    ENUMS: ClassVar = {
        'type': ('ooh', 'aah', 'eeh', 'choir'),
        'gender': ('female', 'male', 'both'),
    }


PARAMS_TYPES: Dict[str, Type[InstrumentParams]] = {
    'kick': KickParams,
    'bass': BassParams,
    'melody': MelodyParams,
    'hihat': HiHatParams,
    'pad': PadParams,
    'pluck': PluckParams,
    'stab': StabParams,
    'piano': PianoParams,
    'strings': StringsParams,
    'acid': AcidParams,
    'perc': PercParams,
    'fx': FxParams,
    'arp': ArpParams,
    'vocal': VocalParams,
}


# =============================================================================
# SECTIONS
# =============================================================================

@dataclass
class SectionConfig:
    """
    One contiguous bar-range of the track.

    A disabled instrument never receives events in this section.
    `allowed_layers` is set when a blueprint drives the section.
    """
    type: SectionType = SectionType.DROP
    bars: int = 8
    has_kick: bool = False
    has_bass: bool = False
    has_melody: bool = False
    has_hihat: bool = False
    has_pad: bool = False
    has_pluck: bool = False
    has_stab: bool = False
    has_piano: bool = False
    has_strings: bool = False
    has_acid: bool = False
    has_perc: bool = False
    has_fx: bool = False
    has_arp: bool = False
    has_vocal: bool = False
    intensity: int = 50
    focus: Optional[SectionFocus] = None
    allowed_layers: Optional[FrozenSet[str]] = None

    def has(self, instrument: str) -> bool:
        return bool(getattr(self, f'has_{instrument}', False))

    def enabled_layers(self) -> List[str]:
        return [name for name in INSTRUMENTS if self.has(name)]

    @classmethod
    def with_layers(cls, type: Union[SectionType, str], bars: int, layers, intensity: int = 50,
                    **kwargs) -> 'SectionConfig':
        flags = {f'has_{name}': name in layers for name in INSTRUMENTS}
        return cls(type=lookup_enum(SectionType, type), bars=bars, intensity=intensity,
                   **flags, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'bars': self.bars,
            'intensity': self.intensity,
            'layers': self.enabled_layers(),
            'focus': self.focus.value if self.focus else None,
        }


DEFAULT_SECTIONS: Tuple[Tuple[str, int, Tuple[str, ...], int], ...] = (
    ('intro', 8, ('hihat', 'pad'), 30),
    ('buildup', 8, ('kick', 'bass', 'hihat', 'pad'), 60),
    ('drop', 16, ('kick', 'bass', 'melody', 'hihat'), 100),
    ('breakdown', 8, ('melody', 'pad'), 40),
    ('drop', 16, ('kick', 'bass', 'melody', 'hihat'), 100),
    ('outro', 8, ('kick', 'hihat', 'pad'), 30),
)


def default_sections() -> List[SectionConfig]:
    return [SectionConfig.with_layers(t, bars, layers, intensity)
            for t, bars, layers, intensity in DEFAULT_SECTIONS]


# =============================================================================
# GLOBAL RULES
# =============================================================================

@dataclass
class GlobalRules:
    """Cross-instrument constraints, usually authored by a blueprint."""
    max_simultaneous_layers: int = 5
    high_end_limit_hz: float = 14000
    silence_before_drop: bool = False
    melody_density_cap: float = 100
    arp_density_cap: float = 100
    bass_movement: BassMovement = BassMovement.NOTE_SPARSE


# =============================================================================
# TRACK CONFIGURATION
# =============================================================================

@dataclass
class ParameterChange:
    """Emitted for every configuration mutation."""
    path: str        # 'bpm', 'bass.cutoff', 'sections[2]', 'sections'
    value: Any


Listener = Callable[[ParameterChange], None]

_ENUM_FIELDS: Dict[str, Callable[[Any], Any]] = {
    'scale': resolve_scale,
    'secondary_scale': resolve_scale,
    'style': lambda v: lookup_enum(TechnoStyle, v),
    'groove': lambda v: lookup_enum(GrooveType, v),
    'chord_progression': resolve_progression,
    'key': normalize_key,
}


@dataclass
class TrackConfig:
    """
    The configuration record. Single owner; edits go through the update
    API so subscribers see every change.
    """
    bpm: int = 126
    key: str = 'A'
    scale: Scale = Scale.MINOR
    secondary_scale: Scale = Scale.PHRYGIAN
    style: TechnoStyle = TechnoStyle.MELODIC
    groove: GrooveType = GrooveType.STRAIGHT
    chord_progression: ChordProgression = ChordProgression.EPIC_MINOR
    sections: List[SectionConfig] = field(default_factory=default_sections)
    kick: KickParams = field(default_factory=KickParams)
    bass: BassParams = field(default_factory=BassParams)
    melody: MelodyParams = field(default_factory=MelodyParams)
    hihat: HiHatParams = field(default_factory=HiHatParams)
    pad: PadParams = field(default_factory=PadParams)
    pluck: PluckParams = field(default_factory=PluckParams)
    stab: StabParams = field(default_factory=StabParams)
    piano: PianoParams = field(default_factory=PianoParams)
    strings: StringsParams = field(default_factory=StringsParams)
    acid: AcidParams = field(default_factory=AcidParams)
    perc: PercParams = field(default_factory=PercParams)
    fx: FxParams = field(default_factory=FxParams)
    arp: ArpParams = field(default_factory=ArpParams)
    vocal: VocalParams = field(default_factory=VocalParams)
    master_volume: float = 80
    goosebumps: GoosebumpsConfig = field(default_factory=GoosebumpsConfig)
    rules: Optional[GlobalRules] = None
    _listeners: List[Listener] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        if isinstance(self.bpm, bool) or not isinstance(self.bpm, (int, float)):
            logger.warning("TrackConfig.bpm=%r is not numeric, using 126", self.bpm)
            self.bpm = 126
        self.bpm = int(clamp(round(self.bpm), *BPM_RANGE))

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, path: str, value: Any) -> None:
        """Emit a ParameterChange to every subscriber."""
        change = ParameterChange(path, value)
        for listener in list(self._listeners):
            listener(change)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def instrument_params(self, instrument: str) -> InstrumentParams:
        if instrument not in PARAMS_TYPES:
            raise ConfigurationError(f"Unknown instrument: {instrument!r}")
        return getattr(self, instrument)

    def total_bars(self) -> int:
        return sum(section.bars for section in self.sections)

    def validate(self) -> None:
        """Structural checks; numeric knobs are clamped later, not here."""
        if not self.sections:
            raise ConfigurationError("A track needs at least one section")
        for index, section in enumerate(self.sections):
            if section.bars <= 0:
                raise ConfigurationError(f"Section {index} has non-positive bar count {section.bars}")

    def copy(self) -> 'TrackConfig':
        """Deep copy sharing the subscriber list."""
        state = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self) if f.init}
        clone = TrackConfig(**state)
        clone._listeners = self._listeners
        return clone

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def set_value(self, name: str, value: Any) -> None:
        """Set a global field ('bpm', 'key', 'scale', 'style', ...)."""
        if name in _ENUM_FIELDS:
            value = _ENUM_FIELDS[name](value)
        elif name == 'bpm':
            value = int(clamp(int(value), *BPM_RANGE))
        elif name == 'master_volume':
            value = clamp(float(value), 0, 100)
        elif name not in ('goosebumps', 'rules'):
            raise ConfigurationError(f"Unknown configuration field: {name!r}")
        setattr(self, name, value)
        self.notify(name, value)

    def update_instrument(self, instrument: str, **params: Any) -> None:
        """Partial update of one instrument's parameters."""
        current = self.instrument_params(instrument)
        known = {f.name for f in fields(current)}
        unknown = set(params) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown {instrument} parameters: {', '.join(sorted(unknown))}")
        updated = replace(current, **params)
        setattr(self, instrument, updated)
        for name, value in params.items():
            self.notify(f'{instrument}.{name}', value)

    def update_section(self, index: int, **changes: Any) -> None:
        section = self.sections[index]
        if 'type' in changes:
            changes['type'] = lookup_enum(SectionType, changes['type'])
        self.sections[index] = replace(section, **changes)
        self.notify(f'sections[{index}]', self.sections[index])

    def add_section(self, section: SectionConfig) -> None:
        self.sections.append(section)
        self.notify('sections', list(self.sections))

    def remove_section(self, index: int) -> None:
        if len(self.sections) <= 1:
            raise ConfigurationError("A track needs at least one section")
        del self.sections[index]
        self.notify('sections', list(self.sections))

    def reorder_sections(self, order: List[int]) -> None:
        if sorted(order) != list(range(len(self.sections))):
            raise ConfigurationError(f"Invalid section order: {order}")
        self.sections = [self.sections[i] for i in order]
        self.notify('sections', list(self.sections))

    def set_sections(self, sections: List[SectionConfig]) -> None:
        if not sections:
            raise ConfigurationError("A track needs at least one section")
        self.sections = list(sections)
        self.notify('sections', list(self.sections))


# =============================================================================
# ENGINE SETTINGS
# =============================================================================

@dataclass
class EngineSettings:
    """
    Process settings for the engine and the AI composer boundary.

    Attributes:
        openai_api_key: Key for the blueprint service
        composer_model: Chat model used to author blueprints
        request_interval: Minimum seconds between blueprint requests
        request_timeout: Seconds before a blueprint request is abandoned
        base_seed: Default seed for regeneration
        verbose: Enable verbose logging
    """
    openai_api_key: Optional[str] = None
    composer_model: str = "gpt-4o-mini"
    request_interval: float = 2.0
    request_timeout: float = 60.0
    base_seed: int = 1234
    presets_path: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Create settings from environment variables.

        Environment Variables:
            OPENAI_API_KEY: API key for the blueprint service
            SYNTHFORGE_MODEL: Composer model name
            SYNTHFORGE_REQUEST_INTERVAL: Seconds between AI requests
            SYNTHFORGE_REQUEST_TIMEOUT: AI request timeout in seconds
            SYNTHFORGE_SEED: Default base seed
            SYNTHFORGE_PRESETS: Path to a mood presets YAML file
            SYNTHFORGE_VERBOSE: Enable verbose mode (1/true/yes)
        """
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            composer_model=os.getenv("SYNTHFORGE_MODEL", "gpt-4o-mini"),
            request_interval=float(os.getenv("SYNTHFORGE_REQUEST_INTERVAL", 2.0)),
            request_timeout=float(os.getenv("SYNTHFORGE_REQUEST_TIMEOUT", 60.0)),
            base_seed=int(os.getenv("SYNTHFORGE_SEED", 1234)),
            presets_path=os.getenv("SYNTHFORGE_PRESETS"),
            verbose=os.getenv("SYNTHFORGE_VERBOSE", "").lower() in ("1", "true", "yes"),
        )
