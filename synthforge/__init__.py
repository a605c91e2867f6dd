"""
SynthForge

Generative techno composition engine: per-instrument pattern generators,
a section arranger, producer blueprints from an AI composer, and MIDI
export.
"""

__version__ = "0.3.0"

from .utils import (
    TICKS_PER_BEAT,
    TICKS_PER_BAR,
    ChordProgression,
    ConfigurationError,
    Scale,
    in_scale,
    note_name,
    scale_notes,
)
from .events import NoteEvent
from .humanize import GoosebumpsConfig
from .config import (
    INSTRUMENTS,
    EngineSettings,
    GlobalRules,
    GrooveType,
    ParameterChange,
    SectionConfig,
    SectionType,
    TechnoStyle,
    TrackConfig,
    default_sections,
)
from .generators import GeneratorRegistry, PatternGenerator, generate
from .arranger import Arranger, Composition, SectionPlan, compose
from .blueprint import (
    BlueprintError,
    ComposeResponse,
    ComposerPlan,
    apply_blueprint,
    validate_plan,
)
from .composer_client import ComposeRequest, ComposerClient
from .session import SessionBusyError, TrackSession
from .randomize import randomize_all
from .midi_export import composition_to_midi, write_midi
from .playback import RecordingBackend, SynthBackend, export_filename, schedule_composition
from .config_loader import ConfigLoader, ConfigLoadError
from .prompt_parser import MoodPromptParser, ParsedPrompt, apply_prompt

__all__ = [
    # Theory
    'TICKS_PER_BEAT',
    'TICKS_PER_BAR',
    'ChordProgression',
    'ConfigurationError',
    'Scale',
    'in_scale',
    'note_name',
    'scale_notes',
    'NoteEvent',
    'GoosebumpsConfig',
    # Configuration
    'INSTRUMENTS',
    'EngineSettings',
    'GlobalRules',
    'GrooveType',
    'ParameterChange',
    'SectionConfig',
    'SectionType',
    'TechnoStyle',
    'TrackConfig',
    'default_sections',
    # Generation
    'GeneratorRegistry',
    'PatternGenerator',
    'generate',
    'Arranger',
    'Composition',
    'SectionPlan',
    'compose',
    # Blueprints
    'BlueprintError',
    'ComposeResponse',
    'ComposerPlan',
    'apply_blueprint',
    'validate_plan',
    'ComposeRequest',
    'ComposerClient',
    'SessionBusyError',
    'TrackSession',
    'randomize_all',
    # Output
    'composition_to_midi',
    'write_midi',
    'RecordingBackend',
    'SynthBackend',
    'export_filename',
    'schedule_composition',
    # Presets
    'ConfigLoader',
    'ConfigLoadError',
    'MoodPromptParser',
    'ParsedPrompt',
    'apply_prompt',
]
