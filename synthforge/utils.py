"""
Utility functions and constants for the composition engine.

Provides:
- Timing calculations (480 PPQ, 4/4 bars, transport strings)
- Scale tables and chord-from-degree lookup
- Note name / MIDI number / frequency conversions
- Chord progression templates written as roman numerals
"""

import logging
import re
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised for unknown scale/style/groove names or invalid bar counts."""


# =============================================================================
# TIMING CONSTANTS
# =============================================================================

TICKS_PER_BEAT = 480  # PPQ
TICKS_PER_16TH = TICKS_PER_BEAT // 4  # 120 ticks
TICKS_PER_8TH = TICKS_PER_BEAT // 2   # 240 ticks
BEATS_PER_BAR = 4
SIXTEENTHS_PER_BAR = 16
TICKS_PER_BAR = TICKS_PER_BEAT * BEATS_PER_BAR  # 1920 ticks

# Symbolic durations understood by the synthesis backend
DURATION_TICKS: Dict[str, int] = {
    '32n': TICKS_PER_16TH // 2,
    '16n': TICKS_PER_16TH,
    '8n': TICKS_PER_8TH,
    '8n.': TICKS_PER_8TH + TICKS_PER_16TH,
    '4n': TICKS_PER_BEAT,
    '4n.': TICKS_PER_BEAT + TICKS_PER_8TH,
    '2n': TICKS_PER_BEAT * 2,
    '2n.': TICKS_PER_BEAT * 3,
    '1m': TICKS_PER_BAR,
}


# =============================================================================
# MUSIC THEORY
# =============================================================================

class Scale(Enum):
    """Supported scales. Values are the names used on the wire."""
    MINOR = 'minor'
    MAJOR = 'major'
    PHRYGIAN = 'phrygian'
    HARMONIC_MINOR = 'harmonicMinor'
    MELODIC_MINOR = 'melodicMinor'
    DORIAN = 'dorian'
    LOCRIAN = 'locrian'
    LYDIAN = 'lydian'
    MIXOLYDIAN = 'mixolydian'
    PENTATONIC_MINOR = 'pentatonicMinor'
    PENTATONIC_MAJOR = 'pentatonicMajor'
    BLUES = 'blues'
    WHOLE_NOTE = 'wholeNote'
    CHROMATIC = 'chromatic'
    # Exotic
    HUNGARIAN_MINOR = 'hungarianMinor'
    DOUBLE_HARMONIC = 'doubleHarmonic'


SCALE_INTERVALS: Dict[Scale, Tuple[int, ...]] = {
    Scale.MINOR: (0, 2, 3, 5, 7, 8, 10),
    Scale.MAJOR: (0, 2, 4, 5, 7, 9, 11),
    Scale.PHRYGIAN: (0, 1, 3, 5, 7, 8, 10),
    Scale.HARMONIC_MINOR: (0, 2, 3, 5, 7, 8, 11),
    Scale.MELODIC_MINOR: (0, 2, 3, 5, 7, 9, 11),
    Scale.DORIAN: (0, 2, 3, 5, 7, 9, 10),
    Scale.LOCRIAN: (0, 1, 3, 5, 6, 8, 10),
    Scale.LYDIAN: (0, 2, 4, 6, 7, 9, 11),
    Scale.MIXOLYDIAN: (0, 2, 4, 5, 7, 9, 10),
    Scale.PENTATONIC_MINOR: (0, 3, 5, 7, 10),
    Scale.PENTATONIC_MAJOR: (0, 2, 4, 7, 9),
    Scale.BLUES: (0, 3, 5, 6, 7, 10),
    Scale.WHOLE_NOTE: (0, 2, 4, 6, 8, 10),
    Scale.CHROMATIC: tuple(range(12)),
    Scale.HUNGARIAN_MINOR: (0, 2, 3, 6, 7, 8, 11),
    Scale.DOUBLE_HARMONIC: (0, 1, 4, 5, 7, 8, 11),
}

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']
NOTE_NAMES_FLAT = ['C', 'Db', 'D', 'Eb', 'E', 'F', 'Gb', 'G', 'Ab', 'A', 'Bb', 'B']

_FLAT_TO_SHARP = {'DB': 'C#', 'EB': 'D#', 'GB': 'F#', 'AB': 'G#', 'BB': 'A#',
                  'CB': 'B', 'FB': 'E', 'E#': 'F', 'B#': 'C'}

_NOTE_RE = re.compile(r'^([A-Ga-g][#b]?)(-?\d+)$')

ScaleLike = Union[Scale, str]


def _lookup_scale(scale: ScaleLike) -> Scale:
    if isinstance(scale, Scale):
        return scale
    name = str(scale).strip()
    for member in Scale:
        if member.value == name or member.value.lower() == name.lower() or member.name == name.upper():
            return member
    raise ConfigurationError(f"Unknown scale: {scale!r}")


def resolve_scale(scale: ScaleLike) -> Scale:
    """Strict scale lookup. Raises ConfigurationError for unknown names."""
    return _lookup_scale(scale)


def scale_intervals(scale: ScaleLike) -> Tuple[int, ...]:
    """
    Semitone offsets from the root for a scale.

    Unknown scale names fall back to natural minor; the substitution is
    logged at WARNING level.
    """
    try:
        return SCALE_INTERVALS[_lookup_scale(scale)]
    except ConfigurationError:
        logger.warning("Unknown scale %r, falling back to natural minor", scale)
        return SCALE_INTERVALS[Scale.MINOR]


def normalize_key(key: str) -> str:
    """Normalize a pitch-class name to its sharp spelling ('Bb' -> 'A#')."""
    upper = key.strip().upper().replace('♯', '#').replace('♭', 'B')
    if upper in _FLAT_TO_SHARP:
        return _FLAT_TO_SHARP[upper]
    if upper in NOTE_NAMES:
        return upper
    raise ConfigurationError(f"Unknown key: {key!r}")


def pitch_class(note: str) -> int:
    """Pitch class (0-11) of a note name with or without octave."""
    match = _NOTE_RE.match(note.strip())
    name = match.group(1) if match else note
    return NOTE_NAMES.index(normalize_key(name))


def note_name_to_midi(note_name: str, octave: int = 4) -> int:
    """
    Convert note name to MIDI note number.

    Accepts 'C', 'Db', 'F#' with a separate octave, or 'A3' with the octave
    embedded (which takes precedence).

    Examples:
        note_name_to_midi('C', 4) -> 60
        note_name_to_midi('A4') -> 69
    """
    match = _NOTE_RE.match(note_name.strip())
    if match:
        note_name, octave = match.group(1), int(match.group(2))
    return (octave + 1) * 12 + NOTE_NAMES.index(normalize_key(note_name))


def midi_to_note_name(midi_note: int) -> str:
    """
    Convert MIDI note number to note name with octave.

    Examples:
        midi_to_note_name(60) -> 'C4'
        midi_to_note_name(69) -> 'A4'
    """
    octave = (midi_note // 12) - 1
    return f"{NOTE_NAMES[midi_note % 12]}{octave}"


def note_frequency(note: str) -> float:
    """Equal-tempered frequency in Hz (A4 = 440)."""
    return 440.0 * 2 ** ((note_name_to_midi(note) - 69) / 12)


def note_name(root_key: str, octave: int, scale_degree: int, scale: ScaleLike = Scale.MINOR) -> str:
    """
    Pitch name for a 0-based scale degree above `root_key` in `octave`.

    Degrees past the end of the scale wrap into the next octave, negative
    degrees into the previous one.
    """
    intervals = scale_intervals(scale)
    octave_shift, index = divmod(scale_degree, len(intervals))
    midi = note_name_to_midi(root_key, octave) + intervals[index] + 12 * octave_shift
    return midi_to_note_name(midi)


def scale_notes(root_key: str, scale: ScaleLike, octave: int, num_octaves: int = 1) -> List[str]:
    """Note names of a scale spanning `num_octaves` starting at `octave`."""
    count = len(scale_intervals(scale)) * num_octaves
    return [note_name(root_key, octave, degree, scale) for degree in range(count)]


def in_scale(note: str, key: str, scale: ScaleLike) -> bool:
    """True if the note's pitch class belongs to `scale` transposed to `key`."""
    root = NOTE_NAMES.index(normalize_key(key))
    return (pitch_class(note) - root) % 12 in scale_intervals(scale)


def fifth_degree(scale: ScaleLike) -> int:
    """0-based degree of the scale tone closest to a perfect fifth."""
    intervals = scale_intervals(scale)
    return min(range(len(intervals)), key=lambda i: (abs(intervals[i] - 7), i))


CHORD_EXTENSIONS = ('7', '9', 'sus2', 'sus4')


def chord_from_degree(
    scale: ScaleLike,
    degree: int,
    extensions: Iterable[str] = (),
) -> Tuple[int, ...]:
    """
    Build a chord on a 1-based scale degree by stacking scale thirds.

    Returns semitone offsets relative to the key root, sorted ascending.
    Extensions: '7' and '9' add further stacked thirds, 'sus2'/'sus4'
    replace the third with the second/fourth scale step. Every tone stays
    inside the scale.
    """
    intervals = scale_intervals(scale)
    size = len(intervals)
    base = degree - 1

    def tone(step: int) -> int:
        octave_shift, index = divmod(base + step, size)
        return intervals[index] + 12 * octave_shift

    extensions = set(extensions)
    unknown = extensions - set(CHORD_EXTENSIONS)
    if unknown:
        logger.debug("Ignoring unknown chord extensions: %s", sorted(unknown))

    steps = [0, 2, 4]
    if 'sus2' in extensions:
        steps[1] = 1
    elif 'sus4' in extensions:
        steps[1] = 3
    if '7' in extensions:
        steps.append(6)
    if '9' in extensions:
        steps.append(8)
    return tuple(sorted(tone(step) for step in steps))


# =============================================================================
# CHORD PROGRESSIONS
# =============================================================================

class ChordProgression(Enum):
    """Progression templates, written as roman numerals."""
    EPIC_MINOR = 'i-VI-III-VII'
    DARK_CADENCE = 'i-iv-v-i'
    HYPNOTIC = 'i-VII-VI-VII'
    MELANCHOLIC = 'i-iv-VI-v'
    ANDALUSIAN = 'i-VII-VI-V'
    RISING = 'i-III-VII-VI'
    SHADOW = 'i-v-VI-iv'
    POP = 'I-V-vi-IV'
    DRONE = 'i-i-iv-i'


_ROMAN_VALUES = {'I': 1, 'II': 2, 'III': 3, 'IV': 4, 'V': 5, 'VI': 6, 'VII': 7}


def roman_to_degree(numeral: str) -> int:
    """'iv' -> 4, 'VII' -> 7. Case only signals chord quality."""
    try:
        return _ROMAN_VALUES[numeral.strip().upper().rstrip('°+')]
    except KeyError:
        raise ConfigurationError(f"Unknown roman numeral: {numeral!r}") from None


def resolve_progression(progression: Union[ChordProgression, str]) -> ChordProgression:
    if isinstance(progression, ChordProgression):
        return progression
    text = str(progression).strip()
    for member in ChordProgression:
        if text == member.value or text.upper() == member.name or text.lower() == member.name.lower():
            return member
    raise ConfigurationError(f"Unknown chord progression: {progression!r}")


def progression_degrees(progression: Union[ChordProgression, str]) -> List[int]:
    """1-based scale degrees for a progression template."""
    return [roman_to_degree(n) for n in resolve_progression(progression).value.split('-')]


def chord_notes(key: str, scale: ScaleLike, degree: int, octave: int,
                extensions: Sequence[str] = ()) -> List[str]:
    """Note names of a scale chord voiced upward from `octave`."""
    root_midi = note_name_to_midi(key, octave)
    return [midi_to_note_name(root_midi + offset)
            for offset in chord_from_degree(scale, degree, extensions)]


# =============================================================================
# TIMING / CONVERSION FUNCTIONS
# =============================================================================

def bars_to_ticks(bars: float) -> int:
    """Convert 4/4 bars to ticks."""
    return int(bars * TICKS_PER_BAR)


def ticks_to_bars(ticks: int) -> float:
    return ticks / TICKS_PER_BAR


def ticks_to_seconds(ticks: int, bpm: float) -> float:
    """Convert ticks to seconds at given BPM."""
    return (ticks / TICKS_PER_BEAT) * (60.0 / bpm)


def ms_to_ticks(ms: float, bpm: float) -> float:
    return ms / 1000.0 * (bpm / 60.0) * TICKS_PER_BEAT


def ticks_to_transport(ticks: int) -> str:
    """Transport position 'bar:beat:sixteenth' (fractional sixteenths kept)."""
    bar, rem = divmod(ticks, TICKS_PER_BAR)
    beat, rem = divmod(rem, TICKS_PER_BEAT)
    sixteenth = rem / TICKS_PER_16TH
    if sixteenth == int(sixteenth):
        sixteenth = int(sixteenth)
    return f"{bar}:{beat}:{sixteenth}"


def transport_to_ticks(position: str) -> int:
    bar, beat, sixteenth = position.split(':')
    return int(bar) * TICKS_PER_BAR + int(beat) * TICKS_PER_BEAT + int(float(sixteenth) * TICKS_PER_16TH)


def ticks_to_notation(ticks: int) -> str:
    """Symbolic duration: '8n', '4n.', '2m', or raw ticks as '<n>i'."""
    for name, value in DURATION_TICKS.items():
        if value == ticks:
            return name
    if ticks > 0 and ticks % TICKS_PER_BAR == 0:
        return f"{ticks // TICKS_PER_BAR}m"
    return f"{ticks}i"


def notation_to_ticks(notation: str) -> int:
    if notation in DURATION_TICKS:
        return DURATION_TICKS[notation]
    if notation.endswith('m'):
        return int(notation[:-1]) * TICKS_PER_BAR
    if notation.endswith('i'):
        return int(notation[:-1])
    raise ConfigurationError(f"Unknown duration notation: {notation!r}")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


SEED_MASK = 0xFFFFFFFFFFFFFFFF


def seed_entropy(seed: int) -> int:
    """
    Non-negative entropy for numpy's SeedSequence.

    Non-negative seeds pass through at full width; negative seeds map to
    their 64-bit two's complement.
    """
    seed = int(seed)
    return seed if seed >= 0 else seed & SEED_MASK
