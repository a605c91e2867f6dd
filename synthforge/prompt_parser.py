"""
Prompt Parser Module

Offline alternative to the AI composer: scores a free-text prompt against
mood keyword lists and applies the winning mood preset. Tempo and key
mentioned in the prompt override the preset.

Supported extractions:
- Mood (eight presets from presets/moods.yaml)
- BPM ("135bpm", "128 BPM")
- Key ("in F#", "D minor", "Am")
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .config import BPM_RANGE, PARAMS_TYPES, TrackConfig
from .config_loader import MOODS_FILE, ConfigLoader, get_config_loader
from .utils import Scale, normalize_key, resolve_scale, seed_entropy

logger = logging.getLogger(__name__)

DEFAULT_MOOD = 'dark'

BPM_PATTERN = re.compile(r'(\d{2,3})\s*bpm', re.IGNORECASE)

# Tried in order. Without a quality word the root must be capitalized so
# articles ("a dark track") are not read as keys.
KEY_PATTERNS = [
    re.compile(r'\b([A-Ga-g][#b♯♭]?)\s*(major|minor|maj|min)\b', re.IGNORECASE),
    re.compile(r'\b(?:in|key(?:\s+of)?)\s+([A-G][#b♯♭]?)(m)?(?![\w#])'),
    re.compile(r'\b([A-G][#b♯♭]?)(m)(?![\w#])'),
]

# Preset blocks applied as partial instrument updates
PRESET_INSTRUMENTS = ('kick', 'bass', 'melody', 'hihat', 'pad')


@dataclass
class ParsedPrompt:
    """
    Result of parsing a mood prompt.

    `bpm` and `key` are final values: the prompt's own when it mentions
    them, the preset's otherwise.
    """
    prompt: str
    mood: str
    score: int
    bpm: int
    key: str
    scale: Scale
    style: Optional[str] = None
    params: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    bpm_from_prompt: bool = False
    key_from_prompt: bool = False


def extract_bpm(prompt: str) -> Optional[int]:
    """Tempo written as '<n> bpm', if within the engine's range."""
    match = BPM_PATTERN.search(prompt)
    if match:
        bpm = int(match.group(1))
        if BPM_RANGE[0] <= bpm <= BPM_RANGE[1]:
            return bpm
    return None


def extract_key(prompt: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Root note and quality ('major'/'minor'/None) mentioned in a prompt.

    Returns (None, None) when no key is found.
    """
    for pattern in KEY_PATTERNS:
        match = pattern.search(prompt)
        if not match:
            continue
        root = match.group(1)
        root = root[0].upper() + root[1:]
        quality = match.group(2).lower() if match.group(2) else None
        if quality in ('major', 'maj'):
            quality = 'major'
        elif quality is not None:
            quality = 'minor'
        return normalize_key(root), quality
    return None, None


def score_moods(prompt: str, moods: Dict[str, Dict[str, Any]]) -> Dict[str, int]:
    """Sum of matched keyword lengths per mood; longer keywords are more specific."""
    text = prompt.lower()
    return {
        mood: sum(len(str(kw)) for kw in preset.get('keywords', ()) if str(kw).lower() in text)
        for mood, preset in moods.items()
    }


def detect_mood(prompt: str, moods: Dict[str, Dict[str, Any]],
                default: str = DEFAULT_MOOD) -> Tuple[str, int]:
    """Best-scoring mood; the first listed wins ties, `default` when nothing matches."""
    best, best_score = default, 0
    for mood, score in score_moods(prompt, moods).items():
        if score > best_score:
            best, best_score = mood, score
    return best, best_score


class MoodPromptParser:
    """
    Keyword-driven prompt to preset mapping.

    Usage:
        parser = MoodPromptParser()
        parsed = parser.parse("acid techno, 303 squelch, 135bpm")
        config = parser.apply(parsed, config)
    """

    def __init__(self, loader: Optional[ConfigLoader] = None, presets_file=MOODS_FILE):
        self.loader = loader or get_config_loader()
        self.presets_file = presets_file

    @property
    def moods(self) -> Dict[str, Dict[str, Any]]:
        return self.loader.load_mood_presets(self.presets_file)

    def parse(self, prompt: str, seed: Optional[int] = None) -> ParsedPrompt:
        """
        Parse a prompt.

        Args:
            prompt: Free-text description
            seed: When given, a preset tempo is nudged by -3..+2 BPM from
                  this seed; without it the preset tempo is used as is
        """
        moods = self.moods
        default = self.loader.load_yaml(self.presets_file).get('default_mood', DEFAULT_MOOD)
        mood, score = detect_mood(prompt, moods, default)
        preset = moods[mood]

        bpm = extract_bpm(prompt)
        bpm_from_prompt = bpm is not None
        if bpm is None:
            bpm = int(preset.get('bpm', 126))
            if seed is not None:
                bpm += int(np.random.default_rng(seed_entropy(seed)).integers(-3, 3))

        key, quality = extract_key(prompt)
        key_from_prompt = key is not None
        if key is None:
            key = normalize_key(str(preset.get('key', 'A')))

        scale = Scale.MAJOR if quality == 'major' else resolve_scale(preset.get('scale', Scale.MINOR))

        params = {name: dict(preset[name]) for name in PRESET_INSTRUMENTS
                  if isinstance(preset.get(name), dict)}
        logger.debug("Prompt %r -> mood %s (score %d)", prompt, mood, score)
        return ParsedPrompt(
            prompt=prompt,
            mood=mood,
            score=score,
            bpm=bpm,
            key=key,
            scale=scale,
            style=preset.get('style'),
            params=params,
            bpm_from_prompt=bpm_from_prompt,
            key_from_prompt=key_from_prompt,
        )

    def apply(self, parsed: ParsedPrompt, config: TrackConfig) -> TrackConfig:
        """A copy of `config` with the parsed preset applied (subscribers notified)."""
        result = config.copy()
        result.set_value('bpm', parsed.bpm)
        result.set_value('key', parsed.key)
        result.set_value('scale', parsed.scale)
        if parsed.style:
            result.set_value('style', parsed.style)
        for instrument, values in parsed.params.items():
            known = {k: v for k, v in values.items() if k in PARAMS_TYPES[instrument].__dataclass_fields__}
            result.update_instrument(instrument, **known)
        logger.info("Applied mood preset %s (%d BPM, %s %s)",
                    parsed.mood, parsed.bpm, parsed.key, parsed.scale.value)
        return result


def apply_prompt(prompt: str, config: TrackConfig, seed: Optional[int] = None,
                 parser: Optional[MoodPromptParser] = None) -> Tuple[TrackConfig, ParsedPrompt]:
    """Convenience function: parse a prompt and apply it to a copy of `config`."""
    parser = parser or MoodPromptParser()
    parsed = parser.parse(prompt, seed)
    return parser.apply(parsed, config), parsed
