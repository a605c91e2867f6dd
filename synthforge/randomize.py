"""
Seeded randomization of a track configuration.

Everything draws from an explicit numpy Generator, so the same seed always
produces the same track.
"""

from typing import List, Optional, Sequence, TypeVar

import numpy as np

from .config import (
    AcidParams,
    ArpParams,
    BassParams,
    GrooveType,
    HiHatParams,
    KickParams,
    MelodyParams,
    PadParams,
    PercParams,
    PianoParams,
    PluckParams,
    SectionConfig,
    SectionType,
    StabParams,
    StringsParams,
    SynthType,
    TechnoStyle,
    TrackConfig,
)
from .utils import Scale, seed_entropy

T = TypeVar('T')

POOL_KEYS = ('A', 'C', 'D', 'E', 'F', 'F#', 'G', 'G#', 'A#', 'B')
POOL_SCALES = (
    Scale.MINOR, Scale.PHRYGIAN, Scale.HARMONIC_MINOR, Scale.DORIAN,
    Scale.MELODIC_MINOR, Scale.PENTATONIC_MINOR, Scale.HUNGARIAN_MINOR,
)
POOL_BPM = (118, 132)
POOL_SECTION_BARS = (4, 8, 8, 16, 16)


def randint(rng: np.random.Generator, low: int, high: int) -> int:
    """Inclusive integer range."""
    return int(rng.integers(low, high + 1))


def pick(rng: np.random.Generator, options: Sequence[T]) -> T:
    return options[int(rng.integers(len(options)))]


def randomize_sections(rng: np.random.Generator) -> List[SectionConfig]:
    """
    Four to eight sections opening with an intro and closing with an outro,
    with layers and intensity typical for each section type.
    """
    count = randint(rng, 4, 8)
    sections = []
    for i in range(count):
        section_type = pick(rng, list(SectionType))
        if i == 0:
            section_type = SectionType.INTRO
        elif i == count - 1:
            section_type = SectionType.OUTRO
        t = section_type

        if t == SectionType.DROP:
            intensity = randint(rng, 80, 100)
        elif t == SectionType.BREAKDOWN:
            intensity = randint(rng, 20, 40)
        elif t == SectionType.BUILDUP:
            intensity = randint(rng, 50, 70)
        else:
            intensity = randint(rng, 30, 60)

        def roll(threshold: float) -> bool:
            return bool(rng.random() > threshold)

        sections.append(SectionConfig(
            type=t,
            bars=pick(rng, POOL_SECTION_BARS),
            has_kick=t not in (SectionType.INTRO, SectionType.BREAKDOWN) and roll(0.2),
            has_bass=t != SectionType.INTRO and roll(0.3),
            has_melody=t in (SectionType.DROP, SectionType.BREAKDOWN) or roll(0.5),
            has_hihat=roll(0.3),
            has_pad=t in (SectionType.INTRO, SectionType.BREAKDOWN, SectionType.OUTRO) or roll(0.6),
            has_pluck=t == SectionType.DROP and roll(0.5),
            has_stab=t == SectionType.DROP and roll(0.6),
            has_piano=t == SectionType.BREAKDOWN and roll(0.5),
            has_strings=t in (SectionType.INTRO, SectionType.BREAKDOWN) and roll(0.4),
            has_acid=roll(0.8),
            has_perc=t != SectionType.BREAKDOWN and roll(0.4),
            has_fx=t in (SectionType.BUILDUP, SectionType.INTRO) and roll(0.3),
            has_arp=t in (SectionType.DROP, SectionType.BUILDUP) and roll(0.4),
            intensity=intensity,
        ))
    return sections


def randomize_kick(rng: np.random.Generator) -> KickParams:
    return KickParams(
        style=pick(rng, KickParams.ENUMS['style']),
        punch=randint(rng, 40, 100),
        sub=randint(rng, 50, 100),
        decay=randint(rng, 20, 80),
        pitch=randint(rng, 40, 70),
        drive=randint(rng, 0, 60),
        tone=randint(rng, 30, 70),
    )


def randomize_bass(rng: np.random.Generator) -> BassParams:
    return BassParams(
        type=pick(rng, BassParams.ENUMS['type']),
        synth_type=pick(rng, (SynthType.SAWTOOTH, SynthType.SQUARE, SynthType.TRIANGLE, SynthType.SINE)),
        cutoff=randint(rng, 200, 1200),
        resonance=randint(rng, 20, 80),
        attack=randint(rng, 1, 30),
        decay=randint(rng, 100, 500),
        sustain=randint(rng, 30, 80),
        release=randint(rng, 50, 300),
        octave=randint(rng, -2, 0),
        glide=randint(rng, 0, 60),
        distortion=randint(rng, 0, 50),
        sub_mix=randint(rng, 30, 80),
        density=randint(rng, 30, 80),
    )


def randomize_melody(rng: np.random.Generator) -> MelodyParams:
    return MelodyParams(
        octave=randint(rng, 3, 5),
        density=randint(rng, 20, 80),
        variation=randint(rng, 10, 70),
        arp_speed=randint(rng, 20, 90),
        synth_type=pick(rng, (SynthType.SINE, SynthType.TRIANGLE, SynthType.SAWTOOTH)),
        attack=randint(rng, 5, 80),
        release=randint(rng, 100, 800),
        filter_cutoff=randint(rng, 1000, 5000),
        reverb_mix=randint(rng, 20, 70),
        delay_mix=randint(rng, 10, 60),
    )


def randomize_rhythm(rng: np.random.Generator):
    """Groove, hi-hat and percussion together, as one rhythm change."""
    groove = pick(rng, list(GrooveType))
    hihat = HiHatParams(
        decay=randint(rng, 15, 60),
        pitch=randint(rng, 30, 80),
        pattern=pick(rng, HiHatParams.ENUMS['pattern']),
        velocity=randint(rng, 50, 90),
        open_ratio=randint(rng, 0, 50),
    )
    perc = PercParams(
        type=pick(rng, ('clap', 'snare', 'rim', 'shaker')),
        pitch=randint(rng, 30, 70),
        decay=randint(rng, 30, 70),
        reverb=randint(rng, 20, 50),
        pattern=pick(rng, ('sparse', 'regular', 'busy')),
    )
    return groove, hihat, perc


def randomize_all(config: TrackConfig, seed: Optional[int] = None) -> TrackConfig:
    """
    A fully randomized copy of `config` (subscribers are kept).

    Style, groove, key, scale, tempo, sections and every instrument's
    parameters are redrawn.
    """
    rng = np.random.default_rng(None if seed is None else seed_entropy(seed))
    result = config.copy()
    result.style = pick(rng, list(TechnoStyle))
    result.key = pick(rng, POOL_KEYS)
    result.scale = pick(rng, POOL_SCALES)
    result.bpm = randint(rng, *POOL_BPM)
    result.sections = randomize_sections(rng)
    result.kick = randomize_kick(rng)
    result.bass = randomize_bass(rng)
    result.melody = randomize_melody(rng)
    result.groove, result.hihat, result.perc = randomize_rhythm(rng)
    result.pad = PadParams(
        synth_type=pick(rng, (SynthType.SINE, SynthType.TRIANGLE)),
        attack=randint(rng, 300, 1200),
        release=randint(rng, 500, 2000),
        filter_cutoff=randint(rng, 600, 3000),
        lfo_rate=round(float(rng.random() * 3), 2),
        lfo_depth=randint(rng, 10, 60),
        reverb_mix=randint(rng, 40, 80),
        chord=pick(rng, ('minor', 'major', 'sus4', 'sus2', 'minor7', 'add9')),
        brightness=randint(rng, 30, 70),
        movement=randint(rng, 20, 60),
    )
    result.pluck = PluckParams(
        synth_type=pick(rng, (SynthType.TRIANGLE, SynthType.SINE)),
        decay=randint(rng, 150, 500),
        brightness=randint(rng, 40, 80),
        resonance=randint(rng, 30, 70),
        reverb_mix=randint(rng, 30, 70),
        delay_mix=randint(rng, 20, 60),
        octave=randint(rng, 4, 5),
        density=randint(rng, 30, 70),
        variation=randint(rng, 10, 60),
    )
    result.stab = StabParams(
        synth_type=pick(rng, (SynthType.SAWTOOTH, SynthType.SQUARE)),
        attack=randint(rng, 2, 15),
        release=randint(rng, 100, 400),
        filter_cutoff=randint(rng, 2000, 5000),
        voices=randint(rng, 2, 6),
        detune=randint(rng, 10, 40),
        reverb_mix=randint(rng, 20, 50),
        density=randint(rng, 20, 60),
    )
    result.piano = PianoParams(
        brightness=randint(rng, 40, 80),
        reverb=randint(rng, 30, 60),
        velocity=randint(rng, 50, 80),
        octave=randint(rng, 3, 5),
        density=randint(rng, 20, 60),
    )
    result.strings = StringsParams(
        attack=randint(rng, 500, 1500),
        release=randint(rng, 800, 2500),
        brightness=randint(rng, 30, 70),
        ensemble=randint(rng, 40, 80),
        reverb_mix=randint(rng, 50, 85),
        density=randint(rng, 40, 80),
        variation=randint(rng, 10, 50),
    )
    result.acid = AcidParams(
        cutoff=randint(rng, 200, 800),
        resonance=randint(rng, 50, 95),
        env_mod=randint(rng, 50, 100),
        decay=randint(rng, 100, 400),
        accent=randint(rng, 40, 90),
        slide=randint(rng, 10, 60),
    )
    result.arp = ArpParams(
        pattern=pick(rng, ArpParams.ENUMS['pattern']),
        speed=randint(rng, 30, 80),
        octaves=randint(rng, 1, 3),
        gate=randint(rng, 30, 80),
        swing=randint(rng, 0, 40),
    )
    result.notify('randomize', seed)
    return result
