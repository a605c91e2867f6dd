"""Generator registry for instrument-family lookup."""
from typing import Dict, List, Optional

from .base import PatternGenerator
from ..utils import ConfigurationError


class GeneratorRegistry:
    """
    Registry of pattern generators keyed by instrument family.

    Provides a centralized way to look up the generator for any layer.
    Supports:
    - Alias names per generator ('lead' for melody, 'hats' for hihat)
    - Lazy initialization (generators loaded on first access)

    Usage:
        generator = GeneratorRegistry.require('kick')
        events = list(generator.generate(section, 'A', 'minor', params, seed))
    """

    _generators: Dict[str, PatternGenerator] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, generator: PatternGenerator) -> None:
        """Register a generator under its instrument name and aliases."""
        for name in [generator.instrument] + generator.aliases:
            cls._generators[name.lower()] = generator

    @classmethod
    def get(cls, name: str) -> Optional[PatternGenerator]:
        """Generator for an instrument (case-insensitive), or None."""
        cls._ensure_initialized()
        return cls._generators.get(name.lower())

    @classmethod
    def require(cls, name: str) -> PatternGenerator:
        """Like get(), but raises ConfigurationError for unknown instruments."""
        generator = cls.get(name)
        if generator is None:
            raise ConfigurationError(f"No generator for instrument: {name!r}")
        return generator

    @classmethod
    def _ensure_initialized(cls) -> None:
        """
        Lazy-load all generators on first access.

        Deferring the imports keeps the concrete families out of the
        import graph of modules that only need the base classes.
        """
        if cls._initialized:
            return

        from .drums import HiHatGenerator, KickGenerator, PercGenerator
        from .bass import BassGenerator
        from .melodic import (
            AcidGenerator,
            ArpGenerator,
            MelodyGenerator,
            PianoGenerator,
            PluckGenerator,
            StabGenerator,
            StringsGenerator,
        )
        from .textures import FxGenerator, PadGenerator, VocalGenerator

        for generator in (
            KickGenerator(), BassGenerator(), MelodyGenerator(), HiHatGenerator(),
            PadGenerator(), PluckGenerator(), StabGenerator(), PianoGenerator(),
            StringsGenerator(), AcidGenerator(), PercGenerator(), FxGenerator(),
            ArpGenerator(), VocalGenerator(),
        ):
            cls.register(generator)

        cls._initialized = True

    @classmethod
    def list_instruments(cls) -> List[str]:
        """Primary instrument names (aliases excluded)."""
        cls._ensure_initialized()
        return sorted({g.instrument for g in cls._generators.values()})

    @classmethod
    def reset(cls) -> None:
        """Reset the registry (mainly for testing)."""
        cls._generators.clear()
        cls._initialized = False
