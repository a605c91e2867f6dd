"""Per-instrument pattern generators."""
from .base import EventSequence, GenerationContext, PatternGenerator, Voice
from .registry import GeneratorRegistry


def generate(instrument, section, key, scale, params=None, seed=0, context=None):
    """Convenience wrapper: look up the family generator and build its sequence."""
    return GeneratorRegistry.require(instrument).generate(section, key, scale, params, seed, context)


__all__ = [
    'EventSequence',
    'GenerationContext',
    'GeneratorRegistry',
    'PatternGenerator',
    'Voice',
    'generate',
]
