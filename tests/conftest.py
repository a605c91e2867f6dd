"""
Pytest fixtures for synthforge tests.
"""
import pytest
import sys
from pathlib import Path
import tempfile
import shutil

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from synthforge.config import EngineSettings, SectionConfig, TrackConfig
from synthforge.generators import GeneratorRegistry


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    tmp = tempfile.mkdtemp()
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def settings():
    """Settings that never touch the environment or the network."""
    return EngineSettings(openai_api_key="test-key", request_interval=2.0, base_seed=1234)


@pytest.fixture
def track_config():
    """Default six-section track."""
    return TrackConfig()


@pytest.fixture
def drop_section():
    """Sixteen-bar drop with the core layers on."""
    return SectionConfig.with_layers('drop', 16, ('kick', 'bass', 'melody', 'hihat'), 80)


@pytest.fixture
def valid_plan():
    """A complete blueprint as the AI composer would return it."""
    return {
        "style": "afterlife_kast",
        "bpm": 123,
        "key": "A",
        "scale": "phrygian",
        "groove": "straight",
        "energy_curve": [2, 5, 8],
        "global_rules": {
            "max_simultaneous_layers": 4,
            "high_end_limit_hz": 12000,
            "silence_before_drop": True,
            "melody_density_cap": 40,
            "arp_density_cap": 30,
            "bass_movement": "note_sparse",
        },
        "sections": [
            {"type": "intro", "bars": 16, "focus": "space", "allowed_layers": ["pad", "strings"]},
            {"type": "buildup", "bars": 8, "focus": "tension",
             "allowed_layers": ["kick", "bass", "openhat", "fx"]},
            {"type": "drop", "bars": 32, "focus": "release",
             "allowed_layers": ["kick", "bass", "hihat", "melody", "pad"]},
        ],
        "instrument_targets": {
            "bass": {"cutoff": "450", "glide": 10},
            "melody": {"density": 30},
        },
    }


@pytest.fixture(autouse=True)
def fresh_registry():
    """Each test starts from the lazily built generator registry."""
    GeneratorRegistry.reset()
    yield
    GeneratorRegistry.reset()
