"""Tests for the offline mood prompt parser and the preset loader."""
import pytest

from synthforge.config import TechnoStyle, TrackConfig
from synthforge.config_loader import ConfigLoader, ConfigLoadError, get_config_loader
from synthforge.prompt_parser import (
    MoodPromptParser,
    apply_prompt,
    detect_mood,
    extract_bpm,
    extract_key,
)
from synthforge.utils import Scale


@pytest.fixture
def parser():
    return MoodPromptParser(ConfigLoader())


class TestExtraction:
    """Tempo and key from free text."""

    def test_bpm(self):
        assert extract_bpm("acid techno, 303 squelch, 135bpm") == 135
        assert extract_bpm("slow 128 BPM roller") == 128
        assert extract_bpm("way too fast 300bpm") is None
        assert extract_bpm("no tempo here") is None

    @pytest.mark.parametrize("prompt,expected", [
        ("something in F# minor", ("F#", "minor")),
        ("D major sunrise", ("D", "major")),
        ("rolling in G, 124 bpm", ("G", None)),
        ("warehouse track in Am", ("A", "minor")),
        ("Ebm bassline", ("D#", "minor")),
    ])
    def test_key(self, prompt, expected):
        assert extract_key(prompt) == expected

    def test_article_is_not_a_key(self):
        assert extract_key("a dark track for a warehouse") == (None, None)


class TestMoods:
    """Keyword scoring."""

    def test_acid(self, parser):
        parsed = parser.parse("acid techno, 303 squelch, 135bpm")
        assert parsed.mood == "acid"
        assert parsed.bpm == 135
        assert parsed.bpm_from_prompt
        assert parsed.scale is Scale.PHRYGIAN

    def test_default_mood(self, parser):
        parsed = parser.parse("something nobody has a word for")
        assert parsed.mood == "dark"
        assert parsed.score == 0
        assert parsed.bpm == 130

    def test_longer_keywords_win(self):
        moods = {"one": {"keywords": ["deep"]}, "two": {"keywords": ["hypnotic"]}}
        assert detect_mood("deep hypnotic", moods) == ("two", 8)

    def test_seeded_jitter(self, parser):
        first = parser.parse("dark warehouse", seed=5)
        assert first.bpm == parser.parse("dark warehouse", seed=5).bpm
        assert 127 <= first.bpm <= 132

    def test_major_quality_overrides_scale(self, parser):
        parsed = parser.parse("euphoric sunrise in C major")
        assert parsed.mood == "euphoric"
        assert parsed.scale is Scale.MAJOR
        assert parsed.key_from_prompt


class TestApply:
    """Preset applied to a configuration copy."""

    def test_apply_prompt(self, parser):
        config = TrackConfig()
        changes = []
        config.subscribe(changes.append)
        updated, parsed = apply_prompt("industrial metal noise", config, parser=parser)
        assert parsed.mood == "industrial"
        assert updated.bpm == 138
        assert updated.key == "D"
        assert updated.scale is Scale.LOCRIAN
        assert updated.style is TechnoStyle.INDUSTRIAL
        assert updated.kick.drive == 80
        assert updated.hihat.pattern == "complex"
        assert config.bpm == 126
        assert {"bpm", "key", "kick.drive"} <= {c.path for c in changes}

    def test_every_mood_applies(self, parser):
        for mood, preset in parser.moods.items():
            updated = parser.apply(parser.parse(" ".join(map(str, preset["keywords"][:2]))),
                                   TrackConfig())
            assert updated.bpm == preset["bpm"]


class TestConfigLoader:
    """YAML preset loading."""

    def test_bundled_moods(self):
        assert len(get_config_loader().list_moods()) == 8

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigLoadError):
            ConfigLoader(temp_dir).load_yaml("nope.yaml")

    def test_invalid_yaml(self, temp_dir):
        (temp_dir / "bad.yaml").write_text("moods: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            ConfigLoader(temp_dir).load_yaml("bad.yaml")

    def test_no_moods(self, temp_dir):
        (temp_dir / "empty.yaml").write_text("default_mood: dark\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            ConfigLoader(temp_dir).load_mood_presets("empty.yaml")

    def test_custom_file_and_reload(self, temp_dir):
        path = temp_dir / "moods.yaml"
        path.write_text("moods:\n  calm:\n    keywords: [calm]\n    bpm: 120\n", encoding="utf-8")
        loader = ConfigLoader(temp_dir)
        parsed = MoodPromptParser(loader).parse("calm")
        assert parsed.mood == "calm"
        assert parsed.key == "A"

        path.write_text("moods:\n  storm:\n    keywords: [storm]\n", encoding="utf-8")
        assert loader.list_moods() == ["calm"]
        loader.reload()
        assert loader.list_moods() == ["storm"]

    def test_unknown_mood(self):
        with pytest.raises(ConfigLoadError):
            ConfigLoader().get_mood_preset("polka")
