"""Tests for blueprint validation and application."""
import logging

import pytest

from synthforge.blueprint import (
    BlueprintError,
    ComposerPlan,
    apply_blueprint,
    coerce_bool,
    coerce_number,
    coerce_targets,
    compose_response_from_dict,
    derive_intensity,
    validate_plan,
)
from synthforge.config import (
    INSTRUMENTS,
    BassMovement,
    SectionFocus,
    SectionType,
    TechnoStyle,
    TrackConfig,
)
from synthforge.utils import Scale


class TestValidation:
    """Schema checks on service responses and local plans."""

    def test_full_plan_accepted(self, valid_plan):
        response = compose_response_from_dict({"success": True, "plan": valid_plan})
        assert response.success
        assert response.plan.bpm == 123
        assert [s.type for s in response.plan.sections] == [
            SectionType.INTRO, SectionType.BUILDUP, SectionType.DROP]

    def test_out_of_range_bpm_rejected(self, valid_plan):
        valid_plan["bpm"] = 90
        response = compose_response_from_dict({"success": True, "plan": valid_plan})
        assert not response.success
        assert response.plan is None
        assert "bpm" in response.error

    def test_missing_field_rejected(self, valid_plan):
        del valid_plan["global_rules"]
        response = compose_response_from_dict({"success": True, "plan": valid_plan})
        assert not response.success
        assert "global_rules" in response.error

    def test_unknown_layer_rejected(self, valid_plan):
        valid_plan["sections"][0]["allowed_layers"].append("theremin")
        with pytest.raises(BlueprintError):
            validate_plan(valid_plan)

    def test_service_error_passes_through(self):
        response = compose_response_from_dict({"success": False, "error": "Rate limit exceeded"})
        assert not response.success
        assert response.error == "Rate limit exceeded"

    def test_non_object(self):
        assert not compose_response_from_dict(["plan"]).success
        with pytest.raises(BlueprintError):
            ComposerPlan.from_json("{not json")

    def test_partial_plan(self):
        plan = ComposerPlan.from_dict({"bpm": 124})
        assert plan.bpm == 124
        assert plan.sections is None


class TestApply:
    """Plans applied to a configuration."""

    def test_energy_curve_sets_intensity(self):
        plan = {
            "energy_curve": [2, 8],
            "sections": [
                {"type": "intro", "bars": 8, "allowed_layers": ["pad"]},
                {"type": "drop", "bars": 16, "allowed_layers": ["kick", "bass"]},
            ],
        }
        config = apply_blueprint(plan, TrackConfig())
        assert [s.intensity for s in config.sections] == [20, 80]
        assert config.sections[1].enabled_layers() == ["kick", "bass"]

    def test_invalid_plan_leaves_config_unchanged(self):
        config = TrackConfig()
        before = config.copy()
        with pytest.raises(BlueprintError):
            apply_blueprint({"bpm": 90, "key": "D"}, config)
        assert config == before
        assert config.bpm == 126

    def test_full_plan(self, valid_plan):
        config = TrackConfig()
        updated = apply_blueprint(ComposerPlan.from_dict(valid_plan, partial=False), config)
        assert updated is not config
        assert updated.bpm == 123
        assert updated.scale is Scale.PHRYGIAN
        assert updated.style is TechnoStyle.DARK
        assert updated.total_bars() == 56
        assert [s.intensity for s in updated.sections] == [20, 50, 80]
        assert updated.sections[0].focus is SectionFocus.SPACE
        # 'openhat' is the hi-hat layer
        assert updated.sections[1].has_hihat
        assert updated.rules.max_simultaneous_layers == 4
        assert updated.rules.bass_movement is BassMovement.NOTE_SPARSE
        assert updated.bass.cutoff == 450.0
        assert updated.bass.glide == 10.0
        assert updated.melody.density == 30.0
        assert config.bpm == 126

    def test_mirror_plan_is_idempotent(self, track_config):
        updated = apply_blueprint(ComposerPlan.mirror(track_config), track_config)
        assert [(s.type, s.bars, s.intensity, s.enabled_layers()) for s in updated.sections] == \
            [(s.type, s.bars, s.intensity, s.enabled_layers()) for s in track_config.sections]
        for instrument in INSTRUMENTS:
            assert getattr(updated, instrument) == getattr(track_config, instrument), instrument

    def test_applying_a_plan_twice_changes_nothing_more(self, track_config, valid_plan):
        once = apply_blueprint(valid_plan, track_config)
        twice = apply_blueprint(valid_plan, once)
        for instrument in INSTRUMENTS:
            assert getattr(twice, instrument) == getattr(once, instrument), instrument
        assert twice.sections == once.sections
        assert (twice.bpm, twice.key, twice.scale, twice.rules) == \
            (once.bpm, once.key, once.scale, once.rules)
        assert once.bass.cutoff == 450.0

    def test_curve_without_sections(self, track_config):
        updated = apply_blueprint({"energy_curve": [1]}, track_config)
        assert {s.intensity for s in updated.sections} == {10}
        assert len(updated.sections) == len(track_config.sections)

    def test_key_spellings(self, track_config):
        assert apply_blueprint({"key": "F# minor"}, track_config).key == "F#"
        assert apply_blueprint({"key": "Bb"}, track_config).key == "A#"
        with pytest.raises(BlueprintError):
            apply_blueprint({"key": "minor"}, track_config)

    def test_unknown_style_warns_and_is_kept(self, track_config, caplog):
        with caplog.at_level(logging.WARNING, logger="synthforge.blueprint"):
            updated = apply_blueprint({"style": "peak_time"}, track_config)
        assert updated.style is track_config.style
        assert "peak_time" in caplog.text

    def test_unknown_scale_raises(self, track_config):
        with pytest.raises(BlueprintError):
            apply_blueprint({"scale": "klingon"}, track_config)


class TestCoercion:
    """Loose instrument targets."""

    def test_numeric_strings(self):
        assert coerce_targets({"bass": {"cutoff": "450"}}) == {"bass": {"cutoff": 450.0}}

    def test_integer_fields_round(self):
        assert coerce_targets({"melody": {"octave": "4.6"}}) == {"melody": {"octave": 5}}

    def test_booleans_are_not_numbers(self):
        with pytest.raises(BlueprintError):
            coerce_targets({"bass": {"cutoff": True}})
        with pytest.raises(BlueprintError):
            coerce_number(False)

    def test_camel_case_and_aliases(self):
        result = coerce_targets({
            "lead": {"filterCutoff": 3000},
            "openhat": {"openRatio": "40"},
            "bass": {"subMix": 70},
        })
        assert result == {
            "melody": {"filter_cutoff": 3000.0},
            "hihat": {"open_ratio": 40.0},
            "bass": {"sub_mix": 70.0},
        }

    def test_unknown_names_ignored(self):
        assert coerce_targets({"theremin": {"pitch": 1}, "bass": {"wobble": 3}}) == {}

    def test_enum_values(self):
        assert coerce_targets({"hihat": {"pattern": "OFFBEAT"}}) == {"hihat": {"pattern": "offbeat"}}
        with pytest.raises(BlueprintError):
            coerce_targets({"hihat": {"pattern": "waltz"}})

    def test_bool_strings(self):
        assert coerce_bool("yes") is True
        assert coerce_bool(0) is False
        with pytest.raises(BlueprintError):
            coerce_bool("maybe")


class TestIntensity:
    """Energy curve to section intensity."""

    def test_scaling_and_clamp(self):
        assert derive_intensity([2.5], 0) == 25
        assert derive_intensity([10], 0) == 100

    def test_short_curve_reuses_last_value(self):
        assert derive_intensity([2, 6], 4) == 60

    def test_focus_fallback(self):
        assert derive_intensity(None, 0, SectionFocus.RELEASE) == 90
        assert derive_intensity([], 0) is None
