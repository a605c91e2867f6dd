"""
Blueprint Applier

Translates an AI-authored ComposerPlan (structure, energy curve, layering
rules, loose per-instrument targets) into a concrete TrackConfig.

Validation happens in full before anything is applied: a plan either
applies completely or raises BlueprintError and leaves the caller's
configuration untouched.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, List, Optional

import jsonschema

from .config import (
    PARAMS_TYPES,
    BassMovement,
    GlobalRules,
    GrooveType,
    InstrumentParams,
    SectionConfig,
    SectionFocus,
    SectionType,
    TechnoStyle,
    TrackConfig,
    coerce_choice,
    lookup_enum,
)
from .utils import ConfigurationError, clamp, normalize_key, resolve_scale

logger = logging.getLogger(__name__)


class BlueprintError(ValueError):
    """Raised when a plan is malformed or cannot be coerced onto a configuration."""


# =============================================================================
# SCHEMA
# =============================================================================

PLAN_LAYERS = (
    'kick', 'bass', 'hihat', 'openhat', 'perc', 'pad', 'melody',
    'arp', 'pluck', 'stab', 'piano', 'strings', 'acid', 'vocal', 'fx',
)
PLAN_SECTION_TYPES = ('intro', 'buildup', 'breakdown', 'drop', 'outro')
STYLE_HINTS = ('afterlife_kast', 'afterlife_anyma', 'melodic_underground')

COMPOSER_PLAN_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "ComposerPlan",
    "type": "object",
    "properties": {
        "style": {"type": "string"},
        "bpm": {"type": "number", "minimum": 118, "maximum": 128},
        "key": {"type": "string", "minLength": 1},
        "scale": {"type": "string", "minLength": 1},
        "groove": {"type": "string", "minLength": 1},
        "energy_curve": {
            "type": "array",
            "items": {"type": "number", "minimum": 0, "maximum": 10},
        },
        "global_rules": {
            "type": "object",
            "properties": {
                "max_simultaneous_layers": {"type": "number", "minimum": 2, "maximum": 5},
                "high_end_limit_hz": {"type": "number", "minimum": 9000, "maximum": 14000},
                "silence_before_drop": {"type": "boolean"},
                "melody_density_cap": {"type": "number", "minimum": 0, "maximum": 100},
                "arp_density_cap": {"type": "number", "minimum": 0, "maximum": 100},
                "bass_movement": {"type": "string", "enum": ["filter_only", "note_sparse"]},
            },
            "required": [
                "max_simultaneous_layers",
                "high_end_limit_hz",
                "silence_before_drop",
                "melody_density_cap",
                "arp_density_cap",
                "bass_movement",
            ],
        },
        "sections": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": list(PLAN_SECTION_TYPES)},
                    "bars": {"type": "integer", "minimum": 2, "maximum": 64},
                    "focus": {"type": "string", "enum": [f.value for f in SectionFocus]},
                    "allowed_layers": {
                        "type": "array",
                        "items": {"type": "string", "enum": list(PLAN_LAYERS)},
                    },
                },
                "required": ["type", "bars", "focus", "allowed_layers"],
            },
        },
        "instrument_targets": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": {"type": ["string", "number", "boolean"]},
            },
        },
    },
    "required": [
        "style", "bpm", "key", "scale", "groove", "energy_curve",
        "global_rules", "sections", "instrument_targets",
    ],
}


def _partial_schema() -> Dict[str, Any]:
    """Schema for locally authored plans: every top-level field optional."""
    schema = copy.deepcopy(COMPOSER_PLAN_SCHEMA)
    schema["required"] = []
    schema["properties"]["global_rules"]["required"] = []
    schema["properties"]["sections"]["items"]["required"] = ["type", "bars"]
    return schema


PARTIAL_PLAN_SCHEMA = _partial_schema()


def _error_path(error: jsonschema.ValidationError) -> str:
    path = ''
    for part in error.absolute_path:
        path += f'[{part}]' if isinstance(part, int) else (f'.{part}' if path else str(part))
    return path or '<plan>'


def validate_plan(data: Any, partial: bool = False) -> None:
    """
    Validate a plan dict against the ComposerPlan schema.

    Raises:
        BlueprintError: listing every violation as 'path: message'
    """
    if not isinstance(data, dict):
        raise BlueprintError("Plan must be a JSON object")
    schema = PARTIAL_PLAN_SCHEMA if partial else COMPOSER_PLAN_SCHEMA
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        details = '; '.join(f"{_error_path(e)}: {e.message}" for e in errors)
        raise BlueprintError(f"Invalid plan structure: {details}")


# =============================================================================
# PLAN MODEL
# =============================================================================

LAYER_ALIASES = {'openhat': 'hihat', 'hats': 'hihat', 'lead': 'melody'}

# Plan styles are producer references; map them onto engine styles
STYLE_ALIASES = {
    'afterlife_kast': TechnoStyle.DARK,
    'afterlife_anyma': TechnoStyle.MELODIC,
    'melodic_underground': TechnoStyle.HYPNOTIC,
}

# Energy used when a plan has no energy curve, on the 0-10 scale
FOCUS_ENERGY = {
    SectionFocus.SPACE: 3.0,
    SectionFocus.GROOVE: 6.0,
    SectionFocus.TENSION: 7.0,
    SectionFocus.EMOTION: 5.0,
    SectionFocus.RELEASE: 9.0,
}


def canonical_layer(name: str) -> str:
    name = name.strip().lower()
    return LAYER_ALIASES.get(name, name)


@dataclass
class PlanSection:
    type: SectionType
    bars: int
    focus: Optional[SectionFocus] = None
    allowed_layers: Optional[FrozenSet[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlanSection':
        layers = data.get('allowed_layers')
        return cls(
            type=lookup_enum(SectionType, data['type']),
            bars=int(data['bars']),
            focus=lookup_enum(SectionFocus, data['focus']) if data.get('focus') else None,
            allowed_layers=frozenset(canonical_layer(name) for name in layers) if layers is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'type': self.type.value, 'bars': self.bars}
        if self.focus is not None:
            result['focus'] = self.focus.value
        if self.allowed_layers is not None:
            result['allowed_layers'] = sorted(self.allowed_layers)
        return result


@dataclass
class ComposerPlan:
    """
    A validated blueprint. Fields left as None were omitted by the plan
    and leave the corresponding configuration untouched.
    """
    style: Optional[str] = None
    bpm: Optional[float] = None
    key: Optional[str] = None
    scale: Optional[str] = None
    groove: Optional[str] = None
    energy_curve: Optional[List[float]] = None
    global_rules: Optional[Dict[str, Any]] = None
    sections: Optional[List[PlanSection]] = None
    instrument_targets: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, partial: bool = True) -> 'ComposerPlan':
        """
        Build a plan from decoded JSON.

        Args:
            data: Plan dict
            partial: Accept plans that omit top-level fields. Responses from
                the blueprint service are validated with partial=False.
        """
        validate_plan(data, partial=partial)
        sections = data.get('sections')
        return cls(
            style=data.get('style'),
            bpm=data.get('bpm'),
            key=data.get('key'),
            scale=data.get('scale'),
            groove=data.get('groove'),
            energy_curve=[float(v) for v in data['energy_curve']] if 'energy_curve' in data else None,
            global_rules=dict(data['global_rules']) if 'global_rules' in data else None,
            sections=[PlanSection.from_dict(s) for s in sections] if sections is not None else None,
            instrument_targets={k: dict(v) for k, v in data.get('instrument_targets', {}).items()},
        )

    @classmethod
    def from_json(cls, text: str, partial: bool = True) -> 'ComposerPlan':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise BlueprintError(f"Plan is not valid JSON: {e}") from e
        return cls.from_dict(data, partial=partial)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for name in ('style', 'bpm', 'key', 'scale', 'groove', 'energy_curve', 'global_rules'):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.sections is not None:
            result['sections'] = [s.to_dict() for s in self.sections]
        result['instrument_targets'] = self.instrument_targets
        return result

    @classmethod
    def mirror(cls, config: TrackConfig) -> 'ComposerPlan':
        """A plan whose sections reproduce the configuration's current sections."""
        return cls(sections=[
            PlanSection(
                type=s.type,
                bars=s.bars,
                focus=s.focus,
                allowed_layers=frozenset(s.enabled_layers()),
            )
            for s in config.sections
        ])


@dataclass
class ComposeResponse:
    success: bool
    plan: Optional[ComposerPlan] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'success': self.success}
        if self.plan is not None:
            result['plan'] = self.plan.to_dict()
        if self.error is not None:
            result['error'] = self.error
        return result


def compose_response_from_dict(payload: Any) -> ComposeResponse:
    """
    Interpret a blueprint service response.

    A plan that fails validation becomes success=False with the
    validation message; it is never partially accepted.
    """
    if not isinstance(payload, dict):
        return ComposeResponse(False, error="Response must be a JSON object")
    if not payload.get('success'):
        return ComposeResponse(False, error=str(payload.get('error') or 'Unknown error'))
    if 'plan' not in payload:
        return ComposeResponse(False, error="Response is missing the plan")
    try:
        plan = ComposerPlan.from_dict(payload['plan'], partial=False)
    except BlueprintError as e:
        return ComposeResponse(False, error=str(e))
    return ComposeResponse(True, plan=plan)


# =============================================================================
# COERCION
# =============================================================================

_CAMEL_RE = re.compile(r'(?<=[a-z0-9])([A-Z])')
_TRUE = ('true', 'yes', 'on', '1')
_FALSE = ('false', 'no', 'off', '0')


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub(r'_\1', name.strip()).lower()


def coerce_number(value: Any) -> float:
    """Number from int, float or numeric string. Booleans are rejected."""
    if isinstance(value, bool):
        raise BlueprintError(f"Expected a number, got boolean {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise BlueprintError(f"Expected a number, got {value!r}") from None
    else:
        raise BlueprintError(f"Expected a number, got {type(value).__name__}")
    if not math.isfinite(number):
        raise BlueprintError(f"Expected a finite number, got {value!r}")
    return number


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise BlueprintError(f"Expected a boolean, got {value!r}")


def coerce_param(params_type: type, name: str, value: Any) -> Any:
    """Coerce one target value to the native type of `params_type.name`."""
    field_types = {f.name: f.type for f in fields(params_type)}
    if name in params_type.ENUMS:
        if not isinstance(value, str):
            raise BlueprintError(f"Expected a string for {name}, got {value!r}")
        try:
            return coerce_choice(params_type.ENUMS[name], value)
        except ConfigurationError as e:
            raise BlueprintError(f"{name}: {e}") from None
    kind = field_types[name]
    if kind in ('bool', bool):
        return coerce_bool(value)
    if kind in ('int', int):
        return int(round(coerce_number(value)))
    if kind in ('float', float):
        return coerce_number(value)
    if isinstance(value, str):
        return value
    raise BlueprintError(f"Expected a string for {name}, got {value!r}")


def coerce_targets(targets: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Coerce loose instrument targets to per-instrument parameter updates.

    Unknown instruments and parameter names are ignored. A known parameter
    with a value outside the coercion table raises BlueprintError.
    """
    # Aliases first so a canonical entry wins on conflicts
    ordered = sorted(targets.items(), key=lambda item: canonical_layer(item[0]) == item[0].strip().lower())
    result: Dict[str, Dict[str, Any]] = {}
    for raw_instrument, values in ordered:
        instrument = canonical_layer(raw_instrument)
        params_type = PARAMS_TYPES.get(instrument)
        if params_type is None:
            logger.debug("Ignoring targets for unknown instrument %r", raw_instrument)
            continue
        known = {f.name for f in fields(params_type)}
        for raw_name, value in values.items():
            name = snake_case(raw_name)
            if name not in known:
                logger.debug("Ignoring unknown %s parameter %r", instrument, raw_name)
                continue
            try:
                coerced = coerce_param(params_type, name, value)
            except BlueprintError as e:
                raise BlueprintError(f"instrument_targets.{raw_instrument}.{raw_name}: {e}") from None
            result.setdefault(instrument, {})[name] = coerced
    return result


def merge_rules(current: Optional[GlobalRules], update: Optional[Dict[str, Any]]) -> Optional[GlobalRules]:
    if update is None:
        return current
    rules = current if current is not None else GlobalRules()
    changes: Dict[str, Any] = {}
    for name, value in update.items():
        if name == 'bass_movement':
            changes[name] = lookup_enum(BassMovement, value)
        elif name == 'silence_before_drop':
            changes[name] = coerce_bool(value)
        elif name == 'max_simultaneous_layers':
            changes[name] = int(round(coerce_number(value)))
        elif name in ('high_end_limit_hz', 'melody_density_cap', 'arp_density_cap'):
            changes[name] = coerce_number(value)
    return replace(rules, **changes)


# =============================================================================
# APPLY
# =============================================================================

def derive_intensity(energy_curve: Optional[List[float]], index: int,
                     focus: Optional[SectionFocus] = None) -> Optional[int]:
    """
    Section intensity from the energy curve: round(energy * 10), clamped
    to [0, 100]. Sections past the end of the curve reuse its last value;
    with no curve the section focus supplies a default energy.
    """
    if energy_curve:
        energy = energy_curve[min(index, len(energy_curve) - 1)]
    elif focus is not None:
        energy = FOCUS_ENERGY[focus]
    else:
        return None
    return int(clamp(math.floor(energy * 10 + 0.5), 0, 100))


def _resolve_style(style: str, current: TechnoStyle) -> TechnoStyle:
    text = style.strip().lower()
    if text in STYLE_ALIASES:
        return STYLE_ALIASES[text]
    try:
        return lookup_enum(TechnoStyle, text)
    except ConfigurationError:
        logger.warning("Unknown plan style %r, keeping %s", style, current.value)
        return current


def _resolve_key(key: str) -> str:
    # Accept 'Am', 'A minor', 'F# min' by keeping the pitch class
    match = re.match(r'^\s*([A-Ga-g][#b♯♭]?)', key)
    if not match:
        raise BlueprintError(f"Unknown key: {key!r}")
    try:
        return normalize_key(match.group(1))
    except ConfigurationError as e:
        raise BlueprintError(str(e)) from None


def _build_sections(plan: ComposerPlan, current: List[SectionConfig]) -> List[SectionConfig]:
    sections = []
    for index, planned in enumerate(plan.sections or []):
        intensity = derive_intensity(plan.energy_curve, index, planned.focus)
        if intensity is None:
            intensity = current[index].intensity if index < len(current) else 50
        layers = planned.allowed_layers
        if layers is None:
            layers = frozenset(current[index].enabled_layers()) if index < len(current) else frozenset()
        sections.append(SectionConfig.with_layers(
            planned.type, planned.bars, layers, intensity,
            focus=planned.focus,
            allowed_layers=frozenset(layers),
        ))
    if len(plan.energy_curve or []) not in (0, len(sections)):
        logger.info("Energy curve has %d entries for %d sections",
                    len(plan.energy_curve), len(sections))
    return sections


def apply_blueprint(plan: Any, config: TrackConfig) -> TrackConfig:
    """
    Apply a plan to a configuration.

    Args:
        plan: ComposerPlan or plan dict (validated as a partial plan)
        config: Current configuration; never modified

    Returns:
        A new TrackConfig sharing the original's subscribers

    Raises:
        BlueprintError: malformed plan or an uncoercible target value
    """
    if not isinstance(plan, ComposerPlan):
        plan = ComposerPlan.from_dict(plan, partial=True)

    # Resolve everything up front so failures leave no partial state
    targets = coerce_targets(plan.instrument_targets)
    try:
        scale = resolve_scale(plan.scale) if plan.scale is not None else config.scale
        groove = lookup_enum(GrooveType, plan.groove) if plan.groove is not None else config.groove
        rules = merge_rules(config.rules, plan.global_rules)
    except ConfigurationError as e:
        raise BlueprintError(str(e)) from None
    key = _resolve_key(plan.key) if plan.key is not None else config.key
    style = _resolve_style(plan.style, config.style) if plan.style is not None else config.style

    updated = config.copy()
    if plan.bpm is not None:
        updated.bpm = int(round(plan.bpm))
    updated.key = key
    updated.scale = scale
    updated.groove = groove
    updated.style = style
    updated.rules = rules
    if plan.sections is not None:
        updated.sections = _build_sections(plan, config.sections)
    elif plan.energy_curve:
        updated.sections = [
            replace(s, intensity=derive_intensity(plan.energy_curve, i, s.focus))
            for i, s in enumerate(updated.sections)
        ]

    for instrument, values in targets.items():
        current: InstrumentParams = getattr(updated, instrument)
        setattr(updated, instrument, replace(current, **values))

    logger.info("Applied blueprint: %d sections, %d instrument targets",
                len(updated.sections), len(targets))
    return updated
