from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from core.errors import ConfigurationError
from core.models import Severity
from core.schema import MEASUREMENT_NAMES, REQUIRED_MEASUREMENTS, SCHEMA_VERSION


class ProcedureType(Enum):
    HEALTHY_SIDE_ROTATION = "healthy_side_rotation"
    AFFECTED_SIDE_ROTATION = "affected_side_rotation"
    ISOMETRIC_EXERCISE = "isometric_exercise"
    LATERAL_FLEXION = "lateral_flexion"


DEFAULT_LIMITS: dict[str, float] = {
    "neck_flexion": 45.0,
    "neck_extension": 45.0,
    "neck_rotation_left": 60.0,
    "neck_rotation_right": 60.0,
    "neck_lateral_flexion_left": 40.0,
    "neck_lateral_flexion_right": 40.0,
    "wrist_flexion": 80.0,
    "wrist_extension": 70.0,
    "wrist_radial_deviation": 20.0,
    "wrist_ulnar_deviation": 30.0,
    "wrist_pronation": 80.0,
    "wrist_supination": 80.0,
    "hand_forward": 0.5,
    "hand_backward": 0.3,
    "hand_lateral": 0.4,
    "hand_vertical": 0.4,
    "applied_force": 50.0,
    "movement_speed": 0.5,
    "rotation_speed": 60.0,
}


@dataclass(frozen=True)
class LimitProfile:
    """Safety envelope and penalty schedule for one procedure."""

    procedure_id: str
    procedure_name: str = ""
    description: str = ""
    procedure_type: ProcedureType | None = None
    # Measurement name -> limit magnitude. Absent or zero limits are not monitored.
    limits: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    minor_deduction: float = 1.0
    moderate_deduction: float = 5.0
    severe_deduction: float = 15.0
    dangerous_deduction: float = 30.0
    # Fraction of a limit at which a measurement enters Warning.
    warning_ratio: float = 0.8
    # Fraction of a limit at which a measurement enters Danger.
    danger_ratio: float = 0.95
    enable_auto_revert: bool = True
    # Fraction of a limit that triggers a corrective revert target.
    revert_trigger_ratio: float = 1.0
    # Fraction of a limit the revert target sits at.
    revert_target_ratio: float = 0.7
    revert_lerp_speed: float = 3.0
    # Maximum normalized distance to the matched reference frame that still counts as on-path.
    on_path_tolerance: float = 0.1

    def __post_init__(self) -> None:
        object.__setattr__(self, "limits", MappingProxyType(dict(self.limits)))

    def limit_for(self, measurement: str) -> float | None:
        limit = self.limits.get(measurement)
        if limit is None or limit <= 0:
            return None
        return limit

    def deduction_for(self, severity: Severity) -> float:
        return {
            Severity.MINOR: self.minor_deduction,
            Severity.MODERATE: self.moderate_deduction,
            Severity.SEVERE: self.severe_deduction,
            Severity.DANGEROUS: self.dangerous_deduction,
        }[severity]

    def problems(self) -> list[str]:
        problems: list[str] = []
        if not self.procedure_id:
            problems.append("procedure_id must not be empty")
        for name in REQUIRED_MEASUREMENTS:
            if name not in self.limits:
                problems.append(f"limit '{name}' is missing")
        for name, value in self.limits.items():
            if name not in MEASUREMENT_NAMES:
                problems.append(f"limit '{name}' is not a known measurement")
            elif not math.isfinite(value) or value < 0:
                problems.append(f"limit '{name}' must be finite and non-negative")

        deductions = [
            self.minor_deduction,
            self.moderate_deduction,
            self.severe_deduction,
            self.dangerous_deduction,
        ]
        if not all(math.isfinite(value) and value >= 0 for value in deductions):
            problems.append("deductions must be finite and non-negative")
        elif any(low >= high for low, high in zip(deductions, deductions[1:])):
            problems.append("deductions must increase strictly from minor to dangerous")

        if not (0 < self.warning_ratio < self.danger_ratio <= 1):
            problems.append("ratios must satisfy 0 < warning_ratio < danger_ratio <= 1")
        if not (0 < self.revert_target_ratio < self.revert_trigger_ratio) or not math.isfinite(
            self.revert_trigger_ratio
        ):
            problems.append("revert ratios must satisfy 0 < revert_target_ratio < revert_trigger_ratio")
        if not (math.isfinite(self.revert_lerp_speed) and self.revert_lerp_speed > 0):
            problems.append("revert_lerp_speed must be positive")
        if not (math.isfinite(self.on_path_tolerance) and self.on_path_tolerance > 0):
            problems.append("on_path_tolerance must be positive")
        return problems

    def validate(self) -> None:
        problems = self.problems()
        if problems:
            raise ConfigurationError(problems)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "LimitProfile":
        if not isinstance(payload, dict):
            raise ConfigurationError("profile payload must be an object")
        kwargs: dict[str, Any] = {}
        problems: list[str] = []
        for item in fields(cls):
            if item.name not in payload:
                continue
            raw = payload[item.name]
            if item.name in ("procedure_id", "procedure_name", "description"):
                if not isinstance(raw, str):
                    problems.append(f"{item.name} must be a string")
                    continue
                kwargs[item.name] = raw
            elif item.name == "procedure_type":
                if raw is None:
                    continue
                try:
                    kwargs[item.name] = ProcedureType(raw)
                except ValueError:
                    problems.append(f"unknown procedure_type {raw!r}")
            elif item.name == "limits":
                if not isinstance(raw, dict):
                    problems.append("limits must be an object")
                    continue
                limits: dict[str, float] = {}
                for name, value in raw.items():
                    if isinstance(value, bool) or not isinstance(value, (int, float)):
                        problems.append(f"limit '{name}' must be a number")
                        continue
                    limits[str(name)] = float(value)
                kwargs["limits"] = limits
            elif item.name == "enable_auto_revert":
                if not isinstance(raw, bool):
                    problems.append("enable_auto_revert must be a boolean")
                    continue
                kwargs[item.name] = raw
            else:
                if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                    problems.append(f"{item.name} must be a number")
                    continue
                kwargs[item.name] = float(raw)
        if "procedure_id" not in kwargs and "procedure_id" not in payload:
            problems.append("procedure_id is missing")
        if problems:
            raise ConfigurationError(problems)
        return cls(**kwargs)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"schema_version": SCHEMA_VERSION}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "limits":
                value = dict(value)
            elif item.name == "procedure_type":
                value = None if value is None else value.value
            payload[item.name] = value
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2)

    @classmethod
    def from_json(cls, data: str) -> "LimitProfile":
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"profile is not valid JSON: {exc}") from exc
        return cls.from_payload(payload)


def _limits(
    neck: tuple[float, float, float, float, float, float],
    wrist: tuple[float, float, float, float, float, float],
    hand: tuple[float, float, float, float],
    force: float = 50.0,
    movement_speed: float = 0.5,
    rotation_speed: float = 60.0,
) -> dict[str, float]:
    values = list(neck) + list(wrist) + list(hand)
    limits = dict(zip(REQUIRED_MEASUREMENTS, values))
    limits["applied_force"] = force
    limits["movement_speed"] = movement_speed
    limits["rotation_speed"] = rotation_speed
    return limits


_PRESETS: dict[ProcedureType, LimitProfile] = {
    ProcedureType.HEALTHY_SIDE_ROTATION: LimitProfile(
        procedure_id="healthy_side_rotation",
        procedure_name="Healthy-side rotation",
        description="Cervical rotation toward the unaffected side.",
        procedure_type=ProcedureType.HEALTHY_SIDE_ROTATION,
        limits=_limits(
            (45.0, 40.0, 70.0, 50.0, 40.0, 35.0),
            (80.0, 70.0, 20.0, 30.0, 80.0, 80.0),
            (0.4, 0.2, 0.3, 0.3),
        ),
    ),
    ProcedureType.AFFECTED_SIDE_ROTATION: LimitProfile(
        procedure_id="affected_side_rotation",
        procedure_name="Affected-side rotation",
        description="Cervical rotation toward the affected side; tighter envelope.",
        procedure_type=ProcedureType.AFFECTED_SIDE_ROTATION,
        limits=_limits(
            (40.0, 35.0, 45.0, 45.0, 30.0, 30.0),
            (70.0, 60.0, 15.0, 25.0, 70.0, 70.0),
            (0.3, 0.15, 0.25, 0.25),
        ),
        minor_deduction=2.0,
        moderate_deduction=8.0,
        severe_deduction=20.0,
        dangerous_deduction=40.0,
        warning_ratio=0.75,
        danger_ratio=0.9,
        revert_trigger_ratio=0.95,
        revert_target_ratio=0.6,
        revert_lerp_speed=4.0,
    ),
    ProcedureType.ISOMETRIC_EXERCISE: LimitProfile(
        procedure_id="isometric_exercise",
        procedure_name="Isometric exercise",
        description="Resisted contraction with almost no joint movement.",
        procedure_type=ProcedureType.ISOMETRIC_EXERCISE,
        limits=_limits(
            (10.0, 10.0, 10.0, 10.0, 10.0, 10.0),
            (30.0, 30.0, 10.0, 10.0, 30.0, 30.0),
            (0.05, 0.05, 0.05, 0.05),
            force=50.0,
            movement_speed=0.1,
            rotation_speed=15.0,
        ),
        minor_deduction=3.0,
        moderate_deduction=10.0,
        severe_deduction=25.0,
        dangerous_deduction=50.0,
        warning_ratio=0.7,
        danger_ratio=0.85,
        revert_trigger_ratio=0.9,
        revert_target_ratio=0.5,
        revert_lerp_speed=5.0,
    ),
    ProcedureType.LATERAL_FLEXION: LimitProfile(
        procedure_id="lateral_flexion",
        procedure_name="Lateral flexion",
        description="Side bending of the cervical spine.",
        procedure_type=ProcedureType.LATERAL_FLEXION,
        limits=_limits(
            (20.0, 15.0, 20.0, 20.0, 50.0, 50.0),
            (60.0, 50.0, 20.0, 30.0, 60.0, 60.0),
            (0.2, 0.1, 0.4, 0.3),
        ),
        minor_deduction=1.5,
        moderate_deduction=6.0,
        severe_deduction=18.0,
        dangerous_deduction=35.0,
        warning_ratio=0.78,
        danger_ratio=0.92,
        revert_target_ratio=0.65,
        revert_lerp_speed=3.5,
    ),
}


def preset_profile(procedure_type: ProcedureType | str, **overrides: Any) -> LimitProfile:
    """Built-in profile for a procedure, optionally with field overrides."""
    key = ProcedureType(procedure_type)
    profile = _PRESETS[key]
    if overrides:
        profile = replace(profile, **overrides)
    return profile
