from __future__ import annotations

from typing import Any

SCHEMA_VERSION = "1.0"

# Limits every profile must define.
REQUIRED_MEASUREMENTS = [
    "neck_flexion",
    "neck_extension",
    "neck_rotation_left",
    "neck_rotation_right",
    "neck_lateral_flexion_left",
    "neck_lateral_flexion_right",
    "wrist_flexion",
    "wrist_extension",
    "wrist_radial_deviation",
    "wrist_ulnar_deviation",
    "wrist_pronation",
    "wrist_supination",
    "hand_forward",
    "hand_backward",
    "hand_lateral",
    "hand_vertical",
]

# Caps a profile may leave out; an absent cap is not monitored.
OPTIONAL_MEASUREMENTS = [
    "applied_force",
    "movement_speed",
    "rotation_speed",
]

MEASUREMENT_NAMES = REQUIRED_MEASUREMENTS + OPTIONAL_MEASUREMENTS

# name -> (label, unit, violation kind)
MEASUREMENT_INFO: dict[str, tuple[str, str, str]] = {
    "neck_flexion": ("Neck flexion", "deg", "over_flexion"),
    "neck_extension": ("Neck extension", "deg", "over_extension"),
    "neck_rotation_left": ("Neck rotation (left)", "deg", "over_rotation"),
    "neck_rotation_right": ("Neck rotation (right)", "deg", "over_rotation"),
    "neck_lateral_flexion_left": ("Neck lateral flexion (left)", "deg", "over_lateral_flexion"),
    "neck_lateral_flexion_right": ("Neck lateral flexion (right)", "deg", "over_lateral_flexion"),
    "wrist_flexion": ("Wrist flexion", "deg", "over_flexion"),
    "wrist_extension": ("Wrist extension", "deg", "over_extension"),
    "wrist_radial_deviation": ("Wrist radial deviation", "deg", "over_lateral_flexion"),
    "wrist_ulnar_deviation": ("Wrist ulnar deviation", "deg", "over_lateral_flexion"),
    "wrist_pronation": ("Wrist pronation", "deg", "over_rotation"),
    "wrist_supination": ("Wrist supination", "deg", "over_rotation"),
    "hand_forward": ("Hand forward displacement", "m", "over_translation"),
    "hand_backward": ("Hand backward displacement", "m", "over_translation"),
    "hand_lateral": ("Hand lateral displacement", "m", "over_translation"),
    "hand_vertical": ("Hand vertical displacement", "m", "over_translation"),
    "applied_force": ("Applied force", "N", "over_force"),
    "movement_speed": ("Movement speed", "m/s", "over_speed"),
    "rotation_speed": ("Rotation speed", "deg/s", "over_speed"),
}


def measurement_label(name: str) -> str:
    info = MEASUREMENT_INFO.get(name)
    return info[0] if info else name


def measurement_unit(name: str) -> str:
    info = MEASUREMENT_INFO.get(name)
    return info[1] if info else ""


def violation_kind(name: str) -> str:
    info = MEASUREMENT_INFO.get(name)
    return info[2] if info else "out_of_range"


def _check_version(payload: Any) -> tuple[bool, str]:
    if not isinstance(payload, dict):
        return False, "Payload must be an object."
    if payload.get("schema_version") != SCHEMA_VERSION:
        return False, "schema_version missing or unsupported."
    return True, ""


def validate_profile_schema(payload: dict[str, Any]) -> tuple[bool, str]:
    ok, message = _check_version(payload)
    if not ok:
        return ok, message
    for key in ("procedure_id", "limits"):
        if key not in payload:
            return False, f"profile missing '{key}'."
    limits = payload.get("limits")
    if not isinstance(limits, dict):
        return False, "limits must be an object."
    for name in REQUIRED_MEASUREMENTS:
        if name not in limits:
            return False, f"limits missing '{name}'."
    unknown = sorted(set(limits) - set(MEASUREMENT_NAMES))
    if unknown:
        return False, f"unknown limit '{unknown[0]}'."
    return True, "profile schema is valid."


def validate_reference_path_schema(payload: dict[str, Any]) -> tuple[bool, str]:
    ok, message = _check_version(payload)
    if not ok:
        return ok, message
    frames = payload.get("frames")
    if not isinstance(frames, list):
        return False, "frames must be a list."
    if not frames:
        return False, "frames must not be empty."
    for frame in frames:
        if not isinstance(frame, dict):
            return False, "frame entries must be objects."
        if not isinstance(frame.get("values"), dict):
            return False, "frame missing 'values'."
    return True, "reference path schema is valid."


def validate_samples_schema(payload: dict[str, Any]) -> tuple[bool, str]:
    ok, message = _check_version(payload)
    if not ok:
        return ok, message
    samples = payload.get("samples")
    if not isinstance(samples, list):
        return False, "samples must be a list."
    for sample in samples[:3]:
        if not isinstance(sample, dict):
            return False, "sample entries must be objects."
        for key in ("timestamp", "values"):
            if key not in sample:
                return False, f"sample missing '{key}'."
    return True, "samples schema is valid."
