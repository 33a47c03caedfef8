from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from core.errors import ConfigurationError
from core.settings import safe_float, safe_int

DEFAULT_GRADE_CUTOFFS: tuple[tuple[float, str], ...] = (
    (95.0, "A+"),
    (90.0, "A"),
    (85.0, "B+"),
    (80.0, "B"),
    (70.0, "C+"),
    (60.0, "C"),
    (50.0, "D"),
)


@dataclass(frozen=True)
class EvaluationConfig:
    """Tuning parameters for one evaluation run.

    Limit envelopes and deductions live on the LimitProfile; everything here is
    procedure independent.
    """

    # Frames searched ahead of the last matched reference frame.
    search_window: int = 15
    # Similarity a checkpoint needs to count as passed.
    checkpoint_pass_similarity: float = 0.8
    # Seconds the trainee must stay on-path and out of danger to complete a hold.
    required_hold_time_s: float = 2.0
    max_path_score: float = 40.0
    max_safety_score: float = 30.0
    max_accuracy_score: float = 20.0
    max_stability_score: float = 10.0
    # Ratios where Minor/Moderate/Severe/Dangerous tiers start; None spreads them
    # evenly between the profile's warning and danger ratios.
    tier_boundaries: tuple[float, float, float, float] | None = None
    # (minimum percentage, grade) from best to worst.
    grade_cutoffs: tuple[tuple[float, str], ...] = DEFAULT_GRADE_CUTOFFS
    fallback_grade: str = "F"
    # Per-measurement weight in the path distance; unlisted measurements weigh 1.0.
    distance_weights: dict[str, float] | None = None


def validate_config(config: EvaluationConfig) -> None:
    problems: list[str] = []
    if config.search_window < 1:
        problems.append("search_window must be at least 1")
    if not (0 <= config.checkpoint_pass_similarity <= 1):
        problems.append("checkpoint_pass_similarity must be within [0, 1]")
    if not (math.isfinite(config.required_hold_time_s) and config.required_hold_time_s > 0):
        problems.append("required_hold_time_s must be positive")
    maxima = (
        config.max_path_score,
        config.max_safety_score,
        config.max_accuracy_score,
        config.max_stability_score,
    )
    if not all(math.isfinite(value) and value >= 0 for value in maxima) or sum(maxima) <= 0:
        problems.append("category maxima must be non-negative with a positive total")
    if config.tier_boundaries is not None:
        bounds = tuple(config.tier_boundaries)
        if len(bounds) != 4:
            problems.append("tier_boundaries needs exactly four ratios")
        elif not all(math.isfinite(value) and value > 0 for value in bounds):
            problems.append("tier_boundaries must be positive")
        elif any(low > high for low, high in zip(bounds, bounds[1:])):
            problems.append("tier_boundaries must be non-decreasing")
    cutoffs = [cutoff for cutoff, _ in config.grade_cutoffs]
    if any(high <= low for high, low in zip(cutoffs, cutoffs[1:])):
        problems.append("grade_cutoffs must decrease strictly")
    if not config.fallback_grade:
        problems.append("fallback_grade must not be empty")
    if config.distance_weights:
        for name, weight in config.distance_weights.items():
            if not (math.isfinite(weight) and weight >= 0):
                problems.append(f"distance weight for {name} must be non-negative")
    if problems:
        raise ConfigurationError(problems)


def settings_defaults(config: EvaluationConfig | None = None) -> dict[str, Any]:
    config = config or EvaluationConfig()
    return {
        "search_window": config.search_window,
        "checkpoint_pass_similarity": config.checkpoint_pass_similarity,
        "required_hold_time_s": config.required_hold_time_s,
        "max_path_score": config.max_path_score,
        "max_safety_score": config.max_safety_score,
        "max_accuracy_score": config.max_accuracy_score,
        "max_stability_score": config.max_stability_score,
    }


def config_from_settings(settings: dict[str, Any]) -> EvaluationConfig:
    """Build a config from a loaded settings dict, falling back per key."""
    base = EvaluationConfig()
    return EvaluationConfig(
        search_window=safe_int(
            ("search_window", settings.get("search_window", base.search_window)),
            base.search_window,
            min_value=1,
            max_value=1000,
        ),
        checkpoint_pass_similarity=safe_float(
            ("checkpoint_pass_similarity", settings.get("checkpoint_pass_similarity", base.checkpoint_pass_similarity)),
            base.checkpoint_pass_similarity,
            min_value=0.0,
            max_value=1.0,
        ),
        required_hold_time_s=safe_float(
            ("required_hold_time_s", settings.get("required_hold_time_s", base.required_hold_time_s)),
            base.required_hold_time_s,
            min_value=0.01,
        ),
        max_path_score=safe_float(
            ("max_path_score", settings.get("max_path_score", base.max_path_score)),
            base.max_path_score,
            min_value=0.0,
        ),
        max_safety_score=safe_float(
            ("max_safety_score", settings.get("max_safety_score", base.max_safety_score)),
            base.max_safety_score,
            min_value=0.0,
        ),
        max_accuracy_score=safe_float(
            ("max_accuracy_score", settings.get("max_accuracy_score", base.max_accuracy_score)),
            base.max_accuracy_score,
            min_value=0.0,
        ),
        max_stability_score=safe_float(
            ("max_stability_score", settings.get("max_stability_score", base.max_stability_score)),
            base.max_stability_score,
            min_value=0.0,
        ),
    )
