from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from chuna.evaluation.config import DEFAULT_GRADE_CUTOFFS, EvaluationConfig
from chuna.evaluation.hold import HoldTracker
from chuna.evaluation.path_matcher import PathMatcher
from chuna.evaluation.safety import SafetyMonitor


def grade_for(
    percentage: float,
    cutoffs: Sequence[tuple[float, str]] = DEFAULT_GRADE_CUTOFFS,
    fallback: str = "F",
) -> str:
    for cutoff, grade in cutoffs:
        if percentage >= cutoff:
            return grade
    return fallback


def _clamp(value: float, upper: float) -> float:
    return min(upper, max(0.0, value))


@dataclass(frozen=True)
class ScoreBreakdown:
    path_compliance: float
    safety: float
    accuracy: float
    stability: float
    max_path_compliance: float = 40.0
    max_safety: float = 30.0
    max_accuracy: float = 20.0
    max_stability: float = 10.0
    ticks_evaluated: int = 0
    ticks_on_path: int = 0
    total_deductions: float = 0.0
    checkpoints_passed: int = 0
    total_checkpoints: int = 0
    total_hold_time: float = 0.0
    target_hold_time: float = 0.0
    grade_cutoffs: tuple[tuple[float, str], ...] = DEFAULT_GRADE_CUTOFFS
    fallback_grade: str = "F"

    @property
    def total(self) -> float:
        return self.path_compliance + self.safety + self.accuracy + self.stability

    @property
    def max_total(self) -> float:
        return self.max_path_compliance + self.max_safety + self.max_accuracy + self.max_stability

    @property
    def percentage(self) -> float:
        if self.max_total <= 0:
            return 0.0
        return _clamp(self.total / self.max_total * 100.0, 100.0)

    @property
    def grade(self) -> str:
        return grade_for(self.percentage, self.grade_cutoffs, self.fallback_grade)

    def to_payload(self) -> dict[str, Any]:
        return {
            "path_compliance": self.path_compliance,
            "safety": self.safety,
            "accuracy": self.accuracy,
            "stability": self.stability,
            "total": self.total,
            "max_total": self.max_total,
            "percentage": self.percentage,
            "grade": self.grade,
            "details": {
                "ticks_evaluated": self.ticks_evaluated,
                "ticks_on_path": self.ticks_on_path,
                "total_deductions": self.total_deductions,
                "checkpoints_passed": self.checkpoints_passed,
                "total_checkpoints": self.total_checkpoints,
                "total_hold_time": self.total_hold_time,
                "target_hold_time": self.target_hold_time,
            },
        }


class ScoreAggregator:
    def __init__(self, config: EvaluationConfig) -> None:
        self.config = config

    def score(
        self,
        *,
        ticks_evaluated: int,
        ticks_on_path: int,
        total_deductions: float,
        checkpoints_passed: int,
        total_checkpoints: int,
        total_hold_time: float,
    ) -> ScoreBreakdown:
        config = self.config
        path_compliance = 0.0
        if ticks_evaluated > 0:
            path_compliance = config.max_path_score * ticks_on_path / ticks_evaluated
        safety = config.max_safety_score - total_deductions
        # A path without checkpoints has nothing to miss.
        accuracy = config.max_accuracy_score
        if total_checkpoints > 0:
            accuracy = config.max_accuracy_score * checkpoints_passed / total_checkpoints
        target_hold_time = config.required_hold_time_s * max(1, total_checkpoints)
        stability = config.max_stability_score * min(1.0, total_hold_time / target_hold_time)
        return ScoreBreakdown(
            path_compliance=_clamp(path_compliance, config.max_path_score),
            safety=_clamp(safety, config.max_safety_score),
            accuracy=_clamp(accuracy, config.max_accuracy_score),
            stability=_clamp(stability, config.max_stability_score),
            max_path_compliance=config.max_path_score,
            max_safety=config.max_safety_score,
            max_accuracy=config.max_accuracy_score,
            max_stability=config.max_stability_score,
            ticks_evaluated=ticks_evaluated,
            ticks_on_path=ticks_on_path,
            total_deductions=total_deductions,
            checkpoints_passed=checkpoints_passed,
            total_checkpoints=total_checkpoints,
            total_hold_time=total_hold_time,
            target_hold_time=target_hold_time,
            grade_cutoffs=tuple(config.grade_cutoffs),
            fallback_grade=config.fallback_grade,
        )

    def recompute(
        self,
        matcher: PathMatcher,
        monitor: SafetyMonitor,
        hold: HoldTracker,
        *,
        ticks_evaluated: int,
        ticks_on_path: int,
    ) -> ScoreBreakdown:
        return self.score(
            ticks_evaluated=ticks_evaluated,
            ticks_on_path=ticks_on_path,
            total_deductions=monitor.total_deductions,
            checkpoints_passed=matcher.checkpoints_passed,
            total_checkpoints=matcher.total_checkpoints,
            total_hold_time=hold.total_completed_time,
        )
