from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chuna.evaluation.config import EvaluationConfig
from core.models import MeasurementState, RevertTarget, SafetyViolation, Severity
from core.schema import measurement_label, measurement_unit, violation_kind
from engine.pose import PoseSample
from engine.profile import LimitProfile

_TIERS = (Severity.MINOR, Severity.MODERATE, Severity.SEVERE, Severity.DANGEROUS)


@dataclass
class _Excursion:
    state: MeasurementState = MeasurementState.NORMAL
    tiers: set[Severity] = field(default_factory=set)


@dataclass(frozen=True)
class SafetyUpdate:
    violations: tuple[SafetyViolation, ...]
    revert_started: tuple[RevertTarget, ...]
    in_danger: bool


def default_tier_boundaries(profile: LimitProfile) -> tuple[float, float, float, float]:
    step = (profile.danger_ratio - profile.warning_ratio) / 3.0
    return (
        profile.warning_ratio,
        profile.warning_ratio + step,
        profile.warning_ratio + 2 * step,
        profile.danger_ratio,
    )


def format_violation_message(measurement: str, value: float, limit: float, ratio: float, severity: Severity) -> str:
    unit = measurement_unit(measurement)
    return (
        f"{measurement_label(measurement)} {severity.label.lower()}: "
        f"{abs(value):.2f} {unit} is {ratio:.0%} of the {limit:.2f} {unit} limit"
    )


class SafetyMonitor:
    """Per-measurement limit state machine with tiered deductions.

    A (measurement, tier) pair deducts once per excursion; the excursion ends
    when the measurement drops back below the warning ratio.
    """

    def __init__(self, profile: LimitProfile, config: EvaluationConfig) -> None:
        self.profile = profile
        self.boundaries = tuple(config.tier_boundaries or default_tier_boundaries(profile))
        self.reset()

    def reset(self) -> None:
        self._excursions: dict[str, _Excursion] = {}
        self._reverts: dict[str, RevertTarget] = {}
        self._violations: list[SafetyViolation] = []
        self.total_deductions = 0.0

    @property
    def violations(self) -> tuple[SafetyViolation, ...]:
        return tuple(self._violations)

    @property
    def revert_targets(self) -> dict[str, RevertTarget]:
        return dict(self._reverts)

    @property
    def states(self) -> dict[str, MeasurementState]:
        return {name: excursion.state for name, excursion in self._excursions.items()}

    @property
    def in_danger(self) -> bool:
        return any(
            excursion.state in (MeasurementState.DANGER, MeasurementState.AUTO_REVERT)
            for excursion in self._excursions.values()
        )

    def ratio_for(self, measurement: str, value: float) -> float | None:
        limit = self.profile.limit_for(measurement)
        if limit is None:
            return None
        return abs(value) / limit

    def tier_for(self, ratio: float) -> Severity:
        tier = Severity.MINOR
        for boundary, candidate in zip(self.boundaries, _TIERS):
            if ratio >= boundary:
                tier = candidate
        return tier

    def _state_for(self, ratio: float, reverting: bool) -> MeasurementState:
        if reverting:
            return MeasurementState.AUTO_REVERT
        if ratio >= self.profile.danger_ratio:
            return MeasurementState.DANGER
        if ratio >= self.profile.warning_ratio:
            return MeasurementState.WARNING
        return MeasurementState.NORMAL

    def evaluate(self, sample: PoseSample) -> SafetyUpdate:
        new_violations: list[SafetyViolation] = []
        started: list[RevertTarget] = []
        for measurement in sorted(sample.values):
            value = sample.values[measurement]
            ratio = self.ratio_for(measurement, value)
            if ratio is None:
                continue
            limit = self.profile.limits[measurement]
            reverting = self.profile.enable_auto_revert and ratio >= self.profile.revert_trigger_ratio
            excursion = self._excursions.setdefault(measurement, _Excursion())
            excursion.state = self._state_for(ratio, reverting)

            if excursion.state is MeasurementState.NORMAL:
                excursion.tiers.clear()
            elif ratio >= self.profile.warning_ratio:
                tier = self.tier_for(ratio)
                if tier not in excursion.tiers:
                    excursion.tiers.add(tier)
                    violation = self._record(sample.timestamp, measurement, value, limit, ratio, tier)
                    new_violations.append(violation)

            if reverting:
                target = RevertTarget(
                    measurement=measurement,
                    value=value,
                    limit=limit,
                    target_value=limit * self.profile.revert_target_ratio,
                    lerp_speed=self.profile.revert_lerp_speed,
                )
                if measurement not in self._reverts:
                    started.append(target)
                self._reverts[measurement] = target
            else:
                self._reverts.pop(measurement, None)

        return SafetyUpdate(
            violations=tuple(new_violations),
            revert_started=tuple(started),
            in_danger=self.in_danger,
        )

    def _record(
        self,
        timestamp: float,
        measurement: str,
        value: float,
        limit: float,
        ratio: float,
        severity: Severity,
    ) -> SafetyViolation:
        deduction = self.profile.deduction_for(severity)
        message = format_violation_message(measurement, value, limit, ratio, severity)
        violation = SafetyViolation(
            timestamp=timestamp,
            measurement=measurement,
            value=value,
            limit=limit,
            ratio=ratio,
            severity=severity,
            kind=violation_kind(measurement),
            deduction=deduction,
            message=message,
        )
        self._violations.append(violation)
        self.total_deductions += deduction
        logging.warning("Safety violation at t=%.3f: %s (-%.1f)", timestamp, message, deduction)
        return violation
