from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any


class Severity(IntEnum):
    MINOR = 1
    MODERATE = 2
    SEVERE = 3
    DANGEROUS = 4

    @property
    def label(self) -> str:
        return self.name.title()


class MeasurementState(Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"
    AUTO_REVERT = "auto_revert"


@dataclass(frozen=True)
class SafetyViolation:
    timestamp: float
    measurement: str
    value: float
    limit: float
    ratio: float
    severity: Severity
    kind: str
    deduction: float
    message: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "measurement": self.measurement,
            "value": self.value,
            "limit": self.limit,
            "ratio": self.ratio,
            "severity": self.severity.label,
            "kind": self.kind,
            "deduction": self.deduction,
            "message": self.message,
        }


@dataclass(frozen=True)
class CheckpointResult:
    frame_index: int
    segment_name: str
    passed: bool
    # None when the trainee never reached the checkpoint.
    similarity: float | None = None
    # Sample timestamp at the crossing.
    timestamp: float | None = None
    # Seconds held on-path during the segment that starts here.
    hold_time: float | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "frame_index": self.frame_index,
            "segment_name": self.segment_name,
            "passed": self.passed,
            "similarity": self.similarity,
            "timestamp": self.timestamp,
            "hold_time": self.hold_time,
        }


@dataclass(frozen=True)
class RevertTarget:
    measurement: str
    value: float
    limit: float
    target_value: float
    lerp_speed: float


@dataclass(frozen=True)
class HoldState:
    current_time: float
    required_time: float
    completed: bool
