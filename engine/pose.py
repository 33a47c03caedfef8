from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from core.errors import ConfigurationError, SampleRejected
from core.schema import SCHEMA_VERSION


def _frozen_values(values: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(values))


def _parse_values(raw: Any, context: str) -> dict[str, float]:
    if not isinstance(raw, dict):
        raise ValueError(f"{context} values must be an object")
    values: dict[str, float] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{context} value '{key}' must be a number")
        values[str(key)] = float(value)
    return values


@dataclass(frozen=True)
class PoseSample:
    """One tick of tracked measurements, timestamped relative to session start."""

    timestamp: float
    values: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _frozen_values(self.values))

    def check(self, required: Iterable[str]) -> None:
        """Raise SampleRejected for non-finite values or missing measurements."""
        if not math.isfinite(self.timestamp):
            raise SampleRejected("timestamp is not finite")
        for name, value in self.values.items():
            if not math.isfinite(value):
                raise SampleRejected(f"{name} is not finite")
        for name in required:
            if name not in self.values:
                raise SampleRejected(f"{name} is missing")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PoseSample":
        if not isinstance(payload, dict):
            raise ValueError("PoseSample payload must be an object")
        timestamp = payload.get("timestamp", 0.0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("PoseSample timestamp must be a number")
        return cls(timestamp=float(timestamp), values=_parse_values(payload.get("values"), "PoseSample"))

    def to_payload(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "values": dict(self.values)}


@dataclass(frozen=True)
class ReferenceFrame:
    values: Mapping[str, float]
    checkpoint: str | None = None
    segment: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _frozen_values(self.values))

    @property
    def segment_name(self) -> str:
        return self.segment or self.checkpoint or ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"values": dict(self.values)}
        if self.checkpoint is not None:
            payload["checkpoint"] = self.checkpoint
        if self.segment is not None:
            payload["segment"] = self.segment
        return payload


@dataclass(frozen=True)
class ReferencePath:
    """Recorded demonstration: ordered frames, some tagged as checkpoints."""

    frames: tuple[ReferenceFrame, ...]
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "frames", tuple(self.frames))

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def measurement_names(self) -> tuple[str, ...]:
        if not self.frames:
            return ()
        return tuple(sorted(self.frames[0].values))

    @property
    def checkpoint_indices(self) -> tuple[int, ...]:
        return tuple(index for index, frame in enumerate(self.frames) if frame.checkpoint is not None)

    def problems(self) -> list[str]:
        if not self.frames:
            return ["reference path has no frames"]
        problems: list[str] = []
        expected = set(self.frames[0].values)
        if not expected:
            problems.append("reference frames carry no measurements")
        for index, frame in enumerate(self.frames):
            if set(frame.values) != expected:
                problems.append(f"frame {index} measurements differ from frame 0")
                continue
            for name, value in frame.values.items():
                if not math.isfinite(value):
                    problems.append(f"frame {index} {name} is not finite")
        return problems

    def validate(self) -> None:
        problems = self.problems()
        if problems:
            raise ConfigurationError(problems)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ReferencePath":
        frames_raw = payload.get("frames") if isinstance(payload, dict) else None
        if not isinstance(frames_raw, list):
            raise ValueError("ReferencePath payload missing frames list")
        frames = []
        for index, entry in enumerate(frames_raw):
            if not isinstance(entry, dict):
                raise ValueError(f"ReferencePath frame {index} must be an object")
            checkpoint = entry.get("checkpoint")
            segment = entry.get("segment")
            frames.append(
                ReferenceFrame(
                    values=_parse_values(entry.get("values"), f"ReferencePath frame {index}"),
                    checkpoint=None if checkpoint is None else str(checkpoint),
                    segment=None if segment is None else str(segment),
                )
            )
        return cls(frames=tuple(frames), name=str(payload.get("name", "")))

    def to_payload(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "name": self.name,
            "frames": [frame.to_payload() for frame in self.frames],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2)

    @classmethod
    def from_json(cls, data: str) -> "ReferencePath":
        payload = json.loads(data)
        return cls.from_payload(payload)
