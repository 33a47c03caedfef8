from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from chuna.evaluation.config import EvaluationConfig
from chuna.evaluation.report import (
    format_summary,
    write_checkpoints_csv,
    write_result_report,
    write_violations_csv,
)
from chuna.evaluation.session import EvaluationResult, EvaluationSession
from core.errors import ConfigurationError
from core.schema import (
    validate_profile_schema,
    validate_reference_path_schema,
    validate_samples_schema,
)
from core.settings import safe_float
from engine.pose import PoseSample, ReferencePath
from engine.profile import LimitProfile


def load_samples(payload: dict[str, Any]) -> list[tuple[PoseSample, float]]:
    """Parse recorded samples into (sample, dt) pairs.

    An explicit ``dt`` wins; otherwise dt is the timestamp delta to the
    previous sample (0 for the first one).
    """
    entries: list[tuple[PoseSample, float]] = []
    previous: float | None = None
    for index, raw in enumerate(payload.get("samples", [])):
        try:
            sample = PoseSample.from_payload(raw)
        except ValueError as exc:
            raise ValueError(f"sample {index} invalid: {exc}") from exc
        if "dt" in raw:
            dt = safe_float((f"samples[{index}].dt", raw["dt"]), 0.0, min_value=0.0)
        elif previous is None or not math.isfinite(sample.timestamp - previous):
            dt = 0.0
        else:
            dt = max(0.0, sample.timestamp - previous)
        if math.isfinite(sample.timestamp):
            previous = sample.timestamp
        entries.append((sample, dt))
    return entries


def replay_samples(
    profile: LimitProfile,
    path: ReferencePath,
    samples: Iterable[tuple[PoseSample, float]],
    config: EvaluationConfig | None = None,
) -> EvaluationResult:
    session = EvaluationSession(config)
    session.start(profile, path)
    for sample, dt in samples:
        session.tick(sample, dt)
    return session.complete()


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{label} is not valid JSON: {exc}") from exc


def run_replay(
    profile_json: Path,
    path_json: Path,
    samples_json: Path,
    output_dir: Path,
    config: EvaluationConfig | None = None,
) -> dict[str, str]:
    profile_payload = _read_json(profile_json, "profile")
    ok, message = validate_profile_schema(profile_payload)
    if not ok:
        raise ConfigurationError(f"profile invalid: {message}")
    path_payload = _read_json(path_json, "reference path")
    ok, message = validate_reference_path_schema(path_payload)
    if not ok:
        raise ConfigurationError(f"reference path invalid: {message}")
    samples_payload = _read_json(samples_json, "samples")
    ok, message = validate_samples_schema(samples_payload)
    if not ok:
        raise ValueError(f"samples invalid: {message}")

    profile = LimitProfile.from_payload(profile_payload)
    try:
        path = ReferencePath.from_payload(path_payload)
    except ValueError as exc:
        raise ConfigurationError(f"reference path invalid: {exc}") from exc
    samples = load_samples(samples_payload)
    logging.info("Replaying %d samples against %s", len(samples), profile.procedure_id)

    result = replay_samples(profile, path, samples, config)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = output_dir / f"evaluation_{timestamp}"
    output_dir.mkdir(parents=True, exist_ok=True)

    report_path = output_dir / "evaluation_report.json"
    write_result_report(report_path, result)
    violations_path = output_dir / "violations.csv"
    write_violations_csv(violations_path, result.violations)
    checkpoints_path = output_dir / "checkpoints.csv"
    write_checkpoints_csv(checkpoints_path, result.checkpoints)
    summary_path = output_dir / "summary.txt"
    summary_path.write_text(format_summary(result), encoding="utf-8")

    return {
        "evaluation_report": str(report_path),
        "violations_csv": str(violations_path),
        "checkpoints_csv": str(checkpoints_path),
        "summary": str(summary_path),
        "output_dir": str(output_dir),
        "grade": result.grade,
    }
