from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable

from chuna.evaluation.session import EvaluationResult
from core.models import CheckpointResult, SafetyViolation
from core.schema import measurement_label


def format_duration(value: float | None) -> str:
    if value is None or value <= 0:
        return ""
    return f"{value:.1f}"


def format_similarity(value: float | None) -> str:
    if value is None or value <= 0:
        return ""
    return f"{value * 100:.0f}%"


def summarize_violations(violations: Iterable[SafetyViolation]) -> dict[str, dict[str, int]]:
    summary: dict[str, dict[str, int]] = {"by_kind": {}, "by_measurement": {}, "by_severity": {}}
    for violation in violations:
        for bucket, key in (
            ("by_kind", violation.kind),
            ("by_measurement", violation.measurement),
            ("by_severity", violation.severity.label),
        ):
            counts = summary[bucket]
            counts[key] = counts.get(key, 0) + 1
    return summary


def write_violations_csv(output_path: Path, violations: Iterable[SafetyViolation]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(
            [
                "timestamp",
                "measurement",
                "kind",
                "severity",
                "value",
                "limit",
                "ratio",
                "deduction",
                "message",
            ]
        )
        for entry in violations:
            writer.writerow(
                [
                    f"{entry.timestamp:.3f}",
                    entry.measurement,
                    entry.kind,
                    entry.severity.label,
                    f"{entry.value:.3f}",
                    f"{entry.limit:.3f}",
                    f"{entry.ratio:.4f}",
                    f"{entry.deduction:.1f}",
                    entry.message,
                ]
            )


def write_checkpoints_csv(output_path: Path, checkpoints: Iterable[CheckpointResult]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["frame_index", "segment_name", "passed", "similarity", "timestamp", "hold_time"])
        for entry in checkpoints:
            writer.writerow(
                [
                    entry.frame_index,
                    entry.segment_name,
                    int(entry.passed),
                    format_similarity(entry.similarity),
                    "" if entry.timestamp is None else f"{entry.timestamp:.3f}",
                    format_duration(entry.hold_time),
                ]
            )


def write_result_report(output_path: Path, result: EvaluationResult) -> None:
    payload = result.to_payload()
    payload["summary"] = summarize_violations(result.violations)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def format_summary(result: EvaluationResult) -> str:
    score = result.score
    lines = [
        f"Procedure: {result.procedure_name or result.procedure_id}",
        f"Duration: {format_duration(result.duration_s) or '0.0'} s",
        f"Score: {score.total:.1f} / {score.max_total:.1f} ({score.percentage:.1f}%)  Grade: {score.grade}",
        f"  Path compliance: {score.path_compliance:.1f} / {score.max_path_compliance:.1f}",
        f"  Safety:          {score.safety:.1f} / {score.max_safety:.1f}",
        f"  Accuracy:        {score.accuracy:.1f} / {score.max_accuracy:.1f}",
        f"  Stability:       {score.stability:.1f} / {score.max_stability:.1f}",
        f"Checkpoints: {score.checkpoints_passed} / {score.total_checkpoints}",
    ]
    for checkpoint in result.checkpoints:
        status = "passed" if checkpoint.passed else "missed"
        details = []
        similarity = format_similarity(checkpoint.similarity)
        if similarity:
            details.append(similarity)
        held = format_duration(checkpoint.hold_time)
        if held:
            details.append(f"held {held} s")
        suffix = f" ({', '.join(details)})" if details else ""
        lines.append(f"  - {checkpoint.segment_name or checkpoint.frame_index}: {status}{suffix}")
    average = format_similarity(result.average_similarity)
    if average:
        lines.append(f"Average similarity: {average}")
    lines.append(f"Violations: {len(result.violations)} (-{score.total_deductions:.1f})")
    counts = summarize_violations(result.violations)["by_measurement"]
    for measurement, count in sorted(counts.items()):
        lines.append(f"  - {measurement_label(measurement)}: {count}")
    if result.samples_rejected:
        lines.append(f"Rejected samples: {result.samples_rejected}")
    return "\n".join(lines) + "\n"
