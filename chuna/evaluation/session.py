from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from chuna.evaluation.config import EvaluationConfig, validate_config
from chuna.evaluation.events import SessionEvents
from chuna.evaluation.hold import HoldTracker
from chuna.evaluation.path_matcher import PathMatcher
from chuna.evaluation.safety import SafetyMonitor
from chuna.evaluation.scoring import ScoreAggregator, ScoreBreakdown
from core.errors import ConfigurationError, IllegalStateError, SampleRejected
from core.models import CheckpointResult, HoldState, RevertTarget, SafetyViolation
from core.schema import SCHEMA_VERSION
from engine.pose import PoseSample, ReferencePath
from engine.profile import LimitProfile


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class EvaluationResult:
    procedure_id: str
    procedure_name: str
    score: ScoreBreakdown
    violations: tuple[SafetyViolation, ...]
    checkpoints: tuple[CheckpointResult, ...]
    duration_s: float
    ticks_evaluated: int
    samples_rejected: int

    @property
    def grade(self) -> str:
        return self.score.grade

    @property
    def average_similarity(self) -> float | None:
        """Mean similarity over the checkpoints that were reached."""
        reached = [checkpoint.similarity for checkpoint in self.checkpoints if checkpoint.similarity is not None]
        if not reached:
            return None
        return sum(reached) / len(reached)

    def to_payload(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "procedure_id": self.procedure_id,
            "procedure_name": self.procedure_name,
            "duration_s": self.duration_s,
            "ticks_evaluated": self.ticks_evaluated,
            "samples_rejected": self.samples_rejected,
            "average_similarity": self.average_similarity,
            "score": self.score.to_payload(),
            "checkpoints": [checkpoint.to_payload() for checkpoint in self.checkpoints],
            "violations": [violation.to_payload() for violation in self.violations],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2)


class EvaluationSession:
    """Drives one evaluation run from per-tick pose samples.

    ``tick`` updates path matching, safety, hold timing and the score in that
    order, then notifies subscribers of ``events`` with post-tick snapshots.
    """

    def __init__(self, config: EvaluationConfig | None = None) -> None:
        self.config = config or EvaluationConfig()
        validate_config(self.config)
        self.events = SessionEvents()
        self.aggregator = ScoreAggregator(self.config)
        self.state = SessionState.IDLE
        self.profile: LimitProfile | None = None
        self.path: ReferencePath | None = None
        self.result: EvaluationResult | None = None
        self._matcher: PathMatcher | None = None
        self._monitor: SafetyMonitor | None = None
        self._hold: HoldTracker | None = None
        self._score: ScoreBreakdown | None = None
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.elapsed_s = 0.0
        self.ticks_evaluated = 0
        self.ticks_on_path = 0
        self.samples_rejected = 0
        self._hold_predicate = False
        # Checkpoint frame index -> seconds held in the segment it opens.
        self._segment_holds: dict[int, float] = {}
        self._segment: int | None = None

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    def _require_running(self, operation: str) -> None:
        if not self.is_running:
            raise IllegalStateError(f"{operation}() requires a running session (state: {self.state.value})")

    def _components(self) -> tuple[PathMatcher, SafetyMonitor, HoldTracker]:
        if self._matcher is None or self._monitor is None or self._hold is None:
            raise IllegalStateError("session has not been started")
        return self._matcher, self._monitor, self._hold

    def start(self, profile: LimitProfile, path: ReferencePath) -> None:
        if self.is_running:
            raise IllegalStateError("start() called while a session is already running")
        problems: list[str] = []
        if not isinstance(profile, LimitProfile):
            problems.append("limit profile is missing")
        else:
            problems.extend(profile.problems())
        if not isinstance(path, ReferencePath):
            problems.append("reference path is missing")
        else:
            problems.extend(path.problems())
        if problems:
            raise ConfigurationError(problems)

        matcher = PathMatcher(path, profile, self.config)
        monitor = SafetyMonitor(profile, self.config)
        hold = HoldTracker(self.config.required_hold_time_s)

        self.profile = profile
        self.path = path
        self.result = None
        self._matcher = matcher
        self._monitor = monitor
        self._hold = hold
        self._reset_counters()
        self._score = self._recompute()
        self.state = SessionState.RUNNING
        logging.info(
            "Evaluation started for %s (%d frames, %d checkpoints)",
            profile.procedure_id,
            matcher.total_frames,
            matcher.total_checkpoints,
        )

    def tick(self, sample: PoseSample, dt: float) -> None:
        self._require_running("tick")
        if isinstance(dt, bool) or not isinstance(dt, (int, float)) or not math.isfinite(dt) or dt < 0:
            raise ValueError(f"dt must be a finite non-negative number, got {dt!r}")
        matcher, monitor, hold = self._components()

        pending: list[tuple[Callable[..., None], tuple[Any, ...]]] = []
        events = self.events
        reported_hold = hold.current_time
        try:
            sample.check(matcher.names)
        except SampleRejected as exc:
            self.samples_rejected += 1
            logging.debug("Rejected pose sample at t=%s: %s", sample.timestamp, exc.reason)
        else:
            match = matcher.advance(sample)
            safety = monitor.evaluate(sample)
            self.ticks_evaluated += 1
            if match.on_path:
                self.ticks_on_path += 1
            self._hold_predicate = match.on_path and not safety.in_danger

            if match.frame_changed:
                pending.append((events.path_progress.emit, match.progress))
            for checkpoint in match.checkpoints:
                if checkpoint.passed:
                    pending.append((events.checkpoint_passed.emit, (checkpoint.segment_name,)))
            if match.checkpoints:
                self._segment = match.checkpoints[-1].frame_index
                self._segment_holds.setdefault(self._segment, 0.0)
                if hold.completed:
                    hold.rearm()
            for violation in safety.violations:
                pending.append((events.safety_warning.emit, (violation.message,)))
            for target in safety.revert_started:
                pending.append((events.revert_required.emit, (target,)))

        self.elapsed_s += dt
        before = hold.current_time
        progress = hold.update(self._hold_predicate, dt)
        if self._segment is not None and progress.current_time > before:
            self._segment_holds[self._segment] += progress.current_time - before
        if progress.current_time != reported_hold:
            pending.append((events.hold_progress.emit, tuple(progress)))
        if hold.just_completed:
            pending.append((events.hold_completed.emit, ()))

        self._score = self._recompute()
        pending.append((events.score_changed.emit, (self._score,)))
        for emit, args in pending:
            emit(*args)

    def complete(self) -> EvaluationResult:
        self._require_running("complete")
        matcher, monitor, _ = self._components()
        score = self._recompute()
        self._score = score
        checkpoints = tuple(
            replace(checkpoint, hold_time=self._segment_holds.get(checkpoint.frame_index))
            for checkpoint in matcher.checkpoint_results()
        )
        result = EvaluationResult(
            procedure_id=self.profile.procedure_id,
            procedure_name=self.profile.procedure_name,
            score=score,
            violations=monitor.violations,
            checkpoints=checkpoints,
            duration_s=self.elapsed_s,
            ticks_evaluated=self.ticks_evaluated,
            samples_rejected=self.samples_rejected,
        )
        self.result = result
        self.state = SessionState.COMPLETED
        logging.info(
            "Evaluation completed for %s: %.1f%% (%s), %d violations",
            result.procedure_id,
            score.percentage,
            score.grade,
            len(result.violations),
        )
        self.events.session_completed.emit(result)
        return result

    def abort(self) -> None:
        self._require_running("abort")
        self.state = SessionState.ABORTED
        logging.info("Evaluation aborted after %.2fs", self.elapsed_s)

    def _recompute(self) -> ScoreBreakdown:
        matcher, monitor, hold = self._components()
        return self.aggregator.recompute(
            matcher,
            monitor,
            hold,
            ticks_evaluated=self.ticks_evaluated,
            ticks_on_path=self.ticks_on_path,
        )

    @property
    def score(self) -> ScoreBreakdown | None:
        return self._score

    @property
    def grade(self) -> str | None:
        return None if self._score is None else self._score.grade

    @property
    def hold_state(self) -> HoldState | None:
        return None if self._hold is None else self._hold.state

    @property
    def path_progress(self) -> tuple[int, int, float] | None:
        """(frame_index, total_frames, ratio), or None before the first matched sample."""
        if self._matcher is None or self._matcher.frame_index < 0:
            return None
        return self._matcher.frame_index, self._matcher.total_frames, self._matcher.ratio

    @property
    def revert_targets(self) -> dict[str, RevertTarget]:
        return {} if self._monitor is None else self._monitor.revert_targets

    @property
    def violations(self) -> tuple[SafetyViolation, ...]:
        return () if self._monitor is None else self._monitor.violations
