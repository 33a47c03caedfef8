from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from chuna.evaluation.config import EvaluationConfig
from core.models import CheckpointResult
from engine.pose import PoseSample, ReferencePath
from engine.profile import LimitProfile


@dataclass(frozen=True)
class PathMatch:
    frame_index: int
    total_frames: int
    ratio: float
    distance: float
    on_path: bool
    frame_changed: bool
    # Checkpoints crossed by this sample, in path order.
    checkpoints: tuple[CheckpointResult, ...] = ()

    @property
    def progress(self) -> tuple[int, int, float]:
        return self.frame_index, self.total_frames, self.ratio


class PathMatcher:
    """Tracks how far along the reference path the trainee is.

    The match only searches a bounded window ahead of the previous frame, so
    the frame index never moves backwards within a run.
    """

    def __init__(self, path: ReferencePath, profile: LimitProfile, config: EvaluationConfig) -> None:
        path.validate()
        self.path = path
        self.tolerance = profile.on_path_tolerance
        self.window = config.search_window
        self.pass_similarity = config.checkpoint_pass_similarity
        self.names = path.measurement_names
        self.frames = np.array(
            [[frame.values[name] for name in self.names] for frame in path.frames],
            dtype=float,
        )
        self.scale = np.array([profile.limit_for(name) or 1.0 for name in self.names], dtype=float)
        weights = config.distance_weights or {}
        self.weights = np.array([weights.get(name, 1.0) for name in self.names], dtype=float)
        if self.weights.sum() <= 0:
            self.weights = np.ones(len(self.names), dtype=float)
        self.checkpoint_indices = path.checkpoint_indices
        self.reset()

    def reset(self) -> None:
        self.frame_index = -1
        self.distance: float | None = None
        self.on_path = False
        self._results: dict[int, CheckpointResult] = {}

    @property
    def total_frames(self) -> int:
        return len(self.frames)

    @property
    def ratio(self) -> float:
        if self.frame_index < 0:
            return 0.0
        if self.total_frames == 1:
            return 1.0
        return min(1.0, max(0.0, self.frame_index / (self.total_frames - 1)))

    @property
    def checkpoints_passed(self) -> int:
        return sum(1 for result in self._results.values() if result.passed)

    @property
    def total_checkpoints(self) -> int:
        return len(self.checkpoint_indices)

    def _distances(self, sample: PoseSample, frames: np.ndarray) -> np.ndarray:
        vector = np.array([sample.values[name] for name in self.names], dtype=float)
        normalized = (frames - vector) / self.scale
        return np.sqrt((normalized**2) @ self.weights / self.weights.sum())

    def advance(self, sample: PoseSample) -> PathMatch:
        previous = self.frame_index
        start = max(previous, 0)
        stop = min(start + self.window, self.total_frames - 1)
        distances = self._distances(sample, self.frames[start : stop + 1])
        # argmin returns the first minimum, so ties keep the earlier frame.
        offset = int(np.argmin(distances))
        self.frame_index = start + offset
        self.distance = float(distances[offset])
        self.on_path = self.distance <= self.tolerance

        crossed = [index for index in self.checkpoint_indices if previous < index <= self.frame_index]
        results: list[CheckpointResult] = []
        if crossed:
            checkpoint_distances = self._distances(sample, self.frames[crossed])
            for index, distance in zip(crossed, checkpoint_distances):
                similarity = min(1.0, max(0.0, 1.0 - float(distance)))
                result = CheckpointResult(
                    frame_index=index,
                    segment_name=self.path.frames[index].segment_name,
                    passed=similarity >= self.pass_similarity,
                    similarity=similarity,
                    timestamp=sample.timestamp,
                )
                self._results[index] = result
                results.append(result)

        return PathMatch(
            frame_index=self.frame_index,
            total_frames=self.total_frames,
            ratio=self.ratio,
            distance=self.distance,
            on_path=self.on_path,
            frame_changed=self.frame_index != previous,
            checkpoints=tuple(results),
        )

    def checkpoint_results(self) -> tuple[CheckpointResult, ...]:
        """One result per checkpoint in path order; unreached ones fail."""
        results = []
        for index in self.checkpoint_indices:
            result = self._results.get(index)
            if result is None:
                result = CheckpointResult(
                    frame_index=index,
                    segment_name=self.path.frames[index].segment_name,
                    passed=False,
                    similarity=None,
                )
            results.append(result)
        return tuple(results)
