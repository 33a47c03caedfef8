from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Sequence

import numpy as np

from engine.pose import ReferencePath


class CheckpointMode(Enum):
    FIXED_INTERVAL = "interval"
    FIXED_COUNT = "count"
    START_MIDDLE_END = "start_middle_end"
    DISTANCE = "distance"


def _path_matrix(path: ReferencePath) -> np.ndarray:
    names = path.measurement_names
    return np.array([[frame.values[name] for name in names] for frame in path.frames], dtype=float)


def fixed_interval_indices(frame_count: int, interval: int) -> list[int]:
    if frame_count <= 0:
        return []
    interval = max(1, interval)
    indices = list(range(0, frame_count, interval))
    if indices[-1] != frame_count - 1:
        indices.append(frame_count - 1)
    return indices


def fixed_count_indices(frame_count: int, count: int) -> list[int]:
    if frame_count <= 0 or count <= 0:
        return []
    if count == 1:
        return [frame_count - 1]
    step = max(1, frame_count // (count - 1))
    indices = {min(i * step, frame_count - 1) for i in range(count - 1)}
    indices.add(frame_count - 1)
    return sorted(indices)


def start_middle_end_indices(frame_count: int) -> list[int]:
    if frame_count <= 0:
        return []
    return sorted({0, frame_count // 2, frame_count - 1})


def distance_indices(path: ReferencePath, threshold: float) -> list[int]:
    """Place a checkpoint each time the travelled distance reaches ``threshold``."""
    frame_count = len(path)
    if frame_count == 0:
        return []
    matrix = _path_matrix(path)
    steps = np.linalg.norm(np.diff(matrix, axis=0), axis=1) if frame_count > 1 else np.zeros(0)
    indices = [0]
    travelled = 0.0
    for offset, step in enumerate(steps, start=1):
        travelled += float(step)
        if threshold > 0 and travelled >= threshold:
            indices.append(offset)
            travelled = 0.0
    if indices[-1] != frame_count - 1:
        indices.append(frame_count - 1)
    return indices


def generate_checkpoints(
    path: ReferencePath,
    mode: CheckpointMode | str,
    *,
    interval: int = 10,
    count: int = 5,
    distance: float = 1.0,
) -> list[int]:
    mode = CheckpointMode(mode)
    frame_count = len(path)
    if mode is CheckpointMode.FIXED_INTERVAL:
        return fixed_interval_indices(frame_count, interval)
    if mode is CheckpointMode.FIXED_COUNT:
        return fixed_count_indices(frame_count, count)
    if mode is CheckpointMode.START_MIDDLE_END:
        return start_middle_end_indices(frame_count)
    return distance_indices(path, distance)


def tag_checkpoints(
    path: ReferencePath,
    indices: Sequence[int],
    names: Sequence[str] | None = None,
) -> ReferencePath:
    """Return a copy of ``path`` whose checkpoint tags are exactly ``indices``.

    Without explicit ``names`` the first frame is tagged "Start", the last
    frame "End" and the rest "Segment 1", "Segment 2", ...
    """
    ordered = sorted(set(indices))
    if any(index < 0 or index >= len(path) for index in ordered):
        raise ValueError("checkpoint index outside the reference path")
    if names is not None and len(names) != len(ordered):
        raise ValueError("names must match the number of checkpoints")
    last = len(path) - 1
    labels: dict[int, str] = {}
    segment = 0
    for position, index in enumerate(ordered):
        if names is not None:
            labels[index] = names[position]
        elif index == 0:
            labels[index] = "Start"
        elif index == last:
            labels[index] = "End"
        else:
            segment += 1
            labels[index] = f"Segment {segment}"
    frames = tuple(
        replace(frame, checkpoint=labels.get(index)) for index, frame in enumerate(path.frames)
    )
    return ReferencePath(frames=frames, name=path.name)
