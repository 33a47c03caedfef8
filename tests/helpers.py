from __future__ import annotations

from engine.checkpoints import start_middle_end_indices, tag_checkpoints
from engine.pose import PoseSample, ReferenceFrame, ReferencePath
from engine.profile import LimitProfile


def make_profile(**overrides: object) -> LimitProfile:
    values = {"procedure_id": "test_procedure", "procedure_name": "Test procedure"}
    values.update(overrides)
    return LimitProfile(**values)  # type: ignore[arg-type]


def rotation_path(frame_count: int = 120, step: float = 0.3, checkpoints: bool = True) -> ReferencePath:
    frames = tuple(
        ReferenceFrame(values={"neck_rotation_left": index * step, "wrist_flexion": 10.0})
        for index in range(frame_count)
    )
    path = ReferencePath(frames=frames, name="rotation")
    if checkpoints:
        path = tag_checkpoints(path, start_middle_end_indices(frame_count))
    return path


def sample_at(path: ReferencePath, index: int, timestamp: float = 0.0, **extra: float) -> PoseSample:
    values = dict(path.frames[index].values)
    values.update(extra)
    return PoseSample(timestamp=timestamp, values=values)
