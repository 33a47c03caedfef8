from engine.checkpoints import CheckpointMode, generate_checkpoints, tag_checkpoints
from engine.pose import PoseSample, ReferenceFrame, ReferencePath
from engine.profile import LimitProfile, ProcedureType, preset_profile

__all__ = [
    "CheckpointMode",
    "LimitProfile",
    "PoseSample",
    "ProcedureType",
    "ReferenceFrame",
    "ReferencePath",
    "generate_checkpoints",
    "preset_profile",
    "tag_checkpoints",
]
