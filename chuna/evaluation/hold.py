from __future__ import annotations

from typing import NamedTuple

from core.models import HoldState


class HoldProgress(NamedTuple):
    current_time: float
    required_time: float


class HoldTracker:
    def __init__(self, required_time: float) -> None:
        if required_time <= 0:
            raise ValueError("required_time must be positive")
        self.required_time = required_time
        self.reset()

    def reset(self) -> None:
        self.current_time = 0.0
        self.completed = False
        self.just_completed = False
        self.total_completed_time = 0.0

    def rearm(self) -> None:
        """Start a new hold target, keeping the completed total."""
        self.current_time = 0.0
        self.completed = False
        self.just_completed = False

    @property
    def state(self) -> HoldState:
        return HoldState(self.current_time, self.required_time, self.completed)

    def update(self, predicate_satisfied: bool, dt: float) -> HoldProgress:
        self.just_completed = False
        if self.completed:
            return HoldProgress(self.current_time, self.required_time)
        if not predicate_satisfied:
            self.current_time = 0.0
            return HoldProgress(self.current_time, self.required_time)
        self.current_time += dt
        if self.current_time >= self.required_time:
            self.current_time = self.required_time
            self.completed = True
            self.just_completed = True
            self.total_completed_time += self.required_time
        return HoldProgress(self.current_time, self.required_time)
