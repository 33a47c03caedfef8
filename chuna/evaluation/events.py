from __future__ import annotations

from typing import Any, Callable

Callback = Callable[..., None]


class Signal:
    """Observer list for one kind of notification."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[Callback] = []

    def subscribe(self, callback: Callback) -> Callback:
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, *args: Any) -> None:
        # Copy so a subscriber can unsubscribe itself while being notified.
        for callback in list(self._subscribers):
            callback(*args)

    def __len__(self) -> int:
        return len(self._subscribers)


class SessionEvents:
    def __init__(self) -> None:
        # (current_time, required_time)
        self.hold_progress = Signal("hold_progress")
        self.hold_completed = Signal("hold_completed")
        # (frame_index, total_frames, ratio)
        self.path_progress = Signal("path_progress")
        # (message)
        self.safety_warning = Signal("safety_warning")
        # (segment_name)
        self.checkpoint_passed = Signal("checkpoint_passed")
        # (RevertTarget)
        self.revert_required = Signal("revert_required")
        # (ScoreBreakdown)
        self.score_changed = Signal("score_changed")
        # (EvaluationResult)
        self.session_completed = Signal("session_completed")
