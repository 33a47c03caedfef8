from __future__ import annotations


class EvaluationError(Exception):
    pass


class ConfigurationError(EvaluationError, ValueError):
    """Invalid limit profile, reference path or engine configuration."""

    def __init__(self, problems: list[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class IllegalStateError(EvaluationError, RuntimeError):
    pass


class SampleRejected(EvaluationError, ValueError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
