"""Failure types raised by the recommender phases."""

from __future__ import annotations


class InputConsistencyError(ValueError):
    """Malformed preference record, or a reference to an unknown ItemID.

    Retrying with the same input cannot succeed, so the run aborts.
    """


class InvariantViolationError(RuntimeError):
    """An upstream phase produced data that breaks a pipeline invariant."""


class PipelineError(RuntimeError):
    """A phase failed; carries the phase name and the underlying reason."""

    def __init__(self, phase: str, reason: str):
        super().__init__(f"phase {phase} failed: {reason}")
        self.phase = phase
        self.reason = reason

    def __reduce__(self):
        return (type(self), (self.phase, self.reason))
