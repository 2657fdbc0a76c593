"""Domain errors raised by the recovery model."""

from __future__ import annotations


class GoalDecodeError(ValueError):
    """A serialized goal record could not be turned back into a goal."""


class ConstraintViolation(ValueError):
    """A record field was given a value the model does not accept."""
