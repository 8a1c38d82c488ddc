"""Exception taxonomy for stagepop.

All errors derive from StageModelError (itself a ValueError), so callers can
catch the whole family or a single condition.

  InvalidParameter  — out-of-domain vital rate, fertility or abundance
  InvalidHorizon    — non-positive projection length or sweep step count
  DegenerateMatrix  — no unique, real, positive dominant eigenvalue
  BoundViolation    — a sweep step would leave [0, 1]; the sweep turns this
                      into a truncation flag rather than propagating it
"""

from __future__ import annotations


class StageModelError(ValueError):
    """Base class for all stage-model errors."""


class InvalidParameter(StageModelError):
    """A vital rate or abundance lies outside its valid domain."""


class InvalidHorizon(StageModelError):
    """A projection horizon or sweep step count is < 1."""


class DegenerateMatrix(StageModelError):
    """Eigen-analysis cannot find a unique, real, positive dominant eigenvalue."""


class BoundViolation(StageModelError):
    """A perturbation step would push a survival entry outside [0, 1]."""

    def __init__(self, name: str, value: float, step: int):
        self.name = name
        self.value = value
        self.step = step
        super().__init__(
            f"{name} = {value:.6g} at step {step} is outside [0, 1]"
        )
