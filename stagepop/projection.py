"""Deterministic population projection.

Iterates N(t) = P · N(t-1) for t = 1..T-1 and keeps the whole trajectory.
Abundances are continuous real quantities: no rounding to integer counts.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from stagepop.errors import InvalidHorizon, InvalidParameter
from stagepop.matrix import check_structure
from stagepop.types import N_STAGES, ProjectionSeries, readonly


def validate_horizon(n: int, label: str = "horizon") -> int:
    """Return n as int, or raise InvalidHorizon unless it is an integer ≥ 1."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidHorizon(f"{label} must be an integer, got {n!r}")
    if n < 1:
        raise InvalidHorizon(f"{label} must be >= 1, got {n}")
    return int(n)


def validate_population(N0: Union[Sequence[float], np.ndarray]) -> np.ndarray:
    """Check an initial population vector and return a read-only copy.

    Raises:
        InvalidParameter: On wrong length, non-finite or negative abundances.
    """
    N0 = np.asarray(N0, dtype=np.float64)
    if N0.shape != (N_STAGES,):
        raise InvalidParameter(
            f"Population vector must have {N_STAGES} stages, got shape {N0.shape}"
        )
    if not np.all(np.isfinite(N0)):
        raise InvalidParameter(f"Population vector must be finite, got {N0}")
    if np.any(N0 < 0):
        raise InvalidParameter(f"Abundances must be non-negative, got {N0}")
    return readonly(N0)


def project(P, N0, T: int) -> ProjectionSeries:
    """Project the population forward T-1 years.

    Args:
        P: (3, 3) transition matrix.
        N0: Initial abundances (juvenile, subadult, adult).
        T: Series length; T = 1 returns only N0.

    Returns:
        ProjectionSeries holding all T population vectors.

    Raises:
        InvalidHorizon: If T < 1.
        InvalidParameter: If P or N0 is malformed.
    """
    T = validate_horizon(T)
    P = check_structure(P)
    N0 = validate_population(N0)

    series = np.empty((T, N_STAGES), dtype=np.float64)
    series[0] = N0
    for t in range(1, T):
        series[t] = P @ series[t - 1]

    series.setflags(write=False)
    return ProjectionSeries(abundances=series)


def years_to_threshold(series: ProjectionSeries, threshold: float) -> int:
    """First year in which total abundance falls below threshold, or -1."""
    below = np.nonzero(series.totals < threshold)[0]
    return int(below[0]) if below.size else -1
