"""Survival sweeps: λ as a function of one diagonal survival entry.

At step k (k = 1..K) the target entry is set to base + k·δ in a freshly
derived matrix, with every other entry held at its base value, and λ is
recomputed by direct eigen-analysis (not by the sensitivity approximation).

A step that would push the target outside [0, 1] halts the sweep; the values
computed so far are returned with truncated=True. Nothing is clamped.
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional, Sequence, Union

import numpy as np
from scipy.optimize import brentq

from stagepop.eigen import EigenBackend, analyze_eigen
from stagepop.errors import BoundViolation, InvalidParameter
from stagepop.matrix import check_structure, with_entry
from stagepop.projection import validate_horizon
from stagepop.types import DIAGONAL_ENTRIES, SweepResult, entry_position, readonly


# Absorbs floating-point accumulation in base + k·δ (e.g. 0.85 + 15 × 0.01)
BOUND_TOL = 1e-12


class Crossing(NamedTuple):
    """Where a sweep first reaches the λ threshold."""
    step: int            # first step at or beyond the threshold
    value: float         # parameter value at that step
    interpolated: float  # linear estimate of the exact crossing value


def _check_target(target: str) -> str:
    if target not in DIAGONAL_ENTRIES:
        raise InvalidParameter(
            f"Sweep target must be one of {DIAGONAL_ENTRIES}, got '{target}'"
        )
    return target


def perturb(P, target: str, value: float, step: int = 0) -> np.ndarray:
    """Derived matrix with the target survival entry set to value.

    Raises:
        BoundViolation: If value lies outside [0, 1].
    """
    if value < -BOUND_TOL or value > 1.0 + BOUND_TOL:
        raise BoundViolation(target, value, step)
    return with_entry(P, target, min(max(value, 0.0), 1.0))


def sweep(
    P,
    target: str,
    delta: float,
    steps: int,
    backend: Union[str, EigenBackend, None] = None,
) -> SweepResult:
    """Recompute λ while stepping one diagonal survival entry by δ.

    Args:
        P: Base (3, 3) transition matrix (never modified).
        target: 'S_JJ', 'S_SS' or 'S_AA'.
        delta: Per-step increment; negative values sweep downwards.
        steps: Requested number of steps K.
        backend: Eigensolver passed through to analyze_eigen.

    Returns:
        SweepResult; truncated is True if fewer than K steps stayed in [0, 1].

    Raises:
        InvalidParameter: On a non-diagonal target or non-finite delta.
        InvalidHorizon: If steps < 1.
        DegenerateMatrix: If a derived matrix has no valid dominant eigenvalue.
            The sweep stops at that step rather than skipping it. With b = 0
            the matrix is triangular and its eigenvalues are its diagonal, so
            a step that makes the target equal another diagonal entry gives a
            defective matrix and raises here.
    """
    P = check_structure(P)
    _check_target(target)
    steps = validate_horizon(steps, "steps")
    delta = float(delta)
    if not np.isfinite(delta):
        raise InvalidParameter(f"delta must be finite, got {delta}")

    base_value = float(P[entry_position(target)])
    base_lambda = analyze_eigen(P, backend=backend).lambda_

    values = []
    lambdas = []
    truncated = False
    stop_value = None
    for k in range(1, steps + 1):
        try:
            derived = perturb(P, target, base_value + k * delta, step=k)
        except BoundViolation as exc:
            truncated = True
            stop_value = exc.value
            break
        values.append(float(derived[entry_position(target)]))
        lambdas.append(analyze_eigen(derived, backend=backend).lambda_)

    return SweepResult(
        target=target,
        delta=delta,
        requested_steps=steps,
        base_value=base_value,
        base_lambda=base_lambda,
        values=readonly(values),
        lambdas=readonly(lambdas),
        truncated=truncated,
        stop_value=stop_value,
    )


def sweep_diagonals(
    P,
    delta: float,
    steps: int,
    targets: Sequence[str] = DIAGONAL_ENTRIES,
    backend: Union[str, EigenBackend, None] = None,
) -> Dict[str, SweepResult]:
    """Independent sweeps of each diagonal entry, all from the same base P."""
    return {t: sweep(P, t, delta, steps, backend=backend) for t in targets}


def find_crossing(result: SweepResult, threshold: float = 1.0) -> Optional[Crossing]:
    """First step at which λ reaches threshold from the base side.

    Returns None if the sweep never crosses (or starts at) the threshold.
    """
    rising = result.base_lambda < threshold
    prev_value, prev_lambda = result.base_value, result.base_lambda
    for k, (value, lam) in enumerate(zip(result.values, result.lambdas), start=1):
        reached = lam >= threshold if rising else lam <= threshold
        if reached:
            if lam == prev_lambda:
                interp = float(value)
            else:
                frac = (threshold - prev_lambda) / (lam - prev_lambda)
                interp = float(prev_value + frac * (value - prev_value))
            return Crossing(step=k, value=float(value), interpolated=interp)
        prev_value, prev_lambda = value, lam
    return None


def critical_value(
    P,
    target: str,
    threshold: float = 1.0,
    backend: Union[str, EigenBackend, None] = None,
    xtol: float = 1e-10,
) -> Optional[float]:
    """Survival value of target at which λ equals threshold exactly.

    Solves λ(x) = threshold for x in [0, 1] with Brent's method, holding all
    other entries fixed. Returns None when no value in [0, 1] reaches it.
    """
    P = check_structure(P)
    _check_target(target)

    def excess(x: float) -> float:
        return analyze_eigen(with_entry(P, target, x), backend=backend).lambda_ - threshold

    lo, hi = excess(0.0), excess(1.0)
    if lo == 0.0:
        return 0.0
    if hi == 0.0:
        return 1.0
    if np.sign(lo) == np.sign(hi):
        return None
    return float(brentq(excess, 0.0, 1.0, xtol=xtol))
