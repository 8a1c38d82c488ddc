"""Sensitivity and elasticity of λ.

    S[i, j] = u[i] · v[j]                 ∂λ/∂p_ij
    E[i, j] = (P[i, j] / λ) · S[i, j]     ∂ln λ/∂ln p_ij

with u·v = 1. Structural zeros of P still get a sensitivity (how λ would
respond if that transition existed) but always have elasticity exactly 0.
For a primitive matrix the elasticities sum to 1.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

import numpy as np

from stagepop.errors import DegenerateMatrix
from stagepop.matrix import check_structure
from stagepop.types import (
    ENTRY_POSITIONS,
    N_STAGES,
    EigenResult,
    SensitivityResult,
    readonly,
)


def _check_eigen(eigen: EigenResult) -> None:
    lam = eigen.lambda_
    if not np.isfinite(lam) or lam <= 0:
        raise DegenerateMatrix(f"EigenResult has invalid lambda: {lam}")
    for label, vec in (("stable_distribution", eigen.stable_distribution),
                       ("reproductive_value", eigen.reproductive_value)):
        vec = np.asarray(vec)
        if vec.shape != (N_STAGES,) or not np.all(np.isfinite(vec)):
            raise DegenerateMatrix(f"EigenResult.{label} is malformed: {vec}")


def compute_sensitivity_elasticity(P, eigen: EigenResult) -> SensitivityResult:
    """Sensitivity and elasticity matrices of λ for every entry of P.

    Args:
        P: (3, 3) transition matrix.
        eigen: Result of analyze_eigen(P).

    Returns:
        SensitivityResult with read-only S and E.

    Raises:
        DegenerateMatrix: If eigen is malformed.
    """
    P = check_structure(P)
    _check_eigen(eigen)

    u = np.asarray(eigen.reproductive_value, dtype=np.float64)
    v = np.asarray(eigen.stable_distribution, dtype=np.float64)
    S = np.outer(u, v)
    # Multiplying by P keeps structural zeros exactly zero
    E = (P / eigen.lambda_) * S

    return SensitivityResult(
        sensitivity=readonly(S),
        elasticity=readonly(E),
        lambda_=float(eigen.lambda_),
    )


def parameter_sensitivities(result: SensitivityResult) -> Dict[str, Tuple[float, float]]:
    """{entry name: (sensitivity, elasticity)} for the six named entries."""
    return {name: result.entry(name) for name in ENTRY_POSITIONS}


def rank_parameters(
    result: SensitivityResult,
    by: str = 'sensitivity',
) -> List[Tuple[str, float]]:
    """Named entries sorted from most to least influential on λ."""
    if by not in ('sensitivity', 'elasticity'):
        raise ValueError(f"by must be 'sensitivity' or 'elasticity', got '{by}'")
    col = 0 if by == 'sensitivity' else 1
    values = parameter_sensitivities(result)
    return sorted(
        ((name, vals[col]) for name, vals in values.items()),
        key=lambda item: item[1],
        reverse=True,
    )
