"""Core data types for stagepop.

This module is the SINGLE SOURCE OF TRUTH for:
  - Stage enumeration and stage ordering
  - Named matrix entry positions (S_JJ, S_SJ, S_SS, S_AS, S_AA, b)
  - Structural-zero positions of the transition matrix
  - Result containers passed between modules (ProjectionSeries, EigenResult,
    SensitivityResult, SweepResult)

All arrays held by result containers are read-only. A new scenario or
perturbation always produces new arrays; nothing is modified in place.

Matrix layout (P[i, j] = contribution to stage i from one individual in stage j):

    [ S_JJ   0      b    ]
    [ S_SJ   S_SS   0    ]
    [ 0      S_AS   S_AA ]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional, Tuple

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class Stage(IntEnum):
    """Life stages, in matrix row/column order."""
    JUVENILE = 0
    SUBADULT = 1
    ADULT    = 2


N_STAGES = len(Stage)

STAGE_NAMES = tuple(s.name.lower() for s in Stage)


# ═══════════════════════════════════════════════════════════════════════
# MATRIX ENTRY POSITIONS
# ═══════════════════════════════════════════════════════════════════════

ENTRY_POSITIONS: Dict[str, Tuple[int, int]] = {
    'S_JJ': (Stage.JUVENILE, Stage.JUVENILE),   # juvenile stays juvenile
    'S_SJ': (Stage.SUBADULT, Stage.JUVENILE),   # juvenile → subadult
    'S_SS': (Stage.SUBADULT, Stage.SUBADULT),   # subadult stays subadult
    'S_AS': (Stage.ADULT,    Stage.SUBADULT),   # subadult → adult
    'S_AA': (Stage.ADULT,    Stage.ADULT),      # adult survival
    'b':    (Stage.JUVENILE, Stage.ADULT),      # sex-adjusted fertility
}

SURVIVAL_ENTRIES = ('S_JJ', 'S_SJ', 'S_SS', 'S_AS', 'S_AA')
FERTILITY_ENTRIES = ('b',)
DIAGONAL_ENTRIES = ('S_JJ', 'S_SS', 'S_AA')

# No subadult recruits directly to juvenile, no adult reverts to subadult,
# juveniles do not reproduce.
STRUCTURAL_ZEROS = (
    (Stage.JUVENILE, Stage.SUBADULT),
    (Stage.SUBADULT, Stage.ADULT),
    (Stage.ADULT,    Stage.JUVENILE),
)


def entry_position(name: str) -> Tuple[int, int]:
    """Look up the (row, col) position of a named matrix entry.

    Raises:
        KeyError: If name is not one of ENTRY_POSITIONS.
    """
    if name not in ENTRY_POSITIONS:
        raise KeyError(
            f"Unknown matrix entry '{name}'. "
            f"Valid: {list(ENTRY_POSITIONS)}"
        )
    row, col = ENTRY_POSITIONS[name]
    return int(row), int(col)


def readonly(arr) -> np.ndarray:
    """Return a float64 copy of arr with the writeable flag cleared."""
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


# ═══════════════════════════════════════════════════════════════════════
# RESULT CONTAINERS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProjectionSeries:
    """Full trajectory of a deterministic projection.

    abundances[t, s] is the abundance of Stage s in year t, t = 0..T-1.
    """
    abundances: np.ndarray         # (T, 3) float64, read-only

    @property
    def n_years(self) -> int:
        return int(self.abundances.shape[0])

    @property
    def years(self) -> np.ndarray:
        return np.arange(self.n_years)

    @property
    def initial(self) -> np.ndarray:
        return self.abundances[0]

    @property
    def final(self) -> np.ndarray:
        return self.abundances[-1]

    @property
    def totals(self) -> np.ndarray:
        """Total abundance per year, shape (T,)."""
        return self.abundances.sum(axis=1)

    def stage(self, stage: Stage) -> np.ndarray:
        """Trajectory of a single stage, shape (T,)."""
        return self.abundances[:, int(stage)]

    def proportions(self) -> np.ndarray:
        """Stage composition per year; rows sum to 1 (nan for empty years)."""
        totals = self.totals[:, None]
        with np.errstate(invalid='ignore', divide='ignore'):
            return np.where(totals > 0, self.abundances / totals, np.nan)

    def growth_ratios(self) -> np.ndarray:
        """Year-over-year ratio of total abundance, shape (T-1,).

        Converges to λ once transient dynamics have decayed.
        """
        totals = self.totals
        with np.errstate(invalid='ignore', divide='ignore'):
            return np.where(totals[:-1] > 0, totals[1:] / totals[:-1], np.nan)


@dataclass(frozen=True)
class EigenResult:
    """Dominant-eigenvalue analysis of a transition matrix.

    Normalizations:
      - stable_distribution (v) sums to 1
      - reproductive_value (u) satisfies u · v = 1
    """
    lambda_: float                      # dominant eigenvalue λ (real, > 0)
    stable_distribution: np.ndarray     # v, (3,) read-only
    reproductive_value: np.ndarray      # u, (3,) read-only
    eigenvalues: np.ndarray             # all eigenvalues, sorted by |.| descending
    damping_ratio: float                # λ / |λ₂|

    @property
    def growth_rate(self) -> float:
        """Intrinsic rate of increase r = ln λ."""
        return float(np.log(self.lambda_))


@dataclass(frozen=True)
class SensitivityResult:
    """Sensitivity (∂λ/∂p_ij) and elasticity matrices of λ."""
    sensitivity: np.ndarray    # S, (3, 3) read-only
    elasticity: np.ndarray     # E, (3, 3) read-only
    lambda_: float

    def entry(self, name: str) -> Tuple[float, float]:
        """(sensitivity, elasticity) for a named matrix entry."""
        row, col = entry_position(name)
        return float(self.sensitivity[row, col]), float(self.elasticity[row, col])


@dataclass(frozen=True)
class SweepResult:
    """λ as a function of one diagonal survival entry.

    values[k-1] and lambdas[k-1] belong to step k (target = base + k·δ).
    When truncated is True the sweep stopped early because the next step
    would have left [0, 1].
    """
    target: str
    delta: float
    requested_steps: int
    base_value: float
    base_lambda: float
    values: np.ndarray      # (n_completed,) read-only
    lambdas: np.ndarray     # (n_completed,) read-only
    truncated: bool
    stop_value: Optional[float] = None   # out-of-domain value that halted the sweep

    @property
    def n_steps(self) -> int:
        return int(self.lambdas.shape[0])

    @property
    def steps(self) -> np.ndarray:
        return np.arange(1, self.n_steps + 1)
