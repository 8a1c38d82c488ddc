"""Transition matrix construction.

Builds the 3×3 stage-transition matrix from five survival rates and one
sex-adjusted fertility rate. Structural zeros are fixed by construction and
remain exactly zero in every derived matrix.

Survival rates must lie in [0, 1] and fertility must be ≥ 0. Out-of-range input
is a configuration error (InvalidParameter); nothing is clamped.

Every function here is pure: returned matrices are new read-only arrays.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np

from stagepop.errors import InvalidParameter
from stagepop.types import (
    ENTRY_POSITIONS,
    FERTILITY_ENTRIES,
    N_STAGES,
    STRUCTURAL_ZEROS,
    SURVIVAL_ENTRIES,
    entry_position,
    readonly,
)


# Attribute name on VitalRates for each named matrix entry
_FIELD_FOR_ENTRY = {
    'S_JJ': 's_jj',
    'S_SJ': 's_sj',
    'S_SS': 's_ss',
    'S_AS': 's_as',
    'S_AA': 's_aa',
    'b':    'b',
}


@dataclass(frozen=True)
class VitalRates:
    """Literature vital rates for one scenario.

    Defaults are the reference parameter set.
    """
    s_jj: float = 0.63      # juvenile → juvenile
    s_sj: float = 0.10      # juvenile → subadult
    s_ss: float = 0.70      # subadult → subadult
    s_as: float = 0.09      # subadult → adult
    s_aa: float = 0.85      # adult → adult
    b: float = 0.58125      # female offspring per adult per year

    def to_matrix(self) -> np.ndarray:
        return build_matrix(self.s_jj, self.s_sj, self.s_ss,
                            self.s_as, self.s_aa, self.b)

    def as_entries(self) -> Dict[str, float]:
        """Map of matrix entry name → value (S_JJ, ..., b)."""
        return {name: float(getattr(self, f)) for name, f in _FIELD_FOR_ENTRY.items()}

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def with_entries(self, **entries: float) -> 'VitalRates':
        """New VitalRates with the named entries (S_JJ=..., b=...) replaced."""
        values = self.as_dict()
        for name, value in entries.items():
            if name not in _FIELD_FOR_ENTRY:
                raise InvalidParameter(
                    f"Unknown matrix entry '{name}'. "
                    f"Valid: {list(_FIELD_FOR_ENTRY)}"
                )
            values[_FIELD_FOR_ENTRY[name]] = value
        return VitalRates(**values)


def validate_entry(name: str, value: float) -> float:
    """Check one named entry against its domain and return it as float.

    Raises:
        InvalidParameter: If value is not a real number (strings and bools
            included), non-finite, negative, or a survival rate above 1.
    """
    if isinstance(value, (bool, np.bool_, str, bytes)):
        raise InvalidParameter(f"{name} must be a real number, got {value!r}")
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a real number, got {value!r}") from None
    if not np.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value}")
    if name in SURVIVAL_ENTRIES and not (0.0 <= value <= 1.0):
        raise InvalidParameter(
            f"{name} is a survival probability and must be in [0, 1], got {value}"
        )
    if name in FERTILITY_ENTRIES and value < 0.0:
        raise InvalidParameter(f"{name} is a fertility and must be >= 0, got {value}")
    return value


def build_matrix(
    s_jj: float,
    s_sj: float,
    s_ss: float,
    s_as: float,
    s_aa: float,
    b: float,
) -> np.ndarray:
    """Build the stage-transition matrix P.

    Args:
        s_jj: Juvenile survival, remaining juvenile.
        s_sj: Juvenile survival and growth to subadult.
        s_ss: Subadult survival, remaining subadult.
        s_as: Subadult survival and growth to adult.
        s_aa: Adult survival.
        b: Sex-adjusted fertility (female juveniles per adult per year).

    Returns:
        Read-only (3, 3) float64 array.

    Raises:
        InvalidParameter: If any rate is outside its valid range.
    """
    rates = {
        'S_JJ': s_jj, 'S_SJ': s_sj, 'S_SS': s_ss,
        'S_AS': s_as, 'S_AA': s_aa, 'b': b,
    }
    P = np.zeros((N_STAGES, N_STAGES), dtype=np.float64)
    for name, value in rates.items():
        P[ENTRY_POSITIONS[name]] = validate_entry(name, value)
    P.setflags(write=False)
    return P


def check_structure(P) -> np.ndarray:
    """Validate shape, domain and sparsity of an existing matrix.

    Returns:
        Read-only float64 copy of P.

    Raises:
        InvalidParameter: On wrong shape, non-zero structural entries, or
            out-of-range rates.
    """
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (N_STAGES, N_STAGES):
        raise InvalidParameter(
            f"Transition matrix must be {N_STAGES}x{N_STAGES}, got shape {P.shape}"
        )
    for row, col in STRUCTURAL_ZEROS:
        if P[row, col] != 0.0:
            raise InvalidParameter(
                f"P[{int(row)}, {int(col)}] is a structural zero, got {P[row, col]}"
            )
    for name, pos in ENTRY_POSITIONS.items():
        validate_entry(name, P[pos])
    return readonly(P)


def vital_rates_from_matrix(P) -> VitalRates:
    """Recover the six vital rates from a transition matrix."""
    P = check_structure(P)
    return VitalRates(**{
        _FIELD_FOR_ENTRY[name]: float(P[pos])
        for name, pos in ENTRY_POSITIONS.items()
    })


def with_entry(P, name: str, value: float) -> np.ndarray:
    """Derived matrix with one named entry replaced; P itself is untouched.

    Raises:
        InvalidParameter: If name is unknown or value is out of its domain.
    """
    if name not in ENTRY_POSITIONS:
        raise InvalidParameter(
            f"Unknown matrix entry '{name}'. Valid: {list(ENTRY_POSITIONS)}"
        )
    derived = np.array(P, dtype=np.float64, copy=True)
    derived[entry_position(name)] = validate_entry(name, value)
    derived.setflags(write=False)
    return derived


def split_matrix(P):
    """Split P into survival/growth (T) and fertility (F) parts, P = T + F."""
    P = np.asarray(P, dtype=np.float64)
    F = np.zeros_like(P)
    for name in FERTILITY_ENTRIES:
        pos = entry_position(name)
        F[pos] = P[pos]
    T = P - F
    return T, F
