"""Dominant-eigenvalue analysis of the transition matrix.

The domain contract lives here, independent of the numerical backend:
  - λ is the eigenvalue of largest magnitude, and must be real, positive and
    strictly dominant (no other eigenvalue of equal magnitude)
  - the right eigenvector v (stable stage distribution) is scaled to sum to 1
  - the left eigenvector u (reproductive value) is scaled so that u · v = 1

Any general eigensolver can be plugged in as a backend: a callable taking a
square real matrix and returning (eigenvalues, eigenvectors-as-columns).
Left eigenvectors are obtained by running the same backend on Pᵀ.

Periodic (imprimitive) life cycles, repeated dominant roots, complex or
non-positive dominant eigenvalues and defective matrices raise
DegenerateMatrix.

References:
  - Caswell (2001) Matrix Population Models, 2nd ed., ch. 4 and 9
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np
import scipy.linalg

from stagepop.errors import DegenerateMatrix
from stagepop.matrix import check_structure, split_matrix
from stagepop.types import EigenResult, readonly


EigenBackend = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]

# Relative tolerance for "equal magnitude" and "zero imaginary part"
DEFAULT_TOL = 1e-8

# Eigenvector matrices with a condition number above this are treated as
# defective (not diagonalizable).
MAX_EIGVEC_COND = 1.0 / np.sqrt(np.finfo(np.float64).eps)


# ═══════════════════════════════════════════════════════════════════════
# BACKENDS
# ═══════════════════════════════════════════════════════════════════════

def numpy_backend(A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """LAPACK geev via numpy.linalg.eig."""
    w, vr = np.linalg.eig(A)
    return w, vr


def scipy_backend(A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """LAPACK geev via scipy.linalg.eig."""
    w, vr = scipy.linalg.eig(A)
    return w, vr


BACKENDS: Dict[str, EigenBackend] = {
    'numpy': numpy_backend,
    'scipy': scipy_backend,
}


def get_backend(backend: Union[str, EigenBackend, None]) -> EigenBackend:
    """Resolve a backend name or callable; None gives the numpy backend."""
    if backend is None:
        return numpy_backend
    if callable(backend):
        return backend
    if backend not in BACKENDS:
        raise ValueError(
            f"Unknown eigen backend '{backend}'. Valid: {list(BACKENDS)}"
        )
    return BACKENDS[backend]


# ═══════════════════════════════════════════════════════════════════════
# DOMINANT EIGENVALUE SELECTION
# ═══════════════════════════════════════════════════════════════════════

def _dominant(eigvals: np.ndarray, tol: float) -> Tuple[float, np.ndarray]:
    """Pick λ and return it with the magnitude-sorted order of eigvals."""
    order = np.argsort(-np.abs(eigvals), kind='stable')
    lam = eigvals[order[0]]
    mag = np.abs(lam)

    if mag == 0.0:
        raise DegenerateMatrix("All eigenvalues are zero; matrix has no growth rate")
    if abs(lam.imag) > tol * mag:
        raise DegenerateMatrix(f"Dominant eigenvalue is complex: {lam}")
    if lam.real <= 0.0:
        raise DegenerateMatrix(f"Dominant eigenvalue is not positive: {lam.real}")

    for idx in order[1:]:
        if abs(np.abs(eigvals[idx]) - mag) <= tol * mag:
            raise DegenerateMatrix(
                f"Dominant eigenvalue {lam.real:.6g} is not simple: "
                f"eigenvalue {eigvals[idx]} has the same magnitude "
                f"(repeated root or periodic life cycle)"
            )
    return float(lam.real), order


def _real_vector(vec: np.ndarray, label: str, tol: float) -> np.ndarray:
    scale = np.max(np.abs(vec))
    if scale == 0.0:
        raise DegenerateMatrix(f"{label} eigenvector is identically zero")
    if np.max(np.abs(vec.imag)) > tol * scale:
        raise DegenerateMatrix(f"{label} eigenvector is complex: {vec}")
    out = vec.real / scale
    out[np.abs(out) < tol] = 0.0
    return out


def analyze_eigen(
    P,
    backend: Union[str, EigenBackend, None] = None,
    tol: float = DEFAULT_TOL,
) -> EigenResult:
    """Dominant eigenvalue, stable stage distribution and reproductive value.

    Args:
        P: (3, 3) transition matrix.
        backend: Eigensolver name ('numpy', 'scipy') or callable.
        tol: Relative tolerance for ties and imaginary parts.

    Returns:
        EigenResult with v summing to 1 and u · v = 1.

    Raises:
        DegenerateMatrix: If λ is complex, non-positive or not simple, or if
            P is not diagonalizable.
    """
    P = check_structure(P)
    solve = get_backend(backend)

    eigvals, right = solve(P)
    eigvals = np.asarray(eigvals, dtype=np.complex128)
    right = np.asarray(right, dtype=np.complex128)

    lam, order = _dominant(eigvals, tol)

    if np.linalg.cond(right) > MAX_EIGVEC_COND:
        raise DegenerateMatrix("Transition matrix is not diagonalizable")

    # Stable stage distribution
    v = _real_vector(right[:, order[0]], "Right", tol)
    if abs(v.sum()) < tol:
        raise DegenerateMatrix(f"Right eigenvector cannot be scaled to sum to 1: {v}")
    v = v / v.sum()
    if np.any(v < 0):
        raise DegenerateMatrix(f"Stable distribution has negative components: {v}")

    # Reproductive value: right eigenvector of Pᵀ for the same λ
    eigvals_t, left = solve(P.T)
    eigvals_t = np.asarray(eigvals_t, dtype=np.complex128)
    idx = int(np.argmin(np.abs(eigvals_t - lam)))
    u = _real_vector(np.asarray(left, dtype=np.complex128)[:, idx], "Left", tol)
    uv = float(u @ v)
    if abs(uv) < tol:
        raise DegenerateMatrix(
            "Left and right eigenvectors are orthogonal; u cannot be scaled to u·v = 1"
        )
    u = u / uv
    if np.any(u < 0):
        raise DegenerateMatrix(f"Reproductive value has negative components: {u}")

    second = np.abs(eigvals[order[1]]) if len(order) > 1 else 0.0
    damping = lam / second if second > 0 else np.inf

    sorted_vals = np.array(eigvals[order], dtype=np.complex128)
    sorted_vals.setflags(write=False)

    return EigenResult(
        lambda_=lam,
        stable_distribution=readonly(v),
        reproductive_value=readonly(u),
        eigenvalues=sorted_vals,
        damping_ratio=float(damping),
    )


def dominant_eigenvalue(P, backend: Union[str, EigenBackend, None] = None) -> float:
    """Shortcut for analyze_eigen(P).lambda_."""
    return analyze_eigen(P, backend=backend).lambda_


# ═══════════════════════════════════════════════════════════════════════
# GENERATION-BASED SUMMARIES
# ═══════════════════════════════════════════════════════════════════════

def net_reproductive_rate(P) -> float:
    """Expected lifetime female offspring per newborn, R₀.

    R₀ is the spectral radius of F (I - T)⁻¹, where T holds the survival and
    growth entries and F the fertility entry. Returns inf when individuals
    never leave the survival loop (spectral radius of T ≥ 1).
    """
    T, F = split_matrix(check_structure(P))
    # T is lower triangular, so its eigenvalues are its diagonal
    if np.max(np.diag(T)) >= 1.0:
        return float('inf')
    fundamental = np.linalg.inv(np.eye(T.shape[0]) - T)
    return float(np.max(np.abs(np.linalg.eigvals(F @ fundamental))))


def generation_time(P, eigen: Optional[EigenResult] = None) -> float:
    """Generation time ln R₀ / ln λ (nan when λ = 1 or R₀ = 0)."""
    if eigen is None:
        eigen = analyze_eigen(P)
    r0 = net_reproductive_rate(P)
    log_lam = np.log(eigen.lambda_)
    if log_lam == 0.0 or r0 == 0.0:
        return float('nan')
    return float(np.log(r0) / log_lam)
