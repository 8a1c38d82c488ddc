"""Management scenarios.

Each scenario is the base vital rates with its own overrides, and runs the
whole pipeline on its own freshly built matrix:

    VitalRates → matrix → {projection, eigen-analysis} → sensitivity/elasticity

No scenario reads or modifies another scenario's matrix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Union

import numpy as np

from stagepop.eigen import (
    EigenBackend,
    analyze_eigen,
    generation_time,
    net_reproductive_rate,
)
from stagepop.matrix import VitalRates
from stagepop.projection import project, years_to_threshold
from stagepop.sensitivity import compute_sensitivity_elasticity, rank_parameters
from stagepop.types import (
    STAGE_NAMES,
    EigenResult,
    ProjectionSeries,
    SensitivityResult,
)


BASE_SCENARIO = "base"


@dataclass(frozen=True)
class ScenarioResult:
    """Everything computed for one parameterization."""
    name: str
    description: str
    vital_rates: VitalRates
    matrix: np.ndarray
    projection: ProjectionSeries
    eigen: EigenResult
    sensitivity: SensitivityResult
    net_reproductive_rate: float
    generation_time: float
    quasi_extinction_year: int       # -1 if never below the threshold

    def summary(self) -> Dict:
        """JSON-serializable digest of the scenario."""
        return {
            'name': self.name,
            'description': self.description,
            'vital_rates': self.vital_rates.as_entries(),
            'lambda': self.eigen.lambda_,
            'damping_ratio': self.eigen.damping_ratio,
            'stable_distribution': dict(zip(
                STAGE_NAMES, self.eigen.stable_distribution.tolist())),
            'reproductive_value': dict(zip(
                STAGE_NAMES, self.eigen.reproductive_value.tolist())),
            'sensitivity': self.sensitivity.sensitivity.tolist(),
            'elasticity': self.sensitivity.elasticity.tolist(),
            'sensitivity_ranking': [n for n, _ in rank_parameters(self.sensitivity)],
            'net_reproductive_rate': _finite_or_none(self.net_reproductive_rate),
            'generation_time': _finite_or_none(self.generation_time),
            'initial_total': float(self.projection.totals[0]),
            'final_total': float(self.projection.totals[-1]),
            'quasi_extinction_year': self.quasi_extinction_year,
        }


def _finite_or_none(x: float) -> Optional[float]:
    return float(x) if np.isfinite(x) else None


def apply_overrides(base: VitalRates, overrides: Mapping[str, float]) -> VitalRates:
    """New VitalRates with named entries (S_JJ, ..., b) replaced."""
    return base.with_entries(**dict(overrides))


def run_scenario(
    name: str,
    rates: VitalRates,
    N0,
    horizon: int,
    description: str = "",
    backend: Union[str, EigenBackend, None] = None,
    quasi_extinction: float = 0.0,
) -> ScenarioResult:
    """Run the full pipeline for one set of vital rates.

    Args:
        name: Scenario identifier.
        rates: Vital rates for this scenario.
        N0: Initial abundances (juvenile, subadult, adult).
        horizon: Projection length T.
        description: Human-readable label.
        backend: Eigensolver for analyze_eigen.
        quasi_extinction: Total abundance below which the population is
            flagged as quasi-extinct.

    Returns:
        ScenarioResult.
    """
    P = rates.to_matrix()
    series = project(P, N0, horizon)
    eigen = analyze_eigen(P, backend=backend)
    sens = compute_sensitivity_elasticity(P, eigen)
    return ScenarioResult(
        name=name,
        description=description,
        vital_rates=rates,
        matrix=P,
        projection=series,
        eigen=eigen,
        sensitivity=sens,
        net_reproductive_rate=net_reproductive_rate(P),
        generation_time=generation_time(P, eigen),
        quasi_extinction_year=years_to_threshold(series, quasi_extinction),
    )


def run_scenarios(
    base: VitalRates,
    scenarios: Iterable,
    N0,
    horizon: int,
    backend: Union[str, EigenBackend, None] = None,
    quasi_extinction: float = 0.0,
    include_base: bool = True,
) -> Dict[str, ScenarioResult]:
    """Run the base case and each scenario independently.

    Args:
        base: Base vital rates.
        scenarios: Objects with ``name``, ``description`` and ``overrides``
            attributes (e.g. config.ScenarioSection).
        N0: Initial abundances shared by every scenario.
        horizon: Projection length T.

    Returns:
        Ordered dict of name → ScenarioResult, base first when included.
    """
    results: Dict[str, ScenarioResult] = {}
    if include_base:
        results[BASE_SCENARIO] = run_scenario(
            BASE_SCENARIO, base, N0, horizon,
            description="Reference parameters",
            backend=backend, quasi_extinction=quasi_extinction,
        )
    for sc in scenarios:
        if sc.name in results:
            raise ValueError(f"Duplicate scenario name '{sc.name}'")
        results[sc.name] = run_scenario(
            sc.name, apply_overrides(base, sc.overrides), N0, horizon,
            description=sc.description,
            backend=backend, quasi_extinction=quasi_extinction,
        )
    return results
