"""End-to-end analysis driven by a ModelConfig.

run_model() executes, in order:
  1. Base case and every management scenario (scenarios.run_scenarios)
  2. Independent sweeps of each configured diagonal survival entry
  3. λ-threshold crossing per sweep, both the stepped estimate and the exact
     root from critical_value()

Each step builds its own matrices from the configured vital rates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from stagepop.config import ModelConfig
from stagepop.scenarios import BASE_SCENARIO, ScenarioResult, run_scenarios
from stagepop.sweep import Crossing, critical_value, find_crossing, sweep_diagonals
from stagepop.types import SweepResult


@dataclass
class ModelResult:
    """Outputs of a full run."""
    config: ModelConfig
    scenarios: Dict[str, ScenarioResult]
    sweeps: Dict[str, SweepResult] = field(default_factory=dict)
    crossings: Dict[str, Optional[Crossing]] = field(default_factory=dict)
    critical_values: Dict[str, Optional[float]] = field(default_factory=dict)

    @property
    def base(self) -> ScenarioResult:
        return self.scenarios[BASE_SCENARIO]

    def summary(self) -> Dict:
        """JSON-serializable digest of the run."""
        sweeps = {}
        for target, res in self.sweeps.items():
            crossing = self.crossings.get(target)
            sweeps[target] = {
                'delta': res.delta,
                'requested_steps': res.requested_steps,
                'completed_steps': res.n_steps,
                'truncated': res.truncated,
                'base_value': res.base_value,
                'values': res.values.tolist(),
                'lambdas': res.lambdas.tolist(),
                'crossing_step': crossing.step if crossing else None,
                'crossing_value': crossing.interpolated if crossing else None,
                'critical_value': self.critical_values.get(target),
            }
        return {
            'scenarios': {name: r.summary() for name, r in self.scenarios.items()},
            'sweeps': sweeps,
            'threshold': self.config.sweep.threshold,
        }


def run_model(config: ModelConfig) -> ModelResult:
    """Run base case, management scenarios and survival sweeps."""
    rates = config.vital_rates.to_vital_rates()
    backend = config.analysis.eigen_backend

    scenarios = run_scenarios(
        rates,
        config.scenarios,
        config.initial.abundance,
        config.projection.horizon,
        backend=backend,
        quasi_extinction=config.projection.quasi_extinction,
    )

    base_matrix = scenarios[BASE_SCENARIO].matrix
    sw = config.sweep
    sweeps = sweep_diagonals(base_matrix, sw.delta, sw.steps,
                             targets=sw.targets, backend=backend)
    crossings = {t: find_crossing(r, sw.threshold) for t, r in sweeps.items()}
    critical = {
        t: critical_value(base_matrix, t, sw.threshold, backend=backend)
        for t in sweeps
    }

    return ModelResult(
        config=config,
        scenarios=scenarios,
        sweeps=sweeps,
        crossings=crossings,
        critical_values=critical,
    )
