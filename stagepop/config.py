"""Configuration system for stagepop.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Vital rates and initial abundances are literature constants supplied here;
the numerical core never parses files itself.

Design decisions:
  - Management scenarios are independently parameterized: each lists its own
    overrides against the base vital rates, never another scenario's matrix
  - Survival/fertility domains are enforced by the matrix builder; this module
    checks only what the builder cannot see (shapes, names, ordering)
"""

from __future__ import annotations

import copy
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from stagepop.errors import StageModelError
from stagepop.eigen import BACKENDS
from stagepop.matrix import VitalRates
from stagepop.scenarios import BASE_SCENARIO
from stagepop.types import DIAGONAL_ENTRIES, ENTRY_POSITIONS, N_STAGES


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class VitalRatesSection:
    """Annual stage-transition rates (Table 1 reference values)."""
    s_jj: float = 0.63      # Juvenile survival, remaining juvenile
    s_sj: float = 0.10      # Juvenile → subadult
    s_ss: float = 0.70      # Subadult survival, remaining subadult
    s_as: float = 0.09      # Subadult → adult
    s_aa: float = 0.85      # Adult survival
    b: float = 0.58125      # Sex-adjusted fertility (female juveniles / adult / yr)

    def to_vital_rates(self) -> VitalRates:
        return VitalRates(
            s_jj=self.s_jj, s_sj=self.s_sj, s_ss=self.s_ss,
            s_as=self.s_as, s_aa=self.s_aa, b=self.b,
        )


@dataclass
class InitialSection:
    """Initial female abundances, ordered juvenile, subadult, adult."""
    abundance: List[float] = field(
        default_factory=lambda: [5000.0, 2250.0, 2600.0]
    )


@dataclass
class ProjectionSection:
    """Projection horizon."""
    horizon: int = 100          # Series length T (years, including year 0)
    quasi_extinction: float = 100.0   # Total abundance flagged as quasi-extinct


@dataclass
class SweepSection:
    """Diagonal survival sweeps."""
    delta: float = 0.01
    steps: int = 30
    targets: List[str] = field(default_factory=lambda: list(DIAGONAL_ENTRIES))
    threshold: float = 1.0      # λ level whose crossing is reported


@dataclass
class ScenarioSection:
    """One management scenario: base vital rates plus its own overrides.

    overrides maps matrix entry names (S_JJ, S_SJ, S_SS, S_AS, S_AA, b) to
    absolute values.
    """
    name: str
    description: str = ""
    overrides: Dict[str, float] = field(default_factory=dict)


def _default_scenarios() -> List[ScenarioSection]:
    return [
        ScenarioSection(
            name="juvenile_survival",
            description="Juvenile survival increased",
            overrides={'S_JJ': 0.89},
        ),
        ScenarioSection(
            name="subadult_survival",
            description="Subadult survival increased",
            overrides={'S_SS': 0.91},
        ),
        ScenarioSection(
            name="adult_survival",
            description="Adult survival increased",
            overrides={'S_AA': 0.96},
        ),
    ]


@dataclass
class AnalysisSection:
    """Numerical options."""
    eigen_backend: str = "numpy"    # 'numpy' or 'scipy'


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    figures: bool = True
    dpi: int = 150


@dataclass
class ModelConfig:
    """Complete model configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    vital_rates: VitalRatesSection = field(default_factory=VitalRatesSection)
    initial: InitialSection = field(default_factory=InitialSection)
    projection: ProjectionSection = field(default_factory=ProjectionSection)
    sweep: SweepSection = field(default_factory=SweepSection)
    analysis: AnalysisSection = field(default_factory=AnalysisSection)
    output: OutputSection = field(default_factory=OutputSection)
    scenarios: List[ScenarioSection] = field(default_factory=_default_scenarios)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values (including lists) are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    import dataclasses
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> ModelConfig:
    """Convert a merged YAML dict to a ModelConfig."""
    sections = {}
    section_map = {
        'vital_rates': VitalRatesSection,
        'initial': InitialSection,
        'projection': ProjectionSection,
        'sweep': SweepSection,
        'analysis': AnalysisSection,
        'output': OutputSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()

    # Scenarios are a top-level list, not a section
    if 'scenarios' in data and isinstance(data['scenarios'], list):
        scenarios = []
        for sc in data['scenarios']:
            if isinstance(sc, dict):
                sc = dict(sc)  # don't mutate original
                sc['overrides'] = dict(sc.get('overrides') or {})
                scenarios.append(_dict_to_section(ScenarioSection, sc))
        sections['scenarios'] = scenarios

    return ModelConfig(**sections)


def validate_config(config: ModelConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Vital rates lie in their domains (delegated to the matrix builder)
      - Initial abundance vector has one finite, non-negative value per stage
      - Horizon and sweep step count are positive
      - Sweep targets and scenario overrides name real matrix entries
      - Scenario names are unique and do not reuse the base case's name
    """
    vr = config.vital_rates
    try:
        rates = vr.to_vital_rates()
        rates.to_matrix()
    except StageModelError as exc:
        raise ValueError(f"vital_rates: {exc}") from exc

    # An individual cannot both stay and advance with total probability > 1
    for stay, advance, stage in ((vr.s_jj, vr.s_sj, "juvenile"),
                                 (vr.s_ss, vr.s_as, "subadult")):
        if stay + advance > 1.0:
            warnings.warn(
                f"vital_rates: {stage} survival terms sum to {stay + advance:.3f} > 1",
                UserWarning,
                stacklevel=2,
            )

    abundance = config.initial.abundance
    if len(abundance) != N_STAGES:
        raise ValueError(
            f"initial.abundance must have {N_STAGES} elements (one per stage), "
            f"got {len(abundance)}"
        )
    if any(a < 0 for a in abundance):
        raise ValueError(f"initial.abundance must be non-negative, got {abundance}")
    if sum(abundance) == 0:
        warnings.warn(
            "initial.abundance is all zero; projections will stay at zero",
            UserWarning,
            stacklevel=2,
        )

    if config.projection.horizon < 1:
        raise ValueError(
            f"projection.horizon must be >= 1, got {config.projection.horizon}"
        )
    if config.projection.quasi_extinction < 0:
        raise ValueError("projection.quasi_extinction must be non-negative")

    sw = config.sweep
    if sw.steps < 1:
        raise ValueError(f"sweep.steps must be >= 1, got {sw.steps}")
    for target in sw.targets:
        if target not in DIAGONAL_ENTRIES:
            raise ValueError(
                f"sweep.targets must be drawn from {DIAGONAL_ENTRIES}, got '{target}'"
            )
    if sw.threshold <= 0:
        raise ValueError(f"sweep.threshold must be positive, got {sw.threshold}")

    if config.analysis.eigen_backend not in BACKENDS:
        raise ValueError(
            f"analysis.eigen_backend must be one of {set(BACKENDS)}, "
            f"got '{config.analysis.eigen_backend}'"
        )

    if config.output.dpi <= 0:
        raise ValueError("output.dpi must be positive")

    seen = set()
    for i, sc in enumerate(config.scenarios):
        if sc.name == BASE_SCENARIO:
            raise ValueError(
                f"scenarios[{i}].name '{BASE_SCENARIO}' is reserved for the "
                f"unmodified vital rates"
            )
        if sc.name in seen:
            raise ValueError(f"scenarios[{i}].name '{sc.name}' is duplicated")
        seen.add(sc.name)
        for entry in sc.overrides:
            if entry not in ENTRY_POSITIONS:
                raise ValueError(
                    f"scenarios[{i}] ('{sc.name}') overrides unknown entry "
                    f"'{entry}'. Valid: {list(ENTRY_POSITIONS)}"
                )
        try:
            rates.with_entries(**sc.overrides).to_matrix()
        except StageModelError as exc:
            raise ValueError(f"scenarios[{i}] ('{sc.name}'): {exc}") from exc


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> ModelConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional override YAML.
        sweep_overrides: Optional dict of parameter overrides.

    Returns:
        Validated ModelConfig.

    Raises:
        FileNotFoundError: If base_path, or a given scenario_path, doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        with open(scenario_path) as f:
            scenario = yaml.safe_load(f) or {}
        deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, copy.deepcopy(sweep_overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> ModelConfig:
    """Return a ModelConfig with all default values."""
    config = ModelConfig()
    validate_config(config)
    return config
