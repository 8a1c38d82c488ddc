"""Tests for stagepop.config — configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from stagepop.config import (
    InitialSection,
    ModelConfig,
    ScenarioSection,
    SweepSection,
    VitalRatesSection,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)
from stagepop.matrix import VitalRates


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_simple_override(self):
        assert deep_merge({'a': 1, 'b': 2}, {'b': 3}) == {'a': 1, 'b': 3}

    def test_nested_merge(self):
        base = {'x': {'a': 1, 'b': 2}, 'y': 10}
        result = deep_merge(base, {'x': {'b': 3, 'c': 4}})
        assert result == {'x': {'a': 1, 'b': 3, 'c': 4}, 'y': 10}

    def test_lists_replaced(self):
        base = {'initial': {'abundance': [1, 2, 3]}}
        result = deep_merge(base, {'initial': {'abundance': [4, 5, 6]}})
        assert result['initial']['abundance'] == [4, 5, 6]

    def test_override_dict_with_scalar(self):
        assert deep_merge({'a': {'nested': 1}}, {'a': 'replaced'}) == {'a': 'replaced'}

    def test_empty_override(self):
        assert deep_merge({'a': 1}, {}) == {'a': 1}


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        assert isinstance(default_config(), ModelConfig)

    def test_reference_vital_rates(self):
        config = default_config()
        assert config.vital_rates.to_vital_rates() == VitalRates()
        assert config.vital_rates.s_aa == 0.85
        assert config.vital_rates.b == 0.58125

    def test_default_sections(self):
        config = default_config()
        assert config.projection.horizon == 100
        assert config.sweep.delta == 0.01
        assert config.sweep.steps == 30
        assert config.sweep.targets == ['S_JJ', 'S_SS', 'S_AA']
        assert config.analysis.eigen_backend == 'numpy'
        assert len(config.initial.abundance) == 3

    def test_three_independent_scenarios(self):
        config = default_config()
        names = [sc.name for sc in config.scenarios]
        assert names == ['juvenile_survival', 'subadult_survival', 'adult_survival']
        assert config.scenarios[2].overrides == {'S_AA': 0.96}

    def test_scenario_lists_not_shared(self):
        a, b = ModelConfig(), ModelConfig()
        a.scenarios.append(ScenarioSection('extra'))
        assert len(b.scenarios) == 3


# ── YAML loading tests ───────────────────────────────────────────────

class TestLoadConfig:
    def _write(self, path, content):
        with open(path, 'w') as f:
            yaml.dump(content, f)
        return path

    def test_load_from_yaml(self, tmp_path):
        path = self._write(tmp_path / "test.yaml", {
            'vital_rates': {'s_aa': 0.9},
            'projection': {'horizon': 25},
        })
        config = load_config(path)
        assert config.vital_rates.s_aa == 0.9
        assert config.projection.horizon == 25
        # Unspecified fields get defaults
        assert config.vital_rates.s_jj == 0.63
        assert config.sweep.steps == 30

    def test_unknown_keys_ignored(self, tmp_path):
        path = self._write(tmp_path / "test.yaml", {
            'vital_rates': {'s_aa': 0.9, 'citation': 'Table 1'},
            'notes': 'free text',
        })
        assert load_config(path).vital_rates.s_aa == 0.9

    def test_scenarios_from_yaml(self, tmp_path):
        path = self._write(tmp_path / "test.yaml", {
            'scenarios': [
                {'name': 'headstart', 'description': 'Head-starting',
                 'overrides': {'S_JJ': 0.75}},
                {'name': 'no_overrides'},
            ],
        })
        config = load_config(path)
        assert [sc.name for sc in config.scenarios] == ['headstart', 'no_overrides']
        assert config.scenarios[0].overrides == {'S_JJ': 0.75}
        assert config.scenarios[1].overrides == {}

    def test_scenario_override_file(self, tmp_path):
        base = self._write(tmp_path / "base.yaml", {'projection': {'horizon': 100}})
        scen = self._write(tmp_path / "scen.yaml", {'projection': {'horizon': 40}})
        config = load_config(base, scenario_path=scen)
        assert config.projection.horizon == 40

    def test_sweep_overrides_applied_last(self, tmp_path):
        base = self._write(tmp_path / "base.yaml", {'sweep': {'steps': 30}})
        overrides = {'sweep': {'steps': 12}}
        config = load_config(base, sweep_overrides=overrides)
        assert config.sweep.steps == 12
        assert overrides == {'sweep': {'steps': 12}}

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_scenario_file_not_found(self, tmp_path):
        base = tmp_path / "base.yaml"
        base.write_text(yaml.dump({'projection': {'horizon': 10}}))
        with pytest.raises(FileNotFoundError, match="Scenario file not found"):
            load_config(base, scenario_path=tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path).vital_rates.s_aa == 0.85

    def test_load_real_default_yaml(self):
        """Load the actual configs/default.yaml from the project."""
        default_path = Path(__file__).parent.parent / "configs" / "default.yaml"
        if default_path.exists():
            config = load_config(default_path)
            assert config.vital_rates.to_vital_rates() == VitalRates()
            assert config.projection.horizon == 100
            assert len(config.scenarios) == 3

    def test_load_combined_protection_layer(self):
        root = Path(__file__).parent.parent / "configs"
        if (root / "scenarios" / "combined_protection.yaml").exists():
            config = load_config(root / "default.yaml",
                                 scenario_path=root / "scenarios" / "combined_protection.yaml")
            assert config.projection.horizon == 150
            assert config.scenarios[-1].name == 'combined_protection'


# ── Validation tests ──────────────────────────────────────────────────

class TestValidation:
    def test_survival_above_one(self):
        config = default_config()
        config.vital_rates.s_aa = 1.5
        with pytest.raises(ValueError, match="vital_rates"):
            validate_config(config)

    def test_negative_fertility(self):
        config = default_config()
        config.vital_rates.b = -1.0
        with pytest.raises(ValueError, match="vital_rates"):
            validate_config(config)

    def test_survival_sum_warning(self):
        config = default_config()
        config.vital_rates.s_jj = 0.95
        with pytest.warns(UserWarning, match="juvenile"):
            validate_config(config)

    def test_abundance_length(self):
        config = default_config()
        config.initial.abundance = [1.0, 2.0]
        with pytest.raises(ValueError, match="initial.abundance"):
            validate_config(config)

    def test_negative_abundance(self):
        config = default_config()
        config.initial.abundance = [1.0, -2.0, 3.0]
        with pytest.raises(ValueError, match="non-negative"):
            validate_config(config)

    def test_zero_population_warns(self):
        config = default_config()
        config.initial.abundance = [0.0, 0.0, 0.0]
        with pytest.warns(UserWarning, match="all zero"):
            validate_config(config)

    def test_horizon(self):
        config = default_config()
        config.projection.horizon = 0
        with pytest.raises(ValueError, match="projection.horizon"):
            validate_config(config)

    def test_sweep_steps(self):
        config = default_config()
        config.sweep.steps = 0
        with pytest.raises(ValueError, match="sweep.steps"):
            validate_config(config)

    def test_sweep_target(self):
        config = default_config()
        config.sweep.targets = ['S_AA', 'b']
        with pytest.raises(ValueError, match="sweep.targets"):
            validate_config(config)

    def test_backend(self):
        config = default_config()
        config.analysis.eigen_backend = 'lapack'
        with pytest.raises(ValueError, match="eigen_backend"):
            validate_config(config)

    def test_unknown_scenario_entry(self):
        config = default_config()
        config.scenarios.append(ScenarioSection('bad', overrides={'S_XX': 0.5}))
        with pytest.raises(ValueError, match="unknown entry"):
            validate_config(config)

    def test_scenario_out_of_range(self):
        config = default_config()
        config.scenarios.append(ScenarioSection('bad', overrides={'S_AA': 1.2}))
        with pytest.raises(ValueError, match="bad"):
            validate_config(config)

    def test_duplicate_scenario_names(self):
        config = default_config()
        config.scenarios.append(ScenarioSection('adult_survival'))
        with pytest.raises(ValueError, match="duplicated"):
            validate_config(config)

    def test_scenario_named_base_rejected(self):
        config = default_config()
        config.scenarios.append(ScenarioSection('base', overrides={'S_AA': 0.9}))
        with pytest.raises(ValueError, match="reserved"):
            validate_config(config)


# ── Section dataclass tests ───────────────────────────────────────────

class TestSections:
    def test_vital_rates_section_defaults(self):
        vr = VitalRatesSection()
        assert (vr.s_jj, vr.s_sj, vr.s_ss, vr.s_as, vr.s_aa, vr.b) == (
            0.63, 0.10, 0.70, 0.09, 0.85, 0.58125)

    def test_initial_section(self):
        assert InitialSection().abundance == [5000.0, 2250.0, 2600.0]

    def test_sweep_section(self):
        sw = SweepSection()
        assert sw.threshold == 1.0
