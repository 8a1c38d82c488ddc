"""Tests for stagepop.sweep — diagonal survival sweeps and λ = 1 crossings."""

import numpy as np
import pytest

from stagepop.eigen import analyze_eigen
from stagepop.errors import (
    BoundViolation,
    DegenerateMatrix,
    InvalidHorizon,
    InvalidParameter,
)
from stagepop.matrix import build_matrix, with_entry
from stagepop.sweep import (
    critical_value,
    find_crossing,
    perturb,
    sweep,
    sweep_diagonals,
)


# ── Basic sweep behaviour ─────────────────────────────────────────────

class TestSweep:
    def test_step_values(self, reference_matrix):
        res = sweep(reference_matrix, 'S_JJ', 0.01, 5)
        np.testing.assert_allclose(res.values, [0.64, 0.65, 0.66, 0.67, 0.68])
        np.testing.assert_array_equal(res.steps, [1, 2, 3, 4, 5])
        assert res.n_steps == 5
        assert not res.truncated
        assert res.stop_value is None

    def test_lambdas_by_direct_eigen_analysis(self, reference_matrix):
        res = sweep(reference_matrix, 'S_SS', 0.02, 4)
        for value, lam in zip(res.values, res.lambdas):
            derived = with_entry(reference_matrix, 'S_SS', value)
            assert lam == pytest.approx(analyze_eigen(derived).lambda_, rel=1e-14)

    def test_base_recorded(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.01, 3)
        assert res.base_value == 0.85
        assert res.base_lambda == pytest.approx(analyze_eigen(reference_matrix).lambda_)

    def test_lambda_increases_with_survival(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.01, 10)
        assert res.lambdas[0] > res.base_lambda
        assert np.all(np.diff(res.lambdas) > 0)

    def test_negative_delta_sweeps_down(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', -0.05, 5)
        np.testing.assert_allclose(res.values, [0.80, 0.75, 0.70, 0.65, 0.60])
        assert np.all(np.diff(res.lambdas) < 0)

    def test_base_matrix_untouched(self, reference_matrix):
        before = np.array(reference_matrix)
        sweep(reference_matrix, 'S_AA', 0.01, 30)
        np.testing.assert_array_equal(reference_matrix, before)

    def test_deterministic(self, reference_matrix):
        a = sweep(reference_matrix, 'S_SS', 0.01, 30)
        b = sweep(reference_matrix, 'S_SS', 0.01, 30)
        np.testing.assert_array_equal(a.lambdas, b.lambdas)


# ── Truncation at [0, 1] ──────────────────────────────────────────────

class TestTruncation:
    def test_adult_sweep_truncates_at_one(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.01, 30)
        assert res.truncated
        assert res.n_steps == 15
        assert res.requested_steps == 30
        assert res.values[-1] == pytest.approx(1.0)
        assert res.values[-1] <= 1.0
        assert res.stop_value == pytest.approx(1.01)

    def test_downward_sweep_truncates_at_zero(self, reference_matrix):
        res = sweep(reference_matrix, 'S_JJ', -0.1, 10)
        assert res.truncated
        assert res.n_steps == 6
        assert res.values[-1] == pytest.approx(0.03)

    def test_no_clamping(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.04, 10)
        assert res.truncated
        np.testing.assert_allclose(res.values, [0.89, 0.93, 0.97])

    def test_first_step_out_of_bounds(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.5, 3)
        assert res.truncated
        assert res.n_steps == 0
        assert res.lambdas.shape == (0,)

    def test_subadult_and_juvenile_not_truncated(self, reference_matrix):
        for target in ('S_JJ', 'S_SS'):
            res = sweep(reference_matrix, target, 0.01, 30)
            assert not res.truncated
            assert res.n_steps == 30


class TestPerturb:
    def test_raises_bound_violation(self, reference_matrix):
        with pytest.raises(BoundViolation) as excinfo:
            perturb(reference_matrix, 'S_AA', 1.2, step=7)
        assert excinfo.value.name == 'S_AA'
        assert excinfo.value.step == 7
        assert excinfo.value.value == 1.2

    def test_rounding_noise_absorbed(self, reference_matrix):
        P = perturb(reference_matrix, 'S_AA', 1.0 + 1e-15)
        assert P[2, 2] == 1.0


# ── Input validation ──────────────────────────────────────────────────

class TestSweepValidation:
    def test_off_diagonal_target_rejected(self, reference_matrix):
        with pytest.raises(InvalidParameter, match="Sweep target"):
            sweep(reference_matrix, 'S_SJ', 0.01, 5)

    def test_fertility_target_rejected(self, reference_matrix):
        with pytest.raises(InvalidParameter):
            sweep(reference_matrix, 'b', 0.01, 5)

    def test_zero_steps_rejected(self, reference_matrix):
        with pytest.raises(InvalidHorizon, match="steps"):
            sweep(reference_matrix, 'S_AA', 0.01, 0)

    def test_non_finite_delta(self, reference_matrix):
        with pytest.raises(InvalidParameter, match="delta"):
            sweep(reference_matrix, 'S_AA', float('inf'), 5)

    def test_defective_step_raises(self):
        """Without reproduction, S_JJ reaching S_SS repeats an eigenvalue."""
        P = build_matrix(0.63, 0.10, 0.70, 0.09, 0.85, 0.0)
        sweep(P, 'S_JJ', 0.01, 5)
        with pytest.raises(DegenerateMatrix, match="not diagonalizable"):
            sweep(P, 'S_JJ', 0.01, 30)


# ── λ = 1 crossings ───────────────────────────────────────────────────

class TestCrossings:
    def test_adult_crosses_by_step_eleven(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.01, 30)
        crossing = find_crossing(res, 1.0)
        assert crossing is not None
        assert crossing.step <= 11
        assert res.lambdas[crossing.step - 1] >= 1.0
        assert res.lambdas[crossing.step - 2] < 1.0

    def test_adult_crosses_first(self, reference_matrix):
        sweeps = sweep_diagonals(reference_matrix, 0.01, 30)
        steps = {t: find_crossing(r, 1.0).step for t, r in sweeps.items()}
        assert steps['S_AA'] < steps['S_SS']
        assert steps['S_AA'] < steps['S_JJ']

    def test_interpolated_value_brackets(self, reference_matrix):
        res = sweep(reference_matrix, 'S_SS', 0.01, 30)
        crossing = find_crossing(res, 1.0)
        assert crossing.value - 0.01 <= crossing.interpolated <= crossing.value

    def test_no_crossing(self, reference_matrix):
        res = sweep(reference_matrix, 'S_JJ', 0.01, 5)
        assert find_crossing(res, 1.0) is None

    def test_downward_crossing(self, reference_rates):
        P = reference_rates.with_entries(S_AA=0.97).to_matrix()
        res = sweep(P, 'S_AA', -0.01, 10)
        crossing = find_crossing(res, 1.0)
        assert crossing is not None
        assert res.lambdas[crossing.step - 1] <= 1.0


class TestCriticalValue:
    @pytest.mark.parametrize("target,expected", [
        ('S_AA', 1 - 0.00523125 / (0.37 * 0.30)),
        ('S_SS', 1 - 0.00523125 / (0.37 * 0.15)),
        ('S_JJ', 1 - 0.00523125 / (0.30 * 0.15)),
    ])
    def test_reference_roots(self, reference_matrix, target, expected):
        """At λ = 1 the characteristic equation gives (1-s_jj)(1-s_ss)(1-s_aa) = b·s_sj·s_as."""
        assert critical_value(reference_matrix, target) == pytest.approx(expected, abs=1e-8)

    def test_lambda_is_one_at_root(self, reference_matrix):
        x = critical_value(reference_matrix, 'S_AA')
        lam = analyze_eigen(with_entry(reference_matrix, 'S_AA', x)).lambda_
        assert lam == pytest.approx(1.0, abs=1e-9)

    def test_consistent_with_stepped_crossing(self, reference_matrix):
        res = sweep(reference_matrix, 'S_AA', 0.01, 30)
        crossing = find_crossing(res, 1.0)
        exact = critical_value(reference_matrix, 'S_AA')
        assert crossing.value - 0.01 < exact <= crossing.value
        assert crossing.interpolated == pytest.approx(exact, abs=1e-3)

    def test_unreachable_threshold(self, reference_matrix):
        assert critical_value(reference_matrix, 'S_JJ', threshold=5.0) is None


class TestSweepDiagonals:
    def test_all_targets_independent(self, reference_matrix):
        sweeps = sweep_diagonals(reference_matrix, 0.01, 10)
        assert list(sweeps) == ['S_JJ', 'S_SS', 'S_AA']
        for target, res in sweeps.items():
            assert res.target == target
            assert res.base_lambda == sweeps['S_JJ'].base_lambda
