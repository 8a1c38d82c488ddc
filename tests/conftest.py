"""Shared fixtures: the reference parameter set and its matrix."""

import pytest

from stagepop.matrix import VitalRates, build_matrix


REFERENCE_RATES = dict(s_jj=0.63, s_sj=0.10, s_ss=0.70, s_as=0.09, s_aa=0.85, b=0.58125)


@pytest.fixture
def reference_rates():
    return VitalRates(**REFERENCE_RATES)


@pytest.fixture
def reference_matrix():
    return build_matrix(**REFERENCE_RATES)


@pytest.fixture
def reference_population():
    return [5000.0, 2250.0, 2600.0]
