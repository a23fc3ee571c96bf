from __future__ import annotations

import numpy as np

from tracking_od.estimation.statistics import (
    chi2_threshold,
    chi_square_test,
    correlation_matrix,
    formal_errors,
    weighted_rms,
)


def test_chi2_threshold_without_redundancy_is_infinite() -> None:
    assert chi2_threshold(0, 0.99) == float("inf")
    assert np.isclose(chi2_threshold(1, 0.95), 3.841458820694124)


def test_consistent_residuals_pass() -> None:
    residuals = np.full(200, 0.9)

    result = chi_square_test(residuals, num_parameters=6, alpha=0.01)

    assert result.dof == 194
    assert result.passed
    assert 0.01 < result.p_value <= 1.0


def test_inflated_residuals_fail() -> None:
    residuals = np.full(200, 3.0)

    result = chi_square_test(residuals, num_parameters=6)

    assert not result.passed
    assert result.statistic > result.threshold


def test_test_is_undefined_without_redundancy() -> None:
    result = chi_square_test(np.ones(3), num_parameters=3)

    assert result.dof == 0
    assert not result.passed
    assert np.isnan(result.p_value)


def test_covariance_summaries() -> None:
    covariance = np.array([[4.0, 1.0], [1.0, 9.0]])

    assert np.allclose(formal_errors(covariance), [2.0, 3.0])
    assert np.allclose(correlation_matrix(covariance), [[1.0, 1.0 / 6.0], [1.0 / 6.0, 1.0]])
    assert np.allclose(correlation_matrix(np.zeros((2, 2))), 0.0)


def test_weighted_rms() -> None:
    assert np.isclose(weighted_rms(np.array([3.0, -4.0])), np.sqrt(12.5))
    assert np.isnan(weighted_rms(np.zeros(0)))
