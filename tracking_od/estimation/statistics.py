"""Post-fit statistics for batch least squares."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import chi2


@dataclass(frozen=True)
class ChiSquareResult:
    statistic: float
    dof: int
    threshold: float
    p_value: float
    passed: bool


def chi2_threshold(dof: int, p: float) -> float:
    """Return chi-square threshold for the given probability and dof."""

    if dof <= 0:
        return float("inf")
    return float(chi2.ppf(p, dof))


def chi_square_test(normalized_residuals: np.ndarray, num_parameters: int, alpha: float = 0.01) -> ChiSquareResult:
    """Global consistency test of sigma-normalized post-fit residuals."""

    residuals = np.asarray(normalized_residuals, dtype=float)
    statistic = float(np.sum(residuals**2)) if residuals.size else float("nan")
    dof = int(residuals.size - num_parameters)
    threshold = chi2_threshold(dof, 1.0 - alpha)
    p_value = float(chi2.sf(statistic, dof)) if dof > 0 else float("nan")
    passed = bool(dof > 0 and np.isfinite(statistic) and statistic <= threshold)
    return ChiSquareResult(statistic, dof, threshold, p_value, passed)


def formal_errors(covariance: np.ndarray) -> np.ndarray:
    return np.sqrt(np.clip(np.diag(covariance), 0.0, None))


def correlation_matrix(covariance: np.ndarray) -> np.ndarray:
    sigma = formal_errors(covariance)
    with np.errstate(divide="ignore", invalid="ignore"):
        correlations = covariance / np.outer(sigma, sigma)
    correlations[~np.isfinite(correlations)] = 0.0
    return correlations


def weighted_rms(normalized_residuals: np.ndarray) -> float:
    residuals = np.asarray(normalized_residuals, dtype=float)
    if residuals.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean(residuals**2)))
