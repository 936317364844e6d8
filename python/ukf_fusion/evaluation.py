"""
UKF-Fusion v1.0 - Consistency and Accuracy Metrics
==================================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

NIS (Normalized Innovation Squared) is chi-squared distributed with dim_z
degrees of freedom when the noise parameters are well tuned. These helpers
are for offline tuning; the filter never branches on them.
"""

from typing import Sequence

import numpy as np
from scipy import linalg
from scipy.stats import chi2


def compute_nis(innovation: np.ndarray, S: np.ndarray) -> float:
    """
    Compute Normalized Innovation Squared y' S^-1 y.

    Args:
        innovation: Innovation vector
        S: Innovation covariance

    Returns:
        NIS value
    """
    innovation = np.asarray(innovation, dtype=np.float64)
    return float(innovation @ linalg.solve(S, innovation))


def nis_threshold(dof: int, confidence: float = 0.95) -> float:
    """
    Chi-squared bound for NIS.

    dof=2 (laser) -> 5.991, dof=3 (radar) -> 7.815 at 95%.
    """
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    return float(chi2.ppf(confidence, dof))


def nis_consistency(values: Sequence[float], dof: int, confidence: float = 0.95) -> float:
    """
    Fraction of NIS values above the chi-squared bound.

    A consistent filter exceeds the 95% bound about 5% of the time; much
    more means the noise is underestimated, much less overestimated.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise ValueError("No NIS values to evaluate")
    return float(np.mean(values > nis_threshold(dof, confidence)))


def calculate_rmse(estimations: Sequence[np.ndarray], ground_truth: Sequence[np.ndarray]) -> np.ndarray:
    """
    Per-component root mean squared error.

    Args:
        estimations: N rows of [px, py, vx, vy]
        ground_truth: N rows of [px, py, vx, vy]

    Returns:
        rmse: [4] array
    """
    est = np.asarray(estimations, dtype=np.float64)
    gt = np.asarray(ground_truth, dtype=np.float64)

    if est.size == 0:
        raise ValueError("Estimation list is empty")
    if est.shape != gt.shape:
        raise ValueError(f"Estimations {est.shape} and ground truth {gt.shape} differ in shape")

    return np.sqrt(np.mean((est - gt)**2, axis=0))
