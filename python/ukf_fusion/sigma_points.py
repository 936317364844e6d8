"""
UKF-Fusion v1.0 - Augmented Sigma Points
========================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Theory:
    The augmented state [x; nu_a; nu_yawdd] is represented by 2*n_aug + 1
    deterministic points spread along the columns of the lower Cholesky
    factor of the augmented covariance:

        X_0       = x_aug
        X_i       = x_aug + sqrt(lambda + n_aug) * L[:, i-1]
        X_{i+n}   = x_aug - sqrt(lambda + n_aug) * L[:, i-1]

    Their weighted mean and covariance reproduce the Gaussian exactly.
"""

import numpy as np
from numpy.linalg import LinAlgError
from scipy.linalg import cholesky

from .config import LAMBDA, N_AUG
from .exceptions import DegenerateCovarianceError


def compute_weights(n_aug: int = N_AUG, lam: float = LAMBDA) -> np.ndarray:
    """
    Sigma point weights (shared by mean and covariance).

    Returns:
        weights: [2*n_aug + 1] array summing to 1
    """
    weights = np.full(2 * n_aug + 1, 0.5 / (lam + n_aug))
    weights[0] = lam / (lam + n_aug)
    return weights


def augmented_sigma_points(
    x: np.ndarray,
    P: np.ndarray,
    process_noise: np.ndarray,
    lam: float = LAMBDA
) -> np.ndarray:
    """
    Generate augmented sigma points.

    Args:
        x: State mean [n_x]
        P: State covariance [n_x, n_x]
        process_noise: Noise covariance appended on the diagonal [2, 2]
        lam: Spreading parameter

    Returns:
        Xsig_aug: [n_aug, 2*n_aug + 1] sigma points as columns

    Raises:
        DegenerateCovarianceError: augmented covariance is not positive definite
    """
    n_x = len(x)
    n_noise = process_noise.shape[0]
    n_aug = n_x + n_noise

    x_aug = np.zeros(n_aug)
    x_aug[:n_x] = x

    P_aug = np.zeros((n_aug, n_aug))
    P_aug[:n_x, :n_x] = P
    P_aug[n_x:, n_x:] = process_noise

    if not np.all(np.isfinite(P_aug)):
        raise DegenerateCovarianceError("Augmented covariance has non-finite entries", P_aug)

    try:
        L = cholesky(P_aug, lower=True)
    except LinAlgError as err:
        raise DegenerateCovarianceError(
            f"Augmented covariance is not positive definite: {err}", P_aug
        ) from err

    spread = np.sqrt(lam + n_aug) * L

    Xsig_aug = np.empty((n_aug, 2 * n_aug + 1))
    Xsig_aug[:, 0] = x_aug
    Xsig_aug[:, 1:n_aug + 1] = x_aug[:, np.newaxis] + spread
    Xsig_aug[:, n_aug + 1:] = x_aug[:, np.newaxis] - spread

    return Xsig_aug
