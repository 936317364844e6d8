"""
UKF-Fusion v1.0 - Angle Normalization
=====================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Headings and bearings are compared by shortest path. Every difference of
two angles passes through normalize_angle() before it enters a covariance
or an innovation.
"""

import numpy as np

from .exceptions import NonFiniteAngleError

TWO_PI = 2.0 * np.pi


def normalize_angle(theta: float) -> float:
    """
    Wrap an angle into (-pi, pi].

    Closed form, so very large magnitudes cost the same as small ones.

    Args:
        theta: Angle [rad]

    Returns:
        Equivalent angle in (-pi, pi]

    Raises:
        NonFiniteAngleError: theta is NaN or infinite
    """
    theta = float(theta)
    if not np.isfinite(theta):
        raise NonFiniteAngleError(f"Cannot normalize non-finite angle {theta}")
    wrapped = np.pi - np.mod(np.pi - theta, TWO_PI)
    # mod() can round up to exactly 2*pi for tiny negative arguments
    if wrapped <= -np.pi:
        wrapped += TWO_PI
    return float(wrapped)


def normalize_angles(values: np.ndarray) -> np.ndarray:
    """Vectorised normalize_angle() for a row of sigma-point angles"""
    values = np.asarray(values, dtype=np.float64)
    if not np.all(np.isfinite(values)):
        raise NonFiniteAngleError("Cannot normalize non-finite angles")
    wrapped = np.pi - np.mod(np.pi - values, TWO_PI)
    return np.where(wrapped <= -np.pi, wrapped + TWO_PI, wrapped)
