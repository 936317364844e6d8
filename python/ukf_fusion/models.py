"""
UKF-Fusion v1.0 - Motion and Measurement Models
===============================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

CTRV (Constant Turn Rate and Velocity) process model and the radar/laser
observation functions. All functions operate on a whole sigma point matrix
at once (points are columns).
"""

import numpy as np

from .config import PX, PY, V, YAW, YAW_RATE, N_X, UKFConfig
from .measurement import SensorType


def ctrv_predict(
    Xsig_aug: np.ndarray,
    delta_t: float,
    yaw_rate_threshold: float = 1e-3
) -> np.ndarray:
    """
    Propagate augmented sigma points through the CTRV model.

    Turning points (|yaw_rate| > threshold) follow the closed-form arc:
        px' = px + v/yawd * (sin(yaw + yawd*dt) - sin(yaw))
        py' = py + v/yawd * (cos(yaw) - cos(yaw + yawd*dt))
    the rest move in a straight line. Speed and yaw rate are random walks
    driven by nu_a and nu_yawdd. Output yaw is not wrapped.

    Args:
        Xsig_aug: [7, n_sigma] augmented sigma points
        delta_t: Elapsed time [s]
        yaw_rate_threshold: Straight-line cutoff [rad/s]

    Returns:
        Xsig_pred: [5, n_sigma] predicted sigma points
    """
    p_x = Xsig_aug[PX]
    p_y = Xsig_aug[PY]
    v = Xsig_aug[V]
    yaw = Xsig_aug[YAW]
    yawd = Xsig_aug[YAW_RATE]
    nu_a = Xsig_aug[N_X]
    nu_yawdd = Xsig_aug[N_X + 1]

    dt = delta_t
    turning = np.abs(yawd) > yaw_rate_threshold
    # Non-turning entries never reach the division
    safe_yawd = np.where(turning, yawd, 1.0)

    yaw_end = yaw + yawd * dt
    px_p = np.where(
        turning,
        p_x + v / safe_yawd * (np.sin(yaw_end) - np.sin(yaw)),
        p_x + v * dt * np.cos(yaw)
    )
    py_p = np.where(
        turning,
        p_y + v / safe_yawd * (np.cos(yaw) - np.cos(yaw_end)),
        p_y + v * dt * np.sin(yaw)
    )

    Xsig_pred = np.empty((N_X, Xsig_aug.shape[1]))
    Xsig_pred[PX] = px_p + 0.5 * nu_a * dt**2 * np.cos(yaw)
    Xsig_pred[PY] = py_p + 0.5 * nu_a * dt**2 * np.sin(yaw)
    Xsig_pred[V] = v + nu_a * dt
    Xsig_pred[YAW] = yaw_end + 0.5 * nu_yawdd * dt**2
    Xsig_pred[YAW_RATE] = yawd + nu_yawdd * dt

    return Xsig_pred


def radar_transform(Xsig_pred: np.ndarray, range_threshold: float = 1e-4) -> np.ndarray:
    """
    Map state sigma points to radar space [rho, phi, rho_dot].

    The range-rate denominator is floored at range_threshold so a target at
    the sensor origin yields rho_dot ~ 0 instead of NaN.
    """
    p_x = Xsig_pred[PX]
    p_y = Xsig_pred[PY]
    v = Xsig_pred[V]
    yaw = Xsig_pred[YAW]

    v1 = np.cos(yaw) * v
    v2 = np.sin(yaw) * v

    rho = np.sqrt(p_x**2 + p_y**2)
    phi = np.arctan2(p_y, p_x)
    rho_dot = (p_x * v1 + p_y * v2) / np.maximum(rho, range_threshold)

    return np.vstack([rho, phi, rho_dot])


def laser_transform(Xsig_pred: np.ndarray) -> np.ndarray:
    """Map state sigma points to laser space [px, py]"""
    return Xsig_pred[[PX, PY]].copy()


def measurement_transform(
    sensor_type: SensorType,
    Xsig_pred: np.ndarray,
    config: UKFConfig
) -> np.ndarray:
    """Observation-space sigma points for the given sensor"""
    if sensor_type is SensorType.RADAR:
        return radar_transform(Xsig_pred, config.range_threshold)
    return laser_transform(Xsig_pred)


def state_to_cartesian(x: np.ndarray) -> np.ndarray:
    """Convert a CTRV state to [px, py, vx, vy]"""
    return np.array([
        x[PX],
        x[PY],
        x[V] * np.cos(x[YAW]),
        x[V] * np.sin(x[YAW]),
    ])
