"""
UKF-Fusion v1.0 - Synthetic CTRV Scenarios
==========================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Generates a noiseless CTRV ground-truth trajectory and interleaved
laser/radar observations of it. Used by the test suite and run_demo.py.
"""

from typing import List, Optional, Tuple

import numpy as np

from .config import UKFConfig
from .measurement import MeasurementPackage, SensorType
from .models import state_to_cartesian


def simulate_ctrv_track(
    n_steps: int = 200,
    period_us: int = 50000,
    x0: Optional[np.ndarray] = None,
    yaw_rate: float = 0.2,
    config: Optional[UKFConfig] = None,
    seed: int = 42,
    noise: bool = True
) -> Tuple[List[MeasurementPackage], np.ndarray]:
    """
    Simulate a target turning at constant rate and speed.

    Measurements alternate LASER, RADAR, LASER, ... one per period.

    Args:
        n_steps: Number of measurements
        period_us: Sampling period [us]
        x0: Initial CTRV state (default [5, 1, 3, 0.5, yaw_rate])
        yaw_rate: Turn rate used when x0 is not given [rad/s]
        config: Source of the measurement noise std-devs
        seed: RNG seed
        noise: If False, measurements are exact

    Returns:
        measurements: List of MeasurementPackage
        ground_truth: [n_steps, 4] rows of [px, py, vx, vy]
    """
    cfg = config or UKFConfig()
    rng = np.random.default_rng(seed)
    dt = period_us / 1e6

    x = np.array([5.0, 1.0, 3.0, 0.5, yaw_rate]) if x0 is None else np.array(x0, dtype=np.float64)

    measurements = []
    ground_truth = np.zeros((n_steps, 4))

    for k in range(n_steps):
        timestamp = k * period_us
        ground_truth[k] = state_to_cartesian(x)
        px, py, v, yaw, yawd = x

        if k % 2 == 0:
            z = np.array([px, py])
            if noise:
                z += rng.normal(0.0, [cfg.std_laspx, cfg.std_laspy])
            measurements.append(MeasurementPackage(SensorType.LASER, z, timestamp))
        else:
            rho = np.hypot(px, py)
            phi = np.arctan2(py, px)
            rho_dot = (px * v * np.cos(yaw) + py * v * np.sin(yaw)) / max(rho, 1e-6)
            z = np.array([rho, phi, rho_dot])
            if noise:
                z += rng.normal(0.0, [cfg.std_radr, cfg.std_radphi, cfg.std_radrd])
            measurements.append(MeasurementPackage(SensorType.RADAR, z, timestamp))

        # Exact CTRV step
        if abs(yawd) > 1e-9:
            x[0] += v / yawd * (np.sin(yaw + yawd * dt) - np.sin(yaw))
            x[1] += v / yawd * (np.cos(yaw) - np.cos(yaw + yawd * dt))
        else:
            x[0] += v * dt * np.cos(yaw)
            x[1] += v * dt * np.sin(yaw)
        x[3] = yaw + yawd * dt

    return measurements, ground_truth
