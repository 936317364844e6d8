"""
UKF-Fusion v1.0 - Filter Configuration
======================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

State vector (CTRV):
    [px, py, v, yaw, yaw_rate]   SI units, radians

Augmented state appends the longitudinal and yaw acceleration noise:
    [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .measurement import SensorType


# =============================================================================
# Dimensions
# =============================================================================

N_X = 5                    # State dimension
N_AUG = N_X + 2            # Augmented state dimension
N_SIGMA = 2 * N_AUG + 1    # Number of sigma points
LAMBDA = 3 - N_AUG         # Sigma point spreading parameter

# State indices
PX, PY, V, YAW, YAW_RATE = range(N_X)


@dataclass(frozen=True, eq=False)
class UKFConfig:
    """
    Noise model and numerical guards, fixed for the filter's lifetime.

    Args:
        std_a: Process noise std, longitudinal acceleration [m/s^2]
        std_yawdd: Process noise std, yaw acceleration [rad/s^2]
        std_laspx: Laser noise std, x position [m]
        std_laspy: Laser noise std, y position [m]
        std_radr: Radar noise std, range [m]
        std_radphi: Radar noise std, bearing [rad]
        std_radrd: Radar noise std, range rate [m/s]
        use_laser: If False, laser measurements only initialize the filter
        use_radar: If False, radar measurements only initialize the filter
        yaw_rate_threshold: Below this |yaw_rate| the CTRV model moves straight
        range_threshold: Floor for the range-rate denominator in the radar model
        max_condition_number: Innovation covariances above this are singular
        nis_history_size: NIS values kept per sensor (oldest dropped first)
        initial_covariance: 5x5 covariance on initialization (None = identity)
    """
    std_a: float = 0.5
    std_yawdd: float = 1.0
    std_laspx: float = 0.15
    std_laspy: float = 0.15
    std_radr: float = 0.3
    std_radphi: float = 0.03
    std_radrd: float = 0.3
    use_laser: bool = True
    use_radar: bool = True
    yaw_rate_threshold: float = 1e-3
    range_threshold: float = 1e-4
    max_condition_number: float = 1e12
    nis_history_size: int = 1000
    initial_covariance: Optional[np.ndarray] = None

    def __post_init__(self):
        for name in ("std_a", "std_yawdd", "std_laspx", "std_laspy",
                     "std_radr", "std_radphi", "std_radrd",
                     "yaw_rate_threshold", "range_threshold", "max_condition_number"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive and finite, got {value}")

        if int(self.nis_history_size) != self.nis_history_size or self.nis_history_size < 1:
            raise ValueError(f"nis_history_size must be a positive integer, got {self.nis_history_size}")

        if self.initial_covariance is not None:
            P0 = np.array(self.initial_covariance, dtype=np.float64)
            if P0.shape != (N_X, N_X):
                raise ValueError(f"initial_covariance must be {N_X}x{N_X}, got {P0.shape}")
            if not np.allclose(P0, P0.T):
                raise ValueError("initial_covariance must be symmetric")
            P0.setflags(write=False)
            object.__setattr__(self, "initial_covariance", P0)

    @property
    def process_noise(self) -> np.ndarray:
        """Covariance of the two augmented noise components"""
        return np.diag([self.std_a**2, self.std_yawdd**2])

    @property
    def laser_noise(self) -> np.ndarray:
        return np.diag([self.std_laspx**2, self.std_laspy**2])

    @property
    def radar_noise(self) -> np.ndarray:
        return np.diag([self.std_radr**2, self.std_radphi**2, self.std_radrd**2])

    def noise_for(self, sensor_type: SensorType) -> np.ndarray:
        """Measurement noise covariance R for a sensor"""
        if sensor_type is SensorType.RADAR:
            return self.radar_noise
        return self.laser_noise

    def sensor_enabled(self, sensor_type: SensorType) -> bool:
        if sensor_type is SensorType.RADAR:
            return self.use_radar
        return self.use_laser

    def initial_P(self) -> np.ndarray:
        if self.initial_covariance is None:
            return np.eye(N_X)
        return np.array(self.initial_covariance)
