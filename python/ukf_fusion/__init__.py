"""
UKF-Fusion — Unscented Kalman Filter for Radar/Laser Fusion
===========================================================

CTRV state estimation from asynchronous radar (range, bearing, range rate)
and laser (x, y) measurements.

Modules:
    ukf: UnscentedKalmanFilter controller, prediction and update
    sigma_points: Augmented sigma point generation and weights
    models: CTRV process model, radar/laser measurement models
    evaluation: NIS consistency and RMSE
    simulation: Synthetic CTRV scenarios

Example:
    >>> from ukf_fusion import UnscentedKalmanFilter, MeasurementPackage
    >>> ukf = UnscentedKalmanFilter()
    >>> ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
    >>> result = ukf.process_measurement(MeasurementPackage.radar(1.5, 0.8, 0.2, 50000))
    >>> ukf.x, ukf.P, result.nis

Author: Dr. Mladen Mešter / Nexellum d.o.o.
License: AGPL-3.0
Version: 1.0.0
"""

import logging

__version__ = "1.0.0"
__author__ = "Dr. Mladen Mešter"
__email__ = "mladen@nexellum.com"

from .angles import normalize_angle, normalize_angles
from .config import N_AUG, N_SIGMA, N_X, LAMBDA, UKFConfig
from .evaluation import calculate_rmse, compute_nis, nis_consistency, nis_threshold
from .exceptions import (
    DegenerateCovarianceError,
    MeasurementError,
    NonFiniteAngleError,
    NumericalInstabilityError,
    OutOfOrderMeasurementError,
    SingularInnovationError,
    StalePredictionError,
    UKFError,
)
from .measurement import MeasurementPackage, SensorType
from .models import ctrv_predict, laser_transform, radar_transform, state_to_cartesian
from .sigma_points import augmented_sigma_points, compute_weights
from .simulation import simulate_ctrv_track
from .ukf import Estimate, UnscentedKalmanFilter, UpdateResult

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Filter
    "UnscentedKalmanFilter",
    "UKFConfig",
    "Estimate",
    "UpdateResult",
    "MeasurementPackage",
    "SensorType",
    # Building blocks
    "augmented_sigma_points",
    "compute_weights",
    "ctrv_predict",
    "radar_transform",
    "laser_transform",
    "state_to_cartesian",
    "normalize_angle",
    "normalize_angles",
    # Evaluation
    "compute_nis",
    "nis_threshold",
    "nis_consistency",
    "calculate_rmse",
    "simulate_ctrv_track",
    # Errors
    "UKFError",
    "NumericalInstabilityError",
    "DegenerateCovarianceError",
    "SingularInnovationError",
    "StalePredictionError",
    "NonFiniteAngleError",
    "MeasurementError",
    "OutOfOrderMeasurementError",
    # Dimensions
    "N_X",
    "N_AUG",
    "N_SIGMA",
    "LAMBDA",
]
