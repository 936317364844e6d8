"""
UKF-Fusion v1.0 - Exceptions
============================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Numerical faults abort the current filter cycle and are surfaced to the
caller. Range and yaw-rate singularities are handled locally by threshold
branches and never raise.
"""

from typing import Optional

import numpy as np


class UKFError(Exception):
    """Base class for all filter errors"""


class NumericalInstabilityError(UKFError, ArithmeticError):
    """A matrix operation required by the filter is undefined"""


class DegenerateCovarianceError(NumericalInstabilityError):
    """Augmented covariance is not positive definite (Cholesky failed)"""

    def __init__(self, message: str, covariance: Optional[np.ndarray] = None):
        super().__init__(message)
        self.covariance = covariance


class SingularInnovationError(NumericalInstabilityError):
    """Innovation covariance S cannot be inverted"""

    def __init__(
        self,
        message: str,
        S: Optional[np.ndarray] = None,
        sensor_type=None
    ):
        super().__init__(message)
        self.S = S
        self.sensor_type = sensor_type


class NonFiniteAngleError(UKFError, ValueError):
    """Angle wrapping was asked to normalize NaN or inf"""


class MeasurementError(UKFError, ValueError):
    """Malformed measurement record"""


class OutOfOrderMeasurementError(MeasurementError):
    """Measurement timestamp precedes the last processed one"""

    def __init__(self, timestamp: int, previous_timestamp: int):
        super().__init__(
            f"Measurement at t={timestamp}us arrived after t={previous_timestamp}us"
        )
        self.timestamp = timestamp
        self.previous_timestamp = previous_timestamp


class StalePredictionError(UKFError, RuntimeError):
    """Measurement update requested without a fresh predict()"""
