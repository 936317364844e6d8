"""
UKF-Fusion v1.0 - Measurement Records
=====================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Observation dimension is carried by the sensor tag:
    LASER: [px, py]                   (2)
    RADAR: [rho, phi, rho_dot]        (3)
"""

from dataclasses import dataclass
from enum import Enum
import numbers
from typing import Optional

import numpy as np

from .exceptions import MeasurementError


def _as_timestamp(value) -> int:
    """Whole microseconds; fractional, non-finite and non-numeric values are rejected"""
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise MeasurementError(f"Timestamp must be an integer number of microseconds, got {value!r}")
    if isinstance(value, numbers.Integral):
        return int(value)
    if not np.isfinite(value) or not float(value).is_integer():
        raise MeasurementError(f"Timestamp must be an integer number of microseconds, got {value!r}")
    return int(value)


class SensorType(Enum):
    """Sensor tag with its observation layout"""
    LASER = "laser"
    RADAR = "radar"

    @property
    def dim(self) -> int:
        """Observation dimension"""
        return 3 if self is SensorType.RADAR else 2

    @property
    def angle_index(self) -> Optional[int]:
        """Index of the observation component that is an angle, if any"""
        return 1 if self is SensorType.RADAR else None


@dataclass(frozen=True, eq=False)
class MeasurementPackage:
    """
    Single sensor observation.

    Attributes:
        sensor_type: LASER or RADAR
        raw_measurements: Observation vector, length sensor_type.dim
        timestamp: Acquisition time [us]
    """
    sensor_type: SensorType
    raw_measurements: np.ndarray
    timestamp: int

    def __post_init__(self):
        if not isinstance(self.sensor_type, SensorType):
            raise MeasurementError(f"Unknown sensor type {self.sensor_type!r}")

        z = np.array(self.raw_measurements, dtype=np.float64).reshape(-1)
        if z.shape != (self.sensor_type.dim,):
            raise MeasurementError(
                f"{self.sensor_type.name} measurement needs {self.sensor_type.dim} "
                f"values, got {z.size}"
            )
        if not np.all(np.isfinite(z)):
            raise MeasurementError(f"Non-finite {self.sensor_type.name} measurement: {z}")
        z.setflags(write=False)

        # frozen dataclass: bypass __setattr__ for the normalized fields
        object.__setattr__(self, "raw_measurements", z)
        object.__setattr__(self, "timestamp", _as_timestamp(self.timestamp))

    @classmethod
    def laser(cls, px: float, py: float, timestamp: int) -> "MeasurementPackage":
        return cls(SensorType.LASER, np.array([px, py]), timestamp)

    @classmethod
    def radar(cls, rho: float, phi: float, rho_dot: float, timestamp: int) -> "MeasurementPackage":
        return cls(SensorType.RADAR, np.array([rho, phi, rho_dot]), timestamp)
