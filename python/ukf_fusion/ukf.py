"""
UKF-Fusion v1.0 - Unscented Kalman Filter (CTRV, radar + laser)
===============================================================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Theory:
    Each measurement cycle runs

        augmented sigma points -> CTRV propagation -> predicted mean/cov
        -> measurement transform -> cross-correlation -> Kalman update

    The predicted sigma points are kept between predict() and update()
    so the measurement update reuses the same sample set that produced
    the prior.

    State: [px, py, v, yaw, yaw_rate]
    Radar: [rho, phi, rho_dot]
    Laser: [px, py]
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple

import numpy as np
from numpy.linalg import LinAlgError
from scipy import linalg

from .angles import normalize_angle, normalize_angles
from .config import LAMBDA, N_AUG, N_SIGMA, N_X, PX, PY, V, YAW, UKFConfig
from .exceptions import (
    MeasurementError,
    NumericalInstabilityError,
    OutOfOrderMeasurementError,
    SingularInnovationError,
    StalePredictionError,
)
from .evaluation import compute_nis
from .measurement import MeasurementPackage, SensorType
from .models import ctrv_predict, measurement_transform
from .sigma_points import augmented_sigma_points, compute_weights

logger = logging.getLogger(__name__)

US_PER_S = 1e6


@dataclass
class Estimate:
    """Snapshot of the filter belief"""
    x: np.ndarray          # State [5]
    P: np.ndarray          # Covariance [5, 5]
    timestamp: int         # Time of last processed measurement [us]


@dataclass
class UpdateResult:
    """Outcome of one measurement update, enough to compute NIS offline"""
    sensor_type: SensorType
    innovation: np.ndarray   # z - z_pred, bearing wrapped
    S: np.ndarray            # Innovation covariance
    z_pred: np.ndarray       # Predicted observation
    nis: float               # innovation' S^-1 innovation
    timestamp: int


class UnscentedKalmanFilter:
    """
    Single-track UKF fusing radar and laser measurements.

    The instance owns all track state and mutates it once per call to
    process_measurement(). It is not thread-safe; callers deliver
    measurements one at a time in timestamp order.

    Example:
        >>> ukf = UnscentedKalmanFilter()
        >>> ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
        >>> result = ukf.process_measurement(MeasurementPackage.laser(1.1, 1.05, 100000))
        >>> result.nis
    """

    def __init__(self, config: Optional[UKFConfig] = None):
        """
        Args:
            config: Noise model and guards (defaults to UKFConfig())
        """
        self.config = config or UKFConfig()
        self.n_x = N_X
        self.n_aug = N_AUG
        self.lambda_ = LAMBDA
        self.n_sigma = N_SIGMA
        self.weights = compute_weights(self.n_aug, self.lambda_)
        self.reset()

    def reset(self):
        """Return to the uninitialized state."""
        self.is_initialized = False
        self.previous_timestamp = 0
        self.x = np.zeros(self.n_x)
        self.P = self.config.initial_P()
        self.Xsig_pred = np.zeros((self.n_x, self.n_sigma))
        # Xsig_pred matches x/P only between predict() and the next update
        self._predicted = False
        size = self.config.nis_history_size
        self.nis_history: Dict[SensorType, Deque[float]] = {
            SensorType.LASER: deque(maxlen=size),
            SensorType.RADAR: deque(maxlen=size),
        }
        logger.info("UKF reset")

    @property
    def state(self) -> Estimate:
        """Copy of the current belief"""
        return Estimate(x=self.x.copy(), P=self.P.copy(), timestamp=self.previous_timestamp)

    # -------------------------------------------------------------------------
    # Controller
    # -------------------------------------------------------------------------

    def initialize(self, meas: MeasurementPackage):
        """
        Seed the state from a single measurement.

        Radar: position from (rho, phi); the radial velocity is the only
        observed motion, so speed = |rho_dot| along the line of sight
        (heading phi, or phi + pi when closing). Laser: position only.
        Yaw rate starts at 0 for both.
        """
        x = np.zeros(self.n_x)
        z = meas.raw_measurements

        if meas.sensor_type is SensorType.RADAR:
            rho, phi, rho_dot = z
            x[PX] = rho * np.cos(phi)
            x[PY] = rho * np.sin(phi)
            x[V] = abs(rho_dot)
            x[YAW] = normalize_angle(phi if rho_dot >= 0 else phi + np.pi)
        else:
            x[PX], x[PY] = z

        self.x = x
        self.P = self.config.initial_P()
        self._predicted = False
        self.previous_timestamp = meas.timestamp
        self.is_initialized = True

        logger.info(
            "UKF initialized from %s at t=%dus: x=%s",
            meas.sensor_type.name, meas.timestamp, np.array2string(x, precision=3)
        )

    def process_measurement(self, meas: MeasurementPackage) -> Optional[UpdateResult]:
        """
        Run one filter cycle.

        Args:
            meas: Next measurement (timestamp >= previous)

        Returns:
            UpdateResult, or None for the bootstrap cycle and for gated sensors

        Raises:
            OutOfOrderMeasurementError: timestamp went backwards
            NumericalInstabilityError: prediction or update failed; the state
                is left at its last consistent value
        """
        if not self.is_initialized:
            self.initialize(meas)
            return None

        if meas.timestamp < self.previous_timestamp:
            raise OutOfOrderMeasurementError(meas.timestamp, self.previous_timestamp)

        delta_t = (meas.timestamp - self.previous_timestamp) / US_PER_S

        try:
            self.predict(delta_t)
            self.previous_timestamp = meas.timestamp

            if not self.config.sensor_enabled(meas.sensor_type):
                logger.debug("%s disabled, prediction only at t=%dus",
                             meas.sensor_type.name, meas.timestamp)
                return None

            return self.update(meas)
        except NumericalInstabilityError as err:
            logger.warning("UKF cycle aborted at t=%dus: %s", meas.timestamp, err)
            raise

    # -------------------------------------------------------------------------
    # Prediction
    # -------------------------------------------------------------------------

    def predict(self, delta_t: float):
        """
        Prediction step: propagate sigma points through the CTRV model.

        Args:
            delta_t: Time since the last measurement [s]

        Raises:
            DegenerateCovarianceError: P is no longer positive definite
        """
        Xsig_aug = augmented_sigma_points(
            self.x, self.P, self.config.process_noise, self.lambda_
        )
        Xsig_pred = ctrv_predict(Xsig_aug, delta_t, self.config.yaw_rate_threshold)
        x_pred, P_pred = self.predict_mean_and_covariance(Xsig_pred)

        self.Xsig_pred = Xsig_pred
        self.x = x_pred
        self.P = P_pred
        self._predicted = True

        logger.debug("Predicted dt=%.4fs: x=%s", delta_t, np.array2string(x_pred, precision=3))

    def predict_mean_and_covariance(self, Xsig_pred: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Recombine propagated sigma points.

        Returns:
            x_pred: Weighted mean [5]
            P_pred: Weighted covariance [5, 5], heading differences wrapped
        """
        x_pred = Xsig_pred @ self.weights

        X_diff = Xsig_pred - x_pred[:, np.newaxis]
        X_diff[YAW] = normalize_angles(X_diff[YAW])

        P_pred = (self.weights * X_diff) @ X_diff.T
        P_pred = 0.5 * (P_pred + P_pred.T)

        return x_pred, P_pred

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(self, meas: MeasurementPackage) -> UpdateResult:
        """
        Dispatch to the radar or laser update.

        Each update consumes the sigma points of one predict() call.

        Raises:
            StalePredictionError: no predict() since the last update
            SingularInnovationError: S cannot be inverted
        """
        if meas.sensor_type is SensorType.RADAR:
            return self.update_radar(meas)
        return self.update_lidar(meas)

    def update_lidar(self, meas: MeasurementPackage) -> UpdateResult:
        """Update with a laser measurement [px, py]."""
        self._check_sensor(meas, SensorType.LASER)
        return self._update(meas)

    def update_radar(self, meas: MeasurementPackage) -> UpdateResult:
        """Update with a radar measurement [rho, phi, rho_dot]."""
        self._check_sensor(meas, SensorType.RADAR)
        return self._update(meas)

    @staticmethod
    def _check_sensor(meas: MeasurementPackage, expected: SensorType):
        if meas.sensor_type is not expected:
            raise MeasurementError(
                f"Expected {expected.name} measurement, got {meas.sensor_type.name}"
            )

    def _update(self, meas: MeasurementPackage) -> UpdateResult:
        sensor = meas.sensor_type
        angle = sensor.angle_index

        if not self._predicted:
            raise StalePredictionError(
                "No predict() since the last update; the cached sigma points are stale"
            )

        # Sigma points in measurement space
        Zsig = measurement_transform(sensor, self.Xsig_pred, self.config)
        z_pred = Zsig @ self.weights
        if angle is not None:
            # atan2 jumps at +-pi, so average deviations from the central point
            ref = Zsig[angle, 0]
            z_pred[angle] = normalize_angle(
                ref + self.weights @ normalize_angles(Zsig[angle] - ref)
            )

        Z_diff = Zsig - z_pred[:, np.newaxis]
        if angle is not None:
            Z_diff[angle] = normalize_angles(Z_diff[angle])

        # Innovation covariance
        S = (self.weights * Z_diff) @ Z_diff.T + self.config.noise_for(sensor)
        S_inv = self._invert_innovation(S, sensor)

        # Cross correlation
        X_diff = self.Xsig_pred - self.x[:, np.newaxis]
        X_diff[YAW] = normalize_angles(X_diff[YAW])
        Tc = (self.weights * X_diff) @ Z_diff.T

        K = Tc @ S_inv

        innovation = meas.raw_measurements - z_pred
        if angle is not None:
            innovation[angle] = normalize_angle(innovation[angle])

        x_upd = self.x + K @ innovation
        P_upd = self.P - K @ S @ K.T
        P_upd = 0.5 * (P_upd + P_upd.T)

        self.x = x_upd
        self.P = P_upd
        self._predicted = False

        nis = compute_nis(innovation, S)
        self.nis_history[sensor].append(nis)

        logger.debug("%s update at t=%dus: NIS=%.3f", sensor.name, meas.timestamp, nis)

        return UpdateResult(
            sensor_type=sensor,
            innovation=innovation,
            S=S,
            z_pred=z_pred,
            nis=nis,
            timestamp=meas.timestamp
        )

    def _invert_innovation(self, S: np.ndarray, sensor: SensorType) -> np.ndarray:
        """
        Invert S, refusing singular or ill-conditioned matrices.

        Raises:
            SingularInnovationError: S is non-finite, singular or its
                condition number exceeds config.max_condition_number
        """
        if not np.all(np.isfinite(S)):
            raise SingularInnovationError(
                f"{sensor.name} innovation covariance has non-finite entries", S, sensor
            )

        cond = np.linalg.cond(S)
        if not np.isfinite(cond) or cond > self.config.max_condition_number:
            raise SingularInnovationError(
                f"{sensor.name} innovation covariance is singular (cond={cond:.3e})", S, sensor
            )

        try:
            return linalg.inv(S)
        except LinAlgError as err:
            raise SingularInnovationError(
                f"{sensor.name} innovation covariance is singular: {err}", S, sensor
            ) from err
