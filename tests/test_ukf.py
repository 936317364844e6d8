"""
UKF-Fusion - Filter Controller and Update Tests
===============================================
pytest tests for prediction, fusion and the measurement cycle.

Run: pytest tests/ -v
"""

import copy

import numpy as np
import pytest

from ukf_fusion import (
    DegenerateCovarianceError,
    MeasurementError,
    MeasurementPackage,
    OutOfOrderMeasurementError,
    SensorType,
    SingularInnovationError,
    StalePredictionError,
    UKFConfig,
    UnscentedKalmanFilter,
    calculate_rmse,
    compute_nis,
    nis_consistency,
    simulate_ctrv_track,
    state_to_cartesian,
)


class TestInitialization:
    """Tests for the bootstrap cycle"""

    def test_laser_bootstrap(self, ukf):
        """First laser measurement seeds position only"""
        result = ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))

        assert result is None
        assert ukf.is_initialized
        np.testing.assert_array_equal(ukf.x, [1.0, 1.0, 0.0, 0.0, 0.0])
        np.testing.assert_array_equal(ukf.P, np.eye(5))
        assert ukf.previous_timestamp == 0

    def test_radar_bootstrap_receding(self, ukf):
        """Receding target: speed |rho_dot| along the bearing"""
        ukf.process_measurement(MeasurementPackage.radar(2.0, np.pi / 3, 1.5, 1000))

        np.testing.assert_allclose(
            ukf.x, [2.0 * np.cos(np.pi / 3), 2.0 * np.sin(np.pi / 3), 1.5, np.pi / 3, 0.0]
        )
        assert ukf.previous_timestamp == 1000

    def test_radar_bootstrap_closing(self, ukf):
        """Closing target: heading points back at the sensor"""
        ukf.process_measurement(MeasurementPackage.radar(2.0, np.pi / 2, -1.0, 0))

        np.testing.assert_allclose(ukf.x, [0.0, 2.0, 1.0, -np.pi / 2, 0.0], atol=1e-12)

    def test_configured_initial_covariance(self):
        P0 = np.diag([0.1, 0.1, 4.0, 1.0, 0.5])
        ukf = UnscentedKalmanFilter(UKFConfig(initial_covariance=P0))
        ukf.process_measurement(MeasurementPackage.laser(0.0, 1.0, 0))
        np.testing.assert_array_equal(ukf.P, P0)

    def test_reset(self, laser_initialized):
        laser_initialized.reset()
        assert not laser_initialized.is_initialized
        np.testing.assert_array_equal(laser_initialized.x, np.zeros(5))


class TestPrediction:
    """Tests for the prediction step"""

    def test_zero_dt_is_identity(self, laser_initialized):
        """dt = 0 leaves mean and covariance unchanged"""
        x0 = laser_initialized.x.copy()
        P0 = laser_initialized.P.copy()

        laser_initialized.predict(0.0)

        np.testing.assert_allclose(laser_initialized.x, x0, atol=1e-9)
        np.testing.assert_allclose(laser_initialized.P, P0, atol=1e-9)

    def test_caches_sigma_points(self, laser_initialized):
        laser_initialized.predict(0.1)
        assert laser_initialized.Xsig_pred.shape == (5, 15)
        np.testing.assert_allclose(
            laser_initialized.Xsig_pred @ laser_initialized.weights, laser_initialized.x
        )

    def test_covariance_grows(self, laser_initialized):
        """Uncertainty increases without a measurement"""
        laser_initialized.predict(0.5)
        assert np.all(np.diag(laser_initialized.P) >= 1.0 - 1e-9)
        np.testing.assert_allclose(laser_initialized.P, laser_initialized.P.T)

    def test_heading_wrap_in_covariance(self, ukf):
        """Headings near pi keep a small covariance"""
        ukf.process_measurement(MeasurementPackage.laser(0.0, 0.0, 0))
        ukf.x[3] = np.pi - 0.01
        ukf.P = 0.01 * np.eye(5)

        ukf.predict(0.1)

        assert ukf.P[3, 3] < 0.1

    def test_degenerate_covariance_leaves_state(self, laser_initialized):
        """Failed prediction keeps the previous posterior"""
        laser_initialized.P = -np.eye(5)
        x0 = laser_initialized.x.copy()

        with pytest.raises(DegenerateCovarianceError):
            laser_initialized.process_measurement(MeasurementPackage.laser(1.0, 1.0, 100000))

        np.testing.assert_array_equal(laser_initialized.x, x0)
        np.testing.assert_array_equal(laser_initialized.P, -np.eye(5))
        assert laser_initialized.previous_timestamp == 0


class TestLaserUpdate:
    """Tests for the laser fusion path"""

    def test_second_laser_blends(self, laser_initialized):
        """Estimate lies between prediction and observation, variance shrinks"""
        predicted = copy.deepcopy(laser_initialized)
        predicted.predict(0.1)

        result = laser_initialized.process_measurement(
            MeasurementPackage.laser(1.1, 1.05, 100000)
        )

        assert result.sensor_type is SensorType.LASER
        for i, z in enumerate([1.1, 1.05]):
            lo, hi = sorted([predicted.x[i], z])
            assert lo < laser_initialized.x[i] < hi

        assert np.all(np.diag(laser_initialized.P) <= np.diag(predicted.P) + 1e-12)
        assert laser_initialized.previous_timestamp == 100000

    def test_update_result(self, laser_initialized):
        result = laser_initialized.process_measurement(MeasurementPackage.laser(1.1, 1.05, 100000))

        assert result.innovation.shape == (2,)
        assert result.S.shape == (2, 2)
        assert result.nis == pytest.approx(
            result.innovation @ np.linalg.solve(result.S, result.innovation)
        )
        assert list(laser_initialized.nis_history[SensorType.LASER]) == [result.nis]

    def test_wrong_sensor_rejected(self, laser_initialized):
        laser_initialized.predict(0.1)
        with pytest.raises(MeasurementError):
            laser_initialized.update_lidar(MeasurementPackage.radar(1.0, 0.5, 0.0, 100000))

    def test_singular_innovation(self):
        """Ill-conditioned S is reported and the prediction is kept"""
        ukf = UnscentedKalmanFilter(UKFConfig(std_laspx=1.0, std_laspy=1e-9))
        ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
        ukf.predict(0.1)
        # Collapse the sample set so S reduces to R
        ukf.Xsig_pred = np.repeat(ukf.x[:, np.newaxis], 15, axis=1)
        x_pred = ukf.x.copy()
        P_pred = ukf.P.copy()

        with pytest.raises(SingularInnovationError) as excinfo:
            ukf.update_lidar(MeasurementPackage.laser(1.1, 1.0, 100000))

        assert excinfo.value.sensor_type is SensorType.LASER
        np.testing.assert_array_equal(ukf.x, x_pred)
        np.testing.assert_array_equal(ukf.P, P_pred)

    def test_non_finite_innovation(self, laser_initialized):
        laser_initialized.predict(0.1)
        laser_initialized.Xsig_pred[0, 3] = np.nan
        with pytest.raises(SingularInnovationError):
            laser_initialized.update_lidar(MeasurementPackage.laser(1.1, 1.0, 100000))


class TestRadarUpdate:
    """Tests for the radar fusion path"""

    def test_radar_after_laser(self, laser_initialized):
        result = laser_initialized.process_measurement(
            MeasurementPackage.radar(np.sqrt(2.0) + 0.05, np.pi / 4, 0.3, 100000)
        )

        assert result.sensor_type is SensorType.RADAR
        assert result.S.shape == (3, 3)
        assert np.all(np.isfinite(laser_initialized.x))
        np.testing.assert_allclose(laser_initialized.P, laser_initialized.P.T)
        assert np.all(np.linalg.eigvalsh(laser_initialized.P) > 0)

    def test_zero_range_no_nan(self, laser_initialized):
        """rho = 0 is handled by the range guard"""
        laser_initialized.process_measurement(MeasurementPackage.radar(0.0, 1.2, 0.4, 100000))
        assert np.all(np.isfinite(laser_initialized.x))
        assert np.all(np.isfinite(laser_initialized.P))

    def test_zero_range_bootstrap_no_nan(self, ukf):
        """A filter seeded at the sensor origin keeps a finite state"""
        ukf.process_measurement(MeasurementPackage.radar(0.0, 0.7, 0.5, 0))
        ukf.process_measurement(MeasurementPackage.radar(0.05, 0.7, 0.5, 100000))

        assert np.all(np.isfinite(ukf.x))
        assert np.all(np.isfinite(ukf.P))

    def test_bearing_wrap(self, ukf):
        """Bearings on both sides of +-pi give a small innovation"""
        ukf.process_measurement(MeasurementPackage.laser(-10.0, 0.01, 0))
        result = ukf.process_measurement(
            MeasurementPackage.radar(10.0, -np.pi + 0.002, 0.0, 100000)
        )

        assert abs(result.innovation[1]) < 0.1
        assert abs(result.z_pred[1]) > np.pi - 0.1
        assert ukf.x[1] == pytest.approx(0.01, abs=0.1)


class TestController:
    """Tests for the measurement cycle"""

    def test_out_of_order(self, laser_initialized):
        laser_initialized.process_measurement(MeasurementPackage.laser(1.1, 1.0, 100000))
        x = laser_initialized.x.copy()

        with pytest.raises(OutOfOrderMeasurementError):
            laser_initialized.process_measurement(MeasurementPackage.laser(1.2, 1.0, 50000))

        np.testing.assert_array_equal(laser_initialized.x, x)
        assert laser_initialized.previous_timestamp == 100000

    def test_equal_timestamps(self, laser_initialized):
        """Simultaneous measurements fuse with dt = 0"""
        result = laser_initialized.process_measurement(MeasurementPackage.laser(1.1, 1.0, 0))
        assert result is not None

    def test_radar_gated(self):
        """Disabled radar still initializes, then only predicts"""
        ukf = UnscentedKalmanFilter(UKFConfig(use_radar=False))
        ukf.process_measurement(MeasurementPackage.radar(1.0, 0.0, 1.0, 0))
        assert ukf.is_initialized

        predicted = copy.deepcopy(ukf)
        predicted.predict(0.1)

        result = ukf.process_measurement(MeasurementPackage.radar(1.5, 0.1, 1.0, 100000))

        assert result is None
        np.testing.assert_allclose(ukf.x, predicted.x)
        np.testing.assert_allclose(ukf.P, predicted.P)
        assert ukf.previous_timestamp == 100000
        assert len(ukf.nis_history[SensorType.RADAR]) == 0

    def test_laser_gated(self):
        ukf = UnscentedKalmanFilter(UKFConfig(use_laser=False))
        ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
        assert ukf.process_measurement(MeasurementPackage.laser(1.1, 1.0, 100000)) is None
        assert ukf.process_measurement(MeasurementPackage.radar(1.5, 0.8, 0.0, 200000)) is not None

    def test_state_snapshot_is_copy(self, laser_initialized):
        snapshot = laser_initialized.state
        snapshot.x[0] = 99.0
        assert laser_initialized.x[0] == 1.0
        assert snapshot.timestamp == 0


class TestIntegration:
    """Integration tests on a simulated turning target"""

    def test_fused_tracking(self):
        """Fused radar/laser track converges on the ground truth"""
        measurements, ground_truth = simulate_ctrv_track(n_steps=200, seed=7)
        ukf = UnscentedKalmanFilter()

        estimates = []
        for meas in measurements:
            ukf.process_measurement(meas)
            estimates.append(state_to_cartesian(ukf.x))

            assert np.all(np.isfinite(ukf.x))
            np.testing.assert_allclose(ukf.P, ukf.P.T, atol=1e-9)
            assert np.all(np.linalg.eigvalsh(ukf.P) > -1e-9)

        rmse = calculate_rmse(estimates, ground_truth)
        assert rmse[0] < 0.3
        assert rmse[1] < 0.3
        assert rmse[2] < 1.5
        assert rmse[3] < 1.5

    def test_nis_consistency(self):
        """Correctly tuned noise keeps most NIS values under the 95% bound"""
        measurements, _ = simulate_ctrv_track(n_steps=300, seed=3)
        ukf = UnscentedKalmanFilter()
        for meas in measurements:
            ukf.process_measurement(meas)

        assert len(ukf.nis_history[SensorType.LASER]) == 149
        assert len(ukf.nis_history[SensorType.RADAR]) == 150
        assert nis_consistency(ukf.nis_history[SensorType.LASER], dof=2) < 0.3
        assert nis_consistency(ukf.nis_history[SensorType.RADAR], dof=3) < 0.3

    def test_radar_only(self):
        """Radar alone still tracks position"""
        measurements, ground_truth = simulate_ctrv_track(n_steps=200, seed=11)
        ukf = UnscentedKalmanFilter(UKFConfig(use_laser=False))

        estimates = []
        for meas in measurements:
            ukf.process_measurement(meas)
            estimates.append(state_to_cartesian(ukf.x))

        rmse = calculate_rmse(estimates, ground_truth)
        assert rmse[0] < 1.0
        assert rmse[1] < 1.0


class TestPredictUpdatePairing:
    """Each update consumes exactly one prediction"""

    def test_update_before_predict(self, laser_initialized):
        """Updating straight after bootstrap has no sigma points to use"""
        x0 = laser_initialized.x.copy()
        P0 = laser_initialized.P.copy()

        with pytest.raises(StalePredictionError):
            laser_initialized.update_lidar(MeasurementPackage.laser(1.1, 1.05, 100000))

        np.testing.assert_array_equal(laser_initialized.x, x0)
        np.testing.assert_array_equal(laser_initialized.P, P0)
        assert len(laser_initialized.nis_history[SensorType.LASER]) == 0

    def test_second_update_after_one_predict(self, laser_initialized):
        """Repeating an update without predicting keeps P positive definite"""
        meas = MeasurementPackage.laser(1.1, 1.05, 100000)
        laser_initialized.predict(0.1)
        laser_initialized.update_lidar(meas)
        x1 = laser_initialized.x.copy()
        P1 = laser_initialized.P.copy()

        with pytest.raises(StalePredictionError):
            laser_initialized.update_lidar(meas)

        np.testing.assert_array_equal(laser_initialized.x, x1)
        np.testing.assert_array_equal(laser_initialized.P, P1)
        assert np.all(np.linalg.eigvalsh(laser_initialized.P) > 0)
        assert len(laser_initialized.nis_history[SensorType.LASER]) == 1

    def test_predict_rearms_update(self, laser_initialized):
        laser_initialized.predict(0.1)
        laser_initialized.update_lidar(MeasurementPackage.laser(1.1, 1.05, 100000))
        laser_initialized.predict(0.1)
        result = laser_initialized.update(MeasurementPackage.radar(1.6, 0.77, 0.0, 200000))
        assert result.sensor_type is SensorType.RADAR

    def test_reset_clears_prediction(self, laser_initialized):
        laser_initialized.predict(0.1)
        laser_initialized.reset()
        with pytest.raises(StalePredictionError):
            laser_initialized.update_lidar(MeasurementPackage.laser(1.1, 1.05, 100000))

    def test_failed_update_keeps_prediction(self):
        """A rejected S leaves the prediction usable for a later update"""
        ukf = UnscentedKalmanFilter(UKFConfig(std_laspx=1.0, std_laspy=1e-9))
        ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
        ukf.predict(0.1)
        Xsig_pred = ukf.Xsig_pred
        ukf.Xsig_pred = np.repeat(ukf.x[:, np.newaxis], 15, axis=1)

        with pytest.raises(SingularInnovationError):
            ukf.update_lidar(MeasurementPackage.laser(1.1, 1.0, 100000))

        ukf.Xsig_pred = Xsig_pred
        assert ukf.update_lidar(MeasurementPackage.laser(1.1, 1.0, 100000)) is not None


class TestNISHistory:
    """NIS history is bounded per sensor"""

    def test_history_limit(self):
        ukf = UnscentedKalmanFilter(UKFConfig(nis_history_size=5))
        results = []
        for k in range(12):
            result = ukf.process_measurement(MeasurementPackage.laser(1.0 + 0.01 * k, 1.0, k * 50000))
            if result is not None:
                results.append(result.nis)

        history = ukf.nis_history[SensorType.LASER]
        assert len(history) == 5
        assert list(history) == pytest.approx(results[-5:])

    def test_nis_matches_evaluation(self, laser_initialized):
        result = laser_initialized.process_measurement(MeasurementPackage.laser(1.1, 1.05, 100000))
        assert result.nis == pytest.approx(compute_nis(result.innovation, result.S))
