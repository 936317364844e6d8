"""Shared fixtures for the UKF-Fusion test suite"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Allow running from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from ukf_fusion import MeasurementPackage, UKFConfig, UnscentedKalmanFilter


@pytest.fixture
def config():
    return UKFConfig()


@pytest.fixture
def ukf(config):
    return UnscentedKalmanFilter(config)


@pytest.fixture
def laser_initialized(ukf):
    """Filter bootstrapped from a laser measurement at (1, 1), t=0"""
    ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, 0))
    return ukf


@pytest.fixture
def rng():
    return np.random.default_rng(42)
