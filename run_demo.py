#!/usr/bin/env python3
"""
UKF-Fusion v1.0 - Demo
======================
Copyright (C) 2026 Dr. Mladen Mešter / Nexellum
License: AGPL-3.0-or-later

Simply run: python run_demo.py [--plot]

This will:
1. Simulate a target turning at constant rate and speed
2. Track it with the UKF from interleaved radar and laser measurements
3. Print RMSE against ground truth and NIS consistency per sensor
4. Optionally plot the track (requires matplotlib, see the viz extra)
"""

import argparse
import logging

import numpy as np

from ukf_fusion import (
    SensorType,
    UKFConfig,
    UnscentedKalmanFilter,
    calculate_rmse,
    nis_consistency,
    nis_threshold,
    simulate_ctrv_track,
    state_to_cartesian,
)


def run(n_steps: int, seed: int, use_laser: bool, use_radar: bool):
    config = UKFConfig(use_laser=use_laser, use_radar=use_radar)
    measurements, ground_truth = simulate_ctrv_track(n_steps=n_steps, config=config, seed=seed)

    ukf = UnscentedKalmanFilter(config)
    estimates = []

    print(f"{'Step':>5} | {'Sensor':<6} | {'px':>8} | {'py':>8} | {'v':>6} | {'NIS':>7}")
    print("-" * 56)

    for k, meas in enumerate(measurements):
        result = ukf.process_measurement(meas)
        estimates.append(state_to_cartesian(ukf.x))

        if k % 20 == 0:
            nis = f"{result.nis:7.3f}" if result is not None else f"{'-':>7}"
            print(f"{k:>5} | {meas.sensor_type.name:<6} | {ukf.x[0]:8.3f} | "
                  f"{ukf.x[1]:8.3f} | {ukf.x[2]:6.3f} | {nis}")

    rmse = calculate_rmse(estimates, ground_truth)

    print("-" * 56)
    print()
    print("═" * 56)
    print("                     FINAL RESULTS")
    print("═" * 56)
    print(f"  RMSE px, py:     {rmse[0]:.3f} m, {rmse[1]:.3f} m")
    print(f"  RMSE vx, vy:     {rmse[2]:.3f} m/s, {rmse[3]:.3f} m/s")
    for sensor in SensorType:
        values = ukf.nis_history[sensor]
        if values:
            above = nis_consistency(values, dof=sensor.dim)
            print(f"  NIS {sensor.name:<5} > {nis_threshold(sensor.dim):.3f}: "
                  f"{100 * above:5.1f}% of {len(values)} updates")
    print("═" * 56)

    return np.array(estimates), ground_truth, measurements


def plot(estimates: np.ndarray, ground_truth: np.ndarray, measurements):
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.plot(ground_truth[:, 0], ground_truth[:, 1], "k-", label="Ground truth")
    ax.plot(estimates[:, 0], estimates[:, 1], "b.-", markersize=3, label="UKF")

    laser = np.array([m.raw_measurements for m in measurements
                      if m.sensor_type is SensorType.LASER])
    radar = np.array([m.raw_measurements for m in measurements
                      if m.sensor_type is SensorType.RADAR])
    ax.plot(laser[:, 0], laser[:, 1], "g+", label="Laser")
    ax.plot(radar[:, 0] * np.cos(radar[:, 1]), radar[:, 0] * np.sin(radar[:, 1]),
            "rx", label="Radar")

    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_aspect("equal")
    ax.grid(True, alpha=0.3)
    ax.legend()
    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(description="UKF radar/laser fusion demo")
    parser.add_argument("--steps", type=int, default=500, help="Number of measurements")
    parser.add_argument("--seed", type=int, default=42, help="Noise seed")
    parser.add_argument("--no-laser", action="store_true", help="Ignore laser updates")
    parser.add_argument("--no-radar", action="store_true", help="Ignore radar updates")
    parser.add_argument("--plot", action="store_true", help="Plot the track (matplotlib)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    estimates, ground_truth, measurements = run(
        args.steps, args.seed, not args.no_laser, not args.no_radar
    )
    if args.plot:
        plot(estimates, ground_truth, measurements)


if __name__ == "__main__":
    main()
