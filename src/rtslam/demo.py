#!/usr/bin/env python3
"""
Dead-reckoning demo of the SLAM prediction step.

A planar odometry robot drives a circle in a map holding a few landmarks. Every
cycle it moves with the commanded odometry increment and explores its sensors.
With no observation step, the robot uncertainty grows without bound while its
cross-covariances with the landmarks are carried along through the motion
Jacobian.

Run with: rtslam-demo --steps 200 --plot
"""

import argparse
import logging
from typing import Any, Dict

import numpy as np

from .map import Landmark, MapConfiguration, SlamMap
from .robots import OdometryNoiseParameters, RobotOdometry2D
from .sensors import CallbackSensor

logger = logging.getLogger(__name__)


def _landmarks_in_range(sensor: CallbackSensor, max_range: float = 5.0) -> int:
    """Count landmarks whose mean lies within range of the robot."""
    position = sensor.robot.pose.x[:2]
    return sum(
        1 for landmark in sensor.slam_map.landmarks()
        if np.linalg.norm(landmark.state.x[:2] - position) <= max_range
    )


def build_scenario(landmark_count: int = 6, radius: float = 5.0) -> Dict[str, Any]:
    """
    Create a map with landmarks on a ring, an odometry robot and one sensor.

    Landmarks start with a 0.1 m standard deviation and are correlated with
    the robot pose to make the cross-covariance propagation visible.
    """
    slam_map = SlamMap(MapConfiguration(max_size=3 + 2 * landmark_count))

    robot = RobotOdometry2D(slam_map, name="rover")
    robot.setup(OdometryNoiseParameters(translation_std=0.02, rotation_std=0.01))
    robot.pose.x = np.array([radius, 0.0, np.pi / 2])
    robot.pose.P = np.diag([1e-4, 1e-4, 1e-5])

    landmarks = []
    for k, angle in enumerate(np.linspace(0.0, 2 * np.pi, landmark_count, endpoint=False)):
        landmark = Landmark(slam_map, size=2, name=f"lmk{k}")
        landmark.state.x = 1.5 * radius * np.array([np.cos(angle), np.sin(angle)])
        landmark.state.P = np.eye(2) * 0.01
        correlation = slam_map.cross_covariance(robot.indices, landmark.indices)
        correlation[0:2, 0:2] = np.eye(2) * 1e-5
        slam_map.P[np.ix_(robot.indices, landmark.indices)] = correlation
        slam_map.P[np.ix_(landmark.indices, robot.indices)] = correlation.T
        landmarks.append(landmark)

    sensor = CallbackSensor(slam_map, callback=_landmarks_in_range, name="ranger")
    robot.link_to_sensor(sensor)

    return {'map': slam_map, 'robot': robot, 'landmarks': landmarks, 'sensor': sensor}


def run_demo(steps: int = 200, radius: float = 5.0, plot: bool = False) -> Dict[str, Any]:
    """
    Drive one lap of a circle with odometry only.

    Args:
        steps: Number of filter cycles for one lap
        radius: Circle radius in meters
        plot: Show the track with uncertainty ellipses at the end

    Returns:
        Final robot state dictionary
    """
    if steps <= 0:
        raise ValueError(f"Number of steps must be positive, got {steps}")

    scenario = build_scenario(radius=radius)
    slam_map, robot, sensor = scenario['map'], scenario['robot'], scenario['sensor']

    dyaw = 2 * np.pi / steps
    dx = radius * dyaw

    plotter = None
    if plot:
        from .visualization import PoseHistoryPlotter
        plotter = PoseHistoryPlotter(robot, ellipse_every=max(1, steps // 20))
        plotter.record()

    for step in range(steps):
        robot.move(np.array([dx, dyaw]))
        robot.explore_sensors()
        if plotter is not None:
            plotter.record()
        if step % max(1, steps // 10) == 0:
            logger.info(f"step {step}: pose={np.round(robot.pose.x, 3)}, "
                        f"std={np.round(robot.pose.std(), 4)}, "
                        f"landmarks in range={sensor.last_result}")

    diagnostics = slam_map.get_diagnostics()
    logger.info(f"Final covariance trace {diagnostics.covariance_trace:.4f}, "
                f"condition number {diagnostics.condition_number:.2e}, "
                f"symmetric={diagnostics.symmetric}, psd={diagnostics.positive_semidefinite}")

    if plotter is not None:
        import matplotlib.pyplot as plt
        ax = plotter.plot(landmarks=scenario['landmarks'])
        ax.set_title('Odometry-only prediction')
        plt.show()

    return robot.get_state_dict()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='SLAM prediction step demo')
    parser.add_argument('--steps', type=int, default=200,
                        help='Number of filter cycles (default: 200)')
    parser.add_argument('--radius', type=float, default=5.0,
                        help='Circle radius in meters (default: 5.0)')
    parser.add_argument('--plot', action='store_true',
                        help='Plot the track and uncertainty at the end')
    parser.add_argument('--verbose', action='store_true',
                        help='Log every filter step')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    state = run_demo(steps=args.steps, radius=args.radius, plot=args.plot)
    print(f"Final pose: {np.round(state['pose'], 3)}")
    print(f"Final pose std: {np.round(state['pose_uncertainty'], 4)}")


if __name__ == "__main__":
    main()
