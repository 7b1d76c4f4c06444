import pytest
import numpy as np
import sys
import os

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for testing
import matplotlib.pyplot as plt

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rtslam.map import SlamMap, MapConfiguration, Landmark
from rtslam.robots import RobotAbstract, RobotOdometry2D, RobotConstantVelocity
from rtslam.visualization import PoseHistoryPlotter, covariance_ellipse, plot_covariance_ellipse
from rtslam.demo import build_scenario, run_demo


class ScalarRobot(RobotAbstract):
    """Robot with a one-component state."""

    def __init__(self, slam_map):
        super().__init__(slam_map, 1, 1)

    def move_func(self, x, u, dt):
        return x + u, np.eye(1), np.eye(1)


class TestCovarianceEllipse:
    """Test confidence ellipse geometry"""

    def test_axis_aligned_ellipse(self):
        """Test axes of a diagonal covariance scale with the chi-square quantile"""
        chi2_95 = -2 * np.log(1 - 0.95)  # chi-square with 2 dof

        center, width, height, angle = covariance_ellipse([1.0, 2.0], np.diag([4.0, 1.0]), 0.95)

        assert center == (1.0, 2.0)
        assert sorted([width, height]) == pytest.approx([2 * np.sqrt(chi2_95), 4 * np.sqrt(chi2_95)])
        # the first (smallest) axis lies along y
        assert abs(abs(angle) - 90.0) < 1e-9

    def test_uses_xy_block_only(self):
        """Test larger covariances are reduced to their xy block"""
        P = np.diag([1.0, 1.0, 100.0])
        _, width, height, _ = covariance_ellipse([0.0, 0.0, 0.0], P)
        assert width == pytest.approx(height)

    def test_invalid_confidence(self):
        """Test confidence outside (0, 1) is rejected"""
        with pytest.raises(ValueError):
            covariance_ellipse([0.0, 0.0], np.eye(2), confidence=1.0)

    def test_plot_covariance_ellipse_adds_patch(self):
        """Test the ellipse patch is attached to the axes"""
        fig, ax = plt.subplots()
        ellipse = plot_covariance_ellipse(ax, [0.0, 0.0], np.eye(2))
        assert ellipse in ax.patches
        plt.close(fig)


class TestPoseHistoryPlotter:
    """Test track recording and plotting"""

    def setup_method(self):
        """Set up test fixtures"""
        self.slam_map = SlamMap(MapConfiguration(max_size=10))
        self.robot = RobotOdometry2D(self.slam_map)
        self.robot.setup()

    def test_record_positions(self):
        """Test recorded positions follow the robot"""
        plotter = PoseHistoryPlotter(self.robot)
        plotter.record()
        for _ in range(4):
            self.robot.move(np.array([1.0, 0.0]))
            plotter.record()

        assert len(plotter) == 5
        assert plotter.positions.shape == (5, 2)
        np.testing.assert_allclose(plotter.positions[-1], [4.0, 0.0], atol=1e-12)

    def test_plot_track_and_landmarks(self):
        """Test plotting draws the track, ellipses and landmarks"""
        landmark = Landmark(self.slam_map)
        landmark.state.x = [2.0, 2.0]
        landmark.state.P = np.eye(2) * 0.1
        plotter = PoseHistoryPlotter(self.robot, ellipse_every=2)
        for _ in range(5):
            self.robot.move(np.array([0.5, 0.1]))
            plotter.record()

        fig, ax = plt.subplots()
        returned = plotter.plot(ax=ax, landmarks=[landmark])

        assert returned is ax
        # ellipses at records 0, 2, 4 plus one for the landmark
        assert len(ax.patches) == 4
        plt.close(fig)

    def test_plot_without_records(self):
        """Test plotting an empty history still returns axes"""
        plotter = PoseHistoryPlotter(self.robot)
        fig, ax = plt.subplots()
        assert plotter.plot(ax=ax) is ax
        assert len(plotter.positions) == 0
        plt.close(fig)

    def test_invalid_plotter_arguments(self):
        """Test robots without a planar position and bad intervals are rejected"""
        with pytest.raises(ValueError):
            PoseHistoryPlotter(ScalarRobot(self.slam_map))
        with pytest.raises(ValueError):
            PoseHistoryPlotter(self.robot, ellipse_every=0)
        # a 1-D constant-velocity state [p, v] has two components and is accepted
        PoseHistoryPlotter(RobotConstantVelocity(self.slam_map, dimension=1))


class TestDemo:
    """Test the dead-reckoning demo"""

    def test_build_scenario(self):
        """Test the scenario wires robot, landmarks and sensor together"""
        scenario = build_scenario(landmark_count=4, radius=3.0)

        assert len(scenario['landmarks']) == 4
        assert scenario['sensor'].robot is scenario['robot']
        assert scenario['map'].used_size == 3 + 2 * 4
        assert scenario['map'].is_symmetric()

    def test_run_demo_closes_the_loop(self):
        """Test one lap of odometry returns to the start with grown uncertainty"""
        state = run_demo(steps=20, radius=5.0)

        assert state['move_count'] == 20
        np.testing.assert_allclose(state['pose'], [5.0, 0.0, np.pi / 2], atol=1e-9)
        assert state['pose_uncertainty'][0] > 0.01
        assert len(state['sensors']) == 1

    def test_run_demo_rejects_bad_steps(self):
        """Test non-positive step counts are rejected"""
        with pytest.raises(ValueError):
            run_demo(steps=0)
