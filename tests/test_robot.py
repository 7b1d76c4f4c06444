import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rtslam.errors import DimensionMismatch, UnknownObject
from rtslam.estimation import Gaussian, Control
from rtslam.map import SlamMap, MapConfiguration, Landmark
from rtslam.robots import RobotAbstract, RobotOdometry2D, RobotConstantVelocity
from rtslam.sensors import CallbackSensor


class Integrator1D(RobotAbstract):
    """Scalar integrator x' = x + u·dt used to check the prediction arithmetic."""

    def __init__(self, slam_map, name=None):
        super().__init__(slam_map, 1, 1, name)

    def move_func(self, x, u, dt):
        return x + u * dt, np.eye(1), np.eye(1) * dt


class SizedRobot(RobotAbstract):
    """Static robot with arbitrary state and control sizes."""

    def move_func(self, x, u, dt):
        return x, np.eye(self.size_state), np.zeros((self.size_state, self.size_control))


class BrokenModelRobot(RobotAbstract):
    """Robot whose motion model returns a state of the wrong size."""

    def __init__(self, slam_map):
        super().__init__(slam_map, 2, 1)

    def move_func(self, x, u, dt):
        return np.zeros(3), np.eye(2), np.zeros((2, 1))


class BrokenJacobianRobot(RobotAbstract):
    """Robot whose control Jacobian has the wrong shape."""

    def __init__(self, slam_map):
        super().__init__(slam_map, 2, 1)

    def move_func(self, x, u, dt):
        return x + 1.0, np.eye(2), np.zeros((1, 2))


@pytest.fixture
def slam_map():
    """Small map shared by a test"""
    return SlamMap(MapConfiguration(max_size=20))


class TestRobotConstruction:
    """Test robot construction and the motion model contract"""

    def test_abstract_robot_cannot_be_instantiated(self, slam_map):
        """Test a robot type without a motion model cannot be built"""
        class NoModel(RobotAbstract):
            pass

        with pytest.raises(TypeError):
            NoModel(slam_map, 1, 1)
        with pytest.raises(TypeError):
            RobotAbstract(slam_map, 1, 1)

    def test_initial_dimensions(self, slam_map):
        """Test all robot matrices start with the declared dimensions"""
        robot = RobotOdometry2D(slam_map)

        assert robot.size_state == 3
        assert robot.size_control == 2
        assert robot.pose.x.shape == (3,)
        assert robot.pose.P.shape == (3, 3)
        assert robot.control.x.shape == (2,)
        assert robot.control.P.shape == (2, 2)
        assert robot.XNEW_x.shape == (3, 3)
        assert robot.XNEW_control.shape == (3, 2)
        assert robot.Q.shape == (3, 3)

        np.testing.assert_allclose(robot.XNEW_x, np.eye(3))
        np.testing.assert_allclose(robot.Q, np.zeros((3, 3)))
        assert robot.constant_perturbation is False
        assert robot.control.dt == 1.0

    def test_robot_registered_in_map(self, slam_map):
        """Test construction reserves a slot and registers the robot"""
        robot = Integrator1D(slam_map, name="walker")

        assert robot.id is not None
        assert slam_map.get_object(robot.id) is robot
        assert slam_map.robots() == [robot]
        assert slam_map.used_size == 1
        assert robot.label == "walker"

    def test_negative_sizes_rejected(self, slam_map):
        """Test negative state or control sizes are refused"""
        with pytest.raises(ValueError):
            SizedRobot(slam_map, -1, 1)
        with pytest.raises(ValueError):
            SizedRobot(slam_map, 2, -1)
        assert slam_map.used_size == 0

    def test_zero_size_control(self, slam_map):
        """Test a robot without control input still predicts"""
        robot = SizedRobot(slam_map, 2, 0)
        robot.pose.P = np.eye(2)

        robot.move()

        assert robot.Q.shape == (2, 2)
        np.testing.assert_allclose(robot.pose.P, np.eye(2))

    def test_link_to_map_is_idempotent(self, slam_map):
        """Test linking again to the same map keeps the id"""
        robot = Integrator1D(slam_map)
        robot_id = robot.id

        robot.link_to_map(slam_map)

        assert robot.id == robot_id
        assert len(slam_map.robots()) == 1

    def test_link_to_other_map_rejected(self, slam_map):
        """Test a robot cannot be linked to a map that does not hold its state"""
        robot = Integrator1D(slam_map)
        with pytest.raises(ValueError):
            robot.link_to_map(SlamMap(MapConfiguration(max_size=5)))


class TestControlInput:
    """Test control replacement"""

    def test_set_control_copies(self, slam_map):
        """Test set_control stores an independent copy of the control"""
        robot = RobotOdometry2D(slam_map)
        u = Control.from_gaussian(Gaussian.from_mean_and_covariance([0.1, 0.01], np.diag([1e-4, 1e-6])), 0.2)

        robot.set_control(u)
        u.x = [5.0, 5.0]

        np.testing.assert_allclose(robot.control.x, [0.1, 0.01])
        np.testing.assert_allclose(robot.control.P, np.diag([1e-4, 1e-6]))
        assert robot.control.dt == 0.2

    def test_set_control_from_plain_gaussian(self, slam_map):
        """Test a plain Gaussian is accepted as a control with dt = 1"""
        robot = Integrator1D(slam_map)
        robot.control.dt = 0.3

        robot.set_control(Gaussian.from_mean_and_covariance([2.0], [[0.5]]))

        assert isinstance(robot.control, Control)
        assert robot.control.dt == 1.0
        np.testing.assert_allclose(robot.control.x, [2.0])

    def test_set_control_dimension_mismatch(self, slam_map):
        """Test a control of the wrong size is rejected and the old one kept"""
        robot = RobotOdometry2D(slam_map)
        robot.control.x = [0.3, 0.1]

        with pytest.raises(DimensionMismatch):
            robot.set_control(Control(3))

        np.testing.assert_allclose(robot.control.x, [0.3, 0.1])
        assert robot.control.size == 2


class TestPrediction:
    """Test the EKF prediction step"""

    def test_single_step_scalar_integrator(self, slam_map):
        """Test x=[0], P=[0], u=[1], P_u=[0.01], dt=1 gives x=[1], Q=[0.01], P=[0.01]"""
        robot = Integrator1D(slam_map)
        robot.set_control(Control.from_gaussian(Gaussian.from_mean_and_covariance([1.0], [[0.01]]), 1.0))

        robot.move()

        np.testing.assert_allclose(robot.pose.x, [1.0])
        np.testing.assert_allclose(robot.Q, [[0.01]])
        np.testing.assert_allclose(robot.pose.P, [[0.01]])
        np.testing.assert_allclose(robot.XNEW_x, [[1.0]])
        np.testing.assert_allclose(robot.XNEW_control, [[1.0]])
        assert robot.move_count == 1

    def test_zero_control_leaves_mean_and_covariance(self, slam_map):
        """Test zero-mean zero-covariance control keeps mean and covariance"""
        robot = Integrator1D(slam_map)
        robot.pose.x = [3.0]
        robot.pose.P = [[0.5]]

        robot.move()
        robot.move()

        np.testing.assert_allclose(robot.pose.x, [3.0])
        np.testing.assert_allclose(robot.pose.P, [[0.5]])
        np.testing.assert_allclose(robot.Q, [[0.0]])

    def test_covariance_grows_by_q_each_step(self, slam_map):
        """Test zero-mean control adds exactly Q per step and keeps the mean"""
        robot = Integrator1D(slam_map)
        robot.pose.x = [3.0]
        robot.control.P = [[0.04]]
        robot.control.dt = 0.5

        robot.move()
        np.testing.assert_allclose(robot.pose.P, [[0.01]])
        robot.move()
        np.testing.assert_allclose(robot.pose.P, [[0.02]])
        np.testing.assert_allclose(robot.pose.x, [3.0])

    def test_move_with_control_argument(self, slam_map):
        """Test move(control) replaces the control then predicts"""
        robot = Integrator1D(slam_map)
        u = Control.from_gaussian(Gaussian.from_mean_and_covariance([2.0], [[1.0]]), 0.5)

        robot.move(u)

        np.testing.assert_allclose(robot.pose.x, [1.0])
        np.testing.assert_allclose(robot.pose.P, [[0.25]])
        assert robot.control.dt == 0.5

    def test_move_with_raw_control_vector(self, slam_map):
        """Test move(array) only replaces the control mean"""
        robot = Integrator1D(slam_map)
        robot.control.P = [[0.01]]

        robot.move(np.array([2.0]))

        np.testing.assert_allclose(robot.control.x, [2.0])
        np.testing.assert_allclose(robot.control.P, [[0.01]])
        np.testing.assert_allclose(robot.pose.x, [2.0])

    def test_move_with_wrong_raw_control_size(self, slam_map):
        """Test a raw control vector of the wrong size is rejected"""
        robot = RobotOdometry2D(slam_map)

        with pytest.raises(DimensionMismatch):
            robot.move([1.0, 0.0, 0.0])
        assert robot.move_count == 0

    def test_q_is_symmetric(self, slam_map):
        """Test the state perturbation is symmetric for any symmetric control covariance"""
        rng = np.random.default_rng(3)
        robot = RobotOdometry2D(slam_map)
        A = rng.normal(size=(2, 2))
        robot.control.P = A @ A.T
        robot.XNEW_control = rng.normal(size=(3, 2))

        Q = robot.compute_state_perturbation()

        np.testing.assert_allclose(Q, Q.T, atol=1e-12)
        assert np.all(np.linalg.eigvalsh(Q) >= -1e-12)
        assert Q is robot.Q

    def test_constant_perturbation_is_reused(self, slam_map):
        """Test move() keeps Q unchanged when the perturbation is constant"""
        robot = Integrator1D(slam_map)
        robot.control.P = [[0.04]]
        robot.XNEW_control = np.eye(1)
        robot.compute_state_perturbation()
        robot.constant_perturbation = True

        # a different control covariance must not leak into Q
        robot.control.P = [[9.0]]
        for _ in range(3):
            robot.move()
            np.testing.assert_allclose(robot.Q, [[0.04]])

        np.testing.assert_allclose(robot.pose.P, [[0.12]])

    def test_constant_perturbation_assigned_directly(self, slam_map):
        """Test a directly assigned Q is used as is"""
        robot = Integrator1D(slam_map)
        robot.Q = np.array([[0.5]])
        robot.constant_perturbation = True

        robot.move()

        np.testing.assert_allclose(robot.pose.P, [[0.5]])

    def test_cross_covariance_mapped_without_noise(self, slam_map):
        """Test robot-landmark cross-covariance is J·P_ro with no noise added"""
        robot = RobotOdometry2D(slam_map)
        robot.setup()
        landmark = Landmark(slam_map, size=2)

        robot.pose.x = [1.0, 2.0, 0.3]
        robot.pose.P = np.diag([0.1, 0.2, 0.05])
        landmark.state.x = [4.0, 5.0]
        landmark.state.P = np.diag([0.3, 0.4])
        C = np.array([[0.01, 0.0], [0.0, 0.02], [0.005, 0.003]])
        slam_map.P[np.ix_(robot.indices, landmark.indices)] = C
        slam_map.P[np.ix_(landmark.indices, robot.indices)] = C.T

        robot.move(np.array([0.5, 0.1]))

        J = robot.XNEW_x
        P_ro = slam_map.cross_covariance(robot.indices, landmark.indices)
        P_or = slam_map.cross_covariance(landmark.indices, robot.indices)
        np.testing.assert_allclose(P_ro, J @ C, atol=1e-15)
        np.testing.assert_allclose(P_or, P_ro.T, atol=1e-15)
        np.testing.assert_allclose(landmark.state.P, np.diag([0.3, 0.4]))
        np.testing.assert_allclose(landmark.state.x, [4.0, 5.0])

        expected_rr = J @ np.diag([0.1, 0.2, 0.05]) @ J.T + robot.Q
        np.testing.assert_allclose(robot.pose.P, expected_rr, atol=1e-15)

    def test_joint_covariance_stays_symmetric(self, slam_map):
        """Test many steps keep the joint covariance symmetric and PSD"""
        robot = RobotOdometry2D(slam_map)
        robot.setup()
        for k in range(3):
            landmark = Landmark(slam_map)
            landmark.state.P = np.eye(2) * (k + 1)
        robot.pose.P = np.eye(3) * 0.01

        for _ in range(50):
            robot.move(np.array([0.2, 0.05]))

        assert slam_map.is_symmetric()
        assert slam_map.is_positive_semidefinite()

    def test_bad_model_output_fails_before_mutation(self, slam_map):
        """Test a model returning wrong shapes leaves robot and map untouched"""
        robot = BrokenModelRobot(slam_map)
        robot.pose.x = [1.0, 2.0]
        robot.pose.P = np.eye(2)
        P_before = slam_map.P.copy()

        with pytest.raises(DimensionMismatch):
            robot.move()

        np.testing.assert_allclose(robot.pose.x, [1.0, 2.0])
        np.testing.assert_allclose(slam_map.P, P_before)
        np.testing.assert_allclose(robot.XNEW_x, np.eye(2))
        assert robot.move_count == 0

    def test_bad_jacobian_fails_before_mutation(self, slam_map):
        """Test a control Jacobian of the wrong shape is caught"""
        robot = BrokenJacobianRobot(slam_map)

        with pytest.raises(DimensionMismatch) as excinfo:
            robot.move()

        assert excinfo.value.what == "XNEW_control"
        np.testing.assert_allclose(robot.pose.x, [0.0, 0.0])

    def test_bad_constant_q_fails_before_mutation(self, slam_map):
        """Test a constant Q of the wrong size is caught by the map"""
        robot = Integrator1D(slam_map)
        robot.control.x = [1.0]
        robot.Q = np.eye(2)
        robot.constant_perturbation = True

        with pytest.raises(DimensionMismatch):
            robot.move()

        np.testing.assert_allclose(robot.pose.x, [0.0])
        assert robot.move_count == 0

    def test_removed_robot_cannot_move(self, slam_map):
        """Test moving a robot that left its map is refused"""
        robot = Integrator1D(slam_map)
        slam_map.remove_object(robot)

        with pytest.raises(UnknownObject):
            robot.move(np.array([1.0]))
        assert robot.move_count == 0

    def test_removed_robot_leaves_reused_slot_alone(self, slam_map):
        """Test a removed robot cannot write into an object now owning its old slot"""
        robot = Integrator1D(slam_map)
        robot.control.P = [[0.5]]
        old_indices = robot.indices.copy()
        slam_map.remove_object(robot)

        landmark = Landmark(slam_map, size=1)
        landmark.state.x = [7.0]
        landmark.state.P = [[0.3]]
        np.testing.assert_array_equal(landmark.indices, old_indices)

        with pytest.raises(UnknownObject):
            robot.move(np.array([1.0]))

        np.testing.assert_allclose(landmark.state.x, [7.0])
        np.testing.assert_allclose(landmark.state.P, [[0.3]])
        np.testing.assert_allclose(robot.control.x, [0.0])

    def test_state_dict(self, slam_map):
        """Test the diagnostic dictionary reflects the robot"""
        robot = RobotConstantVelocity(slam_map, dimension=2, name="cv")
        robot.setup()
        robot.move()

        state = robot.get_state_dict()

        assert state['name'] == "cv"
        assert state['move_count'] == 1
        assert len(state['pose']) == 4
        assert state['constant_perturbation'] is True
        assert state['perturbation_trace'] > 0
        assert 'ROBOT' in str(robot)


class TestSensorLinks:
    """Test robot-sensor links and per-cycle sensor exploration"""

    def test_link_to_sensor_records_both_sides(self, slam_map):
        """Test linking writes the sensor id on the robot and the robot id on the sensor"""
        robot = Integrator1D(slam_map)
        sensor = CallbackSensor(slam_map)

        robot.link_to_sensor(sensor)

        assert robot.sensors == {sensor.id}
        assert sensor.robot_id == robot.id
        assert sensor.robot is robot

    def test_link_to_sensor_is_idempotent(self, slam_map):
        """Test linking the same sensor twice keeps one entry"""
        robot = Integrator1D(slam_map)
        sensor = CallbackSensor(slam_map)

        robot.link_to_sensor(sensor)
        robot.link_to_sensor(sensor)

        assert robot.sensors == {sensor.id}

    def test_sensor_moves_between_robots(self, slam_map):
        """Test relinking a sensor removes it from its previous robot"""
        first = Integrator1D(slam_map)
        second = Integrator1D(slam_map)
        sensor = CallbackSensor(slam_map)

        first.link_to_sensor(sensor)
        second.link_to_sensor(sensor)

        assert sensor.id not in first.sensors
        assert second.sensors == {sensor.id}
        assert sensor.robot is second

    def test_link_to_sensor_of_other_map_rejected(self, slam_map):
        """Test a sensor of another map cannot be mounted"""
        robot = Integrator1D(slam_map)
        sensor = CallbackSensor(SlamMap(MapConfiguration(max_size=5)))

        with pytest.raises(ValueError):
            robot.link_to_sensor(sensor)
        assert robot.sensors == set()

    def test_explore_sensors_in_registration_order(self, slam_map):
        """Test each linked sensor is processed once, in registration order"""
        calls = []
        robot = Integrator1D(slam_map)
        first = CallbackSensor(slam_map, callback=lambda s: calls.append(s.name), name="first")
        second = CallbackSensor(slam_map, callback=lambda s: calls.append(s.name), name="second")
        unlinked = CallbackSensor(slam_map, callback=lambda s: calls.append(s.name), name="unlinked")

        robot.link_to_sensor(second)
        robot.link_to_sensor(first)
        robot.explore_sensors()

        assert calls == ["first", "second"]
        assert first.cycle_count == 1
        assert second.cycle_count == 1
        assert unlinked.cycle_count == 0

    def test_explore_sensors_without_sensors(self, slam_map):
        """Test exploring with no sensors is a no-op"""
        robot = Integrator1D(slam_map)
        robot.explore_sensors()
        assert robot.sensors == set()

    def test_sensor_callback_reads_robot_pose(self, slam_map):
        """Test a sensor sees the pose predicted in the same cycle"""
        robot = Integrator1D(slam_map)
        sensor = CallbackSensor(slam_map, callback=lambda s: float(s.robot.pose.x[0]))
        robot.link_to_sensor(sensor)

        robot.move(np.array([1.5]))
        robot.explore_sensors()

        assert sensor.last_result == 1.5
