"""
Abstract robot: motion model contract and EKF prediction step.

A robot is a map-resident object whose state (its pose, in a broad sense:
position, orientation, velocities, biases...) evolves with a control input.
Every concrete robot implements one motion model

    x_new = f(x, u, dt)

together with its Jacobians

    XNEW_x = ∂f/∂x   (n×n)
    XNEW_u = ∂f/∂u   (n×m)

evaluated at the current estimate. Everything else, the prediction step of
the filter, is generic and lives here.

Prediction step (move):
    x_r  ← f(x_r, u, dt)
    Q    = XNEW_u · P_u · XNEW_uᵀ          (skipped if the perturbation is constant)
    P_rr ← XNEW_x · P_rr · XNEW_xᵀ + Q
    P_ro ← XNEW_x · P_ro                    for every other object o in the map

The process noise Q is robot-local randomness: it enters the robot's own
covariance block only, while the cross-covariances with the rest of the map
are just mapped through XNEW_x. The covariance part is delegated to the map,
which owns the joint matrix.

Failure semantics:
    Shape errors are detected before anything is written. A move() that
    raises leaves the pose, the Jacobians, Q and the map untouched.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set, Tuple, Union

import numpy as np

from ..errors import DimensionMismatch, UnknownObject, check_shape
from ..estimation import Control, Gaussian
from ..estimation.gaussian import ArrayLike, as_vector
from ..map import MapObject

logger = logging.getLogger(__name__)

MotionResult = Tuple[np.ndarray, np.ndarray, np.ndarray]


class RobotAbstract(MapObject, ABC):
    """
    Base class for all robots.

    Attributes:
        size_state: Dimension n of the robot state (fixed)
        size_control: Dimension m of the control vector (fixed)
        pose: Robot state Gaussian, a view of the robot's slot in the map
        control: Current control input
        XNEW_x: Jacobian of the new state wrt the old state (n×n)
        XNEW_control: Jacobian of the new state wrt the control (n×m)
        Q: Process noise in state space (n×n), valid once computed
        constant_perturbation: If True, Q is not recomputed by move()
        sensors: Ids of the sensors mounted on this robot

    Constant perturbation:
        Set ``constant_perturbation`` when Q does not change between steps and
        compute Q once right after construction, either by filling
        XNEW_control and control.P and calling compute_state_perturbation(),
        or by assigning Q directly. move() then reuses Q as is.
    """

    def __init__(self, slam_map, size_state: int, size_control: int, name: Optional[str] = None):
        """
        Reserve the robot's slot in a map and register the robot there.

        Args:
            slam_map: Map that will hold the robot state
            size_state: Size of the robot state vector
            size_control: Size of the control vector
            name: Optional name used in logs

        Raises:
            ValueError: If a size is negative
            MapFull: If the map has no room for the robot state
        """
        if size_state < 0 or size_control < 0:
            raise ValueError(f"Robot sizes must be non-negative, got state={size_state}, control={size_control}")

        super().__init__(slam_map, size_state, name)

        self.size_state = size_state
        self.size_control = size_control

        self.control = Control(size_control)
        self.XNEW_x = np.eye(size_state)
        self.XNEW_control = np.zeros((size_state, size_control))
        self.Q = np.zeros((size_state, size_state))
        self.constant_perturbation = False

        self.sensors: Set[int] = set()
        self._move_count = 0

        self.link_to_map(slam_map)

    @property
    def pose(self) -> Gaussian:
        """Robot state Gaussian (alias of the map-resident state)."""
        return self.state

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def link_to_map(self, slam_map) -> None:
        """
        Register the robot in its map.

        Calling it again with the same map is a no-op.

        Raises:
            ValueError: If slam_map is not the map holding the robot's state slot
        """
        if slam_map is not self.slam_map:
            raise ValueError(f"Robot {self.label} has its state in another map")
        slam_map.add_robot(self)

    def link_to_sensor(self, sensor) -> None:
        """
        Mount a sensor on this robot, recording the link on both sides.

        A sensor mounted elsewhere is moved here. Linking the same sensor
        twice is a no-op.

        Raises:
            ValueError: If the sensor belongs to another map
        """
        if sensor.slam_map is not self.slam_map:
            raise ValueError(f"Sensor {sensor.label} belongs to another map")

        previous = sensor.robot
        if previous is not None and previous is not self:
            previous.sensors.discard(sensor.id)

        self.sensors.add(sensor.id)
        sensor.link_to_robot(self)
        logger.info(f"Sensor {sensor.label} linked to robot {self.label}")

    def explore_sensors(self) -> None:
        """
        Run the per-cycle processing of every mounted sensor.

        Sensors are visited in ascending id order, that is in the order they
        were registered in the map.
        """
        for sensor_id in sorted(self.sensors):
            self.slam_map.get_object(sensor_id).process()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def set_control(self, control: Gaussian) -> None:
        """
        Replace the control input with a copy of ``control``.

        Mean, covariance, dt and continuous-time values are all taken from
        the argument. A plain Gaussian is accepted and gets dt = 1.0.

        Raises:
            DimensionMismatch: If control.size differs from size_control
        """
        if control.size != self.size_control:
            raise DimensionMismatch("control", (self.size_control,), (control.size,))
        if isinstance(control, Control):
            self.control = control.copy()
        else:
            self.control = Control.from_gaussian(control)

    # ------------------------------------------------------------------
    # Motion model
    # ------------------------------------------------------------------

    @abstractmethod
    def move_func(self, x: np.ndarray, u: np.ndarray, dt: float) -> MotionResult:
        """
        Predict the robot state one step of length dt ahead.

        Implement this in every derived class. It must be pure: read x, u and
        dt, return new values, and touch nothing else.

        Args:
            x: Current state vector (n,)
            u: Control vector (m,)
            dt: Time interval

        Returns:
            Tuple (x_new, XNEW_x, XNEW_u) with shapes (n,), (n, n), (n, m)
        """

    def _move_func(self) -> MotionResult:
        """Evaluate the motion model on the robot's own pose and control."""
        return self.move_func(self.pose.x, self.control.x, self.control.dt)

    @staticmethod
    def _state_perturbation(XNEW_control: np.ndarray, control_covariance: np.ndarray) -> np.ndarray:
        return XNEW_control @ control_covariance @ XNEW_control.T

    def compute_state_perturbation(self) -> np.ndarray:
        """
        Compute the process noise Q in state space.

        Implements:
            Q = XNEW_control · control.P · XNEW_controlᵀ

        XNEW_control and control.P must already hold meaningful values; this
        is not checked.

        Returns:
            The new Q
        """
        self.Q = self._state_perturbation(self.XNEW_control, self.control.P)
        return self.Q

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def move(self, control: Union[None, Gaussian, ArrayLike] = None) -> None:
        """
        Move one step ahead and update the SLAM filter.

        Updates the robot mean and covariance plus its cross-covariances with
        every other object in the map.

        Args:
            control: Optional new input. A Control (or Gaussian) replaces the
                     stored control as with set_control(); an array replaces
                     only the control mean. None reuses the stored control.

        Raises:
            DimensionMismatch: If the control or the motion model outputs have
                               the wrong size
            UnknownObject: If the robot has been removed from its map
        """
        if not self.slam_map.is_registered(self):
            raise UnknownObject(f"Robot {self.label} is no longer registered in its map")

        if isinstance(control, Gaussian):
            self.set_control(control)
        elif control is not None:
            self.control.x = as_vector("control.x", control, self.size_control)

        n, m = self.size_state, self.size_control

        x_new, XNEW_x, XNEW_u = self._move_func()
        x_new = np.asarray(x_new, dtype=float)
        XNEW_x = np.asarray(XNEW_x, dtype=float)
        XNEW_u = np.asarray(XNEW_u, dtype=float)
        check_shape("x_new", x_new, (n,))
        check_shape("XNEW_x", XNEW_x, (n, n))
        check_shape("XNEW_control", XNEW_u, (n, m))

        if self.constant_perturbation:
            Q = self.Q
        else:
            Q = self._state_perturbation(XNEW_u, self.control.P)

        # propagate() validates before writing, so a failure here leaves
        # the robot and the map as they were
        self.slam_map.propagate(self.indices, XNEW_x, Q)

        self.pose.x = x_new
        self.XNEW_x = XNEW_x
        self.XNEW_control = XNEW_u
        self.Q = Q
        self._move_count += 1

        logger.debug(f"Robot {self.label} moved, dt={self.control.dt:.3f}s, step {self._move_count}")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @property
    def move_count(self) -> int:
        """Number of completed prediction steps."""
        return self._move_count

    def get_state_dict(self) -> Dict[str, Any]:
        """
        Get robot state and diagnostic information as a dictionary.

        Returns:
            Dictionary with pose, control and perturbation summaries
        """
        return {
            'id': self.id,
            'name': self.label,
            'indices': self.indices.tolist(),
            'pose': self.pose.x.tolist(),
            'pose_uncertainty': self.pose.std().tolist(),
            'control': self.control.x.tolist(),
            'control_uncertainty': self.control.std().tolist(),
            'dt': self.control.dt,
            'constant_perturbation': self.constant_perturbation,
            'perturbation_trace': float(np.trace(self.Q)),
            'sensors': sorted(self.sensors),
            'move_count': self._move_count
        }

    def __str__(self) -> str:
        with np.printoptions(precision=4, suppress=True):
            return (f"ROBOT {self.id} {type(self).__name__} '{self.label}'\n"
                    f"  pose:    x={self.pose.x}, std={self.pose.std()}\n"
                    f"  control: {self.control}\n"
                    f"  sensors: {sorted(self.sensors)}")
