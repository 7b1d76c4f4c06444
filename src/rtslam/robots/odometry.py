"""
Planar odometry robot.

The robot moves on a plane with state [x, y, yaw] and is driven by odometry
increments u = [dx, dyaw] measured in the robot frame over one step: dx is the
forward displacement, dyaw the heading change.

Motion model:
    x'   = x + dx · cos(yaw)
    y'   = y + dx · sin(yaw)
    yaw' = yaw + dyaw            (wrapped to [-π, π))

Jacobians:
              ⎡ 1  0  -dx·sin(yaw) ⎤             ⎡ cos(yaw)  0 ⎤
    XNEW_x =  ⎢ 0  1   dx·cos(yaw) ⎥   XNEW_u =  ⎢ sin(yaw)  0 ⎥
              ⎣ 0  0        1      ⎦             ⎣    0      1 ⎦

The increments are already integrated quantities, so dt does not enter the
model. Their uncertainty is given per step.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .robot import RobotAbstract, MotionResult


def wrap_angle(angle):
    """Wrap angle(s) to [-π, π)."""
    return np.mod(angle + np.pi, 2 * np.pi) - np.pi


@dataclass
class OdometryNoiseParameters:
    """
    Per-step odometry noise.

    Attributes:
        translation_std: Standard deviation of dx [m]
        rotation_std: Standard deviation of dyaw [rad]
    """
    translation_std: float = 0.01
    rotation_std: float = 0.005

    def __post_init__(self):
        """Validate noise parameters."""
        if self.translation_std < 0:
            raise ValueError(f"Translation noise must be non-negative, got {self.translation_std}")
        if self.rotation_std < 0:
            raise ValueError(f"Rotation noise must be non-negative, got {self.rotation_std}")


class RobotOdometry2D(RobotAbstract):
    """Planar robot driven by odometry increments [dx, dyaw]."""

    SIZE_STATE = 3
    SIZE_CONTROL = 2

    def __init__(self, slam_map, name: Optional[str] = None):
        super().__init__(slam_map, self.SIZE_STATE, self.SIZE_CONTROL, name)

    def setup(self, noise: Optional[OdometryNoiseParameters] = None) -> None:
        """
        Set the control covariance from per-step odometry noise.

        Args:
            noise: Odometry noise parameters
        """
        noise = noise or OdometryNoiseParameters()
        self.control.P = np.diag([noise.translation_std ** 2, noise.rotation_std ** 2])

    def move_func(self, x: np.ndarray, u: np.ndarray, dt: float) -> MotionResult:
        px, py, yaw = x
        dx, dyaw = u
        cos_yaw = np.cos(yaw)
        sin_yaw = np.sin(yaw)

        x_new = np.array([
            px + dx * cos_yaw,
            py + dx * sin_yaw,
            wrap_angle(yaw + dyaw)
        ])

        XNEW_x = np.eye(3)
        XNEW_x[0, 2] = -dx * sin_yaw
        XNEW_x[1, 2] = dx * cos_yaw

        XNEW_u = np.array([
            [cos_yaw, 0.0],
            [sin_yaw, 0.0],
            [0.0, 1.0]
        ])

        return x_new, XNEW_x, XNEW_u
