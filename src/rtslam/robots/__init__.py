"""
Robots: the motion model contract, the generic prediction step and two
reference motion models.
"""

from .robot import RobotAbstract
from .odometry import RobotOdometry2D, OdometryNoiseParameters, wrap_angle
from .constant_velocity import RobotConstantVelocity, ConstantVelocityParameters

__all__ = [
    "RobotAbstract",
    "RobotOdometry2D",
    "OdometryNoiseParameters",
    "RobotConstantVelocity",
    "ConstantVelocityParameters",
    "wrap_angle"
]
