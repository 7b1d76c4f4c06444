"""
rtslam: Prediction core of an EKF-SLAM filter

A scientific Python package for the motion side of real-time simultaneous
localization and mapping: robots carry a Gaussian pose inside a shared map,
and every control input propagates that pose, and its correlations with
every other map object, through a linearized motion model.

This package implements:
- Gaussian estimates and discrete/continuous-time control Gaussians
- The motion model contract every robot type implements
- The generic EKF prediction step with joint covariance propagation
- A joint state map with slot allocation and an object registry
- Sensor links and per-cycle sensor exploration
- Reference odometry and constant-velocity robots
"""

from .errors import DimensionMismatch, NotInitialized, MapFull, UnknownObject, RtSlamError
from .estimation import Gaussian, RemoteGaussian, Control
from .map import SlamMap, MapConfiguration, MapObject, Landmark
from .robots import RobotAbstract, RobotOdometry2D, RobotConstantVelocity
from .sensors import SensorAbstract, CallbackSensor

# Optional visualization import (graceful failure if not available)
try:
    from .visualization import PoseHistoryPlotter
    _has_visualization = True
except ImportError:
    PoseHistoryPlotter = None
    _has_visualization = False

__version__ = "1.0.0"

__all__ = [
    "RtSlamError",
    "DimensionMismatch",
    "NotInitialized",
    "MapFull",
    "UnknownObject",
    "Gaussian",
    "RemoteGaussian",
    "Control",
    "SlamMap",
    "MapConfiguration",
    "MapObject",
    "Landmark",
    "RobotAbstract",
    "RobotOdometry2D",
    "RobotConstantVelocity",
    "SensorAbstract",
    "CallbackSensor"
]

# Add visualization to __all__ only if available
if _has_visualization:
    __all__.append("PoseHistoryPlotter")
