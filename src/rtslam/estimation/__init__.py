"""
Gaussian estimates and discrete/continuous-time controls.

This module provides the value types the filter works on: local and
map-resident Gaussians, and the Control Gaussian used as motion model input.
"""

from .gaussian import Gaussian, RemoteGaussian
from .control import Control

__all__ = [
    "Gaussian",
    "RemoteGaussian",
    "Control"
]
