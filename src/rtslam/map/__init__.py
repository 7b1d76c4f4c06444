"""
Shared SLAM map: joint state storage and map-resident objects.
"""

from .slam_map import SlamMap, MapConfiguration, MapDiagnostics
from .map_object import MapObject, Landmark

__all__ = [
    "SlamMap",
    "MapConfiguration",
    "MapDiagnostics",
    "MapObject",
    "Landmark"
]
