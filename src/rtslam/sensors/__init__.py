"""
Sensor collaborators linked to robots.
"""

from .sensor import SensorAbstract, CallbackSensor

__all__ = [
    "SensorAbstract",
    "CallbackSensor"
]
