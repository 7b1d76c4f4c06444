"""
Sensors attached to robots.

A sensor is registered in the map like every other object and linked to at
most one robot. The link is recorded on both sides as a registry id; neither
side owns the other. Once per filter cycle the robot calls each linked
sensor's process() entry point, which is where acquisition, observation and
correction happen. None of that is defined here.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SensorAbstract(ABC):
    """
    Base class for sensors.

    Attributes:
        slam_map: Map the sensor is registered in
        id: Registry id assigned by the map
        name: Optional human-readable name
        robot_id: Id of the robot the sensor is mounted on, or None
    """

    def __init__(self, slam_map, name: Optional[str] = None):
        """
        Register the sensor in a map.

        Args:
            slam_map: Map that owns the sensor
            name: Optional name used in logs
        """
        self.slam_map = slam_map
        self.id: Optional[int] = None
        self.name = name
        self.robot_id: Optional[int] = None
        slam_map.add_sensor(self)

    @property
    def label(self) -> str:
        return self.name or f"{type(self).__name__}#{self.id}"

    @property
    def robot(self):
        """Robot the sensor is linked to, resolved through the map."""
        if self.robot_id is None:
            return None
        return self.slam_map.get_object(self.robot_id)

    def link_to_robot(self, robot) -> None:
        """
        Record the robot this sensor is mounted on.

        Only the sensor side is written; use robot.link_to_sensor() to link
        both ends.
        """
        if self.robot_id is not None and self.robot_id != robot.id:
            logger.info(f"Sensor {self.label} moved from robot {self.robot_id} to {robot.id}")
        self.robot_id = robot.id

    @abstractmethod
    def process(self) -> None:
        """Per-cycle processing entry point, called by robot.explore_sensors()."""

    def __str__(self) -> str:
        return f"{self.label} (robot {self.robot_id})"


class CallbackSensor(SensorAbstract):
    """
    Sensor whose per-cycle processing is a user-supplied callable.

    The callable receives the sensor itself and may read the robot's pose or
    the map through it.

    Attributes:
        callback: Callable invoked by process(), or None for a no-op
        cycle_count: Number of completed process() calls
        last_result: Return value of the last callback invocation
    """

    def __init__(self, slam_map, callback: Optional[Callable[['CallbackSensor'], Any]] = None,
                 name: Optional[str] = None):
        super().__init__(slam_map, name)
        self.callback = callback
        self.cycle_count = 0
        self.last_result: Any = None

    def process(self) -> None:
        if self.callback is not None:
            self.last_result = self.callback(self)
        self.cycle_count += 1
        logger.debug(f"Sensor {self.label} processed cycle {self.cycle_count}")
