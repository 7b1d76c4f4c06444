"""
Map-resident objects.

Every quantity estimated by the filter (robots, landmarks) lives in a slot of
the map's joint state vector. A MapObject owns nothing of that storage: it
records the indices of its slot and exposes them through a RemoteGaussian
view, so reading ``obj.state.x`` always returns the current joint estimate.
"""

from typing import Optional

import numpy as np

from ..estimation import RemoteGaussian


class MapObject:
    """
    Base class for objects whose state is stored in a SlamMap.

    The slot is reserved at construction and stays fixed for the object's
    lifetime; changing the state dimension requires a new object.

    Attributes:
        slam_map: Map holding the object's state (non-owning reference)
        id: Registry id assigned by the map, None until registered
        name: Optional human-readable name
        indices: Indices of the slot inside the joint state vector
        state: RemoteGaussian view of the slot
    """

    def __init__(self, slam_map, size: int, name: Optional[str] = None):
        """
        Reserve a state slot in the map.

        Args:
            slam_map: Map that will hold the state
            size: Dimension of the object's state vector
            name: Optional name used in logs

        Raises:
            MapFull: If the map has no room for the slot
        """
        self.slam_map = slam_map
        self.id: Optional[int] = None
        self.name = name
        self.indices: np.ndarray = slam_map.allocate(size)
        self.state = RemoteGaussian(slam_map, self.indices)

    @property
    def size(self) -> int:
        """Dimension of the object's state vector."""
        return self.state.size

    @property
    def label(self) -> str:
        """Name if set, otherwise class name and id."""
        return self.name or f"{type(self).__name__}#{self.id}"

    def __str__(self) -> str:
        with np.printoptions(precision=4, suppress=True):
            return (f"{self.label} at {self.indices.tolist()}: "
                    f"x={self.state.x}, std={self.state.std()}")


class Landmark(MapObject):
    """
    Plain map-resident landmark.

    Landmarks are only needed here as partners of the robot in the joint
    covariance; their parametrization, initialization and observation models
    are left to the application.
    """

    def __init__(self, slam_map, size: int = 2, name: Optional[str] = None):
        super().__init__(slam_map, size, name)
        slam_map.add_landmark(self)
