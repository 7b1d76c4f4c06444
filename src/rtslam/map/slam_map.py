"""
Joint state storage of an EKF-SLAM filter.

The map owns one mean vector and one covariance matrix shared by every
estimated object:

    x = [x_1, x_2, ..., x_N]ᵀ

        ⎡ P_11  P_12  ...  P_1N ⎤
    P = ⎢ P_21  P_22  ...  P_2N ⎥
        ⎢  ...   ...  ...   ... ⎥
        ⎣ P_N1  P_N2  ...  P_NN ⎦

The diagonal blocks P_ii are the objects' own covariances, the off-diagonal
blocks their cross-covariances. Storage is pre-allocated to a maximum size;
objects reserve contiguous slots in it and give them back on removal.

Linearized propagation of one object:

    Given x_r ← f(x_r, u) with Jacobian J = ∂f/∂x_r and additive noise Q,

        P_rr ← J P_rr Jᵀ + Q
        P_ro ← J P_ro            for every other used slot o
        P_or ← P_roᵀ

    Blocks not involving r are untouched. The noise term Q is private to the
    propagated object and enters its diagonal block only.

Concurrency:
    The joint covariance has exactly one writer at a time. The map performs no
    locking; callers serialize all mutating calls on the same map.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import scipy.linalg

from ..errors import MapFull, UnknownObject, check_shape
from ..estimation.gaussian import symmetrize

logger = logging.getLogger(__name__)


@dataclass
class MapConfiguration:
    """
    Configuration parameters for a SlamMap.

    Attributes:
        max_size: Total number of scalar state slots in the joint state
        symmetry_tolerance: Absolute tolerance used by symmetry diagnostics
    """
    max_size: int = 100
    symmetry_tolerance: float = 1e-9

    def __post_init__(self):
        """Validate map parameters."""
        if self.max_size <= 0:
            raise ValueError(f"Map size must be positive, got {self.max_size}")
        if self.symmetry_tolerance < 0:
            raise ValueError(f"Symmetry tolerance must be non-negative, got {self.symmetry_tolerance}")


@dataclass
class MapDiagnostics:
    """Numerical health of the joint covariance over the used slots."""
    used_size: int
    free_size: int
    covariance_trace: float
    condition_number: float
    symmetric: bool
    positive_semidefinite: bool
    object_count: int


class SlamMap:
    """
    Joint mean/covariance storage with an id-keyed object registry.

    Robots, landmarks and sensors are registered under unique, monotonically
    increasing integer ids. Objects refer to each other through these ids and
    resolve them here, so the map is the only owner of every object's lifetime.

    Attributes:
        configuration: Map configuration parameters
        x: Joint mean vector (max_size,)
        P: Joint covariance matrix (max_size, max_size)
    """

    def __init__(self, configuration: Optional[MapConfiguration] = None):
        """
        Allocate empty joint storage.

        Args:
            configuration: Map configuration parameters
        """
        self.configuration = configuration or MapConfiguration()

        size = self.configuration.max_size
        self.x = np.zeros(size)
        self.P = np.zeros((size, size))
        self._used = np.zeros(size, dtype=bool)

        self._robots: Dict[int, object] = {}
        self._landmarks: Dict[int, object] = {}
        self._sensors: Dict[int, object] = {}
        self._next_id = 1

        logger.info(f"SLAM map created with {size} state slots")

    # ------------------------------------------------------------------
    # Slot management
    # ------------------------------------------------------------------

    @property
    def max_size(self) -> int:
        return self.configuration.max_size

    @property
    def used_size(self) -> int:
        return int(np.count_nonzero(self._used))

    @property
    def free_size(self) -> int:
        return self.max_size - self.used_size

    def used_indices(self) -> np.ndarray:
        """Ascending indices of all reserved slots."""
        return np.flatnonzero(self._used)

    def allocate(self, size: int) -> np.ndarray:
        """
        Reserve a contiguous slot of the joint state (first fit).

        The slot's mean and covariance rows/columns are zero on return.

        Args:
            size: Number of scalar states to reserve

        Returns:
            Ascending indices of the reserved slot

        Raises:
            ValueError: If size is negative
            MapFull: If no contiguous free run of that length exists
        """
        if size < 0:
            raise ValueError(f"Slot size must be non-negative, got {size}")
        if size == 0:
            return np.zeros(0, dtype=int)

        # Free runs are delimited by +1/-1 steps of the padded free mask
        free = np.concatenate(([0], (~self._used).astype(int), [0]))
        edges = np.flatnonzero(np.diff(free))
        starts, ends = edges[0::2], edges[1::2]
        fitting = np.flatnonzero(ends - starts >= size)
        if len(fitting) == 0:
            raise MapFull(size, self.free_size)

        run_start = int(starts[fitting[0]])
        indices = np.arange(run_start, run_start + size)
        self._used[indices] = True
        logger.debug(f"Allocated slot {run_start}:{run_start + size}")
        return indices

    def liberate(self, indices: Union[np.ndarray, Sequence[int]]) -> None:
        """
        Give a slot back and clear its mean and covariance rows/columns.

        Args:
            indices: Slot indices previously returned by allocate()
        """
        indices = np.asarray(indices, dtype=int)
        self.x[indices] = 0.0
        self.P[indices, :] = 0.0
        self.P[:, indices] = 0.0
        self._used[indices] = False
        logger.debug(f"Liberated {len(indices)} slots")

    # ------------------------------------------------------------------
    # Object registry
    # ------------------------------------------------------------------

    def _register(self, obj, registry: Dict[int, object]) -> int:
        if self.is_registered(obj):
            return obj.id
        obj.id = self._next_id
        self._next_id += 1
        registry[obj.id] = obj
        logger.info(f"Registered {type(obj).__name__} with id {obj.id}")
        return obj.id

    def add_robot(self, robot) -> int:
        """Register a robot; idempotent for an already registered robot."""
        return self._register(robot, self._robots)

    def add_landmark(self, landmark) -> int:
        """Register a landmark; idempotent for an already registered landmark."""
        return self._register(landmark, self._landmarks)

    def add_sensor(self, sensor) -> int:
        """Register a sensor; idempotent for an already registered sensor."""
        return self._register(sensor, self._sensors)

    def _lookup(self, object_id: int):
        for registry in (self._robots, self._landmarks, self._sensors):
            if object_id in registry:
                return registry[object_id]
        return None

    def is_registered(self, obj) -> bool:
        """True if ``obj`` itself is registered in this map under its id."""
        return obj.id is not None and self._lookup(obj.id) is obj

    def get_object(self, object_id: int):
        """
        Resolve an id to the registered object.

        Raises:
            UnknownObject: If no object with that id is registered
        """
        obj = self._lookup(object_id)
        if obj is None:
            raise UnknownObject(f"No object with id {object_id} in map")
        return obj

    def robots(self) -> List[object]:
        return list(self._robots.values())

    def landmarks(self) -> List[object]:
        return list(self._landmarks.values())

    def sensors(self) -> List[object]:
        return list(self._sensors.values())

    def remove_object(self, obj) -> None:
        """
        Unregister an object and free its state slot, if it has one.

        Links pointing to the removed object are dropped: a removed robot
        leaves its sensors unattached, a removed sensor disappears from its
        robot's sensor set.

        Raises:
            UnknownObject: If the object is not registered in this map
        """
        if not self.is_registered(obj):
            raise UnknownObject(f"{type(obj).__name__} is not registered in this map")

        if obj.id in self._robots:
            del self._robots[obj.id]
            for sensor_id in list(obj.sensors):
                sensor = self._sensors.get(sensor_id)
                if sensor is not None:
                    sensor.robot_id = None
            obj.sensors.clear()
        elif obj.id in self._landmarks:
            del self._landmarks[obj.id]
        else:
            del self._sensors[obj.id]
            if obj.robot_id is not None and obj.robot_id in self._robots:
                self._robots[obj.robot_id].sensors.discard(obj.id)

        indices = getattr(obj, "indices", None)
        if indices is not None:
            self.liberate(indices)

        logger.info(f"Removed {type(obj).__name__} with id {obj.id}")
        obj.id = None

    # ------------------------------------------------------------------
    # Covariance operations
    # ------------------------------------------------------------------

    def propagate(self, indices: Union[np.ndarray, Sequence[int]],
                  jacobian: np.ndarray, noise: np.ndarray) -> None:
        """
        Linearized propagation of one object's block and cross-blocks.

        Implements:
            P_rr ← J P_rr Jᵀ + Q
            P_ro ← J P_ro,  P_or ← P_roᵀ   for all other used slots

        The mean is not touched; the caller writes its new mean itself.

        Args:
            indices: Slot of the propagated object
            jacobian: J = ∂x_new/∂x, n×n
            noise: Additive noise Q for the object's own block, n×n

        Raises:
            DimensionMismatch: If J or Q is not n×n
            ValueError: If the slot is not (entirely) allocated
        """
        ia = np.asarray(indices, dtype=int)
        n = ia.shape[0]
        check_shape("jacobian", jacobian, (n, n))
        check_shape("noise", noise, (n, n))
        if not np.all(self._used[ia]):
            raise ValueError("Cannot propagate a slot that is not allocated")

        others = np.setdiff1d(self.used_indices(), ia)

        P_rr = self.P[np.ix_(ia, ia)]
        P_ro = self.P[np.ix_(ia, others)]

        new_rr = symmetrize(jacobian @ P_rr @ jacobian.T + noise)
        new_ro = jacobian @ P_ro

        self.P[np.ix_(ia, ia)] = new_rr
        self.P[np.ix_(ia, others)] = new_ro
        self.P[np.ix_(others, ia)] = new_ro.T

        logger.debug(f"Propagated block of size {n} against {len(others)} correlated states")

    def cross_covariance(self, indices_a: Sequence[int], indices_b: Sequence[int]) -> np.ndarray:
        """Copy of the block P[a, b]."""
        return self.P[np.ix_(np.asarray(indices_a, dtype=int), np.asarray(indices_b, dtype=int))]

    def used_covariance(self) -> np.ndarray:
        """Copy of the covariance restricted to the used slots."""
        used = self.used_indices()
        return self.P[np.ix_(used, used)]

    def get_condition_number(self) -> float:
        """
        Condition number κ(P) of the used part of the covariance.

        Returns:
            Condition number, inf if singular or if the computation fails
        """
        P = self.used_covariance()
        if P.size == 0:
            return 1.0
        try:
            return float(np.linalg.cond(P))
        except np.linalg.LinAlgError:
            return float('inf')

    def is_symmetric(self) -> bool:
        P = self.used_covariance()
        return bool(np.allclose(P, P.T, rtol=0.0, atol=self.configuration.symmetry_tolerance))

    def is_positive_semidefinite(self, tolerance: float = 1e-9) -> bool:
        """
        Check that all eigenvalues of the used covariance are ≥ -tolerance.

        Only meaningful for a symmetric matrix; the symmetric part is tested.
        """
        P = self.used_covariance()
        if P.size == 0:
            return True
        eigenvalues = scipy.linalg.eigvalsh(symmetrize(P))
        return bool(np.min(eigenvalues) >= -tolerance)

    def get_diagnostics(self) -> MapDiagnostics:
        """
        Generate diagnostics of the joint covariance.

        Returns:
            MapDiagnostics snapshot
        """
        symmetric = self.is_symmetric()
        if not symmetric:
            logger.warning("Joint covariance is not symmetric")
        return MapDiagnostics(
            used_size=self.used_size,
            free_size=self.free_size,
            covariance_trace=float(np.trace(self.used_covariance())),
            condition_number=self.get_condition_number(),
            symmetric=symmetric,
            positive_semidefinite=self.is_positive_semidefinite(),
            object_count=len(self._robots) + len(self._landmarks) + len(self._sensors)
        )
