"""
Gaussian representation of estimated quantities.

A Gaussian is the pair (x, P) of a mean vector and a symmetric covariance
matrix describing a normally distributed estimate:

    X ~ N(x, P),   x ∈ ℝⁿ,   P ∈ ℝⁿˣⁿ,   P = Pᵀ ⪰ 0

Two storage flavours share one interface:

    Local:  the Gaussian owns its own arrays (controls, perturbations,
            continuous-time specifications).
    Remote: the Gaussian is a window over a slot of a map's joint mean and
            covariance (robot pose, landmark state). Reading returns the
            current values of the slot; writing goes straight into the map.

Symmetry and positive semi-definiteness of P are required by every consumer
but not enforced on assignment. Shapes, on the other hand, are always checked:
assigning a mean or covariance of the wrong size raises DimensionMismatch and
leaves the Gaussian untouched.
"""

from typing import Optional, Sequence, Union

import numpy as np

from ..errors import DimensionMismatch, check_shape


ArrayLike = Union[np.ndarray, Sequence[float]]


class Gaussian:
    """
    Local Gaussian with its own mean vector and covariance matrix.

    Properties return copies, so the stored values can only be changed through
    the setters, which validate the shape.

    Attributes:
        size: Dimension n of the mean vector
    """

    def __init__(self, size: int):
        """
        Create a zero-mean, zero-covariance Gaussian.

        Args:
            size: Dimension of the mean vector

        Raises:
            ValueError: If size is negative
        """
        if size < 0:
            raise ValueError(f"Gaussian size must be non-negative, got {size}")
        self._size = int(size)
        self._x = np.zeros(self._size)
        self._P = np.zeros((self._size, self._size))

    @classmethod
    def from_mean_and_covariance(cls, x: ArrayLike, P: ArrayLike) -> 'Gaussian':
        """
        Build a local Gaussian from explicit mean and covariance.

        Args:
            x: Mean vector of length n
            P: n×n covariance matrix

        Returns:
            New Gaussian holding copies of x and P

        Raises:
            DimensionMismatch: If P is not n×n
        """
        x = np.asarray(x, dtype=float)
        if x.ndim != 1:
            raise DimensionMismatch("x", ("n",), x.shape)
        gaussian = cls(x.shape[0])
        gaussian.x = x
        gaussian.P = P
        return gaussian

    @property
    def size(self) -> int:
        """Dimension of the mean vector."""
        return self._size

    @property
    def x(self) -> np.ndarray:
        """Copy of the mean vector."""
        return self._get_x()

    @x.setter
    def x(self, value: ArrayLike) -> None:
        value = np.asarray(value, dtype=float)
        check_shape("x", value, (self.size,))
        self._set_x(value)

    @property
    def P(self) -> np.ndarray:
        """Copy of the covariance matrix."""
        return self._get_P()

    @P.setter
    def P(self, value: ArrayLike) -> None:
        value = np.asarray(value, dtype=float)
        check_shape("P", value, (self.size, self.size))
        self._set_P(value)

    # Storage hooks, overridden by RemoteGaussian
    def _get_x(self) -> np.ndarray:
        return self._x.copy()

    def _set_x(self, value: np.ndarray) -> None:
        self._x = value.copy()

    def _get_P(self) -> np.ndarray:
        return self._P.copy()

    def _set_P(self, value: np.ndarray) -> None:
        self._P = value.copy()

    def std(self) -> np.ndarray:
        """
        Standard deviations of the individual components.

        Returns:
            sqrt(diag(P)), with tiny negative diagonals from round-off clipped to zero
        """
        return np.sqrt(np.clip(np.diag(self.P), 0.0, None))

    def is_symmetric(self, tolerance: float = 1e-9) -> bool:
        """Check P = Pᵀ to an absolute tolerance."""
        P = self.P
        return bool(np.allclose(P, P.T, rtol=0.0, atol=tolerance))

    def copy(self) -> 'Gaussian':
        """Local, independent copy of this Gaussian."""
        return Gaussian.from_mean_and_covariance(self.x, self.P)

    def __str__(self) -> str:
        with np.printoptions(precision=4, suppress=True):
            return f"{type(self).__name__}(size={self.size}, x={self.x}, std={self.std()})"


class RemoteGaussian(Gaussian):
    """
    Gaussian stored in a slot of a shared joint mean/covariance.

    The owner of the joint storage is any object exposing ``x`` (vector) and
    ``P`` (square matrix) numpy arrays, in practice a SlamMap. The slot is a
    fixed set of indices into them. Only the diagonal block P[ia, ia] is
    visible through this view; cross-covariances with other slots belong to
    the storage owner.

    Attributes:
        storage: Owner of the joint arrays
        indices: Indices of this Gaussian inside the joint arrays
    """

    def __init__(self, storage, indices: ArrayLike):
        indices = np.asarray(indices, dtype=int)
        if indices.ndim != 1:
            raise DimensionMismatch("indices", ("n",), indices.shape)
        # no local arrays: mean and covariance live in the storage
        self._size = int(indices.shape[0])
        self.storage = storage
        self.indices = indices

    def _get_x(self) -> np.ndarray:
        return self.storage.x[self.indices]

    def _set_x(self, value: np.ndarray) -> None:
        self.storage.x[self.indices] = value

    def _get_P(self) -> np.ndarray:
        return self.storage.P[np.ix_(self.indices, self.indices)]

    def _set_P(self, value: np.ndarray) -> None:
        self.storage.P[np.ix_(self.indices, self.indices)] = value


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """Return (M + Mᵀ) / 2."""
    return (matrix + matrix.T) * 0.5


def as_vector(what: str, value: ArrayLike, size: Optional[int] = None) -> np.ndarray:
    """
    Convert to a float vector and check its length.

    Args:
        what: Label for error messages
        value: Array-like input
        size: Required length, or None to only require 1-D

    Raises:
        DimensionMismatch: If value is not a 1-D array of the required length
    """
    vector = np.asarray(value, dtype=float)
    if vector.ndim != 1 or (size is not None and vector.shape[0] != size):
        raise DimensionMismatch(what, (size if size is not None else "n",), vector.shape)
    return vector
