"""
Discrete-time control and perturbation Gaussians.

A Control is a Gaussian with a time interval dt attached. It represents the
input applied to a motion model during one filter step:

    - The mean x is the deterministic part of the control.
    - The covariance P encodes the random character of the perturbation.

Motion models are often specified in continuous time, while the filter works in
discrete steps. A Control can therefore also hold continuous-time values
(x_ct, P_ct) and convert them to discrete time for a given dt:

    x  = x_ct · dt     deterministic input integrates linearly with time
    P  = P_ct · dt     white noise variance integrates linearly with time
                       (its standard deviation grows with √dt)

The continuous values are typically set once at setup time and reused for
every step while dt varies. The conversion is never re-applied on its own when
dt changes; callers invoke it explicitly.
"""

from typing import Optional

import numpy as np

from ..errors import DimensionMismatch, NotInitialized, check_shape
from .gaussian import ArrayLike, Gaussian


class Control(Gaussian):
    """
    Gaussian control vector with a time interval.

    Attributes:
        dt: Time interval of the step this control applies to (seconds)
    """

    def __init__(self, size: int, dt: float = 1.0):
        """
        Create a zero control of the given size.

        Args:
            size: Dimension of the control vector
            dt: Time interval (defaults to 1.0)
        """
        super().__init__(size)
        self.dt = float(dt)
        self._x_ct: Optional[np.ndarray] = None
        self._P_ct: Optional[np.ndarray] = None

    @classmethod
    def from_gaussian(cls, gaussian: Gaussian, dt: float = 1.0) -> 'Control':
        """
        Copy-construct a control from any Gaussian.

        Args:
            gaussian: Source mean and covariance
            dt: Time interval (defaults to 1.0)
        """
        control = cls(gaussian.size, dt)
        control.x = gaussian.x
        control.P = gaussian.P
        return control

    @property
    def x_continuous(self) -> Optional[np.ndarray]:
        """Continuous-time control vector, or None if never set."""
        return None if self._x_ct is None else self._x_ct.copy()

    @property
    def P_continuous(self) -> Optional[np.ndarray]:
        """Continuous-time covariance matrix, or None if never set."""
        return None if self._P_ct is None else self._P_ct.copy()

    def set_continuous_covariance(self, P_ct: ArrayLike) -> None:
        """
        Store the continuous-time perturbation covariance.

        The discrete covariance P is not modified.

        Raises:
            DimensionMismatch: If P_ct is not size×size
        """
        P_ct = np.asarray(P_ct, dtype=float)
        check_shape("P_ct", P_ct, (self.size, self.size))
        self._P_ct = P_ct.copy()

    def set_continuous_mean(self, x_ct: ArrayLike) -> None:
        """
        Store the continuous-time control vector.

        The discrete mean x is not modified.

        Raises:
            DimensionMismatch: If x_ct does not have length size
        """
        x_ct = np.asarray(x_ct, dtype=float)
        check_shape("x_ct", x_ct, (self.size,))
        self._x_ct = x_ct.copy()

    def convert_covariance_from_continuous(self, dt: float, *, P_ct: Optional[ArrayLike] = None) -> None:
        """
        Discrete perturbation from the continuous specification: P = P_ct · dt.

        Args:
            dt: Time interval to integrate over
            P_ct: Optional new continuous-time covariance, stored before converting

        Raises:
            DimensionMismatch: If P_ct is given with the wrong shape
            NotInitialized: If no continuous covariance is available
            ValueError: If dt is negative
        """
        _check_interval(dt)
        if P_ct is not None:
            self.set_continuous_covariance(P_ct)
        if self._P_ct is None:
            raise NotInitialized("Continuous-time covariance not yet initialized")
        self.P = self._P_ct * dt

    def convert_from_continuous(self, dt: float, source: Optional[Gaussian] = None) -> None:
        """
        Discrete control and perturbation from the continuous specification.

            x = x_ct · dt
            P = P_ct · dt

        and dt is recorded on the control.

        Args:
            dt: Time interval to integrate over
            source: Optional Gaussian holding the continuous mean and
                    covariance; it replaces the stored continuous values

        Raises:
            DimensionMismatch: If source has a different size
            NotInitialized: If continuous mean or covariance was never set
            ValueError: If dt is negative
        """
        _check_interval(dt)
        if source is not None:
            if source.size != self.size:
                raise DimensionMismatch("source", (self.size,), (source.size,))
            self.set_continuous_covariance(source.P)
            self.set_continuous_mean(source.x)
        if self._x_ct is None:
            raise NotInitialized("Continuous-time control vector not yet initialized")
        if self._P_ct is None:
            raise NotInitialized("Continuous-time covariance not yet initialized")
        self.x = self._x_ct * dt
        self.P = self._P_ct * dt
        self.dt = float(dt)

    def copy(self) -> 'Control':
        """Independent copy including dt and the continuous-time values."""
        control = Control(self.size, self.dt)
        control.x = self.x
        control.P = self.P
        control._x_ct = self.x_continuous
        control._P_ct = self.P_continuous
        return control

    def __str__(self) -> str:
        with np.printoptions(precision=4, suppress=True):
            return f"Control(size={self.size}, dt={self.dt:.4f}, x={self.x}, std={self.std()})"


def _check_interval(dt: float) -> None:
    if dt < 0:
        raise ValueError(f"Time interval must be non-negative, got {dt}")
