"""
Constant-velocity robot.

State [p, v] with p, v ∈ ℝᵈ (d = 1, 2 or 3). The control is a velocity
perturbation dv ∈ ℝᵈ, a zero-mean random walk specified in continuous time
by its spectral density and converted to discrete time for every step:

    p' = p + v · dt
    v' = v + dv

    XNEW_x = ⎡ I  I·dt ⎤      XNEW_u = ⎡ 0 ⎤
             ⎣ 0   I   ⎦               ⎣ I ⎦

With a fixed step length the whole perturbation is constant, so setup()
computes Q once and move() reuses it.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .robot import RobotAbstract, MotionResult


@dataclass
class ConstantVelocityParameters:
    """
    Process noise and timing of a constant-velocity robot.

    Attributes:
        velocity_noise_density: Velocity random walk density [m/s/√s]
        dt: Nominal step length [s]
        constant_perturbation: Compute Q once in setup() and reuse it
    """
    velocity_noise_density: float = 0.1
    dt: float = 0.1
    constant_perturbation: bool = True

    def __post_init__(self):
        """Validate parameters."""
        if self.velocity_noise_density < 0:
            raise ValueError(f"Noise density must be non-negative, got {self.velocity_noise_density}")
        if self.dt <= 0:
            raise ValueError(f"Step length must be positive, got {self.dt}")


class RobotConstantVelocity(RobotAbstract):
    """
    Constant-velocity robot in 1, 2 or 3 dimensions.

    Attributes:
        dimension: Spatial dimension d
    """

    def __init__(self, slam_map, dimension: int = 3, name: Optional[str] = None):
        if dimension not in (1, 2, 3):
            raise ValueError(f"Dimension must be 1, 2 or 3, got {dimension}")
        self.dimension = dimension
        super().__init__(slam_map, 2 * dimension, dimension, name)

    def setup(self, parameters: Optional[ConstantVelocityParameters] = None) -> None:
        """
        Configure the velocity perturbation and, if requested, the constant Q.

        The continuous-time random walk is stored in the control and converted
        for the nominal step length.

        Args:
            parameters: Noise and timing parameters
        """
        parameters = parameters or ConstantVelocityParameters()
        d = self.dimension

        self.control.set_continuous_mean(np.zeros(d))
        self.control.set_continuous_covariance(np.eye(d) * parameters.velocity_noise_density ** 2)
        self.control.convert_from_continuous(parameters.dt)

        self.constant_perturbation = parameters.constant_perturbation
        if self.constant_perturbation:
            self.XNEW_control = self._control_jacobian()
            self.compute_state_perturbation()

    def _control_jacobian(self) -> np.ndarray:
        d = self.dimension
        XNEW_u = np.zeros((2 * d, d))
        XNEW_u[d:, :] = np.eye(d)
        return XNEW_u

    def move_func(self, x: np.ndarray, u: np.ndarray, dt: float) -> MotionResult:
        d = self.dimension
        p, v = x[:d], x[d:]

        x_new = np.concatenate([p + v * dt, v + u])

        XNEW_x = np.eye(2 * d)
        XNEW_x[:d, d:] = np.eye(d) * dt

        return x_new, XNEW_x, self._control_jacobian()
