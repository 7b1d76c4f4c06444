"""
Plotting of planar estimates and their uncertainty.

Confidence ellipses are drawn from the xy block of a covariance matrix:

    Σ = V Λ Vᵀ,   χ² = chi2.ppf(confidence, 2)
    axis_i = 2 √(λ_i χ²)

oriented along the eigenvectors V.
"""

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Ellipse
import scipy.stats

logger = logging.getLogger(__name__)


def covariance_ellipse(mean: np.ndarray, covariance: np.ndarray,
                       confidence: float = 0.95) -> Tuple[Tuple[float, float], float, float, float]:
    """
    Confidence ellipse of the first two components of a Gaussian.

    Args:
        mean: Mean vector, at least 2 elements
        covariance: Covariance matrix, at least 2×2
        confidence: Probability mass inside the ellipse (0, 1)

    Returns:
        (center, width, height, angle) with angle in degrees, as expected by
        matplotlib.patches.Ellipse

    Raises:
        ValueError: If confidence is outside (0, 1)
    """
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"Confidence must be in (0, 1), got {confidence}")

    cov_2d = np.asarray(covariance, dtype=float)[:2, :2]
    eigenvals, eigenvecs = np.linalg.eigh((cov_2d + cov_2d.T) * 0.5)
    eigenvals = np.clip(eigenvals, 0.0, None)

    chi2_val = scipy.stats.chi2.ppf(confidence, df=2)

    width = 2 * np.sqrt(eigenvals[0] * chi2_val)
    height = 2 * np.sqrt(eigenvals[1] * chi2_val)
    angle = np.degrees(np.arctan2(eigenvecs[1, 0], eigenvecs[0, 0]))

    center = (float(mean[0]), float(mean[1]))
    return center, float(width), float(height), float(angle)


def plot_covariance_ellipse(ax, mean: np.ndarray, covariance: np.ndarray,
                            confidence: float = 0.95, color: str = 'red', alpha: float = 0.15) -> Ellipse:
    """Add a confidence ellipse patch to ``ax`` and return it."""
    center, width, height, angle = covariance_ellipse(mean, covariance, confidence)
    ellipse = Ellipse(center, width, height, angle=angle,
                      facecolor=color, alpha=alpha, edgecolor=color, linewidth=0.8)
    ax.add_patch(ellipse)
    return ellipse


class PoseHistoryPlotter:
    """
    Records a robot's planar position estimate after each step and plots the
    track with confidence ellipses.

    The first two components of the robot state are taken as x and y.

    Attributes:
        robot: Robot whose pose is recorded
        confidence: Confidence level of the drawn ellipses
        ellipse_every: Draw an ellipse on every n-th recorded pose
    """

    def __init__(self, robot, confidence: float = 0.95, ellipse_every: int = 5):
        if robot.size_state < 2:
            raise ValueError(f"Robot state must have at least 2 components, got {robot.size_state}")
        if ellipse_every < 1:
            raise ValueError(f"Ellipse interval must be at least 1, got {ellipse_every}")

        self.robot = robot
        self.confidence = confidence
        self.ellipse_every = ellipse_every
        self._positions: List[np.ndarray] = []
        self._covariances: List[np.ndarray] = []

    def record(self) -> None:
        """Store the robot's current position mean and xy covariance."""
        self._positions.append(self.robot.pose.x[:2])
        self._covariances.append(self.robot.pose.P[:2, :2])

    def __len__(self) -> int:
        return len(self._positions)

    @property
    def positions(self) -> np.ndarray:
        """Recorded positions as an N×2 array."""
        if not self._positions:
            return np.zeros((0, 2))
        return np.array(self._positions)

    def plot(self, ax=None, landmarks: Optional[Iterable] = None):
        """
        Draw the recorded track, its uncertainty and optional landmarks.

        Args:
            ax: Matplotlib axes; a new figure is created if None
            landmarks: Map objects whose first two state components are drawn

        Returns:
            The axes used
        """
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 8))

        positions = self.positions
        if len(positions) > 0:
            ax.plot(positions[:, 0], positions[:, 1], 'b-', linewidth=1.5, label=self.robot.label)
            for i in range(0, len(positions), self.ellipse_every):
                plot_covariance_ellipse(ax, positions[i], self._covariances[i],
                                        self.confidence, color='blue')
        else:
            logger.warning("No poses recorded, plotting landmarks only")

        for landmark in landmarks or []:
            mean = landmark.state.x
            ax.plot(mean[0], mean[1], 'k^', markersize=6)
            plot_covariance_ellipse(ax, mean, landmark.state.P, self.confidence, color='green')

        ax.set_xlabel('x [m]')
        ax.set_ylabel('y [m]')
        ax.set_aspect('equal', adjustable='datalim')
        ax.grid(True, alpha=0.3)
        return ax
