"""
Visualization of robot tracks and estimate uncertainty.
"""

from .plotter import PoseHistoryPlotter, covariance_ellipse, plot_covariance_ellipse

__all__ = [
    "PoseHistoryPlotter",
    "covariance_ellipse",
    "plot_covariance_ellipse"
]
