"""
Noisy observations of a ground-truth trajectory.

The noise level of run i follows a step schedule; its magnitude per state is
relative to the mean absolute value of that state over the ground truth.
"""

from typing import Sequence

import numpy as np

from udeops.core.trajectory import Trajectory

DEFAULT_THRESHOLDS = (40, 80, 120, 160)
DEFAULT_LEVELS = (1e-3, 5e-3, 1e-2, 2.5e-2, 5e-2)


def _check_schedule(thresholds: Sequence[int], levels: Sequence[float]) -> None:
    if len(levels) != len(thresholds) + 1:
        raise ValueError(
            f"need len(thresholds) + 1 levels, got {len(thresholds)} thresholds and {len(levels)} levels"
        )
    if any(b <= a for a, b in zip(thresholds[:-1], thresholds[1:])):
        raise ValueError(f"thresholds must be strictly increasing, got {tuple(thresholds)}")


def noise_magnitude(
    iteration: int,
    thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
    levels: Sequence[float] = DEFAULT_LEVELS,
) -> float:
    """Relative noise level of run `iteration` (1-based)."""
    _check_schedule(thresholds, levels)
    if iteration < 1:
        raise ValueError(f"run index must be >= 1, got {iteration}")
    for threshold, level in zip(thresholds, levels):
        if iteration <= threshold:
            return float(level)
    return float(levels[-1])


class NoiseInjector:
    """
    Produces X_n = X + sigma(i) * x_ref * xi, xi ~ N(0, 1) elementwise.

    x_ref = scale * mean(|X|) over time, one value per state, computed once.
    """

    def __init__(
        self,
        ground_truth: Trajectory,
        scale: float = 5e-2,
        thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
        levels: Sequence[float] = DEFAULT_LEVELS,
    ) -> None:
        _check_schedule(thresholds, levels)
        self.ground_truth = ground_truth
        self.thresholds = tuple(int(t) for t in thresholds)
        self.levels = tuple(float(v) for v in levels)
        self.reference = scale * np.mean(np.abs(ground_truth.states), axis=0)

    def magnitude(self, iteration: int) -> float:
        return noise_magnitude(iteration, self.thresholds, self.levels)

    def inject(self, iteration: int, rng: np.random.Generator) -> Trajectory:
        """
        Noisy copy of the ground truth for run `iteration`.

        Draws advance `rng`; pass the same generator for every run to reproduce
        one cumulative stream, or a per-run generator for independent runs.
        """
        X = self.ground_truth.states
        xi = rng.standard_normal(X.shape)
        noisy = X + (self.magnitude(iteration) * self.reference) * xi
        return self.ground_truth.with_states(noisy)
