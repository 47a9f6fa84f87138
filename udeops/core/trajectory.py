"""Sampled state trajectory: states (n_steps, n_states) indexed by strictly increasing times."""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Trajectory:
    """Ordered state samples and their sample times."""

    states: np.ndarray
    times: np.ndarray

    def __post_init__(self) -> None:
        states = np.array(self.states, dtype=float)
        times = np.array(self.times, dtype=float).ravel()
        if states.ndim != 2:
            raise ValueError(f"states must be 2D (n_steps, n_states), got shape {states.shape}")
        if states.shape[0] != times.size:
            raise ValueError(
                f"states has {states.shape[0]} samples but times has {times.size}"
            )
        if times.size > 1 and np.any(np.diff(times) <= 0):
            raise ValueError("times must be strictly increasing")
        states.setflags(write=False)
        times.setflags(write=False)
        object.__setattr__(self, "states", states)
        object.__setattr__(self, "times", times)

    @property
    def n_steps(self) -> int:
        return self.states.shape[0]

    @property
    def n_states(self) -> int:
        return self.states.shape[1]

    @property
    def initial_state(self) -> np.ndarray:
        return self.states[0].copy()

    @property
    def t_span(self) -> Tuple[float, float]:
        return float(self.times[0]), float(self.times[-1])

    def with_states(self, states: np.ndarray) -> "Trajectory":
        """Same time grid, new states (e.g. a noisy realization)."""
        return Trajectory(states=states, times=self.times)

    def __len__(self) -> int:
        return self.n_steps
