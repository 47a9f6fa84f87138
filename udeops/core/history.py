"""Append-only loss history for the two-phase trainer."""

from typing import Dict, List

import numpy as np


class LossTrace:
    """
    Ordered scalar losses, one per optimizer callback.

    Entries are only ever appended; each one remembers the phase that produced
    it, so the split between phases can be recovered after training.
    """

    def __init__(self) -> None:
        self._values: List[float] = []
        self._phases: List[str] = []

    def append(self, value: float, phase: str) -> None:
        """Record the loss of one optimizer iteration."""
        if self._phases and phase != self._phases[-1] and phase in self._phases:
            raise ValueError(f"phase {phase!r} already closed; entries must stay ordered by phase")
        self._values.append(float(value))
        self._phases.append(phase)

    def count(self, phase: str) -> int:
        """Number of entries produced by the given phase."""
        return sum(1 for p in self._phases if p == phase)

    @property
    def phases(self) -> List[str]:
        """Distinct phases in the order they appeared."""
        seen: List[str] = []
        for p in self._phases:
            if p not in seen:
                seen.append(p)
        return seen

    @property
    def last(self) -> float:
        if not self._values:
            raise IndexError("empty loss trace")
        return self._values[-1]

    def to_numpy(self) -> np.ndarray:
        return np.array(self._values, dtype=float)

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Values plus per-phase counts, in phase order."""
        return {
            "losses": self.to_numpy(),
            **{f"n_{p}": np.array(self.count(p)) for p in self.phases},
        }

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(self._values)
