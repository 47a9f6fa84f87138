"""
Ready-made parametric models.

ODEModel subclasses with rhs() already implemented; only the parameters are set
by the user.
"""

from typing import Sequence, Tuple

import torch

from udeops.physics.ode import ODEModel


class LotkaVolterra(ODEModel):
    """
    Predator-prey system:
      du1/dt = alpha*u1 - beta*u1*u2
      du2/dt = gamma*u1*u2 - delta*u2
    State [prey, predator].
    """

    n_states = 2

    def __init__(
        self,
        alpha: float = 1.3,
        beta: float = 0.9,
        gamma: float = 0.8,
        delta: float = 1.8,
    ) -> None:
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.gamma = float(gamma)
        self.delta = float(delta)

    @classmethod
    def from_parameters(cls, p: Sequence[float]) -> "LotkaVolterra":
        """Build from the known-parameter vector (alpha, beta, gamma, delta)."""
        if len(p) != 4:
            raise ValueError(f"Lotka-Volterra needs 4 parameters, got {len(p)}")
        return cls(*p)

    @property
    def parameters(self) -> Tuple[float, float, float, float]:
        return (self.alpha, self.beta, self.gamma, self.delta)

    def rhs(self, t: torch.Tensor, x: torch.Tensor) -> torch.Tensor:
        u1, u2 = x[..., 0], x[..., 1]
        du1 = self.alpha * u1 - self.beta * u1 * u2
        du2 = self.gamma * u1 * u2 - self.delta * u2
        return torch.stack([du1, du2], dim=-1)

    def interaction(self, x: torch.Tensor) -> torch.Tensor:
        """The terms a hybrid model leaves to the approximator: (-beta*u1*u2, gamma*u1*u2)."""
        u1, u2 = x[..., 0], x[..., 1]
        return torch.stack([-self.beta * u1 * u2, self.gamma * u1 * u2], dim=-1)
