"""
Hybrid ODE: known physics plus a function approximator (universal differential equation).

HybridODEModel keeps the prey growth (alpha*u1) and predator decay (-delta*u2)
of the Lotka-Volterra system as exact terms and leaves every interaction term
to the approximator:

    du1/dt =  p[0] * u1 + F(u; theta)[0]
    du2/dt = -p[3] * u2 + F(u; theta)[1]

The approximator parameters theta are passed explicitly, so the same model can
be integrated with any parameter vector. Train with udeops.ml.training.train().
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import torch

from udeops.core.trajectory import Trajectory
from udeops.ml.approximator import RBFNetwork


@dataclass(frozen=True)
class UDEProblem:
    """Initial-value problem of a hybrid model: x0, save times and the model itself."""

    model: "HybridODEModel"
    x0: np.ndarray
    times: np.ndarray

    @property
    def t_span(self) -> Tuple[float, float]:
        return float(self.times[0]), float(self.times[-1])


class HybridODEModel:
    """
    Right-hand side combining fixed mechanistic terms with a network correction.
    """

    n_states = 2

    def __init__(
        self,
        network: RBFNetwork,
        known_parameters: Sequence[float] = (1.3, 0.9, 0.8, 1.8),
    ) -> None:
        """
        Args:
            network: approximator with input and output dimension 2.
            known_parameters: mechanistic constants (alpha, beta, gamma, delta);
                only alpha and delta enter the right-hand side.
        """
        if network.input_dim != self.n_states or network.output_dim != self.n_states:
            raise ValueError(
                f"network must map {self.n_states} -> {self.n_states}, got {network.layer_sizes}"
            )
        if len(known_parameters) != 4:
            raise ValueError(f"expected 4 known parameters, got {len(known_parameters)}")
        self.network = network
        self.known_parameters = tuple(float(p) for p in known_parameters)

    def rhs(self, t: torch.Tensor, u: torch.Tensor, theta: torch.Tensor) -> torch.Tensor:
        """dx/dt for state u (shape (2,) or (batch, 2)); t is unused."""
        u_hat = self.network(u, theta)
        du1 = self.known_parameters[0] * u[..., 0] + u_hat[..., 0]
        du2 = -self.known_parameters[3] * u[..., 1] + u_hat[..., 1]
        return torch.stack([du1, du2], dim=-1)

    def bind(self, theta: torch.Tensor):
        """Closure f(t, u) with theta fixed, in the form the integrators expect."""
        def f(t: torch.Tensor, u: torch.Tensor) -> torch.Tensor:
            return self.rhs(t, u, theta)
        return f

    def problem(self, data: Trajectory) -> UDEProblem:
        """Initial state = first sample, save times = the data's time grid."""
        return UDEProblem(model=self, x0=data.initial_state, times=np.array(data.times))

    def correction(self, states: np.ndarray, theta: np.ndarray) -> np.ndarray:
        """Approximator output F(x; theta) on states (n_steps, 2), as numpy."""
        return self.network.evaluate(states, theta)
