"""Base model for systems described by an ODE dx/dt = f(t, x) and its simulation."""

from typing import Optional, Sequence, Union

import numpy as np
import torch

from udeops.core.trajectory import Trajectory
from udeops.physics.integrators import as_tensor, integrate, sample_times


class ODEModel:
    """
    Base class for models described by an ODE: dx/dt = rhs(t, x).
    rhs() works on torch tensors and must be implemented by subclasses.
    """

    #: number of state variables
    n_states: int = 0

    def rhs(self, t: torch.Tensor, x: torch.Tensor) -> torch.Tensor:
        """
        Right-hand side of the ODE: dx/dt = rhs(t, x).
        To be implemented in subclasses.
        """
        raise NotImplementedError("Subclasses must implement rhs(t, x).")

    def __call__(self, t: torch.Tensor, x: torch.Tensor) -> torch.Tensor:
        return self.rhs(t, x)

    def simulate(
        self,
        x0: Union[Sequence[float], np.ndarray],
        times: Union[Sequence[float], np.ndarray],
        atol: float = 1e-6,
        rtol: float = 1e-6,
        method: str = "dopri5",
    ) -> Trajectory:
        """
        Integrate from x0 and sample exactly at `times`.

        Raises:
            IntegrationFailure: if the solver diverges.
        """
        x0_arr = np.asarray(x0, dtype=float).ravel()
        if self.n_states and x0_arr.size != self.n_states:
            raise ValueError(f"x0 must have {self.n_states} entries, got {x0_arr.size}")
        times_arr = np.asarray(times, dtype=float).ravel()
        with torch.no_grad():
            sol = integrate(self.rhs, as_tensor(x0_arr), times_arr, atol=atol, rtol=rtol, method=method)
        return Trajectory(states=sol.cpu().numpy(), times=times_arr)


def generate_ground_truth(
    model: ODEModel,
    x0: Union[Sequence[float], np.ndarray],
    t_span: Sequence[float],
    dt: float,
    atol: float = 1e-12,
    rtol: float = 1e-12,
    method: str = "dopri8",
    times: Optional[np.ndarray] = None,
) -> Trajectory:
    """
    Noiseless reference trajectory of a fully known model.

    Tight tolerances and a high-order solver make the result usable as ground
    truth. IntegrationFailure propagates: without ground truth nothing
    downstream can run.
    """
    if times is None:
        times = sample_times(t_span, dt)
    return model.simulate(x0, times, atol=atol, rtol=rtol, method=method)
