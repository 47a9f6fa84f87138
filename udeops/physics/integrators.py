"""
Numerical integration of ODEs: trajectory = integrate(f, x0, times, ...).

Pure numerical level: wraps torchdiffeq's adaptive solvers and turns solver
breakdowns into IntegrationFailure.
Interface: f(t, x) -> dx/dt on torch tensors; the result has shape
(len(times), n_states) and keeps the autograd graph of any tensor f closes over.
"""

from typing import Callable, Sequence, Union

import numpy as np
import torch
from torchdiffeq import odeint, odeint_adjoint

from udeops.core.errors import IntegrationFailure

# Type for ODE right-hand side: (t, x) -> dx/dt
RHS = Callable[[torch.Tensor, torch.Tensor], torch.Tensor]

ADAPTIVE_METHODS = ("dopri8", "dopri5", "bosh3", "fehlberg2", "adaptive_heun")
FIXED_METHODS = ("rk4", "midpoint", "euler", "explicit_adams", "implicit_adams")


def as_tensor(a: Union[np.ndarray, Sequence[float], torch.Tensor]) -> torch.Tensor:
    """float64 tensor copy of an array-like (tensors are passed through unchanged)."""
    if isinstance(a, torch.Tensor):
        return a
    return torch.from_numpy(np.array(a, dtype=np.float64))


def integrate(
    f: RHS,
    x0: Union[np.ndarray, torch.Tensor],
    times: Union[np.ndarray, torch.Tensor],
    atol: float = 1e-6,
    rtol: float = 1e-6,
    method: str = "dopri5",
    adjoint: bool = False,
    params: Sequence[torch.Tensor] = (),
) -> torch.Tensor:
    """
    Integrate dx/dt = f(t, x) from x0, saving exactly at `times`.

    Args:
        f: right-hand side on tensors.
        x0: initial state, shape (n_states,).
        times: strictly increasing save points; times[0] is the initial time.
        atol, rtol: tolerances of the adaptive step control.
        method: torchdiffeq solver name (dopri8 is the high-order default for ground truth).
        adjoint: use the adjoint sensitivity method instead of differentiating
            through the solver steps.
        params: tensors f depends on (only needed with adjoint=True).

    Returns:
        Tensor of shape (len(times), n_states).

    Raises:
        IntegrationFailure: step size underflow, solver error or non-finite states.
    """
    if method not in ADAPTIVE_METHODS + FIXED_METHODS:
        raise ValueError(f"Unknown integration method {method!r}")
    x0_t = as_tensor(x0)
    t_t = as_tensor(times).to(x0_t.dtype)
    if t_t.ndim != 1 or t_t.numel() < 2:
        raise ValueError("times must be a 1D sequence with at least two points")
    if torch.any(t_t[1:] <= t_t[:-1]):
        raise ValueError("times must be strictly increasing")
    try:
        if adjoint:
            sol = odeint_adjoint(
                f,
                x0_t,
                t_t,
                rtol=rtol,
                atol=atol,
                method=method,
                adjoint_params=tuple(params),
            )
        else:
            sol = odeint(f, x0_t, t_t, rtol=rtol, atol=atol, method=method)
    except (AssertionError, RuntimeError) as exc:
        # torchdiffeq signals dt underflow with an AssertionError
        raise IntegrationFailure(f"{method} failed: {exc}") from exc
    if not torch.isfinite(sol).all():
        raise IntegrationFailure(f"{method} produced non-finite states")
    return sol


def sample_times(t_span: Sequence[float], dt: float) -> np.ndarray:
    """Uniform grid t0, t0+dt, ..., t_end (end point included when it lies on the grid)."""
    t0, t1 = float(t_span[0]), float(t_span[1])
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    if t1 <= t0:
        raise ValueError(f"t_span must be increasing, got {t_span}")
    n = int(np.floor((t1 - t0) / dt + 1e-9))
    return t0 + dt * np.arange(n + 1, dtype=float)
