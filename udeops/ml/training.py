"""
Training of hybrid ODE models: predictor, trajectory loss and the two-phase optimizer.

Phase 1 runs Adam to move the parameters into a favourable region, phase 2
hands the result to BFGS. Both phases append to the same LossTrace.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Tuple

import numpy as np
import torch
from loguru import logger
from scipy.optimize import minimize

from udeops.core.config import TrainingConfig
from udeops.core.errors import IntegrationFailure
from udeops.core.history import LossTrace
from udeops.physics.integrators import as_tensor, integrate

if TYPE_CHECKING:
    from udeops.physics.neural_ode import UDEProblem

PHASE_ADAM = "adam"
PHASE_BFGS = "bfgs"
SENSITIVITIES = ("direct", "adjoint")


@dataclass
class TrainingResult:
    """Outcome of train(): parameters, loss history and the fitted trajectory."""

    initial_parameters: np.ndarray
    parameters: np.ndarray
    trace: LossTrace
    phase1_iterations: int
    phase2_iterations: int
    predicted_states: np.ndarray
    predicted_correction: np.ndarray
    message: str = ""

    @property
    def final_loss(self) -> float:
        return self.trace.last


def predict(
    problem: "UDEProblem",
    theta: torch.Tensor,
    atol: float = 1e-6,
    rtol: float = 1e-6,
    method: str = "dopri5",
    sensitivity: str = "direct",
) -> torch.Tensor:
    """
    Integrate the hybrid model with parameters theta on the problem's time grid.

    The result is differentiable with respect to theta: "direct" backpropagates
    through the solver steps, "adjoint" solves the adjoint ODE backwards.

    Returns:
        Tensor (n_steps, n_states).

    Raises:
        IntegrationFailure: if the solver diverges for this theta.
    """
    if sensitivity not in SENSITIVITIES:
        raise ValueError(f"sensitivity must be one of {SENSITIVITIES}, got {sensitivity!r}")
    f = problem.model.bind(theta)
    return integrate(
        f,
        as_tensor(problem.x0),
        problem.times,
        atol=atol,
        rtol=rtol,
        method=method,
        adjoint=sensitivity == "adjoint",
        params=(theta,),
    )


def trajectory_loss(
    problem: "UDEProblem",
    theta: torch.Tensor,
    target: torch.Tensor,
    regularization: float = 1e-4,
    **predict_kwargs,
) -> torch.Tensor:
    """
    Sum of squared errors against the target trajectory plus an L2 penalty
    on theta normalized by the number of parameters.
    """
    x_hat = predict(problem, theta, **predict_kwargs)
    sse = torch.sum((target - x_hat) ** 2)
    return sse + regularization * torch.sum(theta ** 2) / theta.numel()


def _loss_fn(problem: "UDEProblem", target: np.ndarray, config: TrainingConfig) -> Callable:
    target_t = as_tensor(target)
    kwargs = dict(
        regularization=config.regularization,
        atol=config.atol,
        rtol=config.rtol,
        method=config.method,
        sensitivity=config.sensitivity,
    )

    def loss(theta: torch.Tensor) -> torch.Tensor:
        return trajectory_loss(problem, theta, target_t, **kwargs)

    return loss


def run_adam(
    loss: Callable[[torch.Tensor], torch.Tensor],
    theta0: torch.Tensor,
    trace: LossTrace,
    lr: float = 0.1,
    iterations: int = 200,
) -> Tuple[torch.Tensor, int]:
    """
    First-order phase. One trace entry per iteration; never stops early.
    A diverging predictor records inf and leaves the parameters unchanged.
    """
    theta = theta0.detach().clone().requires_grad_(True)
    optimizer = torch.optim.Adam([theta], lr=lr)
    for _ in range(iterations):
        optimizer.zero_grad()
        try:
            value = loss(theta)
        except IntegrationFailure as exc:
            logger.debug("Adam step skipped: {}", exc)
            trace.append(float("inf"), PHASE_ADAM)
            continue
        value.backward()
        optimizer.step()
        trace.append(value.item(), PHASE_ADAM)
    return theta.detach(), iterations


def run_bfgs(
    loss: Callable[[torch.Tensor], torch.Tensor],
    theta0: torch.Tensor,
    trace: LossTrace,
    max_iterations: int = 10000,
    initial_stepnorm: float = 0.01,
    gtol: float = 1e-8,
) -> Tuple[torch.Tensor, int, str]:
    """
    Quasi-Newton phase (scipy BFGS, gradients from torch autograd).

    The initial inverse Hessian is scaled so that the first step has norm
    `initial_stepnorm`. One trace entry per BFGS iteration.
    """

    def fun(x: np.ndarray) -> Tuple[float, np.ndarray]:
        theta = torch.tensor(x, dtype=torch.float64, requires_grad=True)
        try:
            value = loss(theta)
        except IntegrationFailure:
            return np.inf, np.zeros_like(x)
        value.backward()
        return value.item(), theta.grad.detach().numpy().copy()

    if max_iterations <= 0:
        return theta0.detach().clone(), 0, "skipped"
    x0 = theta0.detach().numpy().astype(np.float64)
    _, g0 = fun(x0)
    g_norm = float(np.linalg.norm(g0))
    scale = initial_stepnorm / g_norm if g_norm > 0 else 1.0
    n_iter = 0

    def callback(intermediate_result) -> None:
        nonlocal n_iter
        n_iter += 1
        trace.append(float(intermediate_result.fun), PHASE_BFGS)

    res = minimize(
        fun,
        x0,
        jac=True,
        method="BFGS",
        callback=callback,
        options={
            "maxiter": max_iterations,
            "gtol": gtol,
            "hess_inv0": scale * np.eye(x0.size),
        },
    )
    return torch.from_numpy(np.asarray(res.x, dtype=np.float64)), n_iter, str(res.message)


def train(
    problem: "UDEProblem",
    target: np.ndarray,
    theta0: torch.Tensor,
    config: Optional[TrainingConfig] = None,
    trace: Optional[LossTrace] = None,
    verbose: bool = True,
) -> TrainingResult:
    """
    Fit the approximator parameters of a hybrid model to a trajectory.

    Args:
        problem: initial-value problem from HybridODEModel.problem().
        target: observed states (n_steps, n_states) on problem.times.
        theta0: initial flat parameter vector.
        config: optimizer schedule and predictor tolerances.
        trace: LossTrace to append to (a new one by default).
        verbose: log the loss after each phase.

    Returns:
        TrainingResult. Hitting an iteration cap is not an error: the last
        parameters are accepted.
    """
    config = config or TrainingConfig()
    trace = trace if trace is not None else LossTrace()
    target = np.asarray(target, dtype=float)
    if target.shape != (len(problem.times), problem.model.n_states):
        raise ValueError(
            f"target must have shape {(len(problem.times), problem.model.n_states)}, got {target.shape}"
        )
    loss = _loss_fn(problem, target, config)
    theta0 = theta0.detach().to(torch.float64)

    theta1, n1 = run_adam(loss, theta0, trace, lr=config.adam_lr, iterations=config.adam_iterations)
    if verbose and len(trace):
        logger.info("Training loss after {} iterations: {}", len(trace), trace.last)

    theta2, n2, message = run_bfgs(
        loss,
        theta1,
        trace,
        max_iterations=config.bfgs_iterations,
        initial_stepnorm=config.bfgs_initial_stepnorm,
        gtol=config.bfgs_gtol,
    )
    if verbose and len(trace):
        logger.info("Final training loss after {} iterations: {}", len(trace), trace.last)

    with torch.no_grad():
        x_hat = predict(
            problem,
            theta2,
            atol=config.atol,
            rtol=config.rtol,
            method=config.method,
        ).numpy()
    y_hat = problem.model.correction(x_hat, theta2.numpy())
    return TrainingResult(
        initial_parameters=theta0.numpy().copy(),
        parameters=theta2.numpy().copy(),
        trace=trace,
        phase1_iterations=n1,
        phase2_iterations=n2,
        predicted_states=x_hat,
        predicted_correction=y_hat,
        message=message,
    )
