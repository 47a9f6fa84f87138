"""Tests for the predictor, the loss and the two-phase trainer (small budgets)."""

import numpy as np
import pytest
import torch

from udeops.core import LossTrace, Trajectory
from udeops.core.config import TrainingConfig
from udeops.core.errors import IntegrationFailure
from udeops.ml import PHASE_ADAM, PHASE_BFGS, RBFNetwork, predict, run_adam, run_bfgs, train, trajectory_loss
from udeops.physics import HybridODEModel, LotkaVolterra, generate_ground_truth


@pytest.fixture
def setup():
    network = RBFNetwork((2, 5, 5, 5, 2))
    model = HybridODEModel(network, (1.3, 0.9, 0.8, 1.8))
    gt = generate_ground_truth(LotkaVolterra(), (0.44249296, 4.6280594), (0.0, 3.0), 0.1)
    problem = model.problem(gt)
    theta = network.initial_parameters(torch.Generator().manual_seed(42))
    return network, model, gt, problem, theta


def test_predict_shape_and_gradient(setup) -> None:
    network, _, gt, problem, theta = setup
    theta = theta.clone().requires_grad_(True)
    x_hat = predict(problem, theta)
    assert x_hat.shape == gt.states.shape
    x_hat.sum().backward()
    assert theta.grad is not None and torch.isfinite(theta.grad).all()


def test_predict_adjoint_matches_direct(setup) -> None:
    _, _, _, problem, theta = setup
    direct = predict(problem, theta, sensitivity="direct")
    adjoint = predict(problem, theta, sensitivity="adjoint")
    torch.testing.assert_close(direct, adjoint)
    with pytest.raises(ValueError):
        predict(problem, theta, sensitivity="forward")


def test_loss_is_regularization_only_on_own_prediction(setup) -> None:
    _, _, _, problem, theta = setup
    with torch.no_grad():
        target = predict(problem, theta)
        value = trajectory_loss(problem, theta, target, regularization=1e-4)
    expected = 1e-4 * torch.sum(theta ** 2) / theta.numel()
    assert value.item() == pytest.approx(expected.item(), rel=1e-9, abs=1e-12)


def test_run_adam_records_every_iteration_and_skips_failures() -> None:
    calls = {"n": 0}

    def loss(theta: torch.Tensor) -> torch.Tensor:
        calls["n"] += 1
        if calls["n"] == 2:
            raise IntegrationFailure("diverged")
        return torch.sum((theta - 1.0) ** 2)

    trace = LossTrace()
    theta, n = run_adam(loss, torch.zeros(3, dtype=torch.float64), trace, lr=0.1, iterations=5)
    assert n == 5 and len(trace) == 5
    assert np.isinf(trace.to_numpy()[1])
    assert np.all(np.isfinite(np.delete(trace.to_numpy(), 1)))
    assert trace.phases == [PHASE_ADAM]
    assert torch.all(theta > 0)


def test_run_bfgs_minimizes_quadratic() -> None:
    def loss(theta: torch.Tensor) -> torch.Tensor:
        return torch.sum((theta - torch.arange(4, dtype=torch.float64)) ** 2)

    trace = LossTrace()
    theta, n, message = run_bfgs(loss, torch.zeros(4, dtype=torch.float64), trace, max_iterations=100)
    np.testing.assert_allclose(theta.numpy(), np.arange(4.0), atol=1e-6)
    assert n == len(trace) == trace.count(PHASE_BFGS)
    assert n <= 100
    assert isinstance(message, str)


def test_run_bfgs_with_zero_budget_is_skipped() -> None:
    trace = LossTrace()
    theta0 = torch.ones(2, dtype=torch.float64)
    theta, n, message = run_bfgs(lambda th: torch.sum(th ** 2), theta0, trace, max_iterations=0)
    assert n == 0 and len(trace) == 0
    assert torch.equal(theta, theta0)
    assert message == "skipped"


def test_train_trace_accounts_for_both_phases(setup) -> None:
    network, _, gt, problem, theta = setup
    config = TrainingConfig(adam_iterations=4, bfgs_iterations=3)
    result = train(problem, gt.states, theta, config, verbose=False)
    assert result.phase1_iterations == 4
    assert result.phase2_iterations <= 3
    assert len(result.trace) == result.phase1_iterations + result.phase2_iterations
    assert result.trace.count(PHASE_ADAM) == 4
    assert result.parameters.shape == (network.n_parameters,)
    np.testing.assert_array_equal(result.initial_parameters, theta.numpy())
    assert result.predicted_states.shape == gt.states.shape
    assert result.predicted_correction.shape == gt.states.shape
    assert result.final_loss == result.trace.last


def test_train_rejects_mismatched_target(setup) -> None:
    _, _, gt, problem, theta = setup
    with pytest.raises(ValueError):
        train(problem, gt.states[:-1], theta, TrainingConfig(adam_iterations=1, bfgs_iterations=0))


def test_reconstruction_on_representable_data(setup) -> None:
    """Data generated by the hybrid model itself is fitted from a nearby start."""
    network, model, gt, problem, theta_ref = setup
    with torch.no_grad():
        target = predict(problem, theta_ref).numpy()
    data = Trajectory(states=target, times=gt.times)
    problem = model.problem(data)
    theta0 = theta_ref + 0.05 * torch.randn(network.n_parameters, generator=torch.Generator().manual_seed(1),
                                            dtype=torch.float64)
    config = TrainingConfig(adam_lr=0.01, adam_iterations=20, bfgs_iterations=150)
    result = train(problem, target, theta0, config, verbose=False)
    losses = result.trace.to_numpy()
    assert result.final_loss < 0.1 * losses[0]
    assert np.all(np.diff(losses[result.phase1_iterations:]) <= 1e-12)


@pytest.mark.slow
def test_reconstruction_of_noiseless_ground_truth(setup) -> None:
    """Full-budget training from a fresh initialization reproduces the reference trajectory."""
    _, _, gt, problem, theta = setup
    result = train(problem, gt.states, theta, TrainingConfig(bfgs_iterations=1500), verbose=False)
    sse = float(np.sum((result.predicted_states - gt.states) ** 2))
    assert sse < 1e-2
    assert result.phase1_iterations == 200
    assert len(result.trace) == 200 + result.phase2_iterations
