"""
Machine learning: the approximator of a hybrid ODE and its training.

Layout:
- approximator: RBFNetwork, a network evaluated as f(x, theta) with explicit parameters.
- training: predictor, trajectory loss and the two-phase Adam -> BFGS optimizer.
"""

from udeops.ml.approximator import RBFNetwork, identity, rbf
from udeops.ml.training import (
    PHASE_ADAM,
    PHASE_BFGS,
    TrainingResult,
    predict,
    run_adam,
    run_bfgs,
    train,
    trajectory_loss,
)

__all__ = [
    "RBFNetwork",
    "rbf",
    "identity",
    "PHASE_ADAM",
    "PHASE_BFGS",
    "TrainingResult",
    "predict",
    "trajectory_loss",
    "run_adam",
    "run_bfgs",
    "train",
]
