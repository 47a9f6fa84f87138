"""Core: configuration, data containers and the scenario orchestrator."""

from udeops.core.config import (
    DiscoveryConfig,
    GroundTruthConfig,
    NoiseConfig,
    RecoveryConfig,
    TrainingConfig,
)
from udeops.core.errors import (
    DiscoveryError,
    IntegrationFailure,
    NoFeasibleModelError,
    UDEOpsError,
)
from udeops.core.history import LossTrace
from udeops.core.trajectory import Trajectory

__all__ = [
    "DiscoveryConfig",
    "GroundTruthConfig",
    "NoiseConfig",
    "RecoveryConfig",
    "TrainingConfig",
    "DiscoveryError",
    "IntegrationFailure",
    "NoFeasibleModelError",
    "UDEOpsError",
    "LossTrace",
    "Trajectory",
]
