"""
UDEOps: recovery of missing dynamics with universal differential equations
(known physics + neural approximator) and sparse equation discovery.
"""

__version__ = "0.1.0"

from udeops.core.config import RecoveryConfig
from udeops.core.trajectory import Trajectory
from udeops.core.system import RecoveryPipeline, RunOutcome, RunTask, recover_dynamics
from udeops.io.store import ScenarioRecord, ScenarioStore

__all__ = [
    "__version__",
    "RecoveryConfig",
    "Trajectory",
    "RecoveryPipeline",
    "RunOutcome",
    "RunTask",
    "recover_dynamics",
    "ScenarioRecord",
    "ScenarioStore",
]
