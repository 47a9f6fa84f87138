"""Input/output: JSON configurations and the HDF5 scenario store."""

from udeops.io.serializers import load_config, load_recovery_config, save_config
from udeops.io.store import ScenarioRecord, ScenarioStore

__all__ = ["ScenarioRecord", "ScenarioStore", "save_config", "load_config", "load_recovery_config"]
