"""Save and load pipeline configurations as JSON."""

import json
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from udeops.core.config import RecoveryConfig


def _convert(d: Any) -> Any:
    """Recursively turn numpy values and tuples into JSON types."""
    if isinstance(d, np.ndarray):
        return d.tolist()
    if isinstance(d, dict):
        return {k: _convert(v) for k, v in d.items()}
    if isinstance(d, (list, tuple)):
        return [_convert(x) for x in d]
    if isinstance(d, (np.floating, np.integer)):
        return float(d) if isinstance(d, np.floating) else int(d)
    if isinstance(d, np.bool_):
        return bool(d)
    return d


def save_config(config: Union[RecoveryConfig, Dict[str, Any]], path: Union[str, Path]) -> None:
    """
    Save a configuration (RecoveryConfig or plain dict) to JSON.
    Numpy arrays are converted to lists.
    """
    if isinstance(config, RecoveryConfig):
        config = config.to_dict()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_convert(config), f, indent=2, ensure_ascii=False)


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a configuration dict from JSON."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_recovery_config(path: Union[str, Path]) -> RecoveryConfig:
    """JSON file -> RecoveryConfig (missing keys keep their defaults)."""
    return RecoveryConfig.from_dict(load_config(path))
