"""
Configuration of the recovery pipeline.

One dataclass per stage; RecoveryConfig groups them and round-trips through
plain dicts so it can be stored as JSON with udeops.io.save_config/load_config.
Defaults reproduce the broad-noise Lotka-Volterra scenario.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class GroundTruthConfig:
    """Reference Lotka-Volterra system and the integrator used for ground truth."""

    known_parameters: Tuple[float, ...] = (1.3, 0.9, 0.8, 1.8)
    initial_state: Tuple[float, ...] = (0.44249296, 4.6280594)
    t_span: Tuple[float, float] = (0.0, 3.0)
    dt: float = 0.1
    atol: float = 1e-12
    rtol: float = 1e-12
    method: str = "dopri8"


@dataclass
class NoiseConfig:
    """Noise schedule: levels[k] applies to run indices up to thresholds[k]."""

    scale: float = 5e-2
    thresholds: Tuple[int, ...] = (40, 80, 120, 160)
    levels: Tuple[float, ...] = (1e-3, 5e-3, 1e-2, 2.5e-2, 5e-2)


@dataclass
class TrainingConfig:
    """Approximator topology, predictor tolerances and the two optimizer phases."""

    layer_sizes: Tuple[int, ...] = (2, 5, 5, 5, 2)
    atol: float = 1e-6
    rtol: float = 1e-6
    method: str = "dopri5"
    sensitivity: str = "direct"
    regularization: float = 1e-4
    adam_lr: float = 0.1
    adam_iterations: int = 200
    bfgs_iterations: int = 10000
    bfgs_initial_stepnorm: float = 0.01
    bfgs_gtol: float = 1e-8


@dataclass
class DiscoveryConfig:
    """Candidate library, threshold sweep (pass 1) and refit (pass 2)."""

    polynomial_degree: int = 5
    include_sine: bool = True
    threshold_exponents: Tuple[float, float, float] = (-7.0, 5.0, 0.1)
    sr3_nu: float = 0.1
    max_iter: int = 50000
    tol: float = 1e-10
    normalize: bool = True
    denoise: bool = True
    min_nonzero: int = 1
    refine_threshold: float = 0.01
    refine_alpha: float = 0.0
    refine_max_iter: int = 100


@dataclass
class RecoveryConfig:
    """Full configuration of a scenario loop."""

    ground_truth: GroundTruthConfig = field(default_factory=GroundTruthConfig)
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    n_runs: int = 200
    seed: int = 1234
    reseed_per_run: bool = False
    scenario: str = "Scenario_1_broadnoise"
    output: str = "Scenario_1_broadnoise_recovery_loop.h5"
    n_workers: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "RecoveryConfig":
        """Build from a (possibly partial) nested dict; missing keys keep defaults."""
        data = dict(data or {})
        sections = {
            "ground_truth": GroundTruthConfig,
            "noise": NoiseConfig,
            "training": TrainingConfig,
            "discovery": DiscoveryConfig,
        }
        kwargs: Dict[str, Any] = {}
        for name, section_cls in sections.items():
            kwargs[name] = _section_from_dict(section_cls, data.pop(name, None) or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        kwargs.update(data)
        return cls(**kwargs)


def _section_from_dict(section_cls: type, data: Dict[str, Any]) -> Any:
    known = {f.name: f for f in fields(section_cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"Unknown keys for {section_cls.__name__}: {sorted(unknown)}")
    values = {}
    for key, value in data.items():
        # JSON has no tuples
        if isinstance(value, list):
            value = tuple(value)
        values[key] = value
    return section_cls(**values)
