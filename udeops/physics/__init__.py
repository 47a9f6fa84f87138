"""
Physics models for the recovery pipeline.

Hierarchy:
  - integrators: adaptive ODE integration on torch tensors (torchdiffeq)
  - ode: base ODE model (ODEModel) and ground-truth generation
  - library: ready-made mechanistic models (LotkaVolterra)
  - neural_ode: hybrid model, known terms plus approximator (HybridODEModel)
"""

# --- Integrators (numerical level) ---
from udeops.physics.integrators import (
    ADAPTIVE_METHODS,
    FIXED_METHODS,
    as_tensor,
    integrate,
    sample_times,
)

# --- Base ODE model ---
from udeops.physics.ode import ODEModel, generate_ground_truth

# --- Library (parametric models) ---
from udeops.physics.library import LotkaVolterra

# --- Hybrid ODE (physics + approximator) ---
from udeops.physics.neural_ode import HybridODEModel, UDEProblem

__all__ = [
    # Integrators
    "ADAPTIVE_METHODS",
    "FIXED_METHODS",
    "as_tensor",
    "integrate",
    "sample_times",
    # Base
    "ODEModel",
    "generate_ground_truth",
    # Library
    "LotkaVolterra",
    # Hybrid
    "HybridODEModel",
    "UDEProblem",
]
