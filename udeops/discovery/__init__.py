"""
Equation discovery: sparse regression of a missing term over a candidate basis.

- basis: candidate functions (polynomials, sines) as sympy expressions.
- sparse: pysindy SR3 and STLSQ solvers, SVD denoising, column normalization.
- symbolic: SymbolicModel, the sparse result.
- engine: EquationDiscovery, threshold sweep and refit.
"""

from udeops.discovery.basis import CandidateBasis, polynomial_basis, sine_basis, state_symbols
from udeops.discovery.engine import (
    DiscoveryResult,
    EquationDiscovery,
    pareto_score,
    refine,
    sparse_search,
    threshold_sweep,
)
from udeops.discovery.sparse import fit_coefficients, normalize_columns, optimal_shrinkage, sr3, stlsq
from udeops.discovery.symbolic import SymbolicModel

__all__ = [
    "CandidateBasis",
    "polynomial_basis",
    "sine_basis",
    "state_symbols",
    "DiscoveryResult",
    "EquationDiscovery",
    "pareto_score",
    "refine",
    "sparse_search",
    "threshold_sweep",
    "sr3",
    "stlsq",
    "fit_coefficients",
    "normalize_columns",
    "optimal_shrinkage",
    "SymbolicModel",
]
