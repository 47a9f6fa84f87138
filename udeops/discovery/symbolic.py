"""Sparse symbolic model: coefficients over a candidate basis, one row per output dimension."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import sympy

from udeops.discovery.basis import CandidateBasis


@dataclass(frozen=True)
class SymbolicModel:
    """
    Y ~ Theta(X) @ coefficients.T

    Attributes:
        basis: candidate functions, length n_terms.
        coefficients: (n_outputs, n_terms), zeros outside the support.
        errors: per-output residual 2-norm on the data the model was fitted to.
    """

    basis: CandidateBasis
    coefficients: np.ndarray
    errors: np.ndarray

    def __post_init__(self) -> None:
        coef = np.atleast_2d(np.array(self.coefficients, dtype=float))
        if coef.shape[1] != len(self.basis):
            raise ValueError(
                f"coefficients have {coef.shape[1]} columns for a basis of {len(self.basis)} terms"
            )
        errors = np.array(self.errors, dtype=float).ravel()
        if errors.size != coef.shape[0]:
            raise ValueError(f"expected {coef.shape[0]} errors, got {errors.size}")
        coef.setflags(write=False)
        errors.setflags(write=False)
        object.__setattr__(self, "coefficients", coef)
        object.__setattr__(self, "errors", errors)

    @property
    def n_outputs(self) -> int:
        return self.coefficients.shape[0]

    @property
    def n_nonzero(self) -> np.ndarray:
        """Support size per output."""
        return np.count_nonzero(self.coefficients, axis=1)

    def support(self, output: int) -> List[sympy.Expr]:
        """Basis terms with a nonzero coefficient in the given output."""
        return [self.basis[k] for k in np.flatnonzero(self.coefficients[output])]

    def structure(self) -> List[sympy.Expr]:
        """Union of the supports over all outputs, in basis order."""
        used = np.flatnonzero(np.any(self.coefficients != 0, axis=0))
        return [self.basis[k] for k in used]

    def parameters(self) -> np.ndarray:
        """Nonzero coefficients, output by output in basis order."""
        return self.coefficients[self.coefficients != 0].copy()

    def equations(self) -> List[sympy.Expr]:
        """One sympy expression per output: sum_k c_k * basis_k over the support."""
        eqs = []
        for row in self.coefficients:
            terms = [sympy.Float(c) * self.basis[k] for k, c in enumerate(row) if c != 0]
            eqs.append(sympy.Add(*terms) if terms else sympy.Integer(0))
        return eqs

    def equation_strings(self, names: Optional[Sequence[str]] = None) -> List[str]:
        """Human readable 'dy1 = ...' lines."""
        names = names or [f"y{i + 1}" for i in range(self.n_outputs)]
        return [f"{n} = {eq}" for n, eq in zip(names, self.equations())]

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Model output (n_samples, n_outputs) on states X."""
        return self.basis.evaluate(X) @ self.coefficients.T

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coefficients": np.array(self.coefficients),
            "errors": np.array(self.errors),
            "basis": self.basis.names,
            "symbols": self.basis.symbol_names,
            "equations": [str(eq) for eq in self.equations()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SymbolicModel":
        basis = CandidateBasis.from_strings(list(data["basis"]), list(data["symbols"]))
        return cls(basis=basis, coefficients=np.asarray(data["coefficients"]), errors=np.asarray(data["errors"]))

    def __repr__(self) -> str:
        return f"SymbolicModel({self.equation_strings()})"
