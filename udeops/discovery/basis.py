"""
Candidate libraries for sparse regression.

A CandidateBasis is an ordered, duplicate-free list of sympy expressions in the
state symbols. evaluate(X) turns a (n_samples, n_states) array into the library
matrix Theta of shape (n_samples, n_terms).
"""

from itertools import combinations_with_replacement
from typing import Iterable, List, Optional, Sequence

import numpy as np
import sympy


def state_symbols(n_states: int = 2, prefix: str = "u") -> List[sympy.Symbol]:
    """u1, u2, ... as real sympy symbols."""
    return list(sympy.symbols(f"{prefix}1:{n_states + 1}", real=True))


def polynomial_basis(symbols: Sequence[sympy.Symbol], degree: int) -> List[sympy.Expr]:
    """All monomials of total degree 0..degree, graded order (1, u1, u2, u1**2, u1*u2, ...)."""
    if degree < 0:
        raise ValueError(f"degree must be >= 0, got {degree}")
    terms: List[sympy.Expr] = []
    for d in range(degree + 1):
        for combo in combinations_with_replacement(symbols, d):
            terms.append(sympy.Mul(*combo))
    return terms


def sine_basis(symbols: Sequence[sympy.Symbol]) -> List[sympy.Expr]:
    return [sympy.sin(s) for s in symbols]


class CandidateBasis:
    """Ordered set of candidate functions of the state variables."""

    def __init__(self, expressions: Iterable[sympy.Expr], symbols: Sequence[sympy.Symbol]) -> None:
        self.symbols = list(symbols)
        unique: List[sympy.Expr] = []
        for expr in expressions:
            expr = sympy.expand(sympy.sympify(expr))
            if expr == 0 or expr in unique:
                continue
            unique.append(expr)
        stray = set().union(*(e.free_symbols for e in unique)) - set(self.symbols) if unique else set()
        if stray:
            raise ValueError(f"expressions use unknown symbols {sorted(map(str, stray))}")
        self.expressions = unique
        self._fn = sympy.lambdify(self.symbols, self.expressions, modules="numpy")

    @classmethod
    def default(
        cls,
        n_states: int = 2,
        degree: int = 5,
        include_sine: bool = True,
        symbols: Optional[Sequence[sympy.Symbol]] = None,
    ) -> "CandidateBasis":
        """Polynomials up to `degree` followed by sin of each state."""
        symbols = list(symbols) if symbols is not None else state_symbols(n_states)
        exprs = polynomial_basis(symbols, degree)
        if include_sine:
            exprs += sine_basis(symbols)
        return cls(exprs, symbols)

    @classmethod
    def from_strings(cls, names: Sequence[str], symbol_names: Sequence[str]) -> "CandidateBasis":
        """Rebuild from stored names (inverse of .names / .symbol_names)."""
        symbols = [sympy.Symbol(s, real=True) for s in symbol_names]
        local = {str(s): s for s in symbols}
        return cls([sympy.sympify(n, locals=local) for n in names], symbols)

    @property
    def names(self) -> List[str]:
        return [str(e) for e in self.expressions]

    @property
    def symbol_names(self) -> List[str]:
        return [str(s) for s in self.symbols]

    def evaluate(self, X: np.ndarray) -> np.ndarray:
        """Library matrix Theta (n_samples, n_terms) for states X (n_samples, n_states)."""
        X = np.atleast_2d(np.asarray(X, dtype=float))
        if X.shape[1] != len(self.symbols):
            raise ValueError(f"X must have {len(self.symbols)} columns, got {X.shape[1]}")
        if not self.expressions:
            return np.empty((X.shape[0], 0))
        cols = self._fn(*X.T)
        # constant terms come back as scalars
        return np.column_stack([np.broadcast_to(np.asarray(c, dtype=float), (X.shape[0],)) for c in cols])

    def __len__(self) -> int:
        return len(self.expressions)

    def __getitem__(self, idx: int) -> sympy.Expr:
        return self.expressions[idx]

    def __iter__(self):
        return iter(self.expressions)

    def __repr__(self) -> str:
        return f"CandidateBasis({self.names})"
