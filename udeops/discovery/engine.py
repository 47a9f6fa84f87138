"""
Equation discovery: from (states, missing term) pairs to a sparse symbolic model.

Two passes:
  1. sparse_search: SR3 over a log-spaced threshold sweep on the full candidate
     basis (optionally denoised and column-normalized); per output the candidate
     with the lowest score ||(nnz, error)|| wins.
  2. refine: the union of the selected terms becomes a reduced basis, refitted
     with STLSQ on the raw data.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from udeops.core.config import DiscoveryConfig
from udeops.core.errors import NoFeasibleModelError
from udeops.discovery.basis import CandidateBasis
from udeops.discovery.sparse import fit_coefficients, normalize_columns, optimal_shrinkage, sr3, stlsq
from udeops.discovery.symbolic import SymbolicModel


def threshold_sweep(start: float = -7.0, stop: float = 5.0, step: float = 0.1) -> np.ndarray:
    """10 ** exponents from start to stop (inclusive) in increments of step."""
    if step <= 0 or stop < start:
        raise ValueError(f"invalid exponent range ({start}, {stop}, {step})")
    return 10.0 ** np.arange(start, stop + step / 2, step)


def pareto_score(n_nonzero: int, error: float, min_nonzero: int = 1) -> float:
    """Euclidean norm of (support size, residual error); inf below min_nonzero terms."""
    if n_nonzero < min_nonzero:
        return float("inf")
    return float(np.hypot(n_nonzero, error))


@dataclass(frozen=True)
class Candidate:
    """Best pass-1 fit of one output: coefficients in the search space of Theta."""

    threshold: float
    coefficients: np.ndarray
    n_nonzero: int
    error: float
    score: float


@dataclass
class SearchResult:
    """Outcome of the threshold sweep: winner per output and the full score table."""

    thresholds: np.ndarray
    scores: np.ndarray  # (n_thresholds, n_outputs)
    best: List[Optional[Candidate]]

    @property
    def infeasible(self) -> List[int]:
        return [i for i, c in enumerate(self.best) if c is None]


def sparse_search(
    A: np.ndarray,
    Y: np.ndarray,
    thresholds: Sequence[float],
    nu: float = 0.1,
    max_iter: int = 50000,
    tol: float = 1e-10,
    min_nonzero: int = 1,
) -> SearchResult:
    """
    Fold over thresholds keeping, per output, the lowest-score candidate.

    An output whose candidates all score inf keeps None; the caller decides
    whether that is an error.
    """
    A = np.asarray(A, dtype=float)
    Y = np.asarray(Y, dtype=float)
    thresholds = np.asarray(thresholds, dtype=float)
    n_outputs = Y.shape[1]
    scores = np.full((thresholds.size, n_outputs), np.inf)
    best: List[Optional[Candidate]] = [None] * n_outputs
    for k, lam in enumerate(thresholds):
        Xi = fit_coefficients(sr3(lam, nu, max_iter=max_iter, tol=tol), A, Y)
        residual = Y - A @ Xi
        for i in range(n_outputs):
            nnz = int(np.count_nonzero(Xi[:, i]))
            err = float(np.linalg.norm(residual[:, i]))
            s = pareto_score(nnz, err, min_nonzero)
            scores[k, i] = s
            if s < (best[i].score if best[i] is not None else np.inf):
                best[i] = Candidate(lam, Xi[:, i].copy(), nnz, err, s)
    return SearchResult(thresholds=thresholds, scores=scores, best=best)


def refine(
    initial: SymbolicModel,
    X: np.ndarray,
    Y: np.ndarray,
    threshold: float = 0.01,
    alpha: float = 0.0,
    max_iter: int = 100,
) -> SymbolicModel:
    """
    Refit on the reduced basis made of the terms pass 1 selected in any output.

    The basis is shared: a term kept for one output is offered to every output
    again, so an output can regain a term its own pass-1 fit dropped.
    """
    reduced = CandidateBasis(initial.structure(), initial.basis.symbols)
    theta = reduced.evaluate(X)
    Xi = fit_coefficients(stlsq(threshold, alpha, max_iter), theta, Y)
    errors = np.linalg.norm(Y - theta @ Xi, axis=0)
    model = SymbolicModel(basis=reduced, coefficients=Xi.T, errors=errors)
    for i in np.flatnonzero(model.n_nonzero == 0):
        logger.warning("Refit removed every term of output {}", i)
    return model


@dataclass
class DiscoveryResult:
    """Pass-1 model on the full basis and the refined model on the reduced one."""

    initial: SymbolicModel
    final: SymbolicModel
    search: SearchResult


class EquationDiscovery:
    """
    Sparse regression engine configured by a DiscoveryConfig.

    Usage:
        engine = EquationDiscovery(DiscoveryConfig())
        result = engine.discover(X_hat, Y_hat)
        result.final.equations()
    """

    def __init__(self, config: Optional[DiscoveryConfig] = None, basis: Optional[CandidateBasis] = None) -> None:
        self.config = config or DiscoveryConfig()
        self.basis = basis if basis is not None else CandidateBasis.default(
            n_states=2,
            degree=self.config.polynomial_degree,
            include_sine=self.config.include_sine,
        )
        self.thresholds = threshold_sweep(*self.config.threshold_exponents)

    def preprocess(self, theta: np.ndarray):
        """Optional SVD denoising then column normalization; returns (A, scales)."""
        A = optimal_shrinkage(theta) if self.config.denoise else np.array(theta, dtype=float)
        if self.config.normalize:
            return normalize_columns(A)
        return A, np.ones(A.shape[1])

    def discover(self, X: np.ndarray, Y: np.ndarray) -> DiscoveryResult:
        """
        Args:
            X: states (n_samples, n_states), e.g. the trained model's trajectory.
            Y: target (n_samples, n_outputs), e.g. the approximator output on X.

        Returns:
            DiscoveryResult.

        Raises:
            NoFeasibleModelError: some output has no candidate with at least
                min_nonzero terms at any threshold.
        """
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        if Y.ndim == 1:
            Y = Y[:, None]
        if X.ndim != 2 or X.shape[0] != Y.shape[0]:
            raise ValueError(f"X {X.shape} and Y {Y.shape} must share the number of samples")
        cfg = self.config
        theta = self.basis.evaluate(X)
        A, scales = self.preprocess(theta)

        search = sparse_search(
            A, Y, self.thresholds, nu=cfg.sr3_nu, max_iter=cfg.max_iter, tol=cfg.tol,
            min_nonzero=cfg.min_nonzero,
        )
        if search.infeasible:
            raise NoFeasibleModelError(search.infeasible)
        logger.debug(
            "Sweep selected thresholds {}", [c.threshold for c in search.best]
        )

        coefficients = np.stack([c.coefficients for c in search.best]) / scales[None, :]
        initial = SymbolicModel(
            basis=self.basis,
            coefficients=coefficients,
            errors=[c.error for c in search.best],
        )
        final = refine(
            initial, X, Y,
            threshold=cfg.refine_threshold,
            alpha=cfg.refine_alpha,
            max_iter=cfg.refine_max_iter,
        )
        return DiscoveryResult(initial=initial, final=final, search=search)
