"""
Sparse regression on a candidate library: Y ~ Theta @ Xi with few nonzeros in Xi.

Shapes: Theta (n_samples, n_terms), Y (n_samples, n_targets),
Xi (n_terms, n_targets). The solvers are pysindy optimizers fitted directly on
a precomputed Theta; denoising and column scaling happen here, before the fit.
"""

import warnings
from typing import Tuple

import numpy as np
import pysindy as ps
from pysindy.optimizers import BaseOptimizer
from sklearn.exceptions import ConvergenceWarning


def optimal_shrinkage(A: np.ndarray) -> np.ndarray:
    """
    Denoise a data matrix by hard-thresholding its singular values.

    Uses the Gavish-Donoho cutoff for unknown noise level:
    tau = omega(beta) * median(sigma), beta = min(m, n) / max(m, n),
    omega(beta) = 0.56 beta^3 - 0.95 beta^2 + 1.82 beta + 1.43.
    """
    A = np.asarray(A, dtype=float)
    if A.size == 0:
        return A.copy()
    m, n = sorted(A.shape)
    beta = m / n
    omega = 0.56 * beta ** 3 - 0.95 * beta ** 2 + 1.82 * beta + 1.43
    U, S, Vt = np.linalg.svd(A, full_matrices=False)
    tau = omega * np.median(S)
    S = np.where(S < tau, 0.0, S)
    return (U * S) @ Vt


def normalize_columns(A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Scale each column to unit 2-norm.

    Returns (A_normalized, scales); coefficients fitted on A_normalized map back
    with xi / scales[:, None]. All-zero columns keep scale 1.
    """
    A = np.asarray(A, dtype=float)
    scales = np.linalg.norm(A, axis=0)
    scales = np.where(scales > 0, scales, 1.0)
    return A / scales, scales


def sr3(threshold: float = 1e-2, nu: float = 0.1, max_iter: int = 10000, tol: float = 1e-10) -> ps.SR3:
    """
    SR3 with an L0 penalty: coefficients below `threshold` are hard-thresholded.

    Alternates xi = (A^T A + I / nu)^-1 (A^T Y + W / nu) with W = H(xi);
    the fitted coefficients are W.
    """
    if threshold < 0:
        raise ValueError(f"threshold must be >= 0, got {threshold}")
    if nu <= 0:
        raise ValueError(f"nu must be positive, got {nu}")
    try:
        return ps.SR3(threshold=threshold, nu=nu, thresholder="L0", max_iter=max_iter, tol=tol)
    except TypeError:
        # pysindy >= 2.0 takes the L0 weight, lambda = threshold^2 / (2 nu)
        return ps.SR3(
            reg_weight_lam=threshold ** 2 / (2.0 * nu),
            regularizer="L0",
            relax_coeff_nu=nu,
            max_iter=max_iter,
            tol=tol,
        )


def stlsq(threshold: float = 1e-2, alpha: float = 0.0, max_iter: int = 100) -> ps.STLSQ:
    """Sequentially thresholded (ridge) least squares; alpha=0 is plain least squares."""
    if threshold < 0:
        raise ValueError(f"threshold must be >= 0, got {threshold}")
    if alpha < 0:
        raise ValueError(f"alpha must be >= 0, got {alpha}")
    return ps.STLSQ(threshold=threshold, alpha=alpha, max_iter=max_iter)


def fit_coefficients(optimizer: BaseOptimizer, A: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    Fit `optimizer` on Y ~ A @ Xi and return Xi.

    A 1-D Y gives a 1-D Xi of length n_terms. Hitting max_iter is not an error
    here: the caller scores whatever the solver reached.
    """
    A = np.asarray(A, dtype=float)
    Y = np.asarray(Y, dtype=float)
    squeeze = Y.ndim == 1
    if squeeze:
        Y = Y[:, None]
    if A.ndim != 2 or Y.ndim != 2 or A.shape[0] != Y.shape[0]:
        raise ValueError(f"incompatible shapes Theta {A.shape} and Y {Y.shape}")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        optimizer.fit(A, Y)
    Xi = np.array(optimizer.coef_, dtype=float).T
    return Xi[:, 0] if squeeze else Xi
