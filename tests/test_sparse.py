"""Tests for the sparse regression solvers and preprocessing."""

import numpy as np
import pytest

from udeops.discovery import fit_coefficients, normalize_columns, optimal_shrinkage, sr3, stlsq


@pytest.fixture
def sparse_problem():
    rng = np.random.default_rng(0)
    A = rng.standard_normal((100, 6))
    Xi = np.zeros((6, 2))
    Xi[0, 0], Xi[3, 0] = 1.5, 0.7
    Xi[1, 1] = -2.0
    return A, Xi, A @ Xi


def test_normalize_columns() -> None:
    A = np.array([[3.0, 0.0, 1.0], [4.0, 0.0, 1.0]])
    An, scales = normalize_columns(A)
    np.testing.assert_allclose(scales, [5.0, 1.0, np.sqrt(2.0)])
    np.testing.assert_allclose(np.linalg.norm(An[:, [0, 2]], axis=0), [1.0, 1.0])
    np.testing.assert_array_equal(An[:, 1], 0.0)


def test_optimal_shrinkage_recovers_low_rank() -> None:
    rng = np.random.default_rng(1)
    clean = np.outer(rng.standard_normal(50), rng.standard_normal(10))
    noisy = clean + 1e-3 * rng.standard_normal(clean.shape)
    denoised = optimal_shrinkage(noisy)
    assert np.linalg.matrix_rank(denoised, tol=1e-8) == 1
    np.testing.assert_allclose(denoised, clean, atol=5e-3)


def test_sr3_recovers_exact_sparse_solution(sparse_problem) -> None:
    A, Xi, Y = sparse_problem
    coef = fit_coefficients(sr3(threshold=0.1, nu=0.1, max_iter=1000, tol=1e-12), A, Y)
    assert coef.shape == Xi.shape
    np.testing.assert_allclose(coef, Xi, atol=1e-8)


def test_sr3_large_threshold_gives_zero(sparse_problem) -> None:
    A, _, Y = sparse_problem
    assert np.count_nonzero(fit_coefficients(sr3(threshold=100.0), A, Y)) == 0


def test_sr3_single_target(sparse_problem) -> None:
    A, Xi, Y = sparse_problem
    coef = fit_coefficients(sr3(threshold=0.1), A, Y[:, 1])
    assert coef.shape == (6,)
    np.testing.assert_allclose(coef, Xi[:, 1], atol=1e-8)


def test_solvers_reject_bad_settings() -> None:
    with pytest.raises(ValueError):
        sr3(threshold=-1.0)
    with pytest.raises(ValueError):
        sr3(nu=0.0)
    with pytest.raises(ValueError):
        stlsq(alpha=-1.0)
    with pytest.raises(ValueError):
        fit_coefficients(sr3(), np.ones((5, 2)), np.ones((4, 1)))


def test_stlsq_drops_small_terms_under_noise(sparse_problem) -> None:
    A, Xi, Y = sparse_problem
    noisy = Y + 1e-3 * np.random.default_rng(3).standard_normal(Y.shape)
    coef = fit_coefficients(stlsq(threshold=0.05), A, noisy)
    np.testing.assert_array_equal(coef != 0, Xi != 0)
    np.testing.assert_allclose(coef, Xi, atol=1e-3)
