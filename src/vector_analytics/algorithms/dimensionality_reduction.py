"""
Dimensionality reduction via covariance power iteration.

Provides a simplified PCA: the covariance matrix of the centered data is
searched for its dominant eigen-pairs by power iteration with a fixed
iteration count.

Each component is found independently from a fresh random start. Without
deflation every run converges toward the same dominant eigenvector, so
components beyond the first are not guaranteed to be orthogonal (or
distinct). ``deflate=True`` subtracts each found component from the
covariance before searching for the next one.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Tuple

import numpy as np

from ..exceptions import InsufficientDataError, InvalidVectorError
from ..models import PCAResult, frozen_array
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray
ProgressFn = Callable[[float], None]


def _as_matrix(X) -> Array2D:
    M = np.asarray(X, dtype=np.float64)
    if M.ndim != 2:
        raise InvalidVectorError(f"Expected a 2-D matrix, got shape {M.shape}")
    return M


def center_matrix(X: Array2D) -> Tuple[Array2D, np.ndarray]:
    """
    Subtract per-column means.

    Args:
        X: Input data of shape (n_samples, n_features)

    Returns:
        Tuple of (centered copy of X, column means)
    """
    M = _as_matrix(X)
    means = M.mean(axis=0)
    return M - means, means


def covariance_matrix(centered: Array2D) -> Array2D:
    """
    Sample covariance of already-centered rows.

    ``Cov[i, j] = sum_k centered[k, i] * centered[k, j] / (rows - 1)``

    Raises:
        InsufficientDataError: If there are fewer than 2 rows
    """
    C = _as_matrix(centered)
    rows = C.shape[0]
    if rows < 2:
        raise InsufficientDataError(2, rows, "covariance")
    return (C.T @ C) / (rows - 1)


def power_iteration(
    matrix: Array2D, iterations: int = 100, rng: Optional[np.random.Generator] = None
) -> Tuple[float, np.ndarray]:
    """
    Approximate the dominant eigen-pair of a square matrix.

    Starts from a uniform random vector, multiplies by ``matrix`` and
    renormalises ``iterations`` times. The eigenvalue is the Rayleigh
    quotient of the final unit vector. If the product collapses to zero
    (e.g. a zero matrix) the last unit vector is kept.

    Args:
        matrix: Square matrix (typically a covariance matrix)
        iterations: Fixed number of multiply/normalise steps
        rng: Random generator for the start vector

    Returns:
        Tuple of (eigenvalue, unit eigenvector)
    """
    M = _as_matrix(matrix)
    rng = rng or np.random.default_rng()
    size = M.shape[0]

    vector = rng.random(size)
    norm = np.linalg.norm(vector)
    vector = vector / norm if norm > 0 else np.full(size, 1.0 / math.sqrt(size))

    for _ in range(iterations):
        product = M @ vector
        norm = np.linalg.norm(product)
        if norm == 0:
            break
        vector = product / norm

    eigenvalue = float(vector @ (M @ vector))
    return eigenvalue, vector


def explained_variance(eigenvalues: np.ndarray, retained: int) -> float:
    """Sum of the first ``retained`` eigenvalues over the sum of all of them."""
    total = float(np.sum(eigenvalues))
    if total <= 0:
        return 0.0
    ratio = float(np.sum(eigenvalues[:retained])) / total
    return min(1.0, max(0.0, ratio))


def pca_power_iteration(
    X: Array2D,
    k: int = 2,
    *,
    iterations: int = 100,
    seed: Optional[int] = None,
    deflate: bool = False,
    progress: Optional[ProgressFn] = None,
) -> PCAResult:
    """
    Project data onto its top ``k`` principal components.

    Pipeline:
    1. Center columns
    2. Covariance matrix (divide by rows - 1)
    3. ``k`` independent power iterations on the covariance
    4. Project centered rows onto each eigenvector

    Args:
        X: Input data of shape (n_samples, n_features)
        k: Number of components; clamped to n_features
        iterations: Power-iteration steps per component
        seed: Seed for the random start vectors
        deflate: Remove each found component from the covariance before the next
        progress: Optional callback receiving the completed fraction in [0, 1]

    Returns:
        PCAResult with projected data of shape (n_samples, k_used)

    Raises:
        InsufficientDataError: If X has fewer than 2 rows
        ValueError: If k < 1
    """
    M = _as_matrix(X)
    n, d = M.shape
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if n < 2:
        raise InsufficientDataError(2, n, "PCA")
    kk = int(min(k, d))
    if kk < k:
        logger.warning("Requested %d components but data has %d dimensions; using %d", k, d, kk)

    report = progress or (lambda _fraction: None)
    centered, means = center_matrix(M)
    report(0.2)
    cov = covariance_matrix(centered)
    trace = float(np.trace(cov))
    report(0.4)

    rng = np.random.default_rng(seed)
    work = cov.copy()
    eigenvalues = np.empty(kk)
    eigenvectors = np.empty((kk, d))
    for c in range(kk):
        value, vector = power_iteration(work, iterations, rng)
        eigenvalues[c] = value
        eigenvectors[c] = vector
        if deflate:
            work = work - value * np.outer(vector, vector)
        report(0.4 + 0.4 * (c + 1) / kk)

    projected = centered @ eigenvectors.T
    report(1.0)

    ratios = eigenvalues / trace if trace > 0 else np.zeros(kk)
    logger.debug("PCA: %d x %d -> %d components, eigenvalues=%s", n, d, kk, eigenvalues.tolist())
    return PCAResult(
        projected_data=frozen_array(projected),
        eigenvalues=frozen_array(eigenvalues),
        eigenvectors=frozen_array(eigenvectors),
        explained_variance=explained_variance(eigenvalues, kk),
        explained_variance_ratio=frozen_array(ratios),
        means=frozen_array(means),
        components=kk,
    )
