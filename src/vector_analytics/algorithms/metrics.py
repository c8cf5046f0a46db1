"""
Pairwise and unary vector metrics.

Pure functions over component sequences (lists, tuples or 1-D numpy
arrays). Pairwise functions require equal lengths and raise
DimensionMismatchError otherwise; nothing here catches errors.

Degenerate inputs follow fixed conventions:
- cosine_similarity is 0 when either vector has zero magnitude
- pearson_correlation is NaN when either vector is constant
- skewness and kurtosis are 0 when the standard deviation is 0
- shannon_entropy is 0 for the zero vector
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Sequence, Union

import numpy as np

from ..enums import Activation, MetricKind
from ..exceptions import DimensionMismatchError, InvalidVectorError
from ..models import InformationQuanta

ArrayLike = Union[Sequence[float], np.ndarray]

DEFAULT_EPSILON = 0.01


def as_vector(v: ArrayLike) -> np.ndarray:
    """Convert to a 1-D float64 array without copying when possible."""
    arr = np.asarray(v, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidVectorError(f"Expected a 1-D vector, got shape {arr.shape}")
    return arr


def _pair(a: ArrayLike, b: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    x, y = as_vector(a), as_vector(b)
    if x.shape[0] != y.shape[0]:
        raise DimensionMismatchError(x.shape[0], y.shape[0])
    return x, y


# ------------------------------------------------------------------
# Elementwise arithmetic
# ------------------------------------------------------------------


def add(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    x, y = _pair(a, b)
    return x + y


def subtract(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    x, y = _pair(a, b)
    return x - y


def scale(v: ArrayLike, scalar: float) -> np.ndarray:
    return as_vector(v) * scalar


def normalize(v: ArrayLike) -> np.ndarray:
    """Unit-length copy of ``v``; the zero vector is returned unchanged."""
    x = as_vector(v)
    mag = magnitude(x)
    if mag == 0:
        return x.copy()
    return x / mag


# ------------------------------------------------------------------
# Core metrics
# ------------------------------------------------------------------


def dot_product(a: ArrayLike, b: ArrayLike) -> float:
    x, y = _pair(a, b)
    return float(np.dot(x, y))


def magnitude(v: ArrayLike) -> float:
    x = as_vector(v)
    return float(math.sqrt(np.dot(x, x)))


def distance_squared(a: ArrayLike, b: ArrayLike) -> float:
    x, y = _pair(a, b)
    d = x - y
    return float(np.dot(d, d))


def euclidean_distance(a: ArrayLike, b: ArrayLike) -> float:
    return math.sqrt(distance_squared(a, b))


def manhattan_distance(a: ArrayLike, b: ArrayLike) -> float:
    x, y = _pair(a, b)
    return float(np.sum(np.abs(x - y)))


def cosine_similarity(a: ArrayLike, b: ArrayLike) -> float:
    """
    Cosine of the angle between ``a`` and ``b``.

    Returns:
        Similarity in [-1, 1], or exactly 0.0 when either magnitude is 0
    """
    x, y = _pair(a, b)
    mag_a = magnitude(x)
    mag_b = magnitude(y)
    if mag_a == 0 or mag_b == 0:
        return 0.0
    return float(np.dot(x, y) / (mag_a * mag_b))


def pearson_correlation(a: ArrayLike, b: ArrayLike) -> float:
    """
    Pearson correlation of the components of ``a`` and ``b``.

    Returns:
        Correlation in [-1, 1]; NaN when either vector is constant so that
        callers can detect the degenerate case
    """
    x, y = _pair(a, b)
    dx = x - x.mean()
    dy = y - y.mean()
    denom = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denom == 0:
        return float("nan")
    return float(np.dot(dx, dy) / denom)


def resonance_force(a: ArrayLike, b: ArrayLike, epsilon: float = DEFAULT_EPSILON) -> float:
    """Squared dot product over squared distance plus ``epsilon``."""
    return dot_product(a, b) ** 2 / (distance_squared(a, b) + epsilon)


def harmonic_alignment(a: ArrayLike, b: ArrayLike) -> float:
    """Squared dot product over squared distance; 0 for identical vectors."""
    dist_sq = distance_squared(a, b)
    if dist_sq == 0:
        return 0.0
    return dot_product(a, b) ** 2 / dist_sq


def electromagnetic_force(a: ArrayLike, b: ArrayLike, epsilon: float = DEFAULT_EPSILON) -> float:
    return dot_product(a, b) / (distance_squared(a, b) + epsilon)


def gravitational_attraction(a: ArrayLike, b: ArrayLike, epsilon: float = DEFAULT_EPSILON) -> float:
    return magnitude(a) * magnitude(b) / (distance_squared(a, b) + epsilon)


def quantum_entanglement(a: ArrayLike, b: ArrayLike) -> float:
    """Absolute Pearson correlation (NaN for constant vectors)."""
    return abs(pearson_correlation(a, b))


def nuclear_stability(v: ArrayLike) -> float:
    """Magnitude normalised by the square root of the dimension."""
    x = as_vector(v)
    return magnitude(x) / math.sqrt(x.shape[0])


# ------------------------------------------------------------------
# Distribution-shape metrics
# ------------------------------------------------------------------


def shannon_entropy(v: ArrayLike) -> float:
    """
    Entropy (bits) of ``|v|`` normalised by its L1 norm.

    Returns:
        Value in [0, log2(n)]; 0 for the zero vector
    """
    x = np.abs(as_vector(v))
    total = float(x.sum())
    if total == 0:
        return 0.0
    p = x / total
    p = p[p > 0]
    return float(-np.sum(p * np.log2(p)))


def _standardized_moment(v: ArrayLike, order: int) -> float:
    x = as_vector(v)
    mean = x.mean()
    std = math.sqrt(float(np.mean((x - mean) ** 2)))
    if std == 0:
        return 0.0
    return float(np.mean(((x - mean) / std) ** order))


def skewness(v: ArrayLike) -> float:
    """Third standardized moment; 0 when the standard deviation is 0."""
    return _standardized_moment(v, 3)


def kurtosis(v: ArrayLike) -> float:
    """Excess kurtosis (fourth standardized moment minus 3); 0 when std is 0."""
    x = as_vector(v)
    if float(np.std(x)) == 0:
        return 0.0
    return _standardized_moment(x, 4) - 3.0


def information_quanta(v: ArrayLike, threshold: float = 0.1) -> InformationQuanta:
    """
    Split components into excitatory (> threshold), inhibitory
    (< -threshold) and neutral buckets.
    """
    x = as_vector(v)
    return InformationQuanta(
        excitatory=int(np.sum(x > threshold)),
        inhibitory=int(np.sum(x < -threshold)),
        neutral=int(np.sum(np.abs(x) <= threshold)),
        total_energy=magnitude(x),
        excitation=float(x[x > 0].sum()),
        inhibition=float(abs(x[x < 0].sum())),
    )


# ------------------------------------------------------------------
# Metric dispatch
# ------------------------------------------------------------------

PairwiseMetric = Callable[[np.ndarray, np.ndarray, float], float]

# Distances are inverted so that, like the similarities, higher means closer.
METRICS: Dict[MetricKind, PairwiseMetric] = {
    MetricKind.RESONANCE: lambda a, b, eps: resonance_force(a, b, eps),
    MetricKind.COSINE: lambda a, b, eps: cosine_similarity(a, b),
    MetricKind.CORRELATION: lambda a, b, eps: pearson_correlation(a, b),
    MetricKind.EUCLIDEAN: lambda a, b, eps: 1.0 / (1.0 + euclidean_distance(a, b)),
    MetricKind.MANHATTAN: lambda a, b, eps: 1.0 / (1.0 + manhattan_distance(a, b)),
    MetricKind.QUANTUM: lambda a, b, eps: quantum_entanglement(a, b),
}

if set(METRICS) != set(MetricKind):
    raise RuntimeError(f"Missing metric implementations: {set(MetricKind) - set(METRICS)}")


def pairwise_metric(
    a: ArrayLike,
    b: ArrayLike,
    kind: Union[MetricKind, str] = MetricKind.RESONANCE,
    epsilon: float = DEFAULT_EPSILON,
) -> float:
    """
    Evaluate the metric selected by ``kind``.

    Args:
        a: First vector
        b: Second vector
        kind: MetricKind (or its string value)
        epsilon: Softening term for resonance

    Returns:
        Metric value (higher = more similar for every kind)
    """
    x, y = _pair(a, b)
    return METRICS[MetricKind(kind)](x, y, epsilon)


def metric_matrix(
    rows: ArrayLike,
    kind: Union[MetricKind, str] = MetricKind.COSINE,
    epsilon: float = DEFAULT_EPSILON,
    unit_diagonal: bool = False,
) -> np.ndarray:
    """
    Symmetric ``count x count`` matrix of ``kind`` between all rows.

    Args:
        rows: 2-D array, one vector per row
        kind: Metric to evaluate
        epsilon: Softening term for resonance
        unit_diagonal: Put 1.0 on the diagonal instead of self-comparisons

    Returns:
        numpy array of shape (count, count)
    """
    X = np.asarray(rows, dtype=np.float64)
    if X.ndim != 2:
        raise InvalidVectorError(f"Expected a 2-D matrix, got shape {X.shape}")
    fn = METRICS[MetricKind(kind)]
    n = X.shape[0]
    out = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        out[i, i] = 1.0 if unit_diagonal else fn(X[i], X[i], epsilon)
        for j in range(i + 1, n):
            out[i, j] = out[j, i] = fn(X[i], X[j], epsilon)
    return out


def euclidean_distance_matrix(rows: ArrayLike) -> np.ndarray:
    """Pairwise Euclidean distances between rows (zero diagonal)."""
    X = np.asarray(rows, dtype=np.float64)
    if X.ndim != 2:
        raise InvalidVectorError(f"Expected a 2-D matrix, got shape {X.shape}")
    diffs = X[:, None, :] - X[None, :, :]
    return np.sqrt(np.einsum("ijd,ijd->ij", diffs, diffs))


# ------------------------------------------------------------------
# Activations
# ------------------------------------------------------------------


def _softmax(x: np.ndarray) -> np.ndarray:
    shifted = np.exp(x - x.max())
    return shifted / shifted.sum()


def _softermax(x: np.ndarray) -> np.ndarray:
    mags = np.abs(x)
    return mags / (1e-4 + mags.sum())


ACTIVATIONS: Dict[Activation, Callable[[np.ndarray], np.ndarray]] = {
    Activation.IDENTITY: lambda x: x.copy(),
    Activation.SIGMOID: lambda x: 1.0 / (1.0 + np.exp(-x)),
    Activation.TANH: np.tanh,
    Activation.RELU: lambda x: np.maximum(0.0, x),
    Activation.LEAKY_RELU: lambda x: np.where(x > 0, x, 0.01 * x),
    Activation.SOFTPLUS: lambda x: np.logaddexp(0.0, x),
    Activation.SWISH: lambda x: x / (1.0 + np.exp(-x)),
    Activation.SOFTMAX: _softmax,
    Activation.SOFTERMAX: _softermax,
    Activation.SOFT_SIGMOID: lambda x: 1.0 / (1.0 + np.abs(x)),
}

if set(ACTIVATIONS) != set(Activation):
    raise RuntimeError(f"Missing activation implementations: {set(Activation) - set(ACTIVATIONS)}")


def apply_activation(
    values: ArrayLike, kind: Union[Activation, str] = Activation.SIGMOID
) -> np.ndarray:
    """
    Apply an activation to a whole vector of inputs.

    Softmax and softermax normalise over all ``values``; every other
    activation is elementwise.
    """
    x = as_vector(values)
    if x.size == 0:
        return x.copy()
    with np.errstate(over="ignore"):
        return np.asarray(ACTIVATIONS[Activation(kind)](x), dtype=np.float64)
