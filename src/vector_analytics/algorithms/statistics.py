"""
Per-vector and per-dataset statistics.

Builds on the metric library: moments, sparsity and entropy-derived
quantities for single vectors, plus a similarity matrix and magnitude
outliers for whole datasets.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

import numpy as np

from ..config import AnalysisConfig
from ..enums import MetricKind
from ..exceptions import InvalidVectorError
from ..models import (
    Dataset,
    OutlierRecord,
    StatisticsResult,
    StatisticsSummary,
    VectorProfile,
    VectorStatistics,
    frozen_array,
)
from ..utils.logging_config import get_logger
from . import metrics
from .metrics import ArrayLike

logger = get_logger(__name__)


def sparsity(v: ArrayLike, threshold: float = 1e-10) -> float:
    """Fraction of components with ``|x| < threshold``."""
    x = metrics.as_vector(v)
    return float(np.mean(np.abs(x) < threshold))


def effective_dimensionality(entropy: float) -> float:
    """Perplexity of the component distribution, ``2 ** entropy``."""
    return float(2.0 ** entropy)


def information_density(entropy: float, n: int) -> float:
    """Entropy relative to its maximum ``log2(n)``; 1.0 when ``n <= 1``."""
    if n <= 1:
        return 1.0
    return float(entropy / math.log2(n))


def profile_vector(v: ArrayLike, sparsity_threshold: float = 1e-10) -> VectorProfile:
    """
    Descriptive statistics of one vector's components.

    Variance and standard deviation are population statistics (divide by n).

    Args:
        v: Component sequence (at least one element)
        sparsity_threshold: |x| below this counts as zero

    Returns:
        VectorProfile

    Raises:
        InvalidVectorError: If ``v`` is empty
    """
    x = metrics.as_vector(v)
    n = x.shape[0]
    if n == 0:
        raise InvalidVectorError("Cannot profile an empty vector")

    mean = float(x.mean())
    variance = float(np.mean((x - mean) ** 2))
    lo = float(x.min())
    hi = float(x.max())
    entropy = metrics.shannon_entropy(x)
    return VectorProfile(
        mean=mean,
        variance=variance,
        standard_deviation=math.sqrt(variance),
        min=lo,
        max=hi,
        range=hi - lo,
        skewness=metrics.skewness(x),
        kurtosis=metrics.kurtosis(x),
        magnitude=metrics.magnitude(x),
        sparsity=sparsity(x, sparsity_threshold),
        entropy=entropy,
        effective_dimensionality=effective_dimensionality(entropy),
        information_density=information_density(entropy, n),
    )


def magnitude_outliers(
    rows: ArrayLike,
    ids: Optional[Sequence] = None,
    z_threshold: float = 2.0,
) -> List[OutlierRecord]:
    """
    Vectors whose magnitude deviates from the mean magnitude by more than
    ``z_threshold`` population standard deviations.

    Args:
        rows: 2-D array, one vector per row
        ids: Optional ids aligned with rows (default: row indices)
        z_threshold: Deviation threshold in standard deviations

    Returns:
        OutlierRecord list in row order (empty when all magnitudes are equal)
    """
    X = np.asarray(rows, dtype=np.float64)
    mags = np.sqrt(np.sum(X ** 2, axis=1))
    mean = float(mags.mean())
    std = float(mags.std())
    ids = list(ids) if ids is not None else list(range(X.shape[0]))

    outliers = []
    for i, m in enumerate(mags):
        deviation = abs(float(m) - mean)
        if deviation > z_threshold * std:
            outliers.append(
                OutlierRecord(
                    index=i,
                    id=ids[i],
                    magnitude=float(m),
                    deviation=deviation,
                    z_score=deviation / std,
                )
            )
    return outliers


def similarity_matrix(rows: ArrayLike) -> np.ndarray:
    """Cosine-similarity matrix with a unit diagonal."""
    return metrics.metric_matrix(rows, MetricKind.COSINE, unit_diagonal=True)


def profile_dataset(dataset: Dataset, config: Optional[AnalysisConfig] = None) -> StatisticsResult:
    """
    Profile every vector of a dataset and the dataset as a whole.

    Args:
        dataset: Vectors to profile
        config: Thresholds (sparsity, quanta, outlier z-score)

    Returns:
        StatisticsResult with per-vector records, a profile of all components
        pooled together, the similarity matrix, outliers and a summary
    """
    config = config or AnalysisConfig()
    X = dataset.matrix

    vector_stats = tuple(
        VectorStatistics(
            id=v.id,
            profile=profile_vector(v.components, config.sparsity_threshold),
            quanta=metrics.information_quanta(v.components, config.quantum_threshold),
        )
        for v in dataset.vectors
    )
    global_stats = profile_vector(X.ravel(), config.sparsity_threshold)
    correlation = frozen_array(similarity_matrix(X))
    outliers = tuple(magnitude_outliers(X, dataset.ids, config.outlier_z_threshold))

    sparsities = [s.profile.sparsity for s in vector_stats]
    summary = StatisticsSummary(
        total_vectors=dataset.count,
        dimensions=dataset.dimensions,
        average_magnitude=float(np.mean([s.profile.magnitude for s in vector_stats])),
        sparsity_min=float(min(sparsities)),
        sparsity_max=float(max(sparsities)),
        outlier_count=len(outliers),
    )
    logger.debug(
        "Profiled %d vectors (%d dims), %d outliers",
        dataset.count,
        dataset.dimensions,
        len(outliers),
    )
    return StatisticsResult(
        vector_statistics=vector_stats,
        global_statistics=global_stats,
        correlation_matrix=correlation,
        outliers=outliers,
        summary=summary,
    )
