"""
Similarity analysis: the metric matrix of a dataset and, when a probe
vector is present, how strongly each vector responds to it.
"""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np

from ..config import AnalysisConfig
from ..models import Dataset, ProbeResponse, SimilarityResult, Vector, frozen_array
from ..utils.logging_config import get_logger
from . import metrics

logger = get_logger(__name__)


def synaptic_strength(correlation: float, distance: float) -> float:
    """``|corr| / (1 + distance)``; 0 when the correlation is undefined (NaN)."""
    if math.isnan(correlation):
        return 0.0
    return abs(correlation) / (1.0 + distance)


def probe_responses(
    probe: Vector, vectors: List[Vector], config: Optional[AnalysisConfig] = None
) -> List[ProbeResponse]:
    """
    Response of each vector to ``probe`` under the configured metric.

    Raw metric values are passed through the configured activation as one
    batch so that softmax-style activations normalise across all vectors.
    Vectors sharing the probe's id are skipped.
    """
    config = config or AnalysisConfig()
    targets = [v for v in vectors if v.id != probe.id]
    if not targets:
        return []

    raw = []
    for v in targets:
        value = metrics.pairwise_metric(
            probe.components, v.components, config.metric, config.resonance_epsilon
        )
        corr = metrics.quantum_entanglement(probe.components, v.components)
        dist = metrics.euclidean_distance(probe.components, v.components)
        raw.append((v, value, corr, dist))

    values = np.array([r[1] for r in raw], dtype=np.float64)
    activations = metrics.apply_activation(np.nan_to_num(values, nan=0.0), config.activation)

    return [
        ProbeResponse(
            id=v.id,
            metric_value=float(value),
            correlation=float(corr),
            distance=float(dist),
            synaptic_strength=synaptic_strength(corr, dist),
            activation=float(act),
        )
        for (v, value, corr, dist), act in zip(raw, activations)
    ]


def analyze_similarity(dataset: Dataset, config: Optional[AnalysisConfig] = None) -> SimilarityResult:
    """
    Pairwise metric matrix over the dataset plus probe responses.

    Args:
        dataset: Vectors (and optional probe) to compare
        config: Metric, activation and epsilon

    Returns:
        SimilarityResult; ``probe_responses`` is empty without a probe
    """
    config = config or AnalysisConfig()
    matrix = metrics.metric_matrix(dataset.matrix, config.metric, config.resonance_epsilon)

    responses: List[ProbeResponse] = []
    probe_id = None
    if dataset.probe is not None:
        probe_id = dataset.probe.id
        responses = probe_responses(dataset.probe, list(dataset.vectors), config)

    logger.debug(
        "Similarity (%s): %d vectors, %d probe responses",
        config.metric.value, dataset.count, len(responses),
    )
    return SimilarityResult(
        metric=config.metric,
        ids=tuple(dataset.ids),
        matrix=frozen_array(matrix),
        probe_id=probe_id,
        probe_responses=tuple(responses),
    )
