"""
Pattern detection heuristics.

Scans a dataset for near-collinear pairs, groups of mutually similar
vectors, dimensions that are zero everywhere and magnitude outliers.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from ..config import AnalysisConfig
from ..enums import PatternType
from ..models import Dataset, Pattern, PatternReport, PatternSummary
from ..utils.logging_config import get_logger
from .metrics import cosine_similarity
from .statistics import magnitude_outliers

logger = get_logger(__name__)


def detect_linear_relationships(
    rows: np.ndarray, ids: Sequence, threshold: float = 0.95
) -> List[Pattern]:
    """One pattern per pair whose |cosine similarity| exceeds ``threshold``."""
    patterns = []
    n = len(rows)
    for i in range(n):
        for j in range(i + 1, n):
            similarity = cosine_similarity(rows[i], rows[j])
            if abs(similarity) > threshold:
                direction = "positively" if similarity > 0 else "negatively"
                patterns.append(
                    Pattern(
                        type=PatternType.LINEAR_RELATIONSHIP,
                        confidence=min(1.0, abs(similarity)),
                        description=f"Highly {direction} correlated",
                        vector_ids=(ids[i], ids[j]),
                    )
                )
    return patterns


def detect_similarity_groups(
    rows: np.ndarray, ids: Sequence, threshold: float = 0.8
) -> List[Pattern]:
    """
    Greedy single-pass grouping.

    Each unvisited vector starts a group and pulls in every later unvisited
    vector whose cosine similarity to it exceeds ``threshold``. Only groups
    with more than one member are reported.
    """
    patterns = []
    visited = set()
    n = len(rows)
    for i in range(n):
        if i in visited:
            continue
        group = [i]
        visited.add(i)
        for j in range(i + 1, n):
            if j in visited:
                continue
            if cosine_similarity(rows[i], rows[j]) > threshold:
                group.append(j)
                visited.add(j)
        if len(group) > 1:
            patterns.append(
                Pattern(
                    type=PatternType.SIMILARITY_GROUP,
                    confidence=threshold,
                    description=f"Group of {len(group)} similar vectors",
                    vector_ids=tuple(ids[g] for g in group),
                )
            )
    return patterns


def detect_zero_dimensions(rows: np.ndarray, tolerance: float = 1e-10) -> List[Pattern]:
    """Columns whose largest absolute value is below ``tolerance``."""
    max_abs = np.max(np.abs(np.asarray(rows, dtype=np.float64)), axis=0)
    return [
        Pattern(
            type=PatternType.ZERO_DIMENSION,
            confidence=1.0,
            description=f"Dimension {dim + 1} is consistently zero across all vectors",
            dimension=int(dim),
        )
        for dim in np.where(max_abs < tolerance)[0]
    ]


def detect_outliers(rows: np.ndarray, ids: Sequence, z_threshold: float = 2.0) -> List[Pattern]:
    """
    Magnitude outliers as patterns.

    Confidence is ``1 - 1/z**2``: by Chebyshev's inequality at most a
    ``1/z**2`` share of any distribution lies that far from its mean.
    """
    patterns = []
    for record in magnitude_outliers(rows, ids, z_threshold):
        z = record.z_score
        patterns.append(
            Pattern(
                type=PatternType.OUTLIER,
                confidence=max(0.0, 1.0 - 1.0 / (z * z)),
                description=(
                    f"Magnitude {record.magnitude:.4g} is {z:.2f} standard deviations "
                    f"from the mean"
                ),
                vector_ids=(record.id,),
            )
        )
    return patterns


def summarize_patterns(patterns: Sequence[Pattern]) -> PatternSummary:
    """Counts, distinct types in first-seen order, and mean confidence (0 if none)."""
    types: List[PatternType] = []
    for p in patterns:
        if p.type not in types:
            types.append(p.type)
    average = float(np.mean([p.confidence for p in patterns])) if patterns else 0.0
    return PatternSummary(
        total_patterns=len(patterns),
        pattern_types=tuple(types),
        average_confidence=average,
    )


def detect_patterns(dataset: Dataset, config: Optional[AnalysisConfig] = None) -> PatternReport:
    """
    Run every detector over a dataset.

    Args:
        dataset: Vectors to scan
        config: Thresholds for each detector

    Returns:
        PatternReport with patterns in detector order (linear relationships,
        similarity groups, zero dimensions, outliers) and a summary
    """
    config = config or AnalysisConfig()
    X = dataset.matrix
    ids = dataset.ids

    patterns: List[Pattern] = []
    patterns.extend(detect_linear_relationships(X, ids, config.collinearity_threshold))
    patterns.extend(detect_similarity_groups(X, ids, config.similarity_group_threshold))
    patterns.extend(detect_zero_dimensions(X, config.zero_dimension_tolerance))
    patterns.extend(detect_outliers(X, ids, config.outlier_z_threshold))

    summary = summarize_patterns(patterns)
    logger.debug("Detected %d patterns of types %s", summary.total_patterns,
                 [t.value for t in summary.pattern_types])
    return PatternReport(patterns=tuple(patterns), summary=summary)
