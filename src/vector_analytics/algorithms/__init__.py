"""
Algorithm Core Library - vector metrics, statistics, PCA and clustering.

This module provides the synchronous numerical core with minimal
dependencies (numpy only), separate from the orchestration layer.
Designed for reuse and testing.
"""

from .metrics import (
    dot_product,
    magnitude,
    euclidean_distance,
    manhattan_distance,
    cosine_similarity,
    pearson_correlation,
    resonance_force,
    shannon_entropy,
    skewness,
    kurtosis,
    information_quanta,
    pairwise_metric,
    metric_matrix,
    apply_activation,
)
from .statistics import profile_vector, profile_dataset, magnitude_outliers
from .dimensionality_reduction import pca_power_iteration, power_iteration, covariance_matrix
from .clustering import (
    kmeans,
    hierarchical_clustering,
    build_dendrogram,
    cluster_levels,
    silhouette_score,
    silhouette_score_precomputed,
)
from .patterns import detect_patterns
from .similarity import analyze_similarity

__all__ = [
    # Metrics
    "dot_product",
    "magnitude",
    "euclidean_distance",
    "manhattan_distance",
    "cosine_similarity",
    "pearson_correlation",
    "resonance_force",
    "shannon_entropy",
    "skewness",
    "kurtosis",
    "information_quanta",
    "pairwise_metric",
    "metric_matrix",
    "apply_activation",
    # Statistics
    "profile_vector",
    "profile_dataset",
    "magnitude_outliers",
    # Dimensionality reduction
    "pca_power_iteration",
    "power_iteration",
    "covariance_matrix",
    # Clustering
    "kmeans",
    "hierarchical_clustering",
    "build_dendrogram",
    "cluster_levels",
    "silhouette_score",
    "silhouette_score_precomputed",
    # Patterns and similarity
    "detect_patterns",
    "analyze_similarity",
]
