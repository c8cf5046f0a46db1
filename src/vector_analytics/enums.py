"""
Closed sets of options used across the engine.

Each enum is resolved through a fixed table of functions in the module that
owns the behaviour, never by looking names up at call time. All of them are
``str`` enums so that configuration values read from the environment or a
UI (``"cosine"``, ``"average"``) convert with ``MetricKind("cosine")``.
"""

from enum import Enum


class MetricKind(str, Enum):
    """Pairwise metric used for similarity analysis and probe responses."""

    RESONANCE = "resonance"
    COSINE = "cosine"
    CORRELATION = "correlation"
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    QUANTUM = "quantum"


class Activation(str, Enum):
    """Activation applied to probe responses."""

    IDENTITY = "identity"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    SOFTPLUS = "softplus"
    SWISH = "swish"
    SOFTMAX = "softmax"
    SOFTERMAX = "softermax"
    SOFT_SIGMOID = "soft_sigmoid"


class CentroidInit(str, Enum):
    """How k-means picks its starting centroids."""

    FIRST = "first"
    RANDOM = "random"


class Linkage(str, Enum):
    """Cluster-to-cluster distance rule for agglomerative clustering."""

    SINGLE = "single"
    COMPLETE = "complete"
    AVERAGE = "average"


class AnalysisKind(str, Enum):
    """Tag of an AnalysisResult."""

    PCA = "pca"
    KMEANS = "kmeans"
    HIERARCHICAL = "hierarchical"
    STATISTICS = "statistics"
    PATTERNS = "patterns"
    SIMILARITY = "similarity"


class AnalysisState(str, Enum):
    """Lifecycle state of the analysis orchestrator."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PatternType(str, Enum):
    """Kinds of pattern emitted by the pattern detector."""

    LINEAR_RELATIONSHIP = "linear_relationship"
    SIMILARITY_GROUP = "similarity_group"
    ZERO_DIMENSION = "zero_dimension"
    OUTLIER = "outlier"
