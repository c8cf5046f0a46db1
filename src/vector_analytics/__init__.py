"""
Vector Analytics - Core Package

Analysis engine for collections of n-dimensional vectors ("atoms").

This package provides:
- A library of pairwise and unary vector metrics
- Statistical profiling of vectors and datasets
- PCA by power iteration
- K-means and hierarchical clustering
- Pattern detection
- An async orchestration service producing tagged analysis results
"""

__version__ = "0.1.0"

from .config import AnalysisConfig
from .enums import (
    Activation,
    AnalysisKind,
    AnalysisState,
    CentroidInit,
    Linkage,
    MetricKind,
    PatternType,
)
from .exceptions import (
    AnalysisErrorInfo,
    AnalysisFailedError,
    AnalysisInProgressError,
    DimensionMismatchError,
    InsufficientDataError,
    InvalidVectorError,
    VectorAnalyticsError,
)
from .models import AnalysisResult, Dataset, Vector
from .services import AnalysisService

# Explicitly import subpackages to ensure they're discoverable
from . import algorithms
from . import services
from . import utils

__all__ = [
    "AnalysisConfig",
    "AnalysisService",
    "AnalysisResult",
    "Dataset",
    "Vector",
    "Activation",
    "AnalysisKind",
    "AnalysisState",
    "CentroidInit",
    "Linkage",
    "MetricKind",
    "PatternType",
    "AnalysisErrorInfo",
    "AnalysisFailedError",
    "AnalysisInProgressError",
    "DimensionMismatchError",
    "InsufficientDataError",
    "InvalidVectorError",
    "VectorAnalyticsError",
    "algorithms",
    "services",
    "utils",
]
