"""
Data model shared by the analytics engine and its callers.

Vectors and datasets are read-only inputs; every analysis returns new,
frozen result objects. Numeric arrays stored on these objects are flagged
non-writeable so callers cannot mutate a result in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .enums import AnalysisKind, Linkage, MetricKind, PatternType
from .exceptions import DimensionMismatchError, InsufficientDataError, InvalidVectorError

VectorId = Union[int, str]


def frozen_array(values: Any, ndim: Optional[int] = None) -> np.ndarray:
    """Copy ``values`` into a read-only float64 array."""
    arr = np.array(values, dtype=np.float64)
    if ndim is not None and arr.ndim != ndim:
        raise InvalidVectorError(f"Expected a {ndim}-D array, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Vector:
    """
    One n-dimensional vector.

    Attributes:
        id: Integer index or string tag (e.g. "input")
        components: Read-only float64 array of length n
        metadata: Display data (position, color, scale); ignored by analytics
    """

    id: VectorId
    components: np.ndarray
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Freeze components and reject empty or non-finite vectors."""
        comps = frozen_array(self.components, ndim=1)
        if comps.size == 0:
            raise InvalidVectorError(f"Vector {self.id!r} has no components")
        if not np.all(np.isfinite(comps)):
            raise InvalidVectorError(f"Vector {self.id!r} has non-finite components")
        object.__setattr__(self, "components", comps)

    @property
    def dimensions(self) -> int:
        return int(self.components.shape[0])

    @classmethod
    def from_values(cls, id: VectorId, values: Iterable[float], **metadata: Any) -> "Vector":
        return cls(id=id, components=np.asarray(list(values), dtype=np.float64), metadata=metadata)

    def __repr__(self) -> str:
        return f"Vector(id={self.id!r}, dimensions={self.dimensions})"


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Ordered collection of vectors with a uniform component count.

    The optional probe (input) vector must have the same dimension but is
    not part of ``vectors``.
    """

    vectors: Tuple[Vector, ...]
    probe: Optional[Vector] = None

    def __post_init__(self):
        """Validate count and dimensions; cache the read-only matrix."""
        vectors = tuple(self.vectors)
        if not vectors:
            raise InsufficientDataError(1, 0, "Dataset", "A dataset needs at least one vector")
        expected = vectors[0].dimensions
        for v in vectors[1:]:
            if v.dimensions != expected:
                raise DimensionMismatchError(expected, v.dimensions, context=f"vector {v.id!r}")
        if self.probe is not None and self.probe.dimensions != expected:
            raise DimensionMismatchError(expected, self.probe.dimensions, context="probe vector")
        object.__setattr__(self, "vectors", vectors)
        object.__setattr__(self, "_matrix", frozen_array([v.components for v in vectors], ndim=2))

    @classmethod
    def from_arrays(
        cls,
        rows: Sequence[Sequence[float]],
        ids: Optional[Sequence[VectorId]] = None,
        probe: Optional[Sequence[float]] = None,
        probe_id: VectorId = "input",
    ) -> "Dataset":
        """
        Build a dataset from raw component rows.

        Args:
            rows: One sequence of floats per vector
            ids: Optional ids (default: 0..count-1)
            probe: Optional probe/input vector components
            probe_id: Id given to the probe vector

        Returns:
            Dataset
        """
        rows = list(rows)
        if ids is None:
            ids = list(range(len(rows)))
        elif len(ids) != len(rows):
            raise ValueError(f"Got {len(ids)} ids for {len(rows)} vectors")
        vectors = tuple(Vector.from_values(i, r) for i, r in zip(ids, rows))
        probe_vec = Vector.from_values(probe_id, probe) if probe is not None else None
        return cls(vectors=vectors, probe=probe_vec)

    @property
    def matrix(self) -> np.ndarray:
        """Read-only ``count x dimensions`` array of components."""
        return self._matrix

    @property
    def ids(self) -> List[VectorId]:
        return [v.id for v in self.vectors]

    @property
    def count(self) -> int:
        return len(self.vectors)

    @property
    def dimensions(self) -> int:
        return self.vectors[0].dimensions

    def require(self, min_count: int, operation: str) -> None:
        """Raise InsufficientDataError when fewer than ``min_count`` vectors exist."""
        if self.count < min_count:
            raise InsufficientDataError(min_count, self.count, operation)

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        probe = f", probe={self.probe.id!r}" if self.probe is not None else ""
        return f"Dataset(count={self.count}, dimensions={self.dimensions}{probe})"


@dataclass(frozen=True, eq=False)
class Cluster:
    """One k-means cluster with its distance aggregates."""

    id: int
    centroid: np.ndarray
    member_indices: Tuple[int, ...]
    member_ids: Tuple[VectorId, ...]
    mean_distance: float
    max_distance: float
    min_distance: float

    @property
    def size(self) -> int:
        return len(self.member_indices)


@dataclass(frozen=True, eq=False)
class DendrogramNode:
    """
    Node of an agglomerative clustering tree.

    Leaves carry a single original index as ``id`` and height 0. Internal
    nodes are numbered from ``count`` upward in merge order.
    """

    id: int
    members: Tuple[int, ...]
    height: float = 0.0
    left: Optional["DendrogramNode"] = None
    right: Optional["DendrogramNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class Pattern:
    """A detected pattern and how confident the detector is in it."""

    type: PatternType
    confidence: float
    description: str
    vector_ids: Tuple[VectorId, ...] = ()
    dimension: Optional[int] = None


# ----------------------------------------------------------------------
# Analysis payloads
# ----------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class PCAResult:
    """Principal components found by power iteration."""

    projected_data: np.ndarray
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    explained_variance: float
    explained_variance_ratio: np.ndarray
    means: np.ndarray
    components: int


@dataclass(frozen=True, eq=False)
class KMeansResult:
    centroids: np.ndarray
    assignments: np.ndarray
    clusters: Tuple[Cluster, ...]
    iterations: int
    converged: bool
    silhouette_score: float
    inertia: float
    k: int


@dataclass(frozen=True)
class ClusterLevel:
    """Flat clustering obtained by cutting the dendrogram at ``threshold``."""

    k: int
    threshold: float
    clusters: Tuple[Tuple[int, ...], ...]


@dataclass(frozen=True, eq=False)
class HierarchicalResult:
    dendrogram: Tuple[DendrogramNode, ...]
    distance_matrix: np.ndarray
    cluster_levels: Tuple[ClusterLevel, ...]
    linkage: Linkage

    @property
    def root(self) -> DendrogramNode:
        """Final merge node (the single leaf when there was nothing to merge)."""
        return self.dendrogram[-1]


@dataclass(frozen=True)
class VectorProfile:
    """Descriptive statistics of one vector's components."""

    mean: float
    variance: float
    standard_deviation: float
    min: float
    max: float
    range: float
    skewness: float
    kurtosis: float
    magnitude: float
    sparsity: float
    entropy: float
    effective_dimensionality: float
    information_density: float


@dataclass(frozen=True)
class InformationQuanta:
    """Excitatory/inhibitory/neutral split of a vector's components."""

    excitatory: int
    inhibitory: int
    neutral: int
    total_energy: float
    excitation: float
    inhibition: float


@dataclass(frozen=True)
class VectorStatistics:
    id: VectorId
    profile: VectorProfile
    quanta: InformationQuanta


@dataclass(frozen=True)
class OutlierRecord:
    index: int
    id: VectorId
    magnitude: float
    deviation: float
    z_score: float


@dataclass(frozen=True)
class StatisticsSummary:
    total_vectors: int
    dimensions: int
    average_magnitude: float
    sparsity_min: float
    sparsity_max: float
    outlier_count: int


@dataclass(frozen=True, eq=False)
class StatisticsResult:
    vector_statistics: Tuple[VectorStatistics, ...]
    global_statistics: VectorProfile
    correlation_matrix: np.ndarray
    outliers: Tuple[OutlierRecord, ...]
    summary: StatisticsSummary


@dataclass(frozen=True)
class PatternSummary:
    total_patterns: int
    pattern_types: Tuple[PatternType, ...]
    average_confidence: float


@dataclass(frozen=True)
class PatternReport:
    patterns: Tuple[Pattern, ...]
    summary: PatternSummary


@dataclass(frozen=True)
class ProbeResponse:
    """How one vector responds to the dataset's probe vector."""

    id: VectorId
    metric_value: float
    correlation: float
    distance: float
    synaptic_strength: float
    activation: float


@dataclass(frozen=True, eq=False)
class SimilarityResult:
    metric: MetricKind
    ids: Tuple[VectorId, ...]
    matrix: np.ndarray
    probe_id: Optional[VectorId] = None
    probe_responses: Tuple[ProbeResponse, ...] = ()

    @property
    def ranking(self) -> List[VectorId]:
        """Vector ids ordered by probe activation, strongest first."""
        ordered = sorted(self.probe_responses, key=lambda r: r.activation, reverse=True)
        return [r.id for r in ordered]


AnalysisPayload = Union[
    PCAResult, KMeansResult, HierarchicalResult, StatisticsResult, PatternReport, SimilarityResult
]


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    """
    Tagged, timestamped result produced by the orchestrator.

    Attributes:
        kind: Which analysis produced the payload
        payload: Kind-specific result object
        created_at: UTC creation time
        vector_count: Number of vectors analysed
        dimensions: Component count of the analysed vectors
        parameters: Parameters the analysis ran with
    """

    kind: AnalysisKind
    payload: AnalysisPayload
    vector_count: int
    dimensions: int
    parameters: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """
        Export as plain Python data (lists, floats, strings).

        Dendrogram nodes are exported without their children; the
        ``dendrogram`` list already holds every merge in order.
        """
        return {
            "type": self.kind.value,
            "data": to_plain(self.payload),
            "timestamp": self.created_at.isoformat(),
            "vector_count": self.vector_count,
            "dimensions": self.dimensions,
            "parameters": to_plain(dict(self.parameters)),
            "exported_at": datetime.now(timezone.utc).isoformat(),
        }


def to_plain(value: Any) -> Any:
    """Recursively convert results to JSON-friendly Python objects."""
    if isinstance(value, DendrogramNode):
        return {
            "id": value.id,
            "members": list(value.members),
            "height": value.height,
            "left": value.left.id if value.left is not None else None,
            "right": value.right.id if value.right is not None else None,
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(to_plain(k)): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
