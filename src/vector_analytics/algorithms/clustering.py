"""
Clustering algorithms and cluster-quality metrics.

Provides k-means with empty-cluster recovery, agglomerative hierarchical
clustering with single/complete/average linkage, and the silhouette score.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..enums import CentroidInit, Linkage
from ..exceptions import InsufficientDataError, InvalidVectorError
from ..models import (
    Cluster,
    ClusterLevel,
    DendrogramNode,
    HierarchicalResult,
    KMeansResult,
    frozen_array,
)
from ..utils.logging_config import get_logger
from .metrics import euclidean_distance_matrix

logger = get_logger(__name__)

Array2D = np.ndarray
ProgressFn = Callable[[float], None]


def _as_matrix(X) -> Array2D:
    M = np.asarray(X, dtype=np.float64)
    if M.ndim != 2:
        raise InvalidVectorError(f"Expected a 2-D matrix, got shape {M.shape}")
    return M


# ------------------------------------------------------------------
# K-means helpers
# ------------------------------------------------------------------


def _init_centroids(
    X: Array2D, k: int, init: CentroidInit, rng: np.random.Generator
) -> Array2D:
    """Return (k, d) starting centroids: the first k rows, or k distinct random rows."""
    if init == CentroidInit.RANDOM:
        idx = rng.choice(X.shape[0], size=k, replace=False)
        return X[np.sort(idx)].copy()
    return X[:k].copy()


def _assign(X: Array2D, centroids: Array2D) -> np.ndarray:
    """
    Assign each row of *X* to its nearest centroid.

    Distances are computed from explicit differences so that exact ties stay
    exact; ``argmin`` then picks the lowest centroid index among ties.
    """
    diffs = X[:, None, :] - centroids[None, :, :]  # (n, k, d)
    dists = np.einsum("nkd,nkd->nk", diffs, diffs)  # (n, k)
    return np.argmin(dists, axis=1)


def _repair_empty(
    X: Array2D, labels: np.ndarray, centroids: Array2D, rng: np.random.Generator
) -> np.ndarray:
    """
    Give every empty cluster a member.

    The empty cluster's centroid is reseeded to a random point taken from a
    cluster that has more than one member, and that point moves over.
    Requires ``k <= n`` so such a donor always exists.
    """
    k = centroids.shape[0]
    labels = labels.copy()
    for j in range(k):
        if np.any(labels == j):
            continue
        sizes = np.bincount(labels, minlength=k)
        donors = np.where(sizes[labels] > 1)[0]
        idx = int(rng.choice(donors))
        logger.warning("Cluster %d became empty; reseeding it to point %d", j, idx)
        labels[idx] = j
        centroids[j] = X[idx]
    return labels


def _update_centroids(X: Array2D, labels: np.ndarray, k: int) -> Array2D:
    """
    Component-wise mean of each cluster.

    Called only on repaired labels, so every cluster 0..k-1 has a member.
    """
    return np.vstack([X[labels == j].mean(axis=0) for j in range(k)])


def _build_clusters(
    X: Array2D, labels: np.ndarray, centroids: Array2D, ids: Sequence
) -> Tuple[Cluster, ...]:
    clusters = []
    for j in range(centroids.shape[0]):
        idx = np.where(labels == j)[0]
        if len(idx) == 0:
            continue
        dists = np.linalg.norm(X[idx] - centroids[j], axis=1)
        clusters.append(
            Cluster(
                id=j,
                centroid=frozen_array(centroids[j]),
                member_indices=tuple(int(i) for i in idx),
                member_ids=tuple(ids[i] for i in idx),
                mean_distance=float(dists.mean()),
                max_distance=float(dists.max()),
                min_distance=float(dists.min()),
            )
        )
    return tuple(clusters)


def silhouette_score_precomputed(labels: np.ndarray, dist: np.ndarray) -> float:
    """
    Mean over points of ``(b - a) / max(a, b)``.

    For each point, ``a`` is its mean distance to the rest of its own cluster
    (0 when the point is alone there) and ``b`` is its smallest mean distance
    to the members of any other cluster. A lone point therefore scores 1.
    Points with ``a = b = 0`` score 0, and so does any labelling with fewer
    than two clusters.

    Args:
        labels: Cluster label per point
        dist: Pairwise distances of shape (n_samples, n_samples), zero diagonal

    Returns:
        Score in [-1, 1]
    """
    labels = np.asarray(labels)
    D = np.asarray(dist, dtype=np.float64)
    clusters = np.unique(labels)
    if len(clusters) < 2:
        return 0.0

    membership = (labels[None, :] == clusters[:, None]).astype(np.float64)  # (c, n)
    sizes = membership.sum(axis=1)
    totals = D @ membership.T  # (n, c): summed distance from each point to each cluster
    own = np.searchsorted(clusters, labels)
    rows = np.arange(len(labels))

    peers = sizes[own] - 1
    a = np.where(peers > 0, totals[rows, own] / np.maximum(peers, 1), 0.0)
    mean_to_cluster = totals / sizes
    mean_to_cluster[rows, own] = np.inf
    b = mean_to_cluster.min(axis=1)

    denom = np.maximum(a, b)
    scores = np.divide(b - a, denom, out=np.zeros_like(a), where=denom > 0)
    return float(scores.mean())


def silhouette_score(X: Array2D, labels: np.ndarray) -> float:
    """Silhouette score with Euclidean distances between the rows of *X*."""
    return silhouette_score_precomputed(labels, euclidean_distance_matrix(_as_matrix(X)))


# ------------------------------------------------------------------
# K-means
# ------------------------------------------------------------------


def kmeans(
    X: Array2D,
    k: int,
    *,
    max_iterations: int = 100,
    init: Union[CentroidInit, str] = CentroidInit.FIRST,
    seed: Optional[int] = None,
    ids: Optional[Sequence] = None,
    progress: Optional[ProgressFn] = None,
) -> KMeansResult:
    """
    Lloyd's k-means with Euclidean distance.

    Each iteration assigns every point to its nearest centroid (ties go to
    the lower centroid index), repairs empty clusters, stops if the
    assignment did not change since the previous iteration, and otherwise
    moves each centroid to the mean of its points.

    Args:
        X: Input data of shape (n_samples, n_features)
        k: Number of clusters
        max_iterations: Iteration budget
        init: "first" seeds with rows 0..k-1, "random" with k distinct random rows
        seed: Random seed for random seeding and cluster reseeding
        ids: Optional vector ids aligned with rows (default: row indices)
        progress: Optional callback receiving the completed fraction in [0, 1]

    Returns:
        KMeansResult

    Raises:
        InsufficientDataError: If k exceeds the number of samples
        ValueError: If k < 1 or max_iterations < 1
    """
    M = _as_matrix(X)
    n = M.shape[0]
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if k > n:
        raise InsufficientDataError(
            k, n, "k-means", f"Number of clusters k ({k}) cannot exceed number of vectors ({n})"
        )
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
    ids = list(ids) if ids is not None else list(range(n))
    report = progress or (lambda _fraction: None)

    rng = np.random.default_rng(seed)
    centroids = _init_centroids(M, k, CentroidInit(init), rng)
    prev: Optional[np.ndarray] = None
    labels = np.zeros(n, dtype=int)
    converged = False
    iterations = 0

    for _ in range(max_iterations):
        iterations += 1
        labels = _repair_empty(M, _assign(M, centroids), centroids, rng)
        if prev is not None and np.array_equal(labels, prev):
            converged = True
            break
        prev = labels
        centroids = _update_centroids(M, labels, k)
        report(iterations / max_iterations * 0.9)

    if not converged:
        logger.debug("k-means hit the iteration budget (%d) without converging", max_iterations)

    clusters = _build_clusters(M, labels, centroids, ids)
    inertia = float(np.sum((M - centroids[labels]) ** 2))
    score = silhouette_score(M, labels)
    report(1.0)

    logger.debug(
        "k-means: k=%d, iterations=%d, converged=%s, silhouette=%.4f",
        k, iterations, converged, score,
    )
    return KMeansResult(
        centroids=frozen_array(centroids),
        assignments=_frozen_labels(labels),
        clusters=clusters,
        iterations=iterations,
        converged=converged,
        silhouette_score=score,
        inertia=inertia,
        k=k,
    )


def _frozen_labels(labels: np.ndarray) -> np.ndarray:
    out = np.array(labels, dtype=int)
    out.setflags(write=False)
    return out


# ------------------------------------------------------------------
# Hierarchical clustering
# ------------------------------------------------------------------


def _merge_distance(
    linkage: Linkage, d_a: np.ndarray, d_b: np.ndarray, size_a: int, size_b: int
) -> np.ndarray:
    """Distance from a merged cluster (a + b) to every other cluster."""
    if linkage == Linkage.SINGLE:
        return np.minimum(d_a, d_b)
    if linkage == Linkage.COMPLETE:
        return np.maximum(d_a, d_b)
    return (size_a * d_a + size_b * d_b) / (size_a + size_b)


def build_dendrogram(
    distance_matrix: np.ndarray,
    linkage: Union[Linkage, str] = Linkage.AVERAGE,
    progress: Optional[ProgressFn] = None,
) -> Tuple[DendrogramNode, ...]:
    """
    Agglomerate clusters until one remains.

    Scans the active clusters in order (merged clusters are appended at the
    end) and merges the first closest pair found. Cluster-to-cluster
    distances are kept up to date with the Lance-Williams update, which for
    single, complete and average linkage equals the min, max and mean of the
    pairwise member distances.

    Args:
        distance_matrix: Symmetric (n, n) distances between original points
        linkage: Linkage rule
        progress: Optional callback receiving the completed fraction in [0, 1]

    Returns:
        The n - 1 merge nodes in merge order; the last one is the root

    Raises:
        InsufficientDataError: If there are fewer than 2 points
    """
    linkage = Linkage(linkage)
    D = np.array(distance_matrix, dtype=np.float64)
    n = D.shape[0]
    if D.ndim != 2 or D.shape[1] != n:
        raise InvalidVectorError(f"Distance matrix must be square, got shape {D.shape}")
    if n < 2:
        raise InsufficientDataError(2, n, "hierarchical clustering")
    report = progress or (lambda _fraction: None)

    # Each active node owns a row/column ("slot") of D; a merge reuses the
    # slot of its left child.
    active: List[DendrogramNode] = [DendrogramNode(id=i, members=(i,)) for i in range(n)]
    slots: List[int] = list(range(n))
    merges: List[DendrogramNode] = []

    while len(active) > 1:
        sub = D[np.ix_(slots, slots)]
        sub[np.tril_indices(len(slots))] = np.inf
        flat = int(np.argmin(sub))
        i, j = divmod(flat, len(slots))
        height = float(sub[i, j])

        left, right = active[i], active[j]
        node = DendrogramNode(
            id=n + len(merges),
            members=left.members + right.members,
            height=height,
            left=left,
            right=right,
        )
        merges.append(node)

        a, b = slots[i], slots[j]
        others = [s for s in slots if s not in (a, b)]
        if others:
            merged = _merge_distance(linkage, D[a, others], D[b, others], left.size, right.size)
            D[a, others] = merged
            D[others, a] = merged

        del active[j], slots[j]
        del active[i], slots[i]
        active.append(node)
        slots.append(a)
        report(len(merges) / (n - 1))

    return tuple(merges)


def cut_dendrogram(root: DendrogramNode, threshold: float) -> List[Tuple[int, ...]]:
    """
    Flat clusters below ``threshold``.

    A node whose merge height is at most ``threshold`` (or a leaf) becomes one
    cluster; higher nodes are split into their children. Clusters come out in
    left-to-right order.
    """
    clusters: List[Tuple[int, ...]] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_leaf or node.height <= threshold:
            clusters.append(node.members)
            continue
        stack.append(node.right)
        stack.append(node.left)
    return clusters


def cluster_levels(dendrogram: Sequence[DendrogramNode], n: int) -> Tuple[ClusterLevel, ...]:
    """
    Cut the tree at heights proportional to the tallest merge.

    For ``k`` in 2..n the threshold is ``max_height * (n - k) / (n - 1)``,
    so larger ``k`` gives a lower cut and finer clusters. The number of
    clusters obtained only approximates ``k``.
    """
    if not dendrogram or n < 2:
        return ()
    root = dendrogram[-1]
    max_height = max(node.height for node in dendrogram)
    levels = []
    for k in range(2, n + 1):
        threshold = max_height * (n - k) / (n - 1)
        levels.append(
            ClusterLevel(k=k, threshold=threshold, clusters=tuple(cut_dendrogram(root, threshold)))
        )
    return tuple(levels)


def hierarchical_clustering(
    X: Array2D,
    linkage: Union[Linkage, str] = Linkage.AVERAGE,
    *,
    progress: Optional[ProgressFn] = None,
) -> HierarchicalResult:
    """
    Agglomerative clustering of the rows of *X* with Euclidean distances.

    Args:
        X: Input data of shape (n_samples, n_features)
        linkage: "single", "complete" or "average"
        progress: Optional callback receiving the completed fraction in [0, 1]

    Returns:
        HierarchicalResult with n - 1 merges, the distance matrix and cut levels

    Raises:
        InsufficientDataError: If there are fewer than 2 samples
    """
    M = _as_matrix(X)
    n = M.shape[0]
    if n < 2:
        raise InsufficientDataError(2, n, "hierarchical clustering")
    linkage = Linkage(linkage)
    report = progress or (lambda _fraction: None)

    dist = euclidean_distance_matrix(M)
    report(0.3)
    merges = build_dendrogram(dist, linkage, progress=lambda f: report(0.3 + 0.5 * f))
    levels = cluster_levels(merges, n)
    report(1.0)

    logger.debug("Hierarchical (%s): %d points, root height %.4f", linkage.value, n, merges[-1].height)
    return HierarchicalResult(
        dendrogram=merges,
        distance_matrix=frozen_array(dist),
        cluster_levels=levels,
        linkage=linkage,
    )
