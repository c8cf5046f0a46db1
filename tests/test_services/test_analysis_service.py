"""
Tests for AnalysisService.

Tests the single-flight guard, progress reporting, result tagging and
failure handling of the orchestrator.
"""

import asyncio
import json
import logging

import numpy as np
import pytest

from vector_analytics.config import AnalysisConfig
from vector_analytics.enums import AnalysisKind, AnalysisState, Linkage, MetricKind
from vector_analytics.exceptions import (
    AnalysisFailedError,
    AnalysisInProgressError,
    DimensionMismatchError,
    InsufficientDataError,
)
from vector_analytics.models import (
    Dataset,
    HierarchicalResult,
    KMeansResult,
    PatternReport,
    PCAResult,
    SimilarityResult,
    StatisticsResult,
    Vector,
)
from vector_analytics.services.analysis_service import AnalysisService


@pytest.mark.asyncio
async def test_run_kmeans_tags_result(service, three_points):
    """Test a successful run produces a tagged result."""
    assert service.state == AnalysisState.IDLE

    result = await service.run_kmeans(three_points, k=2)

    assert result.kind == AnalysisKind.KMEANS
    assert isinstance(result.payload, KMeansResult)
    assert result.vector_count == 3
    assert result.dimensions == 2
    assert result.parameters["k"] == 2
    assert result.parameters["max_iterations"] == 100
    assert service.state == AnalysisState.COMPLETED
    assert service.last_result is result
    assert service.progress == 100.0
    assert not service.is_running


@pytest.mark.asyncio
async def test_progress_is_monotonic(service, blob_dataset):
    await service.run_kmeans(blob_dataset, k=3)

    updates = service.progress_updates
    assert updates
    assert all(b > a for a, b in zip(updates, updates[1:]))
    assert updates[-1] == 100.0
    assert all(0 < u <= 100 for u in updates)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, kwargs, payload_type",
    [
        ("run_pca", {"target_dimensions": 2}, PCAResult),
        ("run_kmeans", {"k": 3}, KMeansResult),
        ("run_hierarchical", {"linkage": "complete"}, HierarchicalResult),
        ("run_statistics", {}, StatisticsResult),
        ("detect_patterns", {}, PatternReport),
        ("run_similarity", {"metric": "cosine"}, SimilarityResult),
    ],
)
async def test_every_analysis_kind(service, blob_dataset, method, kwargs, payload_type):
    """Every analysis completes and exports to JSON."""
    result = await getattr(service, method)(blob_dataset, **kwargs)

    assert isinstance(result.payload, payload_type)
    assert service.state == AnalysisState.COMPLETED
    json.dumps(result.to_dict())


@pytest.mark.asyncio
async def test_raw_rows_are_accepted(service):
    result = await service.run_statistics([[1.0, 2.0], [3.0, 4.0]])
    assert result.vector_count == 2
    assert result.payload.summary.total_vectors == 2


@pytest.mark.asyncio
async def test_concurrent_request_is_rejected(service, blob_dataset):
    """A second request while one is running is rejected, not queued."""
    first, second = await asyncio.gather(
        service.run_kmeans(blob_dataset, k=3),
        service.run_pca(blob_dataset),
        return_exceptions=True,
    )

    assert first.kind == AnalysisKind.KMEANS
    assert isinstance(second, AnalysisInProgressError)
    assert service.state == AnalysisState.COMPLETED
    assert service.last_result is first
    assert service.last_error is None


@pytest.mark.asyncio
async def test_submit_guards_immediately(service, blob_dataset):
    task = service.submit("kmeans", blob_dataset, k=3)

    assert service.is_running
    with pytest.raises(AnalysisInProgressError):
        service.submit(AnalysisKind.PCA, blob_dataset)
    with pytest.raises(AnalysisInProgressError):
        await service.run_statistics(blob_dataset)

    result = await task
    assert result.kind == AnalysisKind.KMEANS
    assert service.state == AnalysisState.COMPLETED


@pytest.mark.asyncio
async def test_submit_hierarchical_with_linkage(service, three_points):
    result = await service.submit("hierarchical", three_points, linkage="single")

    assert result.payload.linkage == Linkage.SINGLE
    assert len(result.payload.dendrogram) == 2
    assert result.parameters == {"linkage": "single"}


@pytest.mark.asyncio
async def test_submit_bad_arguments_leave_service_idle(service, three_points):
    with pytest.raises(TypeError):
        service.submit("pca", three_points, bogus=1)
    assert service.state == AnalysisState.IDLE


@pytest.mark.asyncio
async def test_cancelled_submit_releases_service(service, three_points):
    task = service.submit("statistics", three_points)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)

    assert not service.is_running
    result = await service.run_statistics(three_points)
    assert result.kind == AnalysisKind.STATISTICS


@pytest.mark.asyncio
async def test_failure_is_wrapped(service, three_points):
    """Test that a failing analysis reports its cause."""
    with pytest.raises(AnalysisFailedError) as exc_info:
        await service.run_kmeans(three_points, k=5)

    error = exc_info.value
    assert isinstance(error.__cause__, InsufficientDataError)
    assert error.kind == "kmeans"
    assert error.operation == "K-Means"
    assert service.state == AnalysisState.IDLE
    assert service.last_error is error.info
    assert service.last_error.error_type == "InsufficientDataError"
    assert "cannot exceed" in service.last_error.message
    assert service.last_error.to_dict()["operation"] == "K-Means"


@pytest.mark.asyncio
async def test_service_recovers_after_failure(service, three_points):
    with pytest.raises(AnalysisFailedError):
        await service.run_kmeans(three_points, k=5)

    result = await service.run_pca(three_points)
    assert result.kind == AnalysisKind.PCA
    assert service.state == AnalysisState.COMPLETED
    assert service.last_error is None


@pytest.mark.asyncio
async def test_invalid_rows_fail_inside_guard(service):
    with pytest.raises(AnalysisFailedError) as exc_info:
        await service.run_statistics([[1.0, 2.0], [1.0]])
    assert isinstance(exc_info.value.__cause__, DimensionMismatchError)
    assert service.state == AnalysisState.IDLE


@pytest.mark.asyncio
async def test_invalid_linkage_via_submit_does_not_stick(service, three_points):
    task = service.submit("hierarchical", three_points, linkage="ward")
    with pytest.raises(AnalysisFailedError) as exc_info:
        await task
    assert isinstance(exc_info.value.__cause__, ValueError)
    assert service.state == AnalysisState.IDLE


@pytest.mark.asyncio
async def test_hierarchical_requires_two_vectors(service):
    with pytest.raises(AnalysisFailedError) as exc_info:
        await service.run_hierarchical([[1.0, 2.0]])
    assert isinstance(exc_info.value.__cause__, InsufficientDataError)


@pytest.mark.asyncio
async def test_similarity_with_probe(three_points):
    config = AnalysisConfig(metric="resonance", activation="identity", seed=0)
    service = AnalysisService(config)
    dataset = Dataset(vectors=three_points.vectors, probe=Vector.from_values("input", [1.0, 0.0]))

    result = await service.run_similarity(dataset, metric=MetricKind.COSINE)

    payload = result.payload
    assert payload.metric == MetricKind.COSINE
    assert payload.ranking == [0, 2, 1]
    assert service.config.metric == MetricKind.RESONANCE


@pytest.mark.asyncio
async def test_pca_uses_configured_deflation():
    rng = np.random.default_rng(3)
    rows = rng.standard_normal((40, 3)) * np.array([3.0, 1.0, 0.5])
    service = AnalysisService(AnalysisConfig(seed=1, pca_deflation=True))
    result = await service.run_pca(rows.tolist(), target_dimensions=2)

    vectors = result.payload.eigenvectors
    assert abs(float(vectors[0] @ vectors[1])) < 1e-6
    assert result.parameters["deflate"] is True


@pytest.mark.asyncio
async def test_clear_results(service, three_points):
    await service.run_statistics(three_points)
    service.clear_results()

    assert service.state == AnalysisState.IDLE
    assert service.last_result is None
    assert service.progress == 0.0


@pytest.mark.asyncio
async def test_clear_results_while_running(service, three_points):
    task = service.submit("patterns", three_points)
    with pytest.raises(AnalysisInProgressError):
        service.clear_results()
    await task


@pytest.mark.asyncio
async def test_failure_passes_through_failed_state(service, three_points, caplog):
    """A failure is logged as RUNNING -> FAILED -> IDLE."""
    caplog.set_level(logging.DEBUG, logger="vector_analytics")

    with pytest.raises(AnalysisFailedError):
        await service.run_kmeans(three_points, k=5)

    transitions = [r.getMessage() for r in caplog.records if r.getMessage().startswith("State ")]
    assert transitions[-2:] == ["State running -> failed", "State failed -> idle"]
    assert service.state == AnalysisState.IDLE
    assert service.last_error.operation == "K-Means"


@pytest.mark.asyncio
async def test_cancelled_run_releases_service():
    """Cancelling a directly awaited analysis leaves the service usable."""
    rng = np.random.default_rng(0)
    rows = rng.standard_normal((300, 8))
    service = AnalysisService(AnalysisConfig(seed=0))

    task = asyncio.ensure_future(service.run_hierarchical(rows))
    await asyncio.sleep(0)
    assert service.is_running
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert service.state == AnalysisState.IDLE
    result = await service.run_statistics(rows[:5])
    assert result.kind == AnalysisKind.STATISTICS


@pytest.mark.asyncio
async def test_explicit_zero_iterations_is_rejected(service, three_points):
    with pytest.raises(AnalysisFailedError) as exc_info:
        await service.run_kmeans(three_points, k=2, max_iterations=0)
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_hierarchical_matches_direct_call(service, blob_dataset):
    from vector_analytics.algorithms.clustering import hierarchical_clustering

    result = await service.run_hierarchical(blob_dataset, linkage="average")
    direct = hierarchical_clustering(blob_dataset.matrix, "average")

    assert [n.members for n in result.payload.dendrogram] == [n.members for n in direct.dendrogram]
    assert service.progress_updates[-1] == 100.0
