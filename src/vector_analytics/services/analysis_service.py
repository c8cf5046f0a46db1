"""
Analysis Service - sequences analyses for an interactive caller.

This service is the single boundary between the synchronous numerical core
(``vector_analytics.algorithms``) and an event-loop driven application. It
adds:
- a single-flight guard (a second request while one is running is rejected,
  not queued)
- cooperative yielding to the event loop between the phases of long
  computations
- monotonically increasing progress reporting (0-100)
- tagging of results with kind, timestamp, parameters and dataset shape
- conversion of any failure into an AnalysisFailedError with a structured
  AnalysisErrorInfo

Everything still runs on the caller's thread; there is no background
execution. Cancelling the awaiting task abandons the analysis and releases
the service.

Usage:
    from vector_analytics import AnalysisService, AnalysisConfig, Dataset

    service = AnalysisService(AnalysisConfig(seed=7), progress_callback=print)
    dataset = Dataset.from_arrays([[1, 0], [0, 1], [1, 1]])

    result = await service.run_kmeans(dataset, k=2)
    print(result.payload.assignments)

    # Or schedule it and keep the loop free
    task = service.submit("pca", dataset, target_dimensions=2)
    result = await task
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from ..algorithms import clustering, dimensionality_reduction, patterns, similarity, statistics
from ..config import AnalysisConfig
from ..enums import AnalysisKind, AnalysisState, Linkage, MetricKind
from ..exceptions import AnalysisErrorInfo, AnalysisFailedError, AnalysisInProgressError
from ..models import AnalysisPayload, AnalysisResult, Dataset
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

DatasetLike = Union[Dataset, Sequence[Sequence[float]]]
ProgressCallback = Callable[[float], None]

OPERATION_NAMES = {
    AnalysisKind.PCA: "PCA",
    AnalysisKind.KMEANS: "K-Means",
    AnalysisKind.HIERARCHICAL: "Hierarchical Clustering",
    AnalysisKind.STATISTICS: "Statistical Analysis",
    AnalysisKind.PATTERNS: "Pattern Detection",
    AnalysisKind.SIMILARITY: "Similarity Analysis",
}


async def _yield_to_loop() -> None:
    """Suspension point between phases."""
    await asyncio.sleep(0)


class AnalysisService:
    """
    Orchestrates analyses over vector datasets, one at a time.

    States: IDLE -> RUNNING -> COMPLETED, or RUNNING -> FAILED -> IDLE. A
    failure passes through FAILED and settles in IDLE with the error kept in
    ``last_error``. COMPLETED accepts a new request exactly like IDLE;
    ``clear_results()`` returns the service to IDLE.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the analysis service.

        Args:
            config: Engine configuration passed to every algorithm (default: AnalysisConfig())
            progress_callback: Called with the progress percentage whenever it increases
        """
        self.config = config or AnalysisConfig()
        self.progress_callback = progress_callback

        self._state = AnalysisState.IDLE
        self._progress = 0.0
        self._current_kind: Optional[AnalysisKind] = None
        self.last_result: Optional[AnalysisResult] = None
        self.last_error: Optional[AnalysisErrorInfo] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def progress(self) -> float:
        """Progress of the current (or last) analysis in percent."""
        return self._progress

    @property
    def is_running(self) -> bool:
        return self._state == AnalysisState.RUNNING

    def clear_results(self) -> None:
        """Forget the last result and error and return to IDLE."""
        if self.is_running:
            raise AnalysisInProgressError("Cannot clear results while an analysis is running")
        self.last_result = None
        self.last_error = None
        self._progress = 0.0
        self._set_state(AnalysisState.IDLE)

    def _set_state(self, state: AnalysisState) -> None:
        if state != self._state:
            logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state

    def _report(self, percent: float) -> None:
        """Advance progress; values lower than the current one are ignored."""
        percent = min(100.0, float(percent))
        if percent <= self._progress:
            return
        self._progress = percent
        if self.progress_callback is not None:
            self.progress_callback(percent)

    def _scaled(self, start: float, end: float) -> Callable[[float], None]:
        """Map an algorithm's [0, 1] progress into [start, end] percent."""
        return lambda fraction: self._report(start + (end - start) * fraction)

    def _begin(self, kind: AnalysisKind) -> None:
        if self.is_running:
            raise AnalysisInProgressError(
                f"Cannot start {OPERATION_NAMES[kind]}: "
                f"{OPERATION_NAMES.get(self._current_kind, 'another analysis')} "
                "is already in progress"
            )
        self._set_state(AnalysisState.RUNNING)
        self._current_kind = kind
        self._progress = 0.0
        self.last_error = None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _execute(
        self,
        kind: AnalysisKind,
        dataset: DatasetLike,
        parameters: Dict[str, Any],
        compute: Callable[[Dataset], Awaitable[AnalysisPayload]],
        guarded: bool = False,
    ) -> AnalysisResult:
        """
        Run ``compute`` under the single-flight guard and package its result.

        Args:
            kind: Analysis kind used to tag the result
            dataset: Dataset or raw rows
            parameters: Parameters recorded on the result
            compute: Coroutine function producing the payload
            guarded: True when ``_begin`` was already called (see ``submit``)

        Returns:
            AnalysisResult

        Raises:
            AnalysisInProgressError: If another analysis is running
            AnalysisFailedError: If validation or computation fails
        """
        if not guarded:
            self._begin(kind)
        operation = OPERATION_NAMES[kind]
        logger.info("Starting %s with %s", operation, parameters)
        start = time.perf_counter()

        try:
            data = dataset if isinstance(dataset, Dataset) else Dataset.from_arrays(dataset)
            await _yield_to_loop()
            payload = await compute(data)
            result = AnalysisResult(
                kind=kind,
                payload=payload,
                vector_count=data.count,
                dimensions=data.dimensions,
                parameters=dict(parameters),
            )
        except Exception as e:
            info = AnalysisErrorInfo(
                kind=kind.value,
                operation=operation,
                error_type=type(e).__name__,
                message=str(e),
            )
            self.last_error = info
            self._set_state(AnalysisState.FAILED)
            logger.exception("%s failed: %s", operation, e)
            self._set_state(AnalysisState.IDLE)
            raise AnalysisFailedError(info) from e
        except asyncio.CancelledError:
            logger.warning("%s was cancelled; releasing the service", operation)
            self._set_state(AnalysisState.IDLE)
            raise
        finally:
            self._current_kind = None

        self.last_result = result
        self._report(100.0)
        self._set_state(AnalysisState.COMPLETED)
        logger.info(
            "Completed %s on %d vectors (%d dims) in %.1f ms",
            operation,
            result.vector_count,
            result.dimensions,
            (time.perf_counter() - start) * 1000,
        )
        return result

    def submit(
        self, kind: Union[AnalysisKind, str], dataset: DatasetLike, **params: Any
    ) -> "asyncio.Task[AnalysisResult]":
        """
        Schedule an analysis on the running event loop.

        The single-flight check happens immediately, so a second ``submit``
        before the first task finishes raises AnalysisInProgressError.

        Args:
            kind: Analysis kind (or its string value)
            dataset: Dataset or raw rows
            **params: Keyword arguments of the matching ``run_*`` method

        Returns:
            asyncio.Task resolving to the AnalysisResult
        """
        kind = AnalysisKind(kind)
        runner = {
            AnalysisKind.PCA: self.run_pca,
            AnalysisKind.KMEANS: self.run_kmeans,
            AnalysisKind.HIERARCHICAL: self.run_hierarchical,
            AnalysisKind.STATISTICS: self.run_statistics,
            AnalysisKind.PATTERNS: self.detect_patterns,
            AnalysisKind.SIMILARITY: self.run_similarity,
        }[kind]
        loop = asyncio.get_running_loop()
        coro = runner(dataset, _guarded=True, **params)
        try:
            self._begin(kind)
        except AnalysisInProgressError:
            coro.close()
            raise
        task = loop.create_task(coro)
        task.add_done_callback(self._release_cancelled)
        return task

    def _release_cancelled(self, task: "asyncio.Task[AnalysisResult]") -> None:
        # A task cancelled before it started never reaches _execute.
        if task.cancelled() and self.is_running:
            logger.warning("Analysis task was cancelled; releasing the service")
            self._set_state(AnalysisState.IDLE)
            self._current_kind = None

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    async def run_pca(
        self, dataset: DatasetLike, target_dimensions: int = 2, *, _guarded: bool = False
    ) -> AnalysisResult:
        """
        Principal component analysis via power iteration.

        Args:
            dataset: At least 2 vectors
            target_dimensions: Number of components to keep

        Returns:
            AnalysisResult with a PCAResult payload
        """
        cfg = self.config

        async def compute(data: Dataset):
            self._report(10)
            result = dimensionality_reduction.pca_power_iteration(
                data.matrix,
                target_dimensions,
                iterations=cfg.power_iterations,
                seed=cfg.seed,
                deflate=cfg.pca_deflation,
                progress=self._scaled(10, 90),
            )
            await _yield_to_loop()
            return result

        params = {
            "target_dimensions": target_dimensions,
            "power_iterations": cfg.power_iterations,
            "deflate": cfg.pca_deflation,
            "seed": cfg.seed,
        }
        return await self._execute(AnalysisKind.PCA, dataset, params, compute, _guarded)

    async def run_kmeans(
        self,
        dataset: DatasetLike,
        k: int = 3,
        max_iterations: Optional[int] = None,
        *,
        _guarded: bool = False,
    ) -> AnalysisResult:
        """
        K-means clustering.

        Args:
            dataset: At least ``k`` vectors
            k: Number of clusters (never clamped)
            max_iterations: Iteration budget (default: config.kmeans_max_iterations)

        Returns:
            AnalysisResult with a KMeansResult payload
        """
        cfg = self.config
        if max_iterations is None:
            max_iterations = cfg.kmeans_max_iterations

        async def compute(data: Dataset):
            self._report(10)
            result = clustering.kmeans(
                data.matrix,
                k,
                max_iterations=max_iterations,
                init=cfg.kmeans_init,
                seed=cfg.seed,
                ids=data.ids,
                progress=self._scaled(10, 90),
            )
            await _yield_to_loop()
            return result

        params = {"k": k, "max_iterations": max_iterations, "init": cfg.kmeans_init, "seed": cfg.seed}
        return await self._execute(AnalysisKind.KMEANS, dataset, params, compute, _guarded)

    async def run_hierarchical(
        self,
        dataset: DatasetLike,
        linkage: Optional[Union[Linkage, str]] = None,
        *,
        _guarded: bool = False,
    ) -> AnalysisResult:
        """
        Agglomerative hierarchical clustering.

        Args:
            dataset: At least 2 vectors
            linkage: "single", "complete" or "average" (default: config.linkage)

        Returns:
            AnalysisResult with a HierarchicalResult payload
        """
        requested = linkage if linkage is not None else self.config.linkage

        async def compute(data: Dataset):
            rule = Linkage(requested)
            self._report(10)
            await _yield_to_loop()
            result = clustering.hierarchical_clustering(
                data.matrix, rule, progress=self._scaled(10, 90)
            )
            await _yield_to_loop()
            return result

        params = {"linkage": requested}
        return await self._execute(AnalysisKind.HIERARCHICAL, dataset, params, compute, _guarded)

    async def run_statistics(self, dataset: DatasetLike, *, _guarded: bool = False) -> AnalysisResult:
        """Per-vector and dataset statistics (StatisticsResult payload)."""
        cfg = self.config

        async def compute(data: Dataset):
            self._report(20)
            return statistics.profile_dataset(data, cfg)

        params = {
            "sparsity_threshold": cfg.sparsity_threshold,
            "outlier_z_threshold": cfg.outlier_z_threshold,
        }
        return await self._execute(AnalysisKind.STATISTICS, dataset, params, compute, _guarded)

    async def detect_patterns(self, dataset: DatasetLike, *, _guarded: bool = False) -> AnalysisResult:
        """Pattern detection (PatternReport payload)."""
        cfg = self.config

        async def compute(data: Dataset):
            self._report(25)
            return patterns.detect_patterns(data, cfg)

        params = {
            "collinearity_threshold": cfg.collinearity_threshold,
            "similarity_group_threshold": cfg.similarity_group_threshold,
            "zero_dimension_tolerance": cfg.zero_dimension_tolerance,
            "outlier_z_threshold": cfg.outlier_z_threshold,
        }
        return await self._execute(AnalysisKind.PATTERNS, dataset, params, compute, _guarded)

    async def run_similarity(
        self,
        dataset: DatasetLike,
        metric: Optional[Union[MetricKind, str]] = None,
        *,
        _guarded: bool = False,
    ) -> AnalysisResult:
        """
        Metric matrix and probe responses (SimilarityResult payload).

        Args:
            dataset: Vectors, optionally with a probe vector
            metric: Metric override (default: config.metric)
        """
        requested = metric if metric is not None else self.config.metric

        async def compute(data: Dataset):
            cfg = self.config.replace(metric=requested)
            self._report(20)
            return similarity.analyze_similarity(data, cfg)

        params = {"metric": requested, "activation": self.config.activation}
        return await self._execute(AnalysisKind.SIMILARITY, dataset, params, compute, _guarded)
