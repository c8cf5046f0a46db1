"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import numpy as np
import pytest

from vector_analytics.config import AnalysisConfig
from vector_analytics.models import Dataset
from vector_analytics.services.analysis_service import AnalysisService


@pytest.fixture
def three_points():
    """The [[1,0],[0,1],[1,1]] dataset used in several scenarios."""
    return Dataset.from_arrays([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])


@pytest.fixture
def blobs():
    """
    Three well-separated Gaussian blobs, 10 points each, in 4 dimensions.
    Rows cycle through the blobs, so the first three rows seed one
    centroid per blob.

    Returns a tuple of (matrix, true_labels).
    """
    rng = np.random.default_rng(42)
    centers = np.array(
        [
            [10.0, 0.0, 0.0, 0.0],
            [0.0, 10.0, 0.0, 0.0],
            [0.0, 0.0, 10.0, 0.0],
        ]
    )
    X = np.vstack([c + rng.standard_normal((10, 4)) * 0.3 for c in centers])
    # Interleave so that row i belongs to blob i % 3
    order = np.arange(30).reshape(3, 10).T.ravel()
    return X[order], order // 10


@pytest.fixture
def blob_dataset(blobs):
    X, _ = blobs
    return Dataset.from_arrays(X)


@pytest.fixture
def outlier_rows():
    """Nine unit vectors and one vector of magnitude 100."""
    rows = [[1.0, 0.0] if i % 2 else [0.0, 1.0] for i in range(9)]
    rows.append([60.0, 80.0])
    return rows


@pytest.fixture
def config():
    """Deterministic configuration for tests."""
    return AnalysisConfig(seed=0)


@pytest.fixture
def service(config):
    """AnalysisService recording every progress update."""
    updates = []
    svc = AnalysisService(config, progress_callback=updates.append)
    svc.progress_updates = updates
    return svc
