"""
Tests for similarity analysis and probe responses.
"""

import math

import numpy as np
import pytest

from vector_analytics.algorithms.similarity import (
    analyze_similarity,
    probe_responses,
    synaptic_strength,
)
from vector_analytics.config import AnalysisConfig
from vector_analytics.enums import Activation, MetricKind
from vector_analytics.models import Dataset, Vector


@pytest.fixture
def probed(three_points):
    return Dataset(vectors=three_points.vectors, probe=Vector.from_values("input", [1.0, 0.0]))


def test_synaptic_strength():
    assert synaptic_strength(0.5, 1.0) == 0.25
    assert synaptic_strength(-1.0, 0.0) == 1.0
    assert synaptic_strength(float("nan"), 0.0) == 0.0


def test_probe_responses_cosine_identity(probed):
    """Test raw responses when the activation is the identity."""
    config = AnalysisConfig(metric=MetricKind.COSINE, activation=Activation.IDENTITY)
    responses = probe_responses(probed.probe, list(probed.vectors), config)

    assert [r.id for r in responses] == [0, 1, 2]
    np.testing.assert_allclose([r.activation for r in responses], [1.0, 0.0, 1 / math.sqrt(2)])
    np.testing.assert_allclose([r.distance for r in responses], [0.0, math.sqrt(2), 1.0])
    assert responses[0].synaptic_strength == pytest.approx(1.0)
    assert responses[1].synaptic_strength == pytest.approx(1 / (1 + math.sqrt(2)))
    # [1, 1] is constant, so its correlation is undefined
    assert math.isnan(responses[2].correlation)
    assert responses[2].synaptic_strength == 0.0


def test_probe_responses_skip_same_id():
    probe = Vector.from_values("input", [1.0, 2.0])
    vectors = [Vector.from_values("input", [1.0, 2.0]), Vector.from_values(0, [2.0, 1.0])]
    responses = probe_responses(probe, vectors)
    assert [r.id for r in responses] == [0]


def test_softmax_responses_normalise(probed):
    config = AnalysisConfig(metric="cosine", activation="softmax")
    responses = probe_responses(probed.probe, list(probed.vectors), config)
    assert sum(r.activation for r in responses) == pytest.approx(1.0)


def test_analyze_similarity_with_probe(probed):
    config = AnalysisConfig(metric="cosine", activation="identity")
    result = analyze_similarity(probed, config)

    assert result.metric == MetricKind.COSINE
    assert result.ids == (0, 1, 2)
    assert result.probe_id == "input"
    assert result.matrix.shape == (3, 3)
    np.testing.assert_allclose(np.diag(result.matrix), 1.0)
    assert result.ranking == [0, 2, 1]


def test_analyze_similarity_without_probe(three_points):
    result = analyze_similarity(three_points, AnalysisConfig())

    assert result.metric == MetricKind.RESONANCE
    assert result.probe_id is None
    assert result.probe_responses == ()
    assert result.ranking == []
    # resonance of [1, 0] with itself: 1 / 0.01
    assert result.matrix[0, 0] == pytest.approx(100.0)
    assert not result.matrix.flags.writeable
