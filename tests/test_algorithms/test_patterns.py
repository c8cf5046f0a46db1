"""
Tests for pattern detection.
"""

import numpy as np
import pytest

from vector_analytics.algorithms.patterns import (
    detect_linear_relationships,
    detect_outliers,
    detect_patterns,
    detect_similarity_groups,
    detect_zero_dimensions,
    summarize_patterns,
)
from vector_analytics.config import AnalysisConfig
from vector_analytics.enums import PatternType
from vector_analytics.models import Dataset


AXES = np.array([[1.0, 0.0], [2.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
IDS = ["a", "b", "c", "d"]


def test_linear_relationships():
    """Test positive and negative collinear pairs."""
    patterns = detect_linear_relationships(AXES, IDS)

    assert [p.vector_ids for p in patterns] == [("a", "b"), ("a", "d"), ("b", "d")]
    assert [p.description for p in patterns] == [
        "Highly positively correlated",
        "Highly negatively correlated",
        "Highly negatively correlated",
    ]
    assert all(p.confidence == pytest.approx(1.0) for p in patterns)
    assert all(p.type == PatternType.LINEAR_RELATIONSHIP for p in patterns)


def test_linear_relationships_threshold_is_strict():
    rows = np.array([[1.0, 0.0], [1.0, 1.0]])
    assert detect_linear_relationships(rows, [0, 1], threshold=0.5)
    assert detect_linear_relationships(rows, [0, 1], threshold=0.99) == []


def test_similarity_groups():
    patterns = detect_similarity_groups(AXES, IDS)

    assert len(patterns) == 1
    group = patterns[0]
    assert group.vector_ids == ("a", "b")
    assert group.confidence == 0.8
    assert group.description == "Group of 2 similar vectors"


def test_similarity_groups_are_greedy():
    """A vector joins the first group that claims it."""
    rows = np.array([[1.0, 0.0], [0.9, 0.1], [0.8, 0.2], [0.0, 1.0]])
    patterns = detect_similarity_groups(rows, [0, 1, 2, 3], threshold=0.95)

    assert [p.vector_ids for p in patterns] == [(0, 1, 2)]


def test_zero_dimensions():
    rows = np.array([[1.0, 0.0, 2.0], [3.0, 0.0, 4.0]])
    patterns = detect_zero_dimensions(rows)

    assert len(patterns) == 1
    assert patterns[0].dimension == 1
    assert patterns[0].confidence == 1.0
    assert patterns[0].description == "Dimension 2 is consistently zero across all vectors"


def test_zero_dimension_tolerance():
    rows = np.array([[1.0, 1e-6], [2.0, -1e-6]])
    assert detect_zero_dimensions(rows) == []
    assert len(detect_zero_dimensions(rows, tolerance=1e-3)) == 1


def test_outlier_patterns(outlier_rows):
    patterns = detect_outliers(np.array(outlier_rows), list(range(10)))

    assert len(patterns) == 1
    assert patterns[0].vector_ids == (9,)
    assert patterns[0].confidence == pytest.approx(1 - 1 / 9)


def test_summarize_empty():
    summary = summarize_patterns([])
    assert summary.total_patterns == 0
    assert summary.pattern_types == ()
    assert summary.average_confidence == 0.0


def test_detect_patterns_report():
    """Test the combined report and its summary."""
    dataset = Dataset.from_arrays(AXES, ids=IDS)
    report = detect_patterns(dataset, AnalysisConfig())

    types = [p.type for p in report.patterns]
    assert types == [PatternType.LINEAR_RELATIONSHIP] * 3 + [PatternType.SIMILARITY_GROUP]
    assert report.summary.total_patterns == 4
    assert report.summary.pattern_types == (
        PatternType.LINEAR_RELATIONSHIP,
        PatternType.SIMILARITY_GROUP,
    )
    assert report.summary.average_confidence == pytest.approx((3 * 1.0 + 0.8) / 4)


def test_detect_patterns_uses_config_thresholds():
    dataset = Dataset.from_arrays([[1.0, 0.0, 0.0], [1.0, 0.2, 0.0]])
    strict = detect_patterns(dataset, AnalysisConfig(collinearity_threshold=1.0, similarity_group_threshold=1.0))
    loose = detect_patterns(dataset, AnalysisConfig(collinearity_threshold=0.5, similarity_group_threshold=0.5))

    assert [p.type for p in strict.patterns] == [PatternType.ZERO_DIMENSION]
    assert PatternType.LINEAR_RELATIONSHIP in loose.summary.pattern_types
    assert PatternType.SIMILARITY_GROUP in loose.summary.pattern_types
