"""
Configuration for Vector Analytics.

Every tunable constant of the engine lives on ``AnalysisConfig``. The value
is passed explicitly to each call that needs it; there is no global
instance.

Overrides can come from environment variables (typically from a .env file
in the project root, loaded with python-dotenv):

    VECTOR_ANALYTICS_METRIC=cosine
    VECTOR_ANALYTICS_KMEANS_MAX_ITERATIONS=200
    VECTOR_ANALYTICS_SEED=42

Usage:
    from vector_analytics.config import AnalysisConfig

    cfg = AnalysisConfig.from_env()
    cfg = cfg.replace(linkage="complete")
"""

import dataclasses
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from .enums import Activation, CentroidInit, Linkage, MetricKind

ENV_PREFIX = "VECTOR_ANALYTICS_"

# Project root is the parent of src/
DEFAULT_ENV_PATH = Path(__file__).parent.parent.parent / ".env"

_ENUM_FIELDS = {
    "metric": MetricKind,
    "activation": Activation,
    "kmeans_init": CentroidInit,
    "linkage": Linkage,
}


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Tunable constants for metrics, profiling, reduction and clustering.

    Attributes:
        resonance_epsilon: Added to the squared distance in resonance-style forces
        sparsity_threshold: |x| below this counts as a zero component
        quantum_threshold: Bucket boundary for information quanta
        outlier_z_threshold: Magnitude z-score beyond which a vector is an outlier
        collinearity_threshold: |cosine| above this is a linear relationship
        similarity_group_threshold: Cosine above this joins a similarity group
        zero_dimension_tolerance: Column max |x| below this is a zero dimension
        power_iterations: Fixed iteration count of the PCA power method
        pca_deflation: Deflate the covariance between PCA components
        kmeans_max_iterations: Iteration budget of k-means
        kmeans_init: Centroid seeding policy
        linkage: Linkage rule for hierarchical clustering
        metric: Metric used by similarity analysis
        activation: Activation applied to probe responses
        seed: Seed for every random draw (None = nondeterministic)
    """

    resonance_epsilon: float = 0.01
    sparsity_threshold: float = 1e-10
    quantum_threshold: float = 0.1
    outlier_z_threshold: float = 2.0
    collinearity_threshold: float = 0.95
    similarity_group_threshold: float = 0.8
    zero_dimension_tolerance: float = 1e-10
    power_iterations: int = 100
    pca_deflation: bool = False
    kmeans_max_iterations: int = 100
    kmeans_init: CentroidInit = CentroidInit.FIRST
    linkage: Linkage = Linkage.AVERAGE
    metric: MetricKind = MetricKind.RESONANCE
    activation: Activation = Activation.SIGMOID
    seed: Optional[int] = None

    def __post_init__(self):
        """Coerce enum fields given as strings and validate ranges."""
        for name, enum_type in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                try:
                    object.__setattr__(self, name, enum_type(value))
                except ValueError as e:
                    allowed = ", ".join(m.value for m in enum_type)
                    raise ValueError(
                        f"Invalid {name} {value!r}; expected one of: {allowed}"
                    ) from e

        if self.power_iterations < 1:
            raise ValueError(f"power_iterations must be >= 1, got {self.power_iterations}")
        if self.kmeans_max_iterations < 1:
            raise ValueError(
                f"kmeans_max_iterations must be >= 1, got {self.kmeans_max_iterations}"
            )
        for name in (
            "resonance_epsilon",
            "sparsity_threshold",
            "quantum_threshold",
            "outlier_z_threshold",
            "zero_dimension_tolerance",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("collinearity_threshold", "similarity_group_threshold"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {getattr(self, name)}")

    def replace(self, **changes: Any) -> "AnalysisConfig":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the settings (enums as their string values)."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = value.value if f.name in _ENUM_FIELDS else value
        return out

    @classmethod
    def from_mapping(cls, values: Mapping[str, str], prefix: str = ENV_PREFIX) -> "AnalysisConfig":
        """
        Build a config from string values keyed by prefixed upper-case names.

        Unknown keys are ignored; missing keys keep their defaults.

        Args:
            values: Mapping such as ``os.environ``
            prefix: Key prefix, e.g. ``VECTOR_ANALYTICS_``

        Returns:
            AnalysisConfig

        Raises:
            ValueError: If a value cannot be parsed
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = prefix + f.name.upper()
            if key not in values:
                continue
            raw = values[key].strip()
            kwargs[f.name] = _parse_value(f.name, raw, f.type)
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, env_path: Optional[Path] = None
    ) -> "AnalysisConfig":
        """
        Load configuration from environment variables.

        Variables can be set:
        1. In a .env file in the project root (or ``env_path``)
        2. In the system environment

        Existing environment variables win over values from the .env file.
        """
        path = env_path or DEFAULT_ENV_PATH
        if path.exists():
            load_dotenv(path)
        return cls.from_mapping(os.environ, prefix=prefix)


def _parse_value(name: str, raw: str, annotation: Any) -> Any:
    """Convert one environment string to the field's type."""
    type_name = annotation if isinstance(annotation, str) else getattr(annotation, "__name__", "")
    try:
        if name in _ENUM_FIELDS:
            return raw.lower()
        if name == "seed":
            return None if raw.lower() in ("", "none", "null") else int(raw)
        if type_name == "bool":
            lowered = raw.lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r} ({e})") from e
    return raw
