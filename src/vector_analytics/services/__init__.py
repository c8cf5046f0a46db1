"""
Orchestration Layer (Services)

Services sit between the synchronous algorithm core and an interactive,
event-loop driven application. They handle:
- Single-flight execution (no re-entrant analyses)
- Cooperative yielding between long computation phases
- Progress reporting
- Tagging results with kind, timestamp and parameters
- Turning failures into structured errors
"""

from .analysis_service import AnalysisService

__all__ = [
    "AnalysisService",
]
