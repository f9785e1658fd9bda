"""
Batch execution: per-entity quality gate and the run controller.
"""

from .controller import BatchRunController
from .quality_gate import EntityLoadError, QualityGate, StagedEntity

__all__ = ["BatchRunController", "QualityGate", "StagedEntity", "EntityLoadError"]
