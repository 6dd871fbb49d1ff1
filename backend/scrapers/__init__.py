"""
RERA Ingestion Package

Multi-strategy extraction of Gujarat RERA project listings:
- Pluggable extraction strategies (API probe, paginated table,
  district-partitioned, human-paced)
- Normalization and dedupe into canonical ProjectRecords
- Synthetic fallback when every strategy is exhausted
- Config-driven rate limiting against the portal
"""

from .base import BaseStrategy, CancellationToken, SessionContext, StrategyResult
from .orchestrator import IngestionRunResult, IngestionScope, StrategyOrchestrator
from .records import ProjectRecord, Provenance

__all__ = [
    "BaseStrategy",
    "CancellationToken",
    "SessionContext",
    "StrategyResult",
    "IngestionRunResult",
    "IngestionScope",
    "StrategyOrchestrator",
    "ProjectRecord",
    "Provenance",
]
