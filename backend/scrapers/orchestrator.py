"""
Strategy Orchestrator - Runs one ingestion for a scope.

Responsibilities:
1. Tries strategies in fixed priority order, one at a time per target
2. Accepts the first result at or above the minimum record threshold
3. Retries the whole strategy list after a cooldown before giving up
4. Falls back to synthetic data when every strategy is exhausted
5. Dedupes, normalizes and upserts the accepted batch

Strategy-local errors are absorbed and logged. Only a repository error
changes the run outcome to Failed.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import BaseStrategy, SessionContext, StrategyResult
from .strategies.district_partitioned import DistrictPartitionedStrategy
from .deduplicator import dedupe_with_stats
from .exceptions import ExhaustionFailure, RepositoryError, StrategyFailure
from .normalizer import normalize_batch
from .records import ProjectRecord, Provenance
from .synthetic import SyntheticDataGenerator, weights_for_scope

logger = logging.getLogger(__name__)

SYNTHETIC_STRATEGY_NAME = "synthetic"


@dataclass
class IngestionScope:
    """What a run covers: one city, or the whole state."""
    city: Optional[str] = None
    all_districts: bool = False

    @property
    def target(self) -> Optional[str]:
        return self.city or None

    def to_dict(self) -> dict:
        return {"city": self.city, "allDistricts": self.all_districts}


@dataclass
class IngestionRunResult:
    state: str
    strategy_used: Optional[str] = None
    record_count: int = 0
    provenance_breakdown: Dict[str, int] = field(default_factory=dict)
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    rejected: int = 0
    duplicates_removed: int = 0
    low_confidence: int = 0
    attempts: List[dict] = field(default_factory=list)
    error: Optional[str] = None
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "strategyUsed": self.strategy_used,
            "recordCount": self.record_count,
            "provenanceBreakdown": dict(self.provenance_breakdown),
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "rejected": self.rejected,
            "duplicatesRemoved": self.duplicates_removed,
            "lowConfidence": self.low_confidence,
            "attempts": list(self.attempts),
            "error": self.error,
            "cancelled": self.cancelled,
        }


class StrategyOrchestrator:
    """
    Main orchestrator for ingestion runs.

    Coordinates:
    - Strategy execution (sequential, never two strategies on one target at once)
    - Synthetic fallback
    - Dedupe -> normalize -> repository.upsert_batch
    """

    def __init__(
        self,
        strategies: List[BaseStrategy],
        repository,
        context: Optional[SessionContext] = None,
        synthetic_generator: Optional[SyntheticDataGenerator] = None,
        min_records: int = 1,
        retry_rounds: int = 2,
        cooldown_seconds: float = 30.0,
        synthetic_fallback: bool = True,
    ):
        """
        Initialize orchestrator.

        Args:
            strategies: Strategies in priority order
            repository: Object exposing upsert_batch(records, run_id=None)
            context: SessionContext shared by all attempts in this run
            synthetic_generator: Fallback generator (seeded for tests)
            min_records: Minimum raw records for a strategy result to be accepted
            retry_rounds: Passes over the strategy list before falling back
            cooldown_seconds: Pause between passes
            synthetic_fallback: Disable to end exhausted runs as Failed instead
        """
        self.strategies = list(strategies)
        self.repository = repository
        self.context = context or SessionContext()
        self.synthetic_generator = synthetic_generator or SyntheticDataGenerator(rng=self.context.rng)
        self.min_records = max(int(min_records), 1)
        self.retry_rounds = max(int(retry_rounds), 1)
        self.cooldown_seconds = cooldown_seconds
        self.synthetic_fallback = synthetic_fallback

    def ordered_strategies(self, scope: IngestionScope) -> List[BaseStrategy]:
        """Configured order; an all-districts scope puts the district crawl first."""
        if not scope.all_districts:
            return list(self.strategies)
        district_first = [s for s in self.strategies if s.NAME == DistrictPartitionedStrategy.NAME]
        return district_first + [s for s in self.strategies if s.NAME != DistrictPartitionedStrategy.NAME]

    def _try_strategy(self, strategy: BaseStrategy, scope: IngestionScope, round_no: int,
                      attempts: List[dict]) -> Optional[StrategyResult]:
        entry = {"strategy": strategy.NAME, "round": round_no, "target": scope.target}
        try:
            result = strategy.attempt(scope.target, self.context)
        except StrategyFailure as e:
            logger.warning(f"[orchestrator] {strategy.NAME} target={scope.target or 'all'} round {round_no}: {e}")
            entry.update(status="failed", records=0, error=str(e))
            attempts.append(entry)
            return None
        except Exception as e:
            logger.exception(f"[orchestrator] {strategy.NAME} target={scope.target or 'all'} round {round_no} crashed")
            entry.update(status="failed", records=0, error=f"{type(e).__name__}: {e}")
            attempts.append(entry)
            return None

        accepted = result.count >= self.min_records
        entry.update(
            status="accepted" if accepted else "below_threshold",
            records=result.count,
            pages=result.pages_fetched,
            failures=len(result.failures),
        )
        attempts.append(entry)
        logger.info(
            f"[orchestrator] {strategy.NAME} target={scope.target or 'all'} round {round_no}: "
            f"{result.count} records ({entry['status']})"
        )
        return result if accepted else None

    def extract(self, scope: IngestionScope, attempts: List[dict]) -> StrategyResult:
        """
        Run strategies until one is accepted.

        Raises:
            ExhaustionFailure: no strategy reached the threshold in any round
        """
        strategies = self.ordered_strategies(scope)
        for round_no in range(1, self.retry_rounds + 1):
            for strategy in strategies:
                if self.context.cancelled:
                    raise ExhaustionFailure(attempts)
                result = self._try_strategy(strategy, scope, round_no, attempts)
                if result is not None:
                    return result
            if round_no < self.retry_rounds and not self.context.cancelled:
                logger.info(f"[orchestrator] round {round_no} exhausted, cooling down {self.cooldown_seconds}s")
                self.context.sleep(self.cooldown_seconds)
        raise ExhaustionFailure(attempts)

    def run(self, scope: Optional[IngestionScope] = None, run_id: Optional[str] = None) -> IngestionRunResult:
        """
        Execute one ingestion run.

        Args:
            scope: IngestionScope (defaults to whole state)
            run_id: Stamped on persisted rows

        Returns:
            IngestionRunResult with state Completed, Partial or Failed
        """
        scope = scope or IngestionScope()
        attempts: List[dict] = []
        result = IngestionRunResult(state="Running", attempts=attempts)
        records: List[ProjectRecord] = []
        logger.info(f"[orchestrator] run {run_id or '-'} starting for {scope.to_dict()}")

        try:
            extracted = self.extract(scope, attempts)
            deduped = dedupe_with_stats(extracted.records)
            records, rejections = normalize_batch(deduped.records, provenance=Provenance.LIVE_EXTRACTION.value)
            result.duplicates_removed = deduped.duplicates_removed
            result.rejected = len(rejections) + deduped.dropped
            if not records:
                attempts.append({
                    "strategy": extracted.strategy,
                    "status": "rejected",
                    "records": 0,
                    "error": "no record survived normalization",
                })
                raise ExhaustionFailure(attempts)
            result.strategy_used = extracted.strategy
            partial = bool(extracted.failed_targets)
            result.cancelled = extracted.cancelled or self.context.cancelled
            result.state = "Partial" if (partial or result.cancelled) else "Completed"
        except ExhaustionFailure as e:
            if not self.synthetic_fallback:
                logger.error(f"[orchestrator] {e}; synthetic fallback disabled")
                result.state = "Failed"
                result.error = str(e)
                return result
            logger.warning(f"[orchestrator] {e}; falling back to synthetic data")
            records = self.synthetic_generator.generate(weights_for_scope(scope.city))
            result.strategy_used = SYNTHETIC_STRATEGY_NAME
            result.state = "Partial"
            result.cancelled = self.context.cancelled

        result.low_confidence = sum(1 for r in records if r.is_low_confidence)

        try:
            counts = self.repository.upsert_batch(records, run_id=run_id)
        except RepositoryError as e:
            logger.error(f"[orchestrator] run {run_id or '-'} failed to persist {len(records)} records: {e}")
            result.state = "Failed"
            result.error = str(e)
            result.record_count = 0
            result.provenance_breakdown = {}
            return result

        result.inserted = counts.get("inserted", 0)
        result.updated = counts.get("updated", 0)
        result.unchanged = counts.get("unchanged", 0)
        result.record_count = len(records)
        result.provenance_breakdown = dict(Counter(r.provenance for r in records))
        logger.info(
            f"[orchestrator] run {run_id or '-'} {result.state}: {result.record_count} records via "
            f"{result.strategy_used} (inserted={result.inserted}, updated={result.updated}, "
            f"unchanged={result.unchanged}, rejected={result.rejected})"
        )
        return result
