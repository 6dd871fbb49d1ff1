"""
Ingestion Run Model - Job tracking for ingestion executions.

Tracks:
- Run lifecycle (Running -> Completed/Partial/Failed)
- Which strategy produced the data and per-strategy attempt log
- Record counts and provenance breakdown
- Trigger source (api, cli, scheduler)
"""
from datetime import datetime
from enum import Enum
from uuid import uuid4

from models.database import db


class RunState(str, Enum):
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    PARTIAL = "Partial"


class IngestionRun(db.Model):
    """Tracks individual ingestion run executions."""

    __tablename__ = "ingestion_runs"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(
        db.String(36),
        unique=True,
        nullable=False,
        default=lambda: str(uuid4()),
        index=True,
    )

    # Scope
    city = db.Column(db.String(100), nullable=True)
    all_districts = db.Column(db.Boolean, nullable=False, default=False)

    # Run lifecycle
    state = db.Column(
        db.String(20),
        nullable=False,
        default=RunState.RUNNING.value,
        index=True,
    )
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    # Outcome
    strategy_used = db.Column(db.String(50))  # api-probe, paginated-table, ..., synthetic
    record_count = db.Column(db.Integer, default=0)
    inserted_count = db.Column(db.Integer, default=0)
    updated_count = db.Column(db.Integer, default=0)
    unchanged_count = db.Column(db.Integer, default=0)
    rejected_count = db.Column(db.Integer, default=0)
    duplicates_removed = db.Column(db.Integer, default=0)
    low_confidence_count = db.Column(db.Integer, default=0)
    provenance_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    attempts = db.Column(db.JSON, nullable=False, default=list)

    # Error tracking
    error_message = db.Column(db.Text)
    error_traceback = db.Column(db.Text)

    # Metadata
    triggered_by = db.Column(db.String(50), default="api")  # api, cli, scheduler
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_ingestion_runs_state_started", "state", "started_at"),
        db.CheckConstraint(
            "state IN ('Running', 'Completed', 'Failed', 'Partial')",
            name="ingestion_runs_state_check",
        ),
    )

    def start(self):
        """Mark run as started."""
        self.state = RunState.RUNNING.value
        self.started_at = datetime.utcnow()

    def finish(self, result):
        """
        Record an orchestrator result.

        Args:
            result: scrapers.orchestrator.IngestionRunResult
        """
        self.state = result.state
        self.completed_at = datetime.utcnow()
        self.strategy_used = result.strategy_used
        self.record_count = result.record_count
        self.inserted_count = result.inserted
        self.updated_count = result.updated
        self.unchanged_count = result.unchanged
        self.rejected_count = result.rejected
        self.duplicates_removed = result.duplicates_removed
        self.low_confidence_count = result.low_confidence
        self.provenance_breakdown = dict(result.provenance_breakdown)
        self.attempts = list(result.attempts)
        self.error_message = result.error

    def fail(self, error: Exception):
        """Mark run as failed with error."""
        import traceback

        self.state = RunState.FAILED.value
        self.completed_at = datetime.utcnow()
        self.error_message = str(error)
        self.error_traceback = traceback.format_exc()

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if not self.started_at:
            return 0
        end = self.completed_at or datetime.utcnow()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "runId": self.run_id,
            "state": self.state,
            "city": self.city,
            "allDistricts": self.all_districts,
            "strategyUsed": self.strategy_used,
            "recordCount": self.record_count or 0,
            "inserted": self.inserted_count or 0,
            "updated": self.updated_count or 0,
            "unchanged": self.unchanged_count or 0,
            "rejected": self.rejected_count or 0,
            "duplicatesRemoved": self.duplicates_removed or 0,
            "lowConfidence": self.low_confidence_count or 0,
            "provenanceBreakdown": self.provenance_breakdown or {},
            "attempts": self.attempts or [],
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "durationSeconds": self.duration_seconds,
            "triggeredBy": self.triggered_by,
            "error": self.error_message,
        }

    def __repr__(self):
        return f"<IngestionRun {self.run_id[:8]} {self.state}>"
