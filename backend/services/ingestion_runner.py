"""
Ingestion Runner Service

Starts ingestion runs in the background so trigger requests return
immediately with a run id. One run at a time per process.

The IngestionRun row is created (state=Running) before the run id is
returned, so a status request right after the trigger always finds it.
Set app.config['INGESTION_RUN_INLINE'] = True to run synchronously
(tests, CLI).
"""
import logging
import threading
from datetime import datetime
from typing import List, Optional

from models.database import db
from models.ingestion_run import IngestionRun, RunState
from scrapers.base import CancellationToken, SessionContext
from scrapers.orchestrator import IngestionScope, StrategyOrchestrator
from scrapers.rate_limiter import get_scraper_rate_limiter
from scrapers.strategies import build_strategies
from scrapers.synthetic import SyntheticDataGenerator
from constants import canonical_city
from services import ingestion_config
from services.project_repository import ProjectRepository

logger = logging.getLogger(__name__)

# Global state for tracking the background run
_run_lock = threading.Lock()
_run_in_progress = False
_current_run_id: Optional[str] = None
_current_cancel_token: Optional[CancellationToken] = None


class IngestionDisabledError(Exception):
    """Kill switch is off."""


class IngestionInProgressError(Exception):
    """Another run holds the single-run lock."""

    def __init__(self, run_id: Optional[str]):
        self.run_id = run_id
        super().__init__(f"Ingestion run {run_id} is already in progress")


def get_runner_status() -> dict:
    return {
        'in_progress': _run_in_progress,
        'current_run_id': _current_run_id,
    }


def build_context(cancel_token: Optional[CancellationToken] = None) -> SessionContext:
    """SessionContext from environment settings."""
    return SessionContext(
        base_url=ingestion_config.get_base_url(),
        timeout=ingestion_config.get_request_timeout(),
        max_retries=ingestion_config.get_max_retries(),
        backoff_seconds=ingestion_config.get_backoff_seconds(),
        max_pages=ingestion_config.get_max_pages(),
        max_workers=ingestion_config.get_max_workers(),
        rate_limiter=get_scraper_rate_limiter(),
        cancel_token=cancel_token or CancellationToken.with_budget(
            ingestion_config.get_max_runtime_seconds()
        ),
    )


def build_orchestrator(context: Optional[SessionContext] = None) -> StrategyOrchestrator:
    """Orchestrator wired from environment settings."""
    context = context or build_context()
    return StrategyOrchestrator(
        strategies=build_strategies(ingestion_config.get_strategy_names()),
        repository=ProjectRepository(),
        context=context,
        synthetic_generator=SyntheticDataGenerator(seed=ingestion_config.get_synthetic_seed()),
        min_records=ingestion_config.get_min_records(),
        retry_rounds=ingestion_config.get_retry_rounds(),
        cooldown_seconds=ingestion_config.get_cooldown_seconds(),
    )


def _create_run(scope: IngestionScope, triggered_by: str) -> IngestionRun:
    run = IngestionRun(
        city=scope.city,
        all_districts=scope.all_districts,
        triggered_by=triggered_by,
    )
    run.start()
    db.session.add(run)
    db.session.commit()
    return run


def _execute_run(run_id: str, scope: IngestionScope, cancel_token: Optional[CancellationToken] = None):
    """Run the orchestrator and record the outcome on the IngestionRun row."""
    run = IngestionRun.query.filter_by(run_id=run_id).first()
    if run is None:
        logger.error(f"Ingestion run {run_id} vanished before it started")
        return

    try:
        orchestrator = build_orchestrator(build_context(cancel_token))
        result = orchestrator.run(scope, run_id=run_id)
        run.finish(result)
        db.session.commit()
        logger.info(f"Ingestion run {run_id} finished: {result.state}, {result.record_count} records")
    except Exception as e:
        logger.exception(f"Ingestion run {run_id} crashed")
        db.session.rollback()
        run = IngestionRun.query.filter_by(run_id=run_id).first()
        run.fail(e)
        db.session.commit()


def start_ingestion_run(city: Optional[str] = None, all_districts: bool = False,
                        triggered_by: str = 'api', app=None) -> str:
    """
    Start a run and return its id.

    Raises:
        IngestionDisabledError: INGESTION_ENABLED is off
        IngestionInProgressError: a run is already going
    """
    global _run_in_progress, _current_run_id, _current_cancel_token

    if not ingestion_config.is_ingestion_enabled():
        raise IngestionDisabledError("Ingestion is disabled by INGESTION_ENABLED")

    if app is None:
        from flask import current_app
        app = current_app._get_current_object()

    with _run_lock:
        if _run_in_progress:
            raise IngestionInProgressError(_current_run_id)
        _run_in_progress = True

    scope = IngestionScope(city=canonical_city(city) if city else None, all_districts=bool(all_districts))
    cancel_token = CancellationToken.with_budget(ingestion_config.get_max_runtime_seconds())

    try:
        run = _create_run(scope, triggered_by)
    except Exception:
        with _run_lock:
            _run_in_progress = False
        raise

    run_id = run.run_id
    _current_run_id = run_id
    _current_cancel_token = cancel_token
    logger.info(f"Ingestion run {run_id} triggered by {triggered_by} for {scope.to_dict()}")

    def _do_run(flask_app):
        global _run_in_progress, _current_run_id, _current_cancel_token
        try:
            with flask_app.app_context():
                _execute_run(run_id, scope, cancel_token)
                db.session.remove()
        finally:
            with _run_lock:
                _run_in_progress = False
                _current_run_id = None
                _current_cancel_token = None

    if app.config.get('INGESTION_RUN_INLINE'):
        _do_run(app)
    else:
        thread = threading.Thread(target=_do_run, args=(app,), daemon=True, name=f"ingestion-{run_id[:8]}")
        thread.start()

    return run_id


def cancel_current_run(reason: str = 'cancelled by operator') -> Optional[str]:
    """Trip the running run's cancellation token. Returns its id, if any."""
    token = _current_cancel_token
    if token is None:
        return None
    token.cancel(reason)
    logger.warning(f"Ingestion run {_current_run_id} cancellation requested: {reason}")
    return _current_run_id


def run_ingestion_sync(city: Optional[str] = None, all_districts: bool = False,
                       triggered_by: str = 'cli') -> IngestionRun:
    """Run in the current thread (requires an app context)."""
    from flask import current_app

    app = current_app._get_current_object()
    previous = app.config.get('INGESTION_RUN_INLINE')
    app.config['INGESTION_RUN_INLINE'] = True
    try:
        run_id = start_ingestion_run(city, all_districts, triggered_by=triggered_by, app=app)
    finally:
        app.config['INGESTION_RUN_INLINE'] = previous
    # The run was written from a nested app context; drop cached state
    db.session.expire_all()
    return get_run(run_id)


def get_run(run_id: str) -> Optional[IngestionRun]:
    return IngestionRun.query.filter_by(run_id=run_id).first()


def list_runs(limit: int = 20) -> List[IngestionRun]:
    return IngestionRun.query.order_by(IngestionRun.id.desc()).limit(limit).all()


def recover_stale_runs() -> int:
    """
    Mark runs left in Running by a previous process as Failed.
    Called once at startup, before any run can start.
    """
    stale = IngestionRun.query.filter_by(state=RunState.RUNNING.value).all()
    for run in stale:
        run.state = RunState.FAILED.value
        run.completed_at = datetime.utcnow()
        run.error_message = 'Interrupted: process restarted while the run was in progress'
    if stale:
        db.session.commit()
        logger.warning(f"Marked {len(stale)} interrupted ingestion run(s) as Failed")
    return len(stale)
