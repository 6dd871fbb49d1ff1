"""
Ingestion error taxonomy.

Strategy-local errors (TransientNetworkError, StructuralMismatch,
StrategyFailure) are absorbed by the orchestrator and logged. Only
RepositoryError propagates to the run status. ValidationError is counted
per record and never fatal to a run.
"""
from typing import Optional


class IngestionError(Exception):
    """Base class for all ingestion pipeline errors."""


class TransientNetworkError(IngestionError):
    """Timeout, connection reset or 5xx response. Retryable."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class StructuralMismatch(IngestionError):
    """Page or payload no longer matches the expected extraction pattern."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class StrategyFailure(IngestionError):
    """A strategy attempt failed for a target after exhausting its techniques."""

    def __init__(self, strategy: str, target: Optional[str], cause: Optional[BaseException] = None,
                 message: Optional[str] = None):
        self.strategy = strategy
        self.target = target
        self.cause = cause
        detail = message or (str(cause) if cause else "no usable data")
        super().__init__(f"{strategy} failed for {target or 'all'}: {detail}")


class ValidationError(IngestionError):
    """A record fails minimal shape requirements."""

    def __init__(self, message: str, field: Optional[str] = None, registration_id: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.registration_id = registration_id


class DuplicateRegistrationError(ValidationError):
    """Single-record add attempted for a registration id that already exists."""

    def __init__(self, registration_id: str):
        super().__init__(
            "Project with this RERA ID already exists",
            field="registrationId",
            registration_id=registration_id,
        )


class RepositoryError(IngestionError):
    """Persistence failure. The batch was rolled back."""


class ExhaustionFailure(IngestionError):
    """Every strategy failed or came back below the minimum threshold."""

    def __init__(self, failures: Optional[list] = None):
        self.failures = failures or []
        super().__init__(f"All strategies exhausted ({len(self.failures)} failures)")
