"""
Pydantic models for API params.

Every query string and request body is validated here before a route
touches it. Models are frozen, ignore unknown keys and turn blank strings
into None, so "?city=" behaves like no city at all.

A failed validation raises ParamValidationError for the first bad field;
the error envelope renders it as a flat 400:

    {"error": "...", "type": "validation_error", "field": "page", "received_value": "0"}

Usage:
    params = parse_params(ProjectListParams, request.args)
    page = repo.query(**params.filters(), page=params.page, limit=params.limit)
"""

from typing import Any, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scrapers.records import Provenance

MAX_PAGE_SIZE = 100
MAX_RUNS_LISTED = 100
MAX_ANALYTICS_MONTHS = 120

P = TypeVar('P', bound='BaseParamsModel')


class ParamValidationError(ValueError):
    """A request parameter failed validation."""

    def __init__(self, message: str, field: Optional[str] = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def validation_error_response(error: ParamValidationError) -> tuple:
    """(body, 400) for a ParamValidationError."""
    body = {"error": str(error), "type": "validation_error"}
    if error.field:
        body["field"] = error.field
    if error.received_value is not None:
        body["received_value"] = str(error.received_value)
    return body, 400


class BaseParamsModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )

    @field_validator('*', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and v.strip() == '':
            return None
        return v


class PageParams(BaseParamsModel):
    """page >= 1; limit >= 1, capped at MAX_PAGE_SIZE."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @field_validator('limit')
    @classmethod
    def cap_limit(cls, v):
        return min(v, MAX_PAGE_SIZE)


class ProjectListParams(PageParams):
    """Params for GET /projects."""

    city: Optional[str] = Field(default=None, description="City / district name")
    status: Optional[str] = Field(default=None, description="Project status")
    project_type: Optional[str] = Field(default=None, alias='type', description="Project type")
    search: Optional[str] = Field(default=None, description="Name, developer, RERA id or locality")
    locality: Optional[str] = Field(default=None)
    developer: Optional[str] = Field(default=None)
    provenance: Optional[Provenance] = Field(default=None)
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    sort: Literal['name', 'booking', 'units', 'approved'] = Field(default='name')
    order: Literal['asc', 'desc'] = Field(default='asc')

    @field_validator('sort', 'order', mode='before')
    @classmethod
    def lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v

    def filters(self) -> dict:
        return {
            'city': self.city,
            'status': self.status,
            'project_type': self.project_type,
            'search': self.search,
            'locality': self.locality,
            'developer': self.developer,
            'provenance': self.provenance.value if self.provenance else None,
            'min_price': self.min_price,
            'max_price': self.max_price,
            'sort': self.sort,
            'order': self.order,
        }


class AnalyticsParams(BaseParamsModel):
    """Params for GET /analytics."""

    city: Optional[str] = Field(default=None)
    months: int = Field(default=6, ge=0, le=MAX_ANALYTICS_MONTHS, description="Recent-approvals window")


class RunListParams(BaseParamsModel):
    """Params for GET /ingestion/runs."""

    limit: int = Field(default=20, ge=1, le=MAX_RUNS_LISTED)


class IngestionTriggerParams(BaseParamsModel):
    """Body of POST /ingestion/trigger."""

    city: Optional[str] = Field(default=None, description="Restrict the run to one city")
    all_districts: bool = Field(default=False, alias='allDistricts')


def parse_params(model: Type[P], data: Optional[Mapping[str, Any]]) -> P:
    """
    Validate request data against a params model.

    Raises:
        ParamValidationError: first failing field
    """
    # Absent and blank values both fall back to the field default
    raw = {
        k: v for k, v in (dict(data) if isinstance(data, Mapping) else {}).items()
        if v is not None and not (isinstance(v, str) and not v.strip())
    }
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        loc = first.get('loc') or ()
        field = str(loc[0]) if loc else None
        raise ParamValidationError(
            first.get('msg', 'Invalid parameter'),
            field=field,
            received_value=first.get('input'),
        ) from e
