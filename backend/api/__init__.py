"""
API package - request boundary layer.

This package provides:
- Pydantic param models for request validation
- Global middleware (request_id, error_envelope)
"""

from .params import IngestionTriggerParams, ProjectListParams, parse_params

__all__ = ['IngestionTriggerParams', 'ProjectListParams', 'parse_params']
