"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.project import Project
from models.ingestion_run import IngestionRun

__all__ = [
    'db',
    'Project',
    'IngestionRun',
]
