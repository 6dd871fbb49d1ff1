"""
Project Model - Gujarat RERA registered projects

One row per registration id. Rows are written only through
services.project_repository so that upserts stay atomic per batch.

Booking percentage is stored for querying/sorting but always derived from
total_units/available_units by the normalizer.
"""
from datetime import datetime

from models.database import db


class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    registration_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    promoter_name = db.Column(db.String(255), default='')
    project_type = db.Column(db.String(20), nullable=False, default='Residential', index=True)
    status = db.Column(db.String(20), nullable=False, default='Ongoing', index=True)

    # Location
    district = db.Column(db.String(100), nullable=False, index=True)  # also the city key
    locality = db.Column(db.String(255), default='')
    pincode = db.Column(db.String(10), default='')
    address = db.Column(db.Text, default='')

    # Dates as published (DD-MM-YYYY) plus parsed values for filtering
    approved_on = db.Column(db.String(32), default='')
    completion_date = db.Column(db.String(32), default='')
    approved_on_date = db.Column(db.Date, nullable=True, index=True)
    completion_on_date = db.Column(db.Date, nullable=True)

    # Inventory
    total_units = db.Column(db.Integer, nullable=False, default=0)
    available_units = db.Column(db.Integer, nullable=False, default=0)
    booking_percentage = db.Column(db.Integer, nullable=False, default=0)
    project_area = db.Column(db.Float, nullable=False, default=0.0)  # sq. metres
    total_buildings = db.Column(db.Integer, nullable=False, default=0)

    # Pricing (INR)
    min_price = db.Column(db.Float, nullable=False, default=0.0)
    max_price = db.Column(db.Float, nullable=False, default=0.0)

    # Lineage
    provenance = db.Column(db.String(20), nullable=False, index=True)  # LiveExtraction, ManualUpload, Synthetic
    is_low_confidence = db.Column(db.Boolean, nullable=False, default=False)
    record_hash = db.Column(db.String(64), nullable=False)
    last_run_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_projects_district_status', 'district', 'status'),
        db.CheckConstraint(
            "booking_percentage >= 0 AND booking_percentage <= 100",
            name='projects_booking_percentage_check',
        ),
        db.CheckConstraint(
            "provenance IN ('LiveExtraction', 'ManualUpload', 'Synthetic')",
            name='projects_provenance_check',
        ),
    )

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'rera_id': self.registration_id,
            'project_name': self.name,
            'developer_name': self.promoter_name,
            'project_type': self.project_type,
            'project_status': self.status,
            'city': self.district,
            'district': self.district,
            'locality': self.locality,
            'pincode': self.pincode,
            'address': self.address,
            'approved_on': self.approved_on,
            'completion_date': self.completion_date,
            'total_units': self.total_units,
            'units_available': self.available_units,
            'booking_percentage': self.booking_percentage,
            'project_area': self.project_area,
            'total_buildings': self.total_buildings,
            'min_price': self.min_price,
            'max_price': self.max_price,
            'provenance': self.provenance,
            'is_low_confidence': self.is_low_confidence,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.registration_id} {self.name!r}>"
