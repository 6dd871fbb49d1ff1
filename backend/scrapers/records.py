"""
Canonical project record shape.

RawRecord is any dict produced by a strategy, an upload or the synthetic
generator. ProjectRecord is what the normalizer emits and the repository
persists.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

RawRecord = Dict[str, Any]


class Provenance(str, Enum):
    """Where a record came from."""
    LIVE_EXTRACTION = "LiveExtraction"
    MANUAL_UPLOAD = "ManualUpload"
    SYNTHETIC = "Synthetic"


class ProjectType(str, Enum):
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    MIXED = "Mixed"
    PLOTTED = "Plotted"
    TOWNSHIP = "Township"
    OTHER = "Other"


class ProjectStatus(str, Enum):
    NEW = "New"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    DELAYED = "Delayed"
    STALLED = "Stalled"
    OTHER = "Other"


# Internal key marking records whose registration id was synthesized
LOW_CONFIDENCE_KEY = "_low_confidence"


def compute_booking_percentage(total_units: int, available_units: int) -> int:
    """
    Booking percentage, 0-100.

    round((total - available) / total * 100) with half-up rounding when
    total > 0, else 0. Available units above total count as fully unsold.
    """
    if not total_units or total_units <= 0:
        return 0
    available = min(max(available_units or 0, 0), total_units)
    booked = total_units - available
    value = int(booked * 100 / total_units + 0.5)
    return max(0, min(100, value))


@dataclass
class ProjectRecord:
    """One normalized RERA project."""
    registration_id: str
    name: str = ""
    promoter_name: str = ""
    project_type: str = ProjectType.RESIDENTIAL.value
    status: str = ProjectStatus.ONGOING.value
    district: str = ""
    locality: str = ""
    pincode: str = ""
    address: str = ""
    approved_on: str = ""
    completion_date: str = ""
    total_units: int = 0
    available_units: int = 0
    booking_percentage: int = 0
    project_area: float = 0.0
    total_buildings: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    provenance: str = Provenance.LIVE_EXTRACTION.value
    is_low_confidence: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.booking_percentage = compute_booking_percentage(self.total_units, self.available_units)

    @property
    def city(self) -> str:
        return self.district

    def content(self) -> Dict[str, Any]:
        """Fields that define the record content (used for change detection)."""
        data = asdict(self)
        data.pop("extra", None)
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the read-layer field names."""
        return {
            "rera_id": self.registration_id,
            "project_name": self.name,
            "developer_name": self.promoter_name,
            "project_type": self.project_type,
            "project_status": self.status,
            "city": self.district,
            "district": self.district,
            "locality": self.locality,
            "pincode": self.pincode,
            "address": self.address,
            "approved_on": self.approved_on,
            "completion_date": self.completion_date,
            "total_units": self.total_units,
            "units_available": self.available_units,
            "booking_percentage": self.booking_percentage,
            "project_area": self.project_area,
            "total_buildings": self.total_buildings,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "provenance": self.provenance,
            "is_low_confidence": self.is_low_confidence,
        }

    @classmethod
    def from_model(cls, model) -> Optional["ProjectRecord"]:
        """Build from a models.project.Project row."""
        if model is None:
            return None
        return cls(
            registration_id=model.registration_id,
            name=model.name or "",
            promoter_name=model.promoter_name or "",
            project_type=model.project_type,
            status=model.status,
            district=model.district,
            locality=model.locality or "",
            pincode=model.pincode or "",
            address=model.address or "",
            approved_on=model.approved_on or "",
            completion_date=model.completion_date or "",
            total_units=model.total_units or 0,
            available_units=model.available_units or 0,
            project_area=model.project_area or 0.0,
            total_buildings=model.total_buildings or 0,
            min_price=model.min_price or 0.0,
            max_price=model.max_price or 0.0,
            provenance=model.provenance,
            is_low_confidence=bool(model.is_low_confidence),
        )
