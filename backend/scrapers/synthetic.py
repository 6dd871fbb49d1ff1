"""
Synthetic Data Generator

Fallback records for when no extraction strategy yields data.

Every record is tagged provenance=Synthetic and passes through the
normalizer, so booking percentage follows the same derivation as real
data.

Each city draws from its own random.Random seeded with (seed, city), and
seed defaults to DEFAULT_SYNTHETIC_SEED. Registration ids depend only on
city, locality, sequence and a date counted back from
SYNTHETIC_REGISTRY_ANCHOR, so repeated fallback runs upsert the same rows
instead of adding new ones. reference_date only moves the approval and
completion dates.
"""
import logging
import random
from datetime import date, timedelta
from typing import Dict, List, Optional

from constants import (
    CITY_REGISTRATION_CODES,
    COMMERCIAL_NAME_SUFFIX,
    CURATED_PROJECTS,
    DEFAULT_CITY_WEIGHT,
    DEFAULT_CITY_WEIGHTS,
    DEFAULT_REGISTRATION_CODE,
    DEFAULT_SYNTHETIC_SEED,
    DEVELOPERS,
    PROJECT_NAME_SUFFIXES,
    SYNTHETIC_PROJECT_TYPES,
    SYNTHETIC_REGISTRY_ANCHOR,
    canonical_city,
    get_localities_for_city,
)
from .normalizer import normalize
from .records import ProjectRecord, Provenance

logger = logging.getLogger(__name__)

SYNTHETIC_STATUSES = [
    ("Under Construction", 85),
    ("Completed", 10),
    ("New Launch", 5),
]


def weights_for_scope(city: Optional[str] = None) -> Dict[str, int]:
    """Target counts for a run scope: one city, or the default city set."""
    if city:
        name = canonical_city(city)
        return {name: DEFAULT_CITY_WEIGHTS.get(name, DEFAULT_CITY_WEIGHT)}
    return dict(DEFAULT_CITY_WEIGHTS)


def _weighted(rng: random.Random, table):
    values = [v for v, _ in table]
    weights = [w for _, w in table]
    return rng.choices(values, weights=weights, k=1)[0]


class SyntheticDataGenerator:
    """Produces plausible, internally consistent project records."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None,
                 reference_date: Optional[date] = None):
        """
        Args:
            seed: Base seed for the per-city generators (DEFAULT_SYNTHETIC_SEED if None)
            rng: Shared randomness source; replaces the per-city generators
            reference_date: "Today" for approval/completion dates
        """
        self.seed = DEFAULT_SYNTHETIC_SEED if seed is None else seed
        self._rng = rng
        self.reference_date = reference_date or date.today()

    def rng_for(self, city: str) -> random.Random:
        if self._rng is not None:
            return self._rng
        return random.Random(f"{self.seed}:{city}")

    @staticmethod
    def _registration_id(city: str, locality: str, sequence: int, registered: date) -> str:
        code = CITY_REGISTRATION_CODES.get(city, DEFAULT_REGISTRATION_CODE)
        locality_key = "".join(locality.upper().split())
        return f"PR/GJ/{city.upper()}/{locality_key}/{code}{sequence:05d}/{registered.strftime('%d%m%y')}"

    def _raw_record(self, rng: random.Random, city: str, index: int, localities, curated) -> dict:
        locality, pincode = rng.choice(localities)

        if index < len(curated):
            name, developer = curated[index]
            project_type = "Residential"
        else:
            developer = rng.choice(DEVELOPERS)
            project_type = _weighted(rng, SYNTHETIC_PROJECT_TYPES)
            if project_type == "Commercial":
                suffix = COMMERCIAL_NAME_SUFFIX
            else:
                suffix = rng.choice(PROJECT_NAME_SUFFIXES)
            name = f"{developer} {locality} {suffix}"

        age_days = rng.randint(30, 5 * 365)
        approved = self.reference_date - timedelta(days=age_days)
        registered = SYNTHETIC_REGISTRY_ANCHOR - timedelta(days=age_days)
        completion_year = approved.year + rng.randint(2, 5)
        total_units = rng.randint(150, 750)
        available_units = int(rng.random() * total_units * 0.7)
        min_price = rng.randint(35, 90) * 100_000
        max_price = int(min_price * rng.uniform(1.3, 2.5) / 1000) * 1000

        return {
            "registration_id": self._registration_id(city, locality, index + 1, registered),
            "name": name,
            "promoter_name": developer,
            "project_type": project_type,
            "status": _weighted(rng, SYNTHETIC_STATUSES),
            "district": city,
            "locality": locality,
            "pincode": pincode,
            "address": f"{locality}, {city}, Gujarat {pincode}".strip(),
            "approved_on": approved.strftime("%d-%m-%Y"),
            "completion_date": f"31-12-{completion_year}",
            "total_units": total_units,
            "available_units": available_units,
            "project_area": rng.randint(15000, 55000),
            "total_buildings": rng.randint(2, 9),
            "min_price": min_price,
            "max_price": max_price,
        }

    def generate_city(self, city: str, count: int) -> List[ProjectRecord]:
        """Generate `count` records for one city."""
        city = canonical_city(city)
        rng = self.rng_for(city)
        localities = get_localities_for_city(city) or [(city, "")]
        curated = CURATED_PROJECTS.get(city, [])
        records = []
        for index in range(max(count, 0)):
            raw = self._raw_record(rng, city, index, localities, curated)
            records.append(normalize(raw, provenance=Provenance.SYNTHETIC.value))
        return records

    def generate(self, city_weights: Optional[Dict[str, int]] = None) -> List[ProjectRecord]:
        """
        Generate records for each city.

        Args:
            city_weights: city -> target count (defaults to DEFAULT_CITY_WEIGHTS)

        Returns:
            List of ProjectRecord, all provenance=Synthetic
        """
        city_weights = city_weights if city_weights is not None else DEFAULT_CITY_WEIGHTS
        records = []
        for city, count in city_weights.items():
            records.extend(self.generate_city(city, count))
        logger.info(f"Generated {len(records)} synthetic records for {len(city_weights)} cities")
        return records
