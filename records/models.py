"""
records/models.py -- Domain dataclasses for personnel and equipment records.

These are pure data containers with zero logic. Constraint enforcement
(positivity, referential integrity, the serving age rule) lives in the data
store itself -- see records/schema.py.

Field names match the column names in records/schema.py one-to-one, so the
store maps rows with Model(**row._mapping).

Artillery, Ship and Jet are not subclasses of Equipment. Each is its own
record keyed by the equipment_id of its Logistics parent; the store enforces
the existence dependency.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class ServingPersonnel:
    service_id: str  # 8-character service code
    first_name: str
    last_name: str
    dob: date
    rank: str
    salary: int  # must be > 0
    posting_type: str  # "F" | "H" | "T"
    regiment: Optional[str] = None
    awards: Optional[str] = None
    skills: Optional[str] = None
    medical: Optional[str] = None
    health_plan: Optional[str] = None


@dataclass
class RetiredPersonnel:
    """Service IDs here are an independent namespace from ServingPersonnel."""

    service_id: str
    first_name: str
    last_name: str
    dob: date
    last_rank: str
    retirement_date: date
    pension: int  # must be > 0
    regiment: Optional[str] = None
    awards: Optional[str] = None
    skills: Optional[str] = None
    health_plan: Optional[str] = None


@dataclass
class Equipment:
    """A Logistics row.

    logistics_type is an informational tag ("Artillery", "Ships", "Jets");
    nothing forces a matching specialization row to exist.
    assigned_to is cleared by the store when the referenced serving
    personnel record is deleted.
    """

    equipment_id: str  # 12-character equipment code
    logistics_type: str
    cost: int  # must be > 0
    procurement_date: date
    location: str
    tech: Optional[str] = None
    assigned_to: Optional[str] = None


@dataclass
class Artillery:
    equipment_id: str
    type: str
    art_range: float  # must be > 0
    commissioning_date: date


@dataclass
class Ship:
    equipment_id: str
    ship_name: str
    ship_type: str
    staff_size: int  # must be > 0
    commissioning_date: date


@dataclass
class Jet:
    equipment_id: str
    jet_name: str
    jet_type: str
    speed: float  # must be > 0
    commissioning_date: date
