"""
records/store.py -- SQLAlchemy-backed persistence layer for personnel and equipment.

Uses SQLAlchemy Core (not ORM) so the dataclasses in records/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. RecordStore is the repository; rows are
mapped onto the dataclasses by column name. Route handlers never touch SQL.

Constraint outcomes: the store does not pre-validate. Each write runs as one
transaction and the database's own constraints decide. _translate_errors()
turns the driver's failure into a typed error:

  duplicate key              -> ConflictError
  age trigger                -> AgeRangeError
  FK / CHECK / NOT NULL      -> ConstraintError
  no row matched (update/del)-> NotFoundError

Anything it cannot classify propagates unchanged and ends up as a 500.

Specializations: artillery, ships and jets are looked up through the
SPECIALIZATIONS registry keyed by kind. kind_for_category() maps a Logistics
row's logistics_type tag onto that registry for the equipment detail view.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = RecordStore()                                   # SQLite default
    store = RecordStore("mysql+pymysql://user:pw@host/afms") # MySQL
    store.create_serving(person)
    store.create_equipment(item)
    store.create_specialization("artillery", gun)
    store.close()
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Optional, Union

from sqlalchemy import Table, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError

from core.config import get_settings
from core.database import create_store_engine, ping
from core.errors import AgeRangeError, AppError, ConflictError, ConstraintError, NotFoundError
from records.models import Artillery, Equipment, Jet, RetiredPersonnel, ServingPersonnel, Ship
from records.schema import (
    AGE_RULE_MESSAGE,
    SUPPORTED_DIALECTS,
    artillery,
    jets,
    logistics,
    metadata,
    retired_personnel,
    serving_personnel,
    ships,
)

logger = logging.getLogger("afms.records")

SpecializationRecord = Union[Artillery, Ship, Jet]

# Friendly messages for named CHECK constraints in records/schema.py.
_CHECK_MESSAGES: dict[str, str] = {
    "ck_serving_salary_positive": "Salary must be positive",
    "ck_serving_posting_type": "Posting type must be one of F, H, T",
    "ck_retired_pension_positive": "Pension must be positive",
    "ck_logistics_cost_positive": "Cost must be positive",
    "ck_artillery_range_positive": "Range must be positive",
    "ck_ships_staff_positive": "Staff size must be positive",
    "ck_jets_speed_positive": "Speed must be positive",
}


@dataclass(frozen=True)
class Specialization:
    kind: str  # URL segment and response key: "artillery" | "ships" | "jets"
    label: str  # human label used in messages
    table: Table
    model: type


SPECIALIZATIONS: dict[str, Specialization] = {
    "artillery": Specialization("artillery", "Artillery", artillery, Artillery),
    "ships": Specialization("ships", "Ship", ships, Ship),
    "jets": Specialization("jets", "Jet", jets, Jet),
}

_CATEGORY_ALIASES: dict[str, str] = {
    "artillery": "artillery",
    "ship": "ships",
    "ships": "ships",
    "jet": "jets",
    "jets": "jets",
}


def kind_for_category(logistics_type: str) -> Optional[str]:
    """Map a Logistics category tag ("Artillery", "Ships", "Jets") to a specialization kind."""
    return _CATEGORY_ALIASES.get(logistics_type.strip().lower())


@dataclass
class SpecializedEquipment:
    """A specialization row together with its owning Logistics row."""

    equipment: Equipment
    details: SpecializationRecord


@dataclass
class Assignment:
    """One row of the personnel/equipment report (LEFT JOIN, so equipment may be absent)."""

    service_id: str
    first_name: str
    last_name: str
    rank: str
    regiment: Optional[str] = None
    equipment_id: Optional[str] = None
    logistics_type: Optional[str] = None
    location: Optional[str] = None
    cost: Optional[int] = None


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def _classify(exc: DBAPIError, duplicate: str, missing_reference: str) -> Optional[AppError]:
    """Map a driver error onto the typed taxonomy. Returns None if unrecognised.

    SQLite and MySQL word their errors differently; both are matched on the
    driver message. The age trigger is recognised by its own message text,
    which also covers MySQL's SIGNAL arriving as an OperationalError.
    """
    detail = str(exc.orig)
    if AGE_RULE_MESSAGE in detail:
        return AgeRangeError(AGE_RULE_MESSAGE)
    lowered = detail.lower()
    if "unique constraint" in lowered or "duplicate entry" in lowered:
        return ConflictError(duplicate)
    if "foreign key" in lowered:
        return ConstraintError(missing_reference, code="missing_reference")
    if "check constraint" in lowered:
        for name, message in _CHECK_MESSAGES.items():
            if name in detail:
                return ConstraintError(message)
        return ConstraintError("Record violates a value constraint")
    if "not null" in lowered or "cannot be null" in lowered:
        return ConstraintError("A required field is missing")
    return None


@contextmanager
def _translate_errors(
    duplicate: str = "Record already exists",
    missing_reference: str = "Referenced record does not exist",
) -> Iterator[None]:
    try:
        yield
    except DBAPIError as exc:
        error = _classify(exc, duplicate, missing_reference)
        if error is None:
            raise
        logger.info("Store rejected write: %s (%s)", error.message, error.code)
        raise error from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RecordStore:
    """Repository for personnel, equipment and equipment specializations."""

    def __init__(self, db_url: Optional[str] = None, pool_size: int = 5) -> None:
        self.engine: Engine = create_store_engine(db_url or get_settings().database_url, pool_size)
        if self.engine.dialect.name not in SUPPORTED_DIALECTS:
            raise ValueError(
                f"Unsupported database dialect {self.engine.dialect.name!r}; "
                f"the serving age trigger is defined for {', '.join(SUPPORTED_DIALECTS)}"
            )
        metadata.create_all(self.engine)

    def ping(self) -> None:
        ping(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _fetch_all(self, stmt, model: type) -> list:
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [model(**row._mapping) for row in rows]

    def _fetch_one(self, stmt, model: type):
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return model(**row._mapping) if row is not None else None

    def _insert(self, table: Table, values: dict, duplicate: str, missing_reference: str = "") -> None:
        with _translate_errors(duplicate, missing_reference or "Referenced record does not exist"):
            with self.engine.begin() as conn:
                conn.execute(table.insert().values(**values))

    def _update(
        self, table: Table, key: str, key_value: str, values: dict, not_found: str, missing_reference: str = ""
    ) -> None:
        with _translate_errors(missing_reference=missing_reference or "Referenced record does not exist"):
            with self.engine.begin() as conn:
                result = conn.execute(table.update().where(table.c[key] == key_value).values(**values))
                if result.rowcount == 0:
                    raise NotFoundError(not_found)

    def _delete(self, table: Table, key: str, key_value: str, not_found: str) -> None:
        with _translate_errors():
            with self.engine.begin() as conn:
                result = conn.execute(table.delete().where(table.c[key] == key_value))
                if result.rowcount == 0:
                    raise NotFoundError(not_found)

    # ------------------------------------------------------------------
    # Serving personnel
    # ------------------------------------------------------------------

    def list_serving(
        self,
        rank: Optional[str] = None,
        regiment: Optional[str] = None,
        posting_type: Optional[str] = None,
    ) -> list[ServingPersonnel]:
        """Return serving personnel ordered by service ID.

        rank and posting_type match exactly; regiment is a substring match.
        """
        t = serving_personnel
        stmt = select(t)
        if rank:
            stmt = stmt.where(t.c.rank == rank)
        if regiment:
            stmt = stmt.where(t.c.regiment.contains(regiment, autoescape=True))
        if posting_type:
            stmt = stmt.where(t.c.posting_type == posting_type)
        return self._fetch_all(stmt.order_by(t.c.service_id), ServingPersonnel)

    def get_serving(self, service_id: str) -> Optional[ServingPersonnel]:
        t = serving_personnel
        return self._fetch_one(select(t).where(t.c.service_id == service_id), ServingPersonnel)

    def create_serving(self, person: ServingPersonnel) -> None:
        """Insert a serving personnel record.

        The age rule runs inside the database as a BEFORE INSERT trigger;
        a violation arrives here as AgeRangeError.
        """
        self._insert(serving_personnel, asdict(person), duplicate="Service ID already exists")

    def update_serving(self, service_id: str, person: ServingPersonnel) -> None:
        values = asdict(person)
        values.pop("service_id")
        self._update(serving_personnel, "service_id", service_id, values, not_found="Personnel not found")

    def delete_serving(self, service_id: str) -> None:
        """Delete a serving record. Equipment assigned to it is kept with assigned_to cleared."""
        self._delete(serving_personnel, "service_id", service_id, not_found="Personnel not found")

    # ------------------------------------------------------------------
    # Retired personnel
    # ------------------------------------------------------------------

    def list_retired(self) -> list[RetiredPersonnel]:
        t = retired_personnel
        return self._fetch_all(select(t).order_by(t.c.retirement_date.desc(), t.c.service_id), RetiredPersonnel)

    def get_retired(self, service_id: str) -> Optional[RetiredPersonnel]:
        t = retired_personnel
        return self._fetch_one(select(t).where(t.c.service_id == service_id), RetiredPersonnel)

    def create_retired(self, person: RetiredPersonnel) -> None:
        self._insert(retired_personnel, asdict(person), duplicate="Service ID already exists")

    def update_retired(self, service_id: str, person: RetiredPersonnel) -> None:
        values = asdict(person)
        values.pop("service_id")
        self._update(retired_personnel, "service_id", service_id, values, not_found="Personnel not found")

    def delete_retired(self, service_id: str) -> None:
        self._delete(retired_personnel, "service_id", service_id, not_found="Personnel not found")

    # ------------------------------------------------------------------
    # Logistics (equipment)
    # ------------------------------------------------------------------

    def list_equipment(
        self,
        logistics_type: Optional[str] = None,
        location: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> list[Equipment]:
        t = logistics
        stmt = select(t)
        if logistics_type:
            stmt = stmt.where(t.c.logistics_type == logistics_type)
        if location:
            stmt = stmt.where(t.c.location.contains(location, autoescape=True))
        if assigned_to:
            stmt = stmt.where(t.c.assigned_to == assigned_to)
        return self._fetch_all(stmt.order_by(t.c.equipment_id), Equipment)

    def get_equipment(self, equipment_id: str) -> Optional[Equipment]:
        t = logistics
        return self._fetch_one(select(t).where(t.c.equipment_id == equipment_id), Equipment)

    def get_equipment_details(self, equipment_id: str) -> Optional[SpecializationRecord]:
        """Return the specialization row matching the equipment's category tag, if any.

        The tag is informational, so a tagged item may have no specialization
        row and an untagged kind is never searched.
        """
        equipment = self.get_equipment(equipment_id)
        if equipment is None:
            return None
        kind = kind_for_category(equipment.logistics_type)
        if kind is None:
            return None
        return self.get_specialization(kind, equipment_id)

    def list_assigned_equipment(self, service_id: str) -> list[Equipment]:
        t = logistics
        return self._fetch_all(select(t).where(t.c.assigned_to == service_id).order_by(t.c.equipment_id), Equipment)

    def create_equipment(self, item: Equipment) -> None:
        self._insert(
            logistics,
            asdict(item),
            duplicate="Equipment ID already exists",
            missing_reference="Assigned personnel does not exist",
        )

    def update_equipment(self, equipment_id: str, item: Equipment) -> None:
        values = asdict(item)
        values.pop("equipment_id")
        self._update(
            logistics,
            "equipment_id",
            equipment_id,
            values,
            not_found="Equipment not found",
            missing_reference="Assigned personnel does not exist",
        )

    def delete_equipment(self, equipment_id: str) -> None:
        """Delete an equipment row. Its specialization row goes with it (ON DELETE CASCADE)."""
        self._delete(logistics, "equipment_id", equipment_id, not_found="Equipment not found")

    # ------------------------------------------------------------------
    # Specializations (artillery / ships / jets)
    # ------------------------------------------------------------------

    def list_specializations(self, kind: str) -> list[SpecializedEquipment]:
        """Return every row of one specialization joined with its Logistics parent."""
        entry = SPECIALIZATIONS[kind]
        stmt = (
            select(entry.table, *[c.label(f"parent_{c.name}") for c in logistics.c])
            .join(logistics, entry.table.c.equipment_id == logistics.c.equipment_id)
            .order_by(entry.table.c.equipment_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        result = []
        for row in rows:
            mapping = row._mapping
            details = entry.model(**{c.name: mapping[c.name] for c in entry.table.c})
            equipment = Equipment(**{c.name: mapping[f"parent_{c.name}"] for c in logistics.c})
            result.append(SpecializedEquipment(equipment=equipment, details=details))
        return result

    def get_specialization(self, kind: str, equipment_id: str) -> Optional[SpecializationRecord]:
        entry = SPECIALIZATIONS[kind]
        return self._fetch_one(select(entry.table).where(entry.table.c.equipment_id == equipment_id), entry.model)

    def create_specialization(self, kind: str, record: SpecializationRecord) -> None:
        """Insert a specialization row. Its Logistics parent must already exist."""
        entry = SPECIALIZATIONS[kind]
        self._insert(
            entry.table,
            asdict(record),
            duplicate=f"{entry.label} record already exists for this equipment",
            missing_reference=f"Equipment {record.equipment_id} does not exist",
        )

    def update_specialization(self, kind: str, equipment_id: str, record: SpecializationRecord) -> None:
        entry = SPECIALIZATIONS[kind]
        values = asdict(record)
        values.pop("equipment_id")
        self._update(entry.table, "equipment_id", equipment_id, values, not_found=f"{entry.label} not found")

    def delete_specialization(self, kind: str, equipment_id: str) -> None:
        entry = SPECIALIZATIONS[kind]
        self._delete(entry.table, "equipment_id", equipment_id, not_found=f"{entry.label} not found")

    # ------------------------------------------------------------------
    # Statistics and reports
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, int]:
        """Return row counts for every record table in a single round trip."""
        tables = {
            "total_serving": serving_personnel,
            "total_retired": retired_personnel,
            "total_equipment": logistics,
            "total_artillery": artillery,
            "total_ships": ships,
            "total_jets": jets,
        }
        stmt = select(*[select(func.count()).select_from(t).scalar_subquery().label(k) for k, t in tables.items()])
        with self.engine.connect() as conn:
            row = conn.execute(stmt).one()
        return {k: int(v or 0) for k, v in row._mapping.items()}

    def personnel_equipment_report(self) -> list[Assignment]:
        """Every serving record with each piece of equipment assigned to it.

        LEFT JOIN: personnel with no equipment appear once with empty
        equipment fields.
        """
        sp, lg = serving_personnel, logistics
        stmt = (
            select(
                sp.c.service_id,
                sp.c.first_name,
                sp.c.last_name,
                sp.c.rank,
                sp.c.regiment,
                lg.c.equipment_id,
                lg.c.logistics_type,
                lg.c.location,
                lg.c.cost,
            )
            .select_from(sp.outerjoin(lg, sp.c.service_id == lg.c.assigned_to))
            .order_by(sp.c.service_id, lg.c.equipment_id)
        )
        return self._fetch_all(stmt, Assignment)
