"""
records/schema.py -- Relational schema for personnel and equipment records.

Uses SQLAlchemy Core Table definitions so the constraints live in the data
store, not in request handlers. Every write path goes through the database,
so none of them can skip a rule:

  Uniqueness         -- primary keys on service_id / equipment_id
  Positivity         -- CHECK constraints on salary, pension, cost,
                        art_range, staff_size, speed
  Posting codes      -- CHECK posting_type IN ('F', 'H', 'T')
  Assignment FK      -- logistics.assigned_to -> serving_personnel,
                        ON DELETE SET NULL (equipment survives, assignment clears)
  Weak entities      -- artillery/ships/jets share their primary key with
                        logistics and reference it ON DELETE CASCADE
  Serving age rule   -- BEFORE INSERT trigger: age computed from dob at insert
                        time must be in [18, 60)

The trigger is emitted after the serving_personnel table is created, one
variant per supported dialect (SQLite, MySQL). Its message text is
AGE_RULE_MESSAGE; records/store.py keys on it to raise AgeRangeError.
"""

from sqlalchemy import (
    CHAR,
    DDL,
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    event,
)

AGE_RULE_MESSAGE = "Serving personnel must be between 18 and 60 years old"
MIN_SERVING_AGE = 18
MAX_SERVING_AGE = 60  # exclusive

POSTING_TYPES = ("F", "H", "T")

SERVICE_ID_LENGTH = 8
EQUIPMENT_ID_LENGTH = 12

SUPPORTED_DIALECTS = ("sqlite", "mysql")

metadata = MetaData()

# ---------------------------------------------------------------------------
# Personnel
# ---------------------------------------------------------------------------

serving_personnel = Table(
    "serving_personnel",
    metadata,
    Column("service_id", CHAR(SERVICE_ID_LENGTH), primary_key=True),
    Column("first_name", String(20), nullable=False),
    Column("last_name", String(20), nullable=False),
    Column("dob", Date, nullable=False),
    Column("rank", String(9), nullable=False),
    Column("regiment", String(100)),
    Column("salary", Integer, nullable=False),
    Column("awards", String(255)),
    Column("skills", String(255)),
    Column("posting_type", CHAR(1), nullable=False),
    Column("medical", String(255)),
    Column("health_plan", String(100)),
    CheckConstraint("salary > 0", name="ck_serving_salary_positive"),
    CheckConstraint(
        "posting_type IN (%s)" % ", ".join(f"'{code}'" for code in POSTING_TYPES),
        name="ck_serving_posting_type",
    ),
    Index("idx_serving_rank", "rank"),
    Index("idx_serving_posting", "posting_type"),
    Index("idx_serving_regiment", "regiment"),
)

retired_personnel = Table(
    "retired_personnel",
    metadata,
    Column("service_id", CHAR(SERVICE_ID_LENGTH), primary_key=True),
    Column("first_name", String(20), nullable=False),
    Column("last_name", String(20), nullable=False),
    Column("dob", Date, nullable=False),
    Column("last_rank", String(9), nullable=False),
    Column("regiment", String(100)),
    Column("retirement_date", Date, nullable=False),
    Column("pension", Integer, nullable=False),
    Column("awards", String(255)),
    Column("skills", String(255)),
    Column("health_plan", String(100)),
    CheckConstraint("pension > 0", name="ck_retired_pension_positive"),
)

# ---------------------------------------------------------------------------
# Equipment and its weak-entity specializations
# ---------------------------------------------------------------------------

logistics = Table(
    "logistics",
    metadata,
    Column("equipment_id", CHAR(EQUIPMENT_ID_LENGTH), primary_key=True),
    Column("logistics_type", String(50), nullable=False),
    Column("cost", BigInteger, nullable=False),
    Column("procurement_date", Date, nullable=False),
    Column("tech", String(100)),
    Column("location", String(100), nullable=False),
    Column(
        "assigned_to",
        CHAR(SERVICE_ID_LENGTH),
        ForeignKey("serving_personnel.service_id", ondelete="SET NULL"),
    ),
    CheckConstraint("cost > 0", name="ck_logistics_cost_positive"),
    Index("idx_logistics_type", "logistics_type"),
    Index("idx_logistics_location", "location"),
)


def _owned_key() -> Column:
    return Column(
        "equipment_id",
        CHAR(EQUIPMENT_ID_LENGTH),
        ForeignKey("logistics.equipment_id", ondelete="CASCADE"),
        primary_key=True,
    )


artillery = Table(
    "artillery",
    metadata,
    _owned_key(),
    Column("type", String(50), nullable=False),
    Column("art_range", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("commissioning_date", Date, nullable=False),
    CheckConstraint("art_range > 0", name="ck_artillery_range_positive"),
)

ships = Table(
    "ships",
    metadata,
    _owned_key(),
    Column("ship_name", String(100), nullable=False),
    Column("ship_type", String(50), nullable=False),
    Column("staff_size", Integer, nullable=False),
    Column("commissioning_date", Date, nullable=False),
    CheckConstraint("staff_size > 0", name="ck_ships_staff_positive"),
)

jets = Table(
    "jets",
    metadata,
    _owned_key(),
    Column("jet_name", String(100), nullable=False),
    Column("jet_type", String(50), nullable=False),
    Column("speed", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("commissioning_date", Date, nullable=False),
    CheckConstraint("speed > 0", name="ck_jets_speed_positive"),
)

# ---------------------------------------------------------------------------
# Serving age trigger
#
# Age is whole years between dob and the store's current date, the same
# arithmetic as MySQL's TIMESTAMPDIFF(YEAR, dob, CURDATE()). Percent signs are
# doubled because DDL statements go through Python %-formatting.
# ---------------------------------------------------------------------------

_SQLITE_AGE_TRIGGER = DDL(
    f"""
    CREATE TRIGGER IF NOT EXISTS check_age_serving_personnel
    BEFORE INSERT ON serving_personnel
    FOR EACH ROW
    WHEN (
        CAST(strftime('%%Y', 'now') AS INTEGER) - CAST(strftime('%%Y', NEW.dob) AS INTEGER)
        - (strftime('%%m-%%d', 'now') < strftime('%%m-%%d', NEW.dob))
    ) NOT BETWEEN {MIN_SERVING_AGE} AND {MAX_SERVING_AGE - 1}
    BEGIN
        SELECT RAISE(ABORT, '{AGE_RULE_MESSAGE}');
    END
    """
)

_MYSQL_AGE_TRIGGER = DDL(
    f"""
    CREATE TRIGGER check_age_serving_personnel
    BEFORE INSERT ON serving_personnel
    FOR EACH ROW
    BEGIN
        DECLARE age INT;
        SET age = TIMESTAMPDIFF(YEAR, NEW.dob, CURDATE());
        IF age < {MIN_SERVING_AGE} OR age >= {MAX_SERVING_AGE} THEN
            SIGNAL SQLSTATE '45000' SET MESSAGE_TEXT = '{AGE_RULE_MESSAGE}';
        END IF;
    END
    """
)

event.listen(serving_personnel, "after_create", _SQLITE_AGE_TRIGGER.execute_if(dialect="sqlite"))
event.listen(serving_personnel, "after_create", _MYSQL_AGE_TRIGGER.execute_if(dialect="mysql"))
