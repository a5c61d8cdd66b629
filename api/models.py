"""
API request and response models for AFMS REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in records/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two with to_record().

Request models check shape only: presence, types, lengths, code sets. Value
rules (positive salary, cost, range...) and the serving age rule belong to the
data store, so a record that passes here can still be refused there.

Separation of concerns: records/ models = domain truth; api/ models = API contract.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import Role
from auth.tokens import MAX_USERNAME_LENGTH, MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from records.models import Artillery, Equipment, Jet, RetiredPersonnel, ServingPersonnel, Ship
from records.schema import EQUIPMENT_ID_LENGTH, SERVICE_ID_LENGTH

# bcrypt ignores input past 72 bytes.
_MAX_PASSWORD_LENGTH = 72

_ServiceId = Field(min_length=SERVICE_ID_LENGTH, max_length=SERVICE_ID_LENGTH)
_EquipmentId = Field(min_length=EQUIPMENT_ID_LENGTH, max_length=EQUIPMENT_ID_LENGTH)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PostingTypeEnum(str, Enum):
    F = "F"
    H = "H"
    T = "T"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str
    code: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    # Only the username is trimmed; passwords are hashed byte-exact.
    username: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=MIN_USERNAME_LENGTH, max_length=MAX_USERNAME_LENGTH)
    ]
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=_MAX_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_USERNAME_LENGTH)]
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    role: str
    username: str


class SetupResponse(BaseModel):
    success: bool = True
    message: str
    created: list[str]


class MeResponse(BaseModel):
    user_id: int
    username: str
    role: str


class UserResponse(BaseModel):
    user_id: int
    username: str
    role: str
    created_at: str


class UserListResponse(BaseModel):
    success: bool = True
    users: list[UserResponse]


class RoleUpdate(BaseModel):
    role: Role


# ---------------------------------------------------------------------------
# Serving personnel
# ---------------------------------------------------------------------------


class ServingPersonnelFields(BaseModel):
    """Mutable serving fields -- the PUT body."""

    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)

    first_name: str = Field(min_length=1, max_length=20)
    last_name: str = Field(min_length=1, max_length=20)
    dob: date
    rank: str = Field(min_length=1, max_length=9)
    salary: int
    posting_type: PostingTypeEnum
    regiment: Optional[str] = Field(default=None, max_length=100)
    awards: Optional[str] = Field(default=None, max_length=255)
    skills: Optional[str] = Field(default=None, max_length=255)
    medical: Optional[str] = Field(default=None, max_length=255)
    health_plan: Optional[str] = Field(default=None, max_length=100)

    def to_record(self, service_id: str) -> ServingPersonnel:
        return ServingPersonnel(service_id=service_id, **self.model_dump(exclude={"service_id"}))


class ServingPersonnelCreate(ServingPersonnelFields):
    service_id: str = _ServiceId


class ServingListResponse(BaseModel):
    success: bool = True
    personnel: list[ServingPersonnel]


class ServingDetailResponse(BaseModel):
    success: bool = True
    personnel: ServingPersonnel


# ---------------------------------------------------------------------------
# Retired personnel
# ---------------------------------------------------------------------------


class RetiredPersonnelFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=20)
    last_name: str = Field(min_length=1, max_length=20)
    dob: date
    last_rank: str = Field(min_length=1, max_length=9)
    retirement_date: date
    pension: int
    regiment: Optional[str] = Field(default=None, max_length=100)
    awards: Optional[str] = Field(default=None, max_length=255)
    skills: Optional[str] = Field(default=None, max_length=255)
    health_plan: Optional[str] = Field(default=None, max_length=100)

    def to_record(self, service_id: str) -> RetiredPersonnel:
        return RetiredPersonnel(service_id=service_id, **self.model_dump(exclude={"service_id"}))


class RetiredPersonnelCreate(RetiredPersonnelFields):
    service_id: str = _ServiceId


class RetiredListResponse(BaseModel):
    success: bool = True
    personnel: list[RetiredPersonnel]


class RetiredDetailResponse(BaseModel):
    success: bool = True
    personnel: RetiredPersonnel


# ---------------------------------------------------------------------------
# Logistics (equipment)
# ---------------------------------------------------------------------------


class EquipmentFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    logistics_type: str = Field(min_length=1, max_length=50)
    cost: int
    procurement_date: date
    location: str = Field(min_length=1, max_length=100)
    tech: Optional[str] = Field(default=None, max_length=100)
    assigned_to: Optional[str] = Field(default=None, min_length=SERVICE_ID_LENGTH, max_length=SERVICE_ID_LENGTH)

    def to_record(self, equipment_id: str) -> Equipment:
        return Equipment(equipment_id=equipment_id, **self.model_dump(exclude={"equipment_id"}))


class EquipmentCreate(EquipmentFields):
    equipment_id: str = _EquipmentId


class EquipmentListResponse(BaseModel):
    success: bool = True
    equipment: list[Equipment]


class EquipmentDetailResponse(BaseModel):
    """details holds the artillery/ship/jet row matching logistics_type, when one exists."""

    success: bool = True
    equipment: Equipment
    details: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Specializations
# ---------------------------------------------------------------------------


class ArtilleryFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = Field(min_length=1, max_length=50)
    art_range: float
    commissioning_date: date

    def to_record(self, equipment_id: str) -> Artillery:
        return Artillery(equipment_id=equipment_id, **self.model_dump(exclude={"equipment_id"}))


class ArtilleryCreate(ArtilleryFields):
    equipment_id: str = _EquipmentId


class ShipFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ship_name: str = Field(min_length=1, max_length=100)
    ship_type: str = Field(min_length=1, max_length=50)
    staff_size: int
    commissioning_date: date

    def to_record(self, equipment_id: str) -> Ship:
        return Ship(equipment_id=equipment_id, **self.model_dump(exclude={"equipment_id"}))


class ShipCreate(ShipFields):
    equipment_id: str = _EquipmentId


class JetFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    jet_name: str = Field(min_length=1, max_length=100)
    jet_type: str = Field(min_length=1, max_length=50)
    speed: float
    commissioning_date: date

    def to_record(self, equipment_id: str) -> Jet:
        return Jet(equipment_id=equipment_id, **self.model_dump(exclude={"equipment_id"}))


class JetCreate(JetFields):
    equipment_id: str = _EquipmentId


# ---------------------------------------------------------------------------
# Statistics and reports
# ---------------------------------------------------------------------------


class StatsResponse(BaseModel):
    success: bool = True
    total_serving: int
    total_retired: int
    total_equipment: int
    total_artillery: int
    total_ships: int
    total_jets: int


class AssignmentRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_id: str
    first_name: str
    last_name: str
    rank: str
    regiment: Optional[str]
    equipment_id: Optional[str]
    logistics_type: Optional[str]
    location: Optional[str]
    cost: Optional[int]


class AssignmentReportResponse(BaseModel):
    success: bool = True
    assignments: list[AssignmentRow]


class CreatedResponse(BaseModel):
    """Returned by every POST that creates a record; `id` is the record key."""

    success: bool = True
    id: str
