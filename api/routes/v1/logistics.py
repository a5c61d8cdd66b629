"""
api/routes/v1/logistics.py -- Equipment and equipment-specialization endpoints.

Routes:
  GET    /logistics                    -- list, filter by type / location / assigned_to
  GET    /logistics/{equipment_id}     -- one item plus its specialization row, if any
  POST   /logistics                    -- create (admin)
  PUT    /logistics/{equipment_id}     -- replace mutable fields (admin)
  DELETE /logistics/{equipment_id}     -- delete; its specialization row goes with it (admin)

  For each kind in {artillery, ships, jets}:
  GET    /{kind}                       -- list, each row merged with its logistics parent
  GET    /{kind}/{equipment_id}        -- one row merged with its parent
  POST   /{kind}                       -- create; the logistics parent must exist (admin)
  PUT    /{kind}/{equipment_id}        -- replace mutable fields (admin)
  DELETE /{kind}/{equipment_id}        -- delete the specialization row only (admin)

Specialization routes are registered by _register_specialization(), one set
per kind, because each kind has its own request body model.
"""

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.models import (
    ArtilleryCreate,
    ArtilleryFields,
    CreatedResponse,
    EquipmentCreate,
    EquipmentDetailResponse,
    EquipmentFields,
    EquipmentListResponse,
    JetCreate,
    JetFields,
    MessageResponse,
    ShipCreate,
    ShipFields,
)
from auth.dependencies import require_roles
from auth.models import READ_ROLES, WRITE_ROLES
from core.errors import NotFoundError
from records.store import SPECIALIZATIONS, RecordStore, SpecializedEquipment

router = APIRouter()

_read = [Depends(require_roles(*READ_ROLES))]
_write = [Depends(require_roles(*WRITE_ROLES))]


def _store(request: Request) -> RecordStore:
    return request.app.state.record_store


# ---------------------------------------------------------------------------
# Logistics
# ---------------------------------------------------------------------------


@router.get("/logistics", response_model=EquipmentListResponse, dependencies=_read)
def list_equipment(
    request: Request,
    type: Optional[str] = None,
    location: Optional[str] = None,
    assigned_to: Optional[str] = None,
) -> EquipmentListResponse:
    """List equipment. type and assigned_to match exactly; location matches a substring."""
    items = _store(request).list_equipment(logistics_type=type, location=location, assigned_to=assigned_to)
    return EquipmentListResponse(equipment=items)


@router.get("/logistics/{equipment_id}", response_model=EquipmentDetailResponse, dependencies=_read)
def get_equipment(request: Request, equipment_id: str) -> EquipmentDetailResponse:
    store = _store(request)
    item = store.get_equipment(equipment_id)
    if item is None:
        raise NotFoundError("Equipment not found")
    details = store.get_equipment_details(equipment_id)
    return EquipmentDetailResponse(equipment=item, details=asdict(details) if details is not None else None)


@router.post("/logistics", response_model=CreatedResponse, status_code=201, dependencies=_write)
def create_equipment(request: Request, body: EquipmentCreate) -> CreatedResponse:
    _store(request).create_equipment(body.to_record(body.equipment_id))
    return CreatedResponse(id=body.equipment_id)


@router.put("/logistics/{equipment_id}", response_model=MessageResponse, dependencies=_write)
def update_equipment(request: Request, equipment_id: str, body: EquipmentFields) -> MessageResponse:
    _store(request).update_equipment(equipment_id, body.to_record(equipment_id))
    return MessageResponse(message="Equipment updated successfully")


@router.delete("/logistics/{equipment_id}", response_model=MessageResponse, dependencies=_write)
def delete_equipment(request: Request, equipment_id: str) -> MessageResponse:
    _store(request).delete_equipment(equipment_id)
    return MessageResponse(message="Equipment deleted successfully")


# ---------------------------------------------------------------------------
# Specializations
# ---------------------------------------------------------------------------


def _flatten(row: SpecializedEquipment) -> dict[str, Any]:
    """Merge a specialization row with its logistics parent into one flat object."""
    return {**asdict(row.equipment), **asdict(row.details)}


def _register_specialization(kind: str, create_model: type[BaseModel], fields_model: type[BaseModel]) -> None:
    label = SPECIALIZATIONS[kind].label

    @router.get(f"/{kind}", dependencies=_read, name=f"list_{kind}")
    def list_rows(request: Request) -> dict[str, Any]:
        return {"success": True, kind: [_flatten(row) for row in _store(request).list_specializations(kind)]}

    @router.get(f"/{kind}/{{equipment_id}}", dependencies=_read, name=f"get_{kind}")
    def get_row(request: Request, equipment_id: str) -> dict[str, Any]:
        store = _store(request)
        details = store.get_specialization(kind, equipment_id)
        parent = store.get_equipment(equipment_id) if details is not None else None
        if details is None or parent is None:
            raise NotFoundError(f"{label} not found")
        return {"success": True, "record": {**asdict(parent), **asdict(details)}}

    @router.post(
        f"/{kind}", response_model=CreatedResponse, status_code=201, dependencies=_write, name=f"create_{kind}"
    )
    def create_row(request: Request, body: create_model) -> CreatedResponse:  # type: ignore[valid-type]
        _store(request).create_specialization(kind, body.to_record(body.equipment_id))
        return CreatedResponse(id=body.equipment_id)

    @router.put(
        f"/{kind}/{{equipment_id}}", response_model=MessageResponse, dependencies=_write, name=f"update_{kind}"
    )
    def update_row(
        request: Request, equipment_id: str, body: fields_model  # type: ignore[valid-type]
    ) -> MessageResponse:
        _store(request).update_specialization(kind, equipment_id, body.to_record(equipment_id))
        return MessageResponse(message=f"{label} updated successfully")

    @router.delete(
        f"/{kind}/{{equipment_id}}", response_model=MessageResponse, dependencies=_write, name=f"delete_{kind}"
    )
    def delete_row(request: Request, equipment_id: str) -> MessageResponse:
        _store(request).delete_specialization(kind, equipment_id)
        return MessageResponse(message=f"{label} deleted successfully")


_register_specialization("artillery", ArtilleryCreate, ArtilleryFields)
_register_specialization("ships", ShipCreate, ShipFields)
_register_specialization("jets", JetCreate, JetFields)
