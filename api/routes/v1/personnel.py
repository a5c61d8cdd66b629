"""
api/routes/v1/personnel.py -- Serving and retired personnel endpoints.

Routes:
  GET    /personnel/serving                 -- list, filter by rank / regiment / posting_type
  GET    /personnel/serving/{service_id}    -- one record
  POST   /personnel/serving                 -- create (admin)
  PUT    /personnel/serving/{service_id}    -- replace mutable fields (admin)
  DELETE /personnel/serving/{service_id}    -- delete; assigned equipment is kept, unassigned (admin)
  GET    /personnel/retired                 -- list, latest retirement first
  GET    /personnel/retired/{service_id}    -- one record
  POST   /personnel/retired                 -- create (admin)
  PUT    /personnel/retired/{service_id}    -- replace mutable fields (admin)
  DELETE /personnel/retired/{service_id}    -- delete (admin)

Reads admit admin and user; writes admit admin only. The gate runs before
the handler, so a refused caller never reaches the store.

The serving age rule is not checked here. A serving record whose dob puts
the person outside [18, 60) on the day of insert is refused by the store and
comes back as 400 age_out_of_range.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import (
    CreatedResponse,
    MessageResponse,
    PostingTypeEnum,
    RetiredDetailResponse,
    RetiredListResponse,
    RetiredPersonnelCreate,
    RetiredPersonnelFields,
    ServingDetailResponse,
    ServingListResponse,
    ServingPersonnelCreate,
    ServingPersonnelFields,
)
from auth.dependencies import require_roles
from auth.models import READ_ROLES, WRITE_ROLES
from core.errors import NotFoundError
from records.store import RecordStore

router = APIRouter(prefix="/personnel")

_read = [Depends(require_roles(*READ_ROLES))]
_write = [Depends(require_roles(*WRITE_ROLES))]


def _store(request: Request) -> RecordStore:
    return request.app.state.record_store


# ---------------------------------------------------------------------------
# Serving personnel
# ---------------------------------------------------------------------------


@router.get("/serving", response_model=ServingListResponse, dependencies=_read)
def list_serving(
    request: Request,
    rank: Optional[str] = None,
    regiment: Optional[str] = None,
    posting_type: Optional[PostingTypeEnum] = None,
) -> ServingListResponse:
    """List serving personnel. rank and posting_type match exactly; regiment matches a substring."""
    personnel = _store(request).list_serving(
        rank=rank,
        regiment=regiment,
        posting_type=posting_type.value if posting_type else None,
    )
    return ServingListResponse(personnel=personnel)


@router.get("/serving/{service_id}", response_model=ServingDetailResponse, dependencies=_read)
def get_serving(request: Request, service_id: str) -> ServingDetailResponse:
    person = _store(request).get_serving(service_id)
    if person is None:
        raise NotFoundError("Personnel not found")
    return ServingDetailResponse(personnel=person)


@router.post("/serving", response_model=CreatedResponse, status_code=201, dependencies=_write)
def create_serving(request: Request, body: ServingPersonnelCreate) -> CreatedResponse:
    _store(request).create_serving(body.to_record(body.service_id))
    return CreatedResponse(id=body.service_id)


@router.put("/serving/{service_id}", response_model=MessageResponse, dependencies=_write)
def update_serving(request: Request, service_id: str, body: ServingPersonnelFields) -> MessageResponse:
    _store(request).update_serving(service_id, body.to_record(service_id))
    return MessageResponse(message="Personnel updated successfully")


@router.delete("/serving/{service_id}", response_model=MessageResponse, dependencies=_write)
def delete_serving(request: Request, service_id: str) -> MessageResponse:
    _store(request).delete_serving(service_id)
    return MessageResponse(message="Personnel deleted successfully")


# ---------------------------------------------------------------------------
# Retired personnel
# ---------------------------------------------------------------------------


@router.get("/retired", response_model=RetiredListResponse, dependencies=_read)
def list_retired(request: Request) -> RetiredListResponse:
    return RetiredListResponse(personnel=_store(request).list_retired())


@router.get("/retired/{service_id}", response_model=RetiredDetailResponse, dependencies=_read)
def get_retired(request: Request, service_id: str) -> RetiredDetailResponse:
    person = _store(request).get_retired(service_id)
    if person is None:
        raise NotFoundError("Retired personnel not found")
    return RetiredDetailResponse(personnel=person)


@router.post("/retired", response_model=CreatedResponse, status_code=201, dependencies=_write)
def create_retired(request: Request, body: RetiredPersonnelCreate) -> CreatedResponse:
    _store(request).create_retired(body.to_record(body.service_id))
    return CreatedResponse(id=body.service_id)


@router.put("/retired/{service_id}", response_model=MessageResponse, dependencies=_write)
def update_retired(request: Request, service_id: str, body: RetiredPersonnelFields) -> MessageResponse:
    _store(request).update_retired(service_id, body.to_record(service_id))
    return MessageResponse(message="Retired personnel updated successfully")


@router.delete("/retired/{service_id}", response_model=MessageResponse, dependencies=_write)
def delete_retired(request: Request, service_id: str) -> MessageResponse:
    _store(request).delete_retired(service_id)
    return MessageResponse(message="Retired personnel deleted successfully")
