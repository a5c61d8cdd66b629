"""
api/routes/v1/reports.py -- Read-only aggregate views (admin and user).

Routes:
  GET /stats                              -- record counts per table
  GET /reports/personnel-equipment        -- every serving record with its assigned equipment
  GET /equipment/assigned/{service_id}    -- equipment assigned to one serving record
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import AssignmentReportResponse, AssignmentRow, EquipmentListResponse, StatsResponse
from auth.dependencies import require_roles
from auth.models import READ_ROLES
from records.store import RecordStore

router = APIRouter(dependencies=[Depends(require_roles(*READ_ROLES))])


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    store: RecordStore = request.app.state.record_store
    return StatsResponse(**store.get_stats())


@router.get("/reports/personnel-equipment", response_model=AssignmentReportResponse)
def personnel_equipment(request: Request) -> AssignmentReportResponse:
    """Serving personnel with no equipment appear once, with empty equipment fields."""
    store: RecordStore = request.app.state.record_store
    rows = store.personnel_equipment_report()
    return AssignmentReportResponse(assignments=[AssignmentRow.model_validate(row) for row in rows])


@router.get("/equipment/assigned/{service_id}", response_model=EquipmentListResponse)
def assigned_equipment(request: Request, service_id: str) -> EquipmentListResponse:
    """An unknown service_id has nothing assigned, so it yields an empty list."""
    store: RecordStore = request.app.state.record_store
    return EquipmentListResponse(equipment=store.list_assigned_equipment(service_id))
