# ============================================================================
# autospa/api/v1/dashboard/appointments.py
# Staff endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from autospa.api.dependencies import get_event_dispatcher, get_now, require_permission
from autospa.config.database import get_db
from autospa.core.events import EventDispatcher
from autospa.core.exceptions import PermissionDeniedError
from autospa.models.employee import Employee
from autospa.schemas.booking import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
)
from autospa.services.appointment.appointment_query_service import AppointmentQueryService, serialize_appointment
from autospa.services.appointment.appointment_service import AppointmentService
from autospa.services.auth.permission_service import (
    APPOINTMENTS_MANAGE,
    APPOINTMENTS_RESCHEDULE,
    APPOINTMENTS_VIEW,
    PermissionService,
)

router = APIRouter(prefix="/appointments", tags=["dashboard-appointments"])


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
        start_date: Optional[date] = Query(None, description="Appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Appointments on or before this date"),
        status: Optional[str] = Query(None, description="Filter by status"),
        employee_id: Optional[UUID] = Query(None, description="Filter by assigned employee"),
        customer_id: Optional[UUID] = Query(None, description="Filter by customer"),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        current_employee: Employee = Depends(require_permission(APPOINTMENTS_VIEW)),
        db: Session = Depends(get_db)
):
    return AppointmentQueryService.list_appointments(
        db=db,
        start_date=start_date,
        end_date=end_date,
        status=status,
        employee_id=employee_id,
        customer_id=customer_id,
        skip=skip,
        limit=limit
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        current_employee: Employee = Depends(require_permission(APPOINTMENTS_VIEW)),
        db: Session = Depends(get_db)
):
    appointment = AppointmentQueryService.get_appointment(db, appointment_id)
    return serialize_appointment(appointment)


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
        data: AppointmentCreate,
        current_employee: Employee = Depends(require_permission(APPOINTMENTS_MANAGE)),
        db: Session = Depends(get_db),
        dispatcher: EventDispatcher = Depends(get_event_dispatcher)
):
    """Staff / walk-in booking. 409 when the window overlaps another appointment."""
    result = AppointmentService.create_appointment(db, data)
    dispatcher.dispatch(result.events)
    return serialize_appointment(result.appointment)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
        data: AppointmentUpdate,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        current_employee: Employee = Depends(require_permission(APPOINTMENTS_MANAGE)),
        db: Session = Depends(get_db),
        dispatcher: EventDispatcher = Depends(get_event_dispatcher),
        now=Depends(get_now)
):
    """
    Change status, reschedule, reassign or edit notes.

    Moving the date/time also needs appointments.reschedule.
    """
    moves = data.model_dump(exclude_unset=True).keys() & {
        "scheduled_date", "scheduled_start_time", "scheduled_end_time"
    }
    if moves and not PermissionService.has_permission(current_employee, APPOINTMENTS_RESCHEDULE):
        raise PermissionDeniedError(f"Missing permission: {APPOINTMENTS_RESCHEDULE}")

    result = AppointmentService.update_appointment(db, appointment_id, data, now=now)
    dispatcher.dispatch(result.events)
    return serialize_appointment(result.appointment)
