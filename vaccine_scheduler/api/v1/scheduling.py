from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_user_session
from ...services.reservation_service import ReservationService
from ...services.session import UserSession
from ...schemas.scheduling import (
    ReserveRequest, ReservationResponse, AvailabilityRequest, AvailabilityResponse,
    AddDosesRequest, DosesResponse, AppointmentResponse, ScheduleEntryResponse
)

router = APIRouter(tags=["Scheduling"])

def get_reservation_service(
    db: Session = Depends(get_db),
    user_session: UserSession = Depends(get_user_session)
) -> ReservationService:
    return ReservationService(db, user_session)

@router.get("/schedule", response_model=List[ScheduleEntryResponse])
async def search_caregiver_schedule(
    date: str = Query(...),
    service: ReservationService = Depends(get_reservation_service)
):
    """Caregivers open on a date with every vaccine's remaining doses."""
    return [
        ScheduleEntryResponse.model_validate(entry)
        for entry in service.search_schedule(date)
    ]

@router.post("/appointments", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def reserve(
    data: ReserveRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Reserve an appointment (patients only)."""
    reservation = service.reserve(data.date, data.vaccine)
    return ReservationResponse(
        appointment_id=reservation.appointment_id,
        caregiver=reservation.caregiver
    )

@router.get("/appointments", response_model=List[AppointmentResponse])
async def show_appointments(
    service: ReservationService = Depends(get_reservation_service)
):
    return [
        AppointmentResponse.model_validate(appointment)
        for appointment in service.show_appointments()
    ]

@router.delete("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def cancel(
    appointment_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    """Cancel an appointment owned by the caller."""
    return AppointmentResponse.model_validate(service.cancel(appointment_id))

@router.post("/availability", response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
async def upload_availability(
    data: AvailabilityRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Open the calling caregiver for one appointment on a date."""
    slot_date = service.upload_availability(data.date)
    return AvailabilityResponse(
        caregiver=service.user_session.principal.username,
        date=slot_date
    )

@router.post("/vaccines/doses", response_model=DosesResponse)
async def add_doses(
    data: AddDosesRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Add doses of a vaccine (caregivers only)."""
    doses = service.add_doses(data.vaccine, data.count)
    return DosesResponse(vaccine=data.vaccine, doses=doses)
