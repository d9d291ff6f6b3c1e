from datetime import date
from pydantic import BaseModel, Field

class ReserveRequest(BaseModel):
    date: str
    vaccine: str = Field(..., min_length=1, max_length=255)

class ReservationResponse(BaseModel):
    appointment_id: int
    caregiver: str

class AvailabilityRequest(BaseModel):
    date: str

class AvailabilityResponse(BaseModel):
    caregiver: str
    date: date
    available: bool = True

class AddDosesRequest(BaseModel):
    vaccine: str = Field(..., min_length=1, max_length=255)
    count: int

class DosesResponse(BaseModel):
    vaccine: str
    doses: int

class AppointmentResponse(BaseModel):
    appointment_id: int
    vaccine: str
    date: date
    counterpart: str

    class Config:
        from_attributes = True

class ScheduleEntryResponse(BaseModel):
    caregiver: str
    vaccine: str
    doses: int

    class Config:
        from_attributes = True
