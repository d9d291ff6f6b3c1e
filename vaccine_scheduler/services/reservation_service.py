"""
Reservation engine.

Reserve and Cancel move a (caregiver slot, vaccine dose, appointment) triple
between consistent states. Each runs as one database transaction; the slot
claim and the dose consumption are conditional updates, so two concurrent
reservations can never both take the same slot or the same last dose.
"""
from dataclasses import dataclass
from datetime import date, datetime
from sqlalchemy.orm import Session
from typing import Union
import logging

from ..core.database import transaction
from ..core.exceptions import (
    ValidationError, ConflictError, NotFoundError, ErrorCode
)
from ..core.security import IdentityKind
from .appointments import AppointmentLedger
from .availability import AvailabilityCalendar
from .inventory import InventoryLedger
from .session import UserSession

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

# Largest value an INTEGER column holds on every supported backend
MAX_INTEGER = 2 ** 31 - 1

@dataclass(frozen=True)
class Reservation:
    appointment_id: int
    caregiver: str

@dataclass(frozen=True)
class AppointmentView:
    appointment_id: int
    vaccine: str
    date: date
    counterpart: str

@dataclass(frozen=True)
class ScheduleEntry:
    caregiver: str
    vaccine: str
    doses: int

def parse_date(value: Union[str, date]) -> date:
    """Parse an ISO ``YYYY-MM-DD`` calendar date."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except (ValueError, AttributeError):
        raise ValidationError(ErrorCode.INVALID_DATE, "Please enter a valid date!")

def parse_count(value: Union[str, int]) -> int:
    """Parse a non-negative dose count."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(ErrorCode.INVALID_COUNT, "Please enter a valid number of doses!")
    if count < 0:
        raise ValidationError(ErrorCode.INVALID_COUNT, "Number of doses cannot be negative!")
    if count > MAX_INTEGER:
        raise ValidationError(ErrorCode.INVALID_COUNT, "Please enter a valid number of doses!")
    return count

def parse_appointment_id(value: Union[str, int]) -> int:
    """Parse an appointment id that could exist in the appointments table."""
    try:
        appointment_id = int(value)
    except (TypeError, ValueError):
        appointment_id = None
    if appointment_id is None or not 0 < appointment_id <= MAX_INTEGER:
        raise ValidationError(ErrorCode.INVALID_APPOINTMENT_ID, "Please enter a valid appointment ID!")
    return appointment_id

class ReservationService:
    def __init__(self, db: Session, user_session: UserSession):
        self.db = db
        self.user_session = user_session
        self.inventory = InventoryLedger(db)
        self.calendar = AvailabilityCalendar(db)
        self.appointments = AppointmentLedger(db)

    def reserve(self, slot_date: Union[str, date], vaccine: str) -> Reservation:
        """Book the first open caregiver on a date and take one dose."""
        patient = self.user_session.require_kind(IdentityKind.PATIENT)
        slot_date = parse_date(slot_date)

        with transaction(self.db):
            if self.calendar.find_earliest_available(slot_date) is None:
                raise ConflictError(ErrorCode.NO_PROVIDER_AVAILABLE, "No Caregiver is available!")

            if self.inventory.get(vaccine) is None:
                raise NotFoundError(ErrorCode.UNKNOWN_VACCINE, "No matching vaccine based on your input!")

            caregiver = self.calendar.claim_earliest_available(slot_date)
            if caregiver is None:
                # Every open slot was claimed by concurrent reservations
                raise ConflictError(ErrorCode.NO_PROVIDER_AVAILABLE, "No Caregiver is available!")

            # Raising here rolls back the claim above
            if not self.inventory.try_consume_one(vaccine):
                raise ConflictError(ErrorCode.INSUFFICIENT_DOSES, "Not enough available doses!")

            appointment_id = self.appointments.create(
                slot_date, patient.username, caregiver, vaccine
            )

        logger.info(
            f"Reserved appointment {appointment_id}: patient={patient.username} "
            f"caregiver={caregiver} date={slot_date} vaccine={vaccine}"
        )
        return Reservation(appointment_id=appointment_id, caregiver=caregiver)

    def cancel(self, appointment_id: Union[str, int]) -> AppointmentView:
        """Delete an owned appointment, reopen its slot and return its dose."""
        principal = self.user_session.require_login()
        appointment_id = parse_appointment_id(appointment_id)

        with transaction(self.db):
            appointment = self.appointments.find_owned_by_id(
                appointment_id,
                patient=self.user_session.patient_username,
                caregiver=self.user_session.caregiver_username
            )
            if appointment is None:
                logger.warning(f"{principal.username} could not cancel appointment {appointment_id}")
                raise NotFoundError(
                    ErrorCode.NOT_FOUND_OR_NOT_OWNED,
                    "No matching appointment based on your input"
                )

            canceled = AppointmentView(
                appointment_id=appointment.id,
                vaccine=appointment.vaccine_name,
                date=appointment.time,
                counterpart=_counterpart(appointment, principal.kind)
            )
            caregiver = appointment.caregiver_name

            self.appointments.delete(canceled.appointment_id)
            self.calendar.release(caregiver, canceled.date)
            self.inventory.restore(canceled.vaccine)

        logger.info(f"Canceled appointment {canceled.appointment_id} by {principal.username}")
        return canceled

    def add_doses(self, vaccine: str, count: Union[str, int]) -> int:
        self.user_session.require_kind(IdentityKind.CAREGIVER)
        count = parse_count(count)

        with transaction(self.db):
            doses = self.inventory.ensure_and_add(vaccine, count)

        logger.info(f"Added {count} doses of {vaccine}, now {doses}")
        return doses

    def upload_availability(self, slot_date: Union[str, date]) -> date:
        caregiver = self.user_session.require_kind(IdentityKind.CAREGIVER)
        slot_date = parse_date(slot_date)

        with transaction(self.db):
            opened = self.calendar.upload(caregiver.username, slot_date)

        if opened:
            logger.info(f"Caregiver {caregiver.username} is available on {slot_date}")
        return slot_date

    def search_schedule(self, slot_date: Union[str, date]) -> list[ScheduleEntry]:
        self.user_session.require_login()
        slot_date = parse_date(slot_date)

        with transaction(self.db):
            rows = self.calendar.schedule(slot_date)
        return [ScheduleEntry(caregiver=c, vaccine=v, doses=d) for c, v, d in rows]

    def show_appointments(self) -> list[AppointmentView]:
        principal = self.user_session.require_login()

        with transaction(self.db):
            if principal.kind == IdentityKind.PATIENT:
                appointments = self.appointments.list_by_patient(principal.username)
            else:
                appointments = self.appointments.list_by_caregiver(principal.username)

            return [
                AppointmentView(
                    appointment_id=appointment.id,
                    vaccine=appointment.vaccine_name,
                    date=appointment.time,
                    counterpart=_counterpart(appointment, principal.kind)
                )
                for appointment in appointments
            ]

def _counterpart(appointment, kind: IdentityKind) -> str:
    if kind == IdentityKind.PATIENT:
        return appointment.caregiver_name
    return appointment.patient_name
