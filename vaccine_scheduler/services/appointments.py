from datetime import date
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional

from ..models.appointment import Appointment

class AppointmentLedger:
    """Reservation records. Callers own the transaction boundary."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, slot_date: date, patient: str, caregiver: str, vaccine: str) -> int:
        appointment = Appointment(
            time=slot_date,
            patient_name=patient,
            caregiver_name=caregiver,
            vaccine_name=vaccine
        )
        self.db.add(appointment)
        self.db.flush()
        return appointment.id

    def find_owned_by_id(
        self,
        appointment_id: int,
        patient: Optional[str] = None,
        caregiver: Optional[str] = None
    ) -> Optional[Appointment]:
        """The appointment if it exists and names one of the requesters."""
        owners = []
        if patient:
            owners.append(Appointment.patient_name == patient)
        if caregiver:
            owners.append(Appointment.caregiver_name == caregiver)
        if not owners:
            return None

        return self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            or_(*owners)
        ).first()

    def delete(self, appointment_id: int) -> None:
        self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).delete(synchronize_session=False)

    def list_by_patient(self, username: str) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.patient_name == username
        ).order_by(Appointment.id.asc()).all()

    def list_by_caregiver(self, username: str) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.caregiver_name == username
        ).order_by(Appointment.id.asc()).all()
