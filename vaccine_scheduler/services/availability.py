from datetime import date
from sqlalchemy import exists, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..models.appointment import Appointment
from ..models.availability import Availability
from ..models.vaccine import Vaccine

logger = logging.getLogger(__name__)

class AvailabilityCalendar:
    """Per caregiver, per date openness. Callers own the transaction boundary."""

    def __init__(self, db: Session):
        self.db = db

    def upload(self, username: str, slot_date: date) -> bool:
        """Mark the slot open, creating it if absent.

        A slot with a live appointment stays booked. Returns whether the
        slot is open afterwards.
        """
        if self._reopen(username, slot_date):
            return True
        if self._slot_exists(username, slot_date):
            logger.warning(f"Slot of {username} on {slot_date} is booked, left unchanged")
            return False

        try:
            with self.db.begin_nested():
                self.db.add(Availability(time=slot_date, username=username, available=True))
        except IntegrityError:
            # Created by a concurrent upload since the update above ran
            return self._reopen(username, slot_date)
        return True

    def _reopen(self, username: str, slot_date: date) -> bool:
        booked = exists().where(
            Appointment.caregiver_name == username,
            Appointment.time == slot_date
        )
        result = self.db.execute(
            update(Availability)
            .where(
                Availability.username == username,
                Availability.time == slot_date,
                ~booked
            )
            .values(available=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _slot_exists(self, username: str, slot_date: date) -> bool:
        return self.db.query(Availability.username).filter(
            Availability.username == username,
            Availability.time == slot_date
        ).first() is not None

    def find_earliest_available(self, slot_date: date) -> Optional[str]:
        """First open caregiver for the date in username order."""
        row = self.db.query(Availability.username).filter(
            Availability.time == slot_date,
            Availability.available.is_(True)
        ).order_by(Availability.username.asc()).first()
        return row.username if row else None

    def claim_earliest_available(self, slot_date: date) -> Optional[str]:
        """Claim the first open caregiver for the date.

        A slot taken by a concurrent reservation between the read and the
        claim is skipped in favour of the next open one. Returns None once
        no slot is left.
        """
        while True:
            username = self.find_earliest_available(slot_date)
            if username is None or self.try_claim(username, slot_date):
                return username

    def try_claim(self, username: str, slot_date: date) -> bool:
        """Close the slot only if it is currently open."""
        result = self.db.execute(
            update(Availability)
            .where(
                Availability.username == username,
                Availability.time == slot_date,
                Availability.available.is_(True)
            )
            .values(available=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release(self, username: str, slot_date: date) -> None:
        self.db.execute(
            update(Availability)
            .where(Availability.username == username, Availability.time == slot_date)
            .values(available=True)
            .execution_options(synchronize_session=False)
        )

    def is_available(self, username: str, slot_date: date) -> bool:
        available = self.db.query(Availability.available).filter(
            Availability.username == username,
            Availability.time == slot_date
        ).scalar()
        return bool(available)

    def schedule(self, slot_date: date) -> list[tuple[str, str, int]]:
        """(caregiver, vaccine, doses) for every open caregiver on the date."""
        rows = self.db.query(
            Availability.username, Vaccine.name, Vaccine.doses
        ).select_from(Availability).join(Vaccine, true()).filter(
            Availability.time == slot_date,
            Availability.available.is_(True)
        ).order_by(
            Availability.username.asc(), Vaccine.name.asc()
        ).all()
        return [(row[0], row[1], row[2]) for row in rows]
