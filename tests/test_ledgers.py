from datetime import date

import pytest

from vaccine_scheduler.core.database import transaction
from vaccine_scheduler.core.exceptions import StorageError
from vaccine_scheduler.core.security import IdentityKind
from vaccine_scheduler.models.vaccine import Vaccine
from vaccine_scheduler.services.appointments import AppointmentLedger
from vaccine_scheduler.services.auth_service import AuthService
from vaccine_scheduler.services.availability import AvailabilityCalendar
from vaccine_scheduler.services.inventory import InventoryLedger

JAN_10 = date(2024, 1, 10)


@pytest.fixture
def people(db):
    auth = AuthService(db)
    for caregiver in ("alice", "dave"):
        auth.register(IdentityKind.CAREGIVER, caregiver, "pw")
    for patient in ("bob", "carol"):
        auth.register(IdentityKind.PATIENT, patient, "pw")


class TestInventoryLedger:

    def test_ensure_and_add_creates_then_increments(self, db):
        inventory = InventoryLedger(db)

        assert inventory.ensure_and_add("Pfizer", 3) == 3
        assert inventory.ensure_and_add("Pfizer", 2) == 5
        assert inventory.ensure_and_add("Moderna", 0) == 0

    def test_ensure_and_add_when_created_concurrently(self, db, session_factory, monkeypatch):
        """Test a vaccine inserted by another session after the update missed is incremented."""
        other = session_factory()
        InventoryLedger(other).ensure_and_add("Pfizer", 2)
        other.commit()
        other.close()

        inventory = InventoryLedger(db)
        real_increment = inventory._increment
        calls = []

        def stale_then_real(name, count):
            calls.append(name)
            if len(calls) == 1:
                return False
            return real_increment(name, count)

        monkeypatch.setattr(inventory, "_increment", stale_then_real)

        assert inventory.ensure_and_add("Pfizer", 3) == 5

    def test_ensure_and_add_rejects_negative(self, db):
        with pytest.raises(ValueError):
            InventoryLedger(db).ensure_and_add("Pfizer", -1)

    def test_try_consume_one_stops_at_zero(self, db):
        inventory = InventoryLedger(db)
        inventory.ensure_and_add("Pfizer", 1)

        assert inventory.try_consume_one("Pfizer") is True
        assert inventory.try_consume_one("Pfizer") is False
        db.expire_all()
        assert inventory.get("Pfizer").doses == 0

    def test_try_consume_one_unknown_vaccine(self, db):
        assert InventoryLedger(db).try_consume_one("Unknown") is False

    def test_restore_adds_one(self, db):
        inventory = InventoryLedger(db)
        inventory.ensure_and_add("Pfizer", 0)
        inventory.restore("Pfizer")

        db.expire_all()
        assert inventory.get("Pfizer").doses == 1

    def test_restore_missing_vaccine_is_reported(self, db):
        with pytest.raises(StorageError):
            InventoryLedger(db).restore("Unknown")

    def test_negative_doses_rejected_by_store(self, db):
        """Test the non-negativity check also holds in the schema."""
        with pytest.raises(StorageError):
            with transaction(db):
                db.add(Vaccine(name="Broken", doses=-1))
                db.flush()
        assert InventoryLedger(db).get("Broken") is None


class TestAvailabilityCalendar:

    def test_upload_is_idempotent(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)
        calendar.upload("alice", JAN_10)

        assert calendar.is_available("alice", JAN_10)
        assert calendar.find_earliest_available(JAN_10) == "alice"

    def test_upload_reopens_unbooked_slot(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)
        assert calendar.try_claim("alice", JAN_10)

        assert calendar.upload("alice", JAN_10) is True
        assert calendar.is_available("alice", JAN_10)

    def test_upload_keeps_booked_slot_closed(self, db, people):
        """Test a slot with a live appointment is not reopened by upload."""
        calendar = AvailabilityCalendar(db)
        InventoryLedger(db).ensure_and_add("Pfizer", 1)
        calendar.upload("alice", JAN_10)
        calendar.try_claim("alice", JAN_10)
        AppointmentLedger(db).create(JAN_10, "bob", "alice", "Pfizer")

        assert calendar.upload("alice", JAN_10) is False
        assert not calendar.is_available("alice", JAN_10)
        assert calendar.find_earliest_available(JAN_10) is None
        assert calendar.schedule(JAN_10) == []

    def test_claim_earliest_available_in_username_order(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("dave", JAN_10)
        calendar.upload("alice", JAN_10)

        assert calendar.claim_earliest_available(JAN_10) == "alice"
        assert calendar.claim_earliest_available(JAN_10) == "dave"
        assert calendar.claim_earliest_available(JAN_10) is None

    def test_claim_earliest_available_skips_slot_taken_meanwhile(self, db, people, monkeypatch):
        """Test a stale read of a just-claimed slot moves on to the next one."""
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)
        calendar.upload("dave", JAN_10)
        calendar.try_claim("alice", JAN_10)

        reads = iter(["alice"])
        real_find = calendar.find_earliest_available
        monkeypatch.setattr(
            calendar, "find_earliest_available",
            lambda slot_date: next(reads, None) or real_find(slot_date)
        )

        assert calendar.claim_earliest_available(JAN_10) == "dave"
        assert calendar.claim_earliest_available(JAN_10) is None

    def test_earliest_available_orders_by_username(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("dave", JAN_10)
        calendar.upload("alice", JAN_10)

        assert calendar.find_earliest_available(JAN_10) == "alice"
        assert calendar.try_claim("alice", JAN_10)
        assert calendar.find_earliest_available(JAN_10) == "dave"

    def test_no_caregiver_on_other_dates(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)

        assert calendar.find_earliest_available(date(2024, 1, 11)) is None

    def test_try_claim_only_once(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)

        assert calendar.try_claim("alice", JAN_10) is True
        assert calendar.try_claim("alice", JAN_10) is False
        assert calendar.try_claim("dave", JAN_10) is False

    def test_release_reopens(self, db, people):
        calendar = AvailabilityCalendar(db)
        calendar.upload("alice", JAN_10)
        calendar.try_claim("alice", JAN_10)
        calendar.release("alice", JAN_10)

        assert calendar.try_claim("alice", JAN_10) is True

    def test_schedule_lists_every_vaccine_per_open_caregiver(self, db, people):
        calendar = AvailabilityCalendar(db)
        inventory = InventoryLedger(db)
        inventory.ensure_and_add("Pfizer", 2)
        inventory.ensure_and_add("Moderna", 5)
        calendar.upload("dave", JAN_10)
        calendar.upload("alice", JAN_10)
        calendar.upload("alice", date(2024, 1, 11))

        assert calendar.schedule(JAN_10) == [
            ("alice", "Moderna", 5),
            ("alice", "Pfizer", 2),
            ("dave", "Moderna", 5),
            ("dave", "Pfizer", 2),
        ]


class TestAppointmentLedger:

    def test_create_allocates_increasing_ids(self, db, people):
        ledger = AppointmentLedger(db)
        InventoryLedger(db).ensure_and_add("Pfizer", 5)

        first = ledger.create(JAN_10, "bob", "alice", "Pfizer")
        second = ledger.create(JAN_10, "carol", "dave", "Pfizer")
        assert second > first

    def test_find_owned_by_id_checks_owner(self, db, people):
        ledger = AppointmentLedger(db)
        InventoryLedger(db).ensure_and_add("Pfizer", 5)
        appointment_id = ledger.create(JAN_10, "bob", "alice", "Pfizer")

        assert ledger.find_owned_by_id(appointment_id, patient="bob") is not None
        assert ledger.find_owned_by_id(appointment_id, caregiver="alice") is not None
        assert ledger.find_owned_by_id(appointment_id, patient="carol") is None
        assert ledger.find_owned_by_id(appointment_id, caregiver="dave") is None
        assert ledger.find_owned_by_id(appointment_id) is None
        assert ledger.find_owned_by_id(appointment_id + 1, patient="bob") is None

    def test_delete_is_idempotent(self, db, people):
        ledger = AppointmentLedger(db)
        InventoryLedger(db).ensure_and_add("Pfizer", 5)
        appointment_id = ledger.create(JAN_10, "bob", "alice", "Pfizer")

        ledger.delete(appointment_id)
        ledger.delete(appointment_id)
        assert ledger.list_by_patient("bob") == []

    def test_lists_are_ordered_by_id(self, db, people):
        ledger = AppointmentLedger(db)
        InventoryLedger(db).ensure_and_add("Pfizer", 5)
        first = ledger.create(date(2024, 1, 12), "bob", "alice", "Pfizer")
        second = ledger.create(JAN_10, "bob", "dave", "Pfizer")
        third = ledger.create(JAN_10, "carol", "alice", "Pfizer")

        assert [a.id for a in ledger.list_by_patient("bob")] == [first, second]
        assert [a.id for a in ledger.list_by_caregiver("alice")] == [first, third]
