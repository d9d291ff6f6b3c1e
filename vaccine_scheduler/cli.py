"""
Line-oriented command interface.

Usage:
    vaccine-scheduler
    python -m vaccine_scheduler.cli

Reads one command per line from stdin until ``quit`` or end of input.
"""
import logging
import sys
from typing import Callable, Dict, List, TextIO

from sqlalchemy.orm import sessionmaker

from .core.config import settings
from .core.database import SessionLocal, init_db
from .core.exceptions import ErrorCode, SchedulerError, ValidationError
from .core.security import IdentityKind
from .services.auth_service import AuthService
from .services.reservation_service import ReservationService
from .services.session import UserSession

logger = logging.getLogger(__name__)

COMMANDS = [
    "create_patient <username> <password>",
    "create_caregiver <username> <password>",
    "login_patient <username> <password>",
    "login_caregiver <username> <password>",
    "search_caregiver_schedule <date>",
    "reserve <date> <vaccine>",
    "upload_availability <date>",
    "cancel <appointment_id>",
    "add_doses <vaccine> <number>",
    "show_appointments",
    "logout",
    "quit",
]

# Messages for failures whose service message is not what the prompt shows
FAILURE_MESSAGES = {
    "create": {
        ErrorCode.INVALID_ARGUMENTS: "Failed to create user.",
        ErrorCode.STORAGE_FAILURE: "Failed to create user.",
    },
    "login": {
        ErrorCode.INVALID_ARGUMENTS: "Login failed.",
        ErrorCode.STORAGE_FAILURE: "Login failed.",
    },
}


class CommandLine:
    """Dispatches commands against one user session."""

    def __init__(self, session_factory: sessionmaker = SessionLocal, out: TextIO = sys.stdout):
        self.session_factory = session_factory
        self.out = out
        self.user_session = UserSession()
        self.handlers: Dict[str, Callable[[List[str]], None]] = {
            "create_patient": lambda args: self.create_user(IdentityKind.PATIENT, args),
            "create_caregiver": lambda args: self.create_user(IdentityKind.CAREGIVER, args),
            "login_patient": lambda args: self.login(IdentityKind.PATIENT, args),
            "login_caregiver": lambda args: self.login(IdentityKind.CAREGIVER, args),
            "search_caregiver_schedule": self.search_caregiver_schedule,
            "reserve": self.reserve,
            "upload_availability": self.upload_availability,
            "cancel": self.cancel,
            "add_doses": self.add_doses,
            "show_appointments": self.show_appointments,
            "logout": self.logout,
        }

    def echo(self, message: str) -> None:
        print(message, file=self.out)

    def greet(self) -> None:
        self.echo("")
        self.echo("Welcome to the COVID-19 Vaccine Reservation Scheduling Application!")
        self.echo("*** Please enter one of the following commands ***")
        for command in COMMANDS:
            self.echo(f"> {command}")
        self.echo("")

    def execute(self, line: str) -> bool:
        """Run one command line. Returns False once the user quits."""
        tokens = line.split()
        if not tokens:
            self.echo("Please try again!")
            return True

        operation, args = tokens[0], tokens[1:]
        if operation == "quit":
            self.echo("Bye!")
            return False

        handler = self.handlers.get(operation)
        if handler is None:
            self.echo("Invalid operation name!")
            return True

        try:
            handler(args)
        except SchedulerError as exc:
            group = operation.split("_")[0]
            self.echo(FAILURE_MESSAGES.get(group, {}).get(exc.code, exc.message))
        return True

    def run(self, stdin: TextIO = sys.stdin) -> None:
        self.greet()
        while True:
            print("> ", end="", file=self.out, flush=True)
            line = stdin.readline()
            if not line:
                break
            if not self.execute(line):
                break

    def _service(self, db) -> ReservationService:
        return ReservationService(db, self.user_session)

    @staticmethod
    def _require_arity(args: List[str], count: int) -> None:
        if len(args) != count:
            raise ValidationError(ErrorCode.INVALID_ARGUMENTS, "Please try again!")

    def create_user(self, kind: IdentityKind, args: List[str]) -> None:
        self._require_arity(args, 2)
        username, password = args
        with self.session_factory() as db:
            identity = AuthService(db).register(kind, username, password)
        if not self.user_session.is_authenticated:
            self.user_session.login(identity)
        self.echo(f"Created user {username}")

    def login(self, kind: IdentityKind, args: List[str]) -> None:
        if self.user_session.is_authenticated:
            self.echo("User already logged in.")
            return
        self._require_arity(args, 2)
        username, password = args
        with self.session_factory() as db:
            identity = AuthService(db).authenticate(kind, username, password)
        self.user_session.login(identity)
        self.echo(f"Logged in as: {username}")

    def search_caregiver_schedule(self, args: List[str]) -> None:
        self.user_session.require_login()
        self._require_arity(args, 1)
        with self.session_factory() as db:
            entries = self._service(db).search_schedule(args[0])
        for entry in entries:
            self.echo(f"{entry.caregiver} {entry.vaccine} {entry.doses}")

    def reserve(self, args: List[str]) -> None:
        self.user_session.require_kind(IdentityKind.PATIENT)
        self._require_arity(args, 2)
        with self.session_factory() as db:
            reservation = self._service(db).reserve(args[0], args[1])
        self.echo(
            f"Appointment ID: {reservation.appointment_id}, "
            f"Caregiver username: {reservation.caregiver}"
        )

    def upload_availability(self, args: List[str]) -> None:
        self.user_session.require_kind(IdentityKind.CAREGIVER)
        self._require_arity(args, 1)
        with self.session_factory() as db:
            self._service(db).upload_availability(args[0])
        self.echo("Availability uploaded!")

    def cancel(self, args: List[str]) -> None:
        self.user_session.require_login()
        self._require_arity(args, 1)
        with self.session_factory() as db:
            self._service(db).cancel(args[0])
        self.echo("Appointment canceled successfully!")

    def add_doses(self, args: List[str]) -> None:
        self.user_session.require_kind(IdentityKind.CAREGIVER)
        self._require_arity(args, 2)
        with self.session_factory() as db:
            self._service(db).add_doses(args[0], args[1])
        self.echo("Doses updated!")

    def show_appointments(self, args: List[str]) -> None:
        self.user_session.require_login()
        self._require_arity(args, 0)
        with self.session_factory() as db:
            appointments = self._service(db).show_appointments()
        for appointment in appointments:
            self.echo(
                f"{appointment.appointment_id} {appointment.vaccine} "
                f"{appointment.date.isoformat()} {appointment.counterpart}"
            )

    def logout(self, args: List[str]) -> None:
        self._require_arity(args, 0)
        self.user_session.logout()
        self.echo("Successfully logged out!")


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, stream=sys.stderr)
    init_db()
    CommandLine().run()


if __name__ == "__main__":
    main()
