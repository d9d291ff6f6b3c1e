"""
Error taxonomy shared by the services, the HTTP API and the command line.

Every error carries a machine-readable code, a message fit for the caller
and the HTTP status the API answers with. None of them is fatal.
"""
from enum import Enum
from fastapi import status


class ErrorCode(str, Enum):
    INVALID_ARGUMENTS = "InvalidArguments"
    INVALID_DATE = "InvalidDate"
    INVALID_COUNT = "InvalidCount"
    INVALID_APPOINTMENT_ID = "InvalidAppointmentId"
    WRONG_ROLE = "WrongRole"
    ALREADY_LOGGED_IN = "AlreadyLoggedIn"
    NOT_LOGGED_IN = "NotLoggedIn"
    INVALID_CREDENTIALS = "InvalidCredentials"
    USERNAME_TAKEN = "UsernameTaken"
    NO_PROVIDER_AVAILABLE = "NoProviderAvailable"
    INSUFFICIENT_DOSES = "InsufficientDoses"
    UNKNOWN_VACCINE = "UnknownVaccine"
    NOT_FOUND_OR_NOT_OWNED = "NotFoundOrNotOwned"
    STORAGE_FAILURE = "StorageFailure"


class SchedulerError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self):
        return f"<{type(self).__name__}(code='{self.code.value}', message='{self.message}')>"


class ValidationError(SchedulerError):
    """Malformed arguments; nothing was touched."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(SchedulerError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(code, message)
        if code in (ErrorCode.NOT_LOGGED_IN, ErrorCode.INVALID_CREDENTIALS):
            self.status_code = status.HTTP_401_UNAUTHORIZED


class ConflictError(SchedulerError):
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(SchedulerError):
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(SchedulerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Storage failure, please try again"):
        super().__init__(ErrorCode.STORAGE_FAILURE, message)
