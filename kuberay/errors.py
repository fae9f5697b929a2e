"""Error types carrying an internal cause and a client-facing message and status code."""

from __future__ import annotations

import logging
from enum import IntEnum

logger = logging.getLogger(__name__)

API_CODE_NOT_FOUND = 404
REASON_NOT_FOUND = "NotFound"
REASON_UNKNOWN = ""


class StatusCode(IntEnum):
    """RPC status codes reported to clients."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class CustomCode(IntEnum):
    TRANSIENT = 0
    PERMANENT = 1
    NOT_FOUND = 2
    GENERIC = 3


class WrappedError(Exception):
    """An error with a message, optionally annotating an underlying cause."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


class APIError(Exception):
    """An error returned by a remote HTTP API."""

    def __init__(self, operation_name: str, response: object, code: int):
        super().__init__(operation_name, response, code)
        self.operation_name = operation_name
        self.response = response
        self.code = code

    def __str__(self) -> str:
        return f"{self.operation_name} (status {self.code}): {self.response} "


class StatusError(Exception):
    """An error reported by the cluster API, with a machine-readable reason."""

    def __init__(self, message: str, reason: str = REASON_UNKNOWN):
        super().__init__(message)
        self.message = message
        self.reason = reason

    @classmethod
    def not_found(cls, resource_kind: str, name: str) -> StatusError:
        return cls(f'{resource_kind} "{name}" not found', REASON_NOT_FOUND)

    def __str__(self) -> str:
        return self.message


class CustomError(Exception):
    """An error tagged with a custom code."""

    def __init__(self, error: BaseException, code: CustomCode):
        super().__init__(str(error))
        self.error = error
        self.code = code

    def __str__(self) -> str:
        return str(self.error)


def _annotate(err: BaseException | None, message: str) -> WrappedError:
    return WrappedError(message, err)


def _to_status(code: int) -> StatusCode | int:
    try:
        return StatusCode(code)
    except ValueError:
        return int(code)


class UserError(Exception):
    """An error with an internal cause for debugging and a message for the client."""

    def __init__(
        self,
        internal_error: BaseException,
        external_message: str,
        external_status_code: StatusCode | int,
    ):
        super().__init__(str(internal_error))
        self.internal_error = internal_error
        self.external_message = external_message
        self.external_status_code = external_status_code
        self.__cause__ = internal_error

    @property
    def cause(self) -> BaseException:
        return self.internal_error

    def __str__(self) -> str:
        return str(self.internal_error)

    def wrap(self, message: str) -> UserError:
        """Return a copy whose internal error is annotated with ``message``."""
        return UserError(
            _annotate(self.internal_error, message),
            self.external_message,
            self.external_status_code,
        )

    def log(self) -> None:
        """Log the internal error; expected client failures are logged at info level."""
        if self.external_status_code in (
            StatusCode.ABORTED,
            StatusCode.INVALID_ARGUMENT,
            StatusCode.NOT_FOUND,
            StatusCode.INTERNAL,
        ):
            logger.info("%s", self.internal_error)
        else:
            logger.error("%s", self.internal_error)


def new_custom_error(err: BaseException | None, code: CustomCode, message: str) -> CustomError:
    return CustomError(_annotate(err, f"CustomError (code: {int(code)}): {message}"), code)


def new_custom_errorf(code: CustomCode, message: str) -> CustomError:
    return CustomError(WrappedError(f"CustomError (code: {int(code)}): {message}"), code)


def has_custom_code(err: BaseException | None, code: CustomCode) -> bool:
    return isinstance(err, CustomError) and err.code == code


def new_user_error_with_single_message(err: BaseException, message: str) -> UserError:
    return new_user_error(err, message, message)


def new_user_error(err: BaseException, internal_message: str, external_message: str) -> UserError:
    internal = _annotate(err, internal_message)
    if isinstance(err, APIError):
        if err.code == API_CODE_NOT_FOUND:
            return UserError(
                internal, f"{external_message}: Resource not found", _to_status(err.code)
            )
        return UserError(
            internal,
            f"{external_message}. Raw error from the service: {err}",
            _to_status(err.code),
        )
    return UserError(
        internal,
        f"{external_message}. Raw error from the service: {err}",
        StatusCode.INTERNAL,
    )


def extract_error_for_cli(err: BaseException, is_debug_mode: bool) -> BaseException:
    """Reduce a user error to the message a command-line user should see."""
    if isinstance(err, UserError):
        if is_debug_mode:
            return WrappedError(str(err.internal_error))
        return WrappedError(err.external_message)
    return err


def new_internal_server_error(err: BaseException | None, message: str) -> UserError:
    return UserError(
        _annotate(err, f"InternalServerError: {message}"),
        "Internal Server Error",
        StatusCode.INTERNAL,
    )


def new_not_found_error(err: BaseException | None, message: str) -> UserError:
    return UserError(_annotate(err, f"NotFoundError: {message}"), message, StatusCode.NOT_FOUND)


def new_resource_not_found_error(resource_type: str, resource_name: str) -> UserError:
    external = f"{resource_type} {resource_name} not found."
    return UserError(
        WrappedError(f"ResourceNotFoundError: {external}"), external, StatusCode.NOT_FOUND
    )


def new_resources_not_found_error(resource_types: str) -> UserError:
    external = f"{resource_types} not found."
    return UserError(
        WrappedError(f"ResourceNotFoundError: {external}"), external, StatusCode.NOT_FOUND
    )


def new_invalid_input_error(message: str) -> UserError:
    return UserError(
        WrappedError(f"Invalid input error: {message}"), message, StatusCode.INVALID_ARGUMENT
    )


def new_invalid_input_error_with_details(err: BaseException | None, external_message: str) -> UserError:
    return UserError(
        _annotate(err, f"InvalidInputError: {external_message}"),
        external_message,
        StatusCode.INVALID_ARGUMENT,
    )


def new_already_exist_error(message: str) -> UserError:
    return UserError(
        WrappedError(f"Already exist error: {message}"), message, StatusCode.ALREADY_EXISTS
    )


def new_bad_request_error(err: BaseException | None, message: str) -> UserError:
    return UserError(_annotate(err, f"BadRequestError: {message}"), message, StatusCode.ABORTED)


def new_unauthenticated_error(err: BaseException | None, message: str) -> UserError:
    return UserError(
        _annotate(err, f"Unauthenticated: {message}"), message, StatusCode.UNAUTHENTICATED
    )


def new_permission_denied_error(err: BaseException | None, message: str) -> UserError:
    return UserError(
        _annotate(err, f"PermissionDenied: {message}"), message, StatusCode.PERMISSION_DENIED
    )


def wrap(err: BaseException | None, message: str) -> BaseException | None:
    """Annotate ``err`` with ``message``, keeping a user error's client-facing parts."""
    if err is None:
        return None
    if isinstance(err, UserError):
        return err.wrap(message)
    return WrappedError(message, err)


def log_error(err: BaseException) -> None:
    if isinstance(err, UserError):
        err.log()
    else:
        logger.error("InternalError: %s", err)


def is_not_found(err: BaseException | None) -> bool:
    """Whether ``err`` reports that a cluster resource was not found."""
    return isinstance(err, StatusError) and err.reason == REASON_NOT_FOUND


def is_user_error_code_match(err: BaseException | None, code: StatusCode | int) -> bool:
    return isinstance(err, UserError) and err.external_status_code == code