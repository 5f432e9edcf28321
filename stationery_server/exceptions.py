"""Errors raised by the stationery client."""

from typing import Optional


class StationeryError(Exception):
    """Base class for all storefront errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BackendUnavailableError(StationeryError):
    """Raised when the backend cannot be reached or the request timed out."""


class BackendError(StationeryError):
    """
    Raised when the backend answers with a non-success response.

    The message is suitable for showing to the user verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InputValidationError(StationeryError):
    """Raised when user input is rejected before any network call."""


class EmptyCartError(InputValidationError):
    """Raised when checkout is attempted with an empty cart."""
