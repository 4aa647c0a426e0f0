"""Exception hierarchy shared by the selection, booking and search layers."""

from __future__ import annotations

from typing import Iterable, Tuple


class LayoverHQError(Exception):
    """Base class for all errors raised by this package."""


class FieldValidationError(LayoverHQError, ValueError):
    """A precondition failed; ``fields`` names the offending inputs."""

    def __init__(self, fields: Iterable[str], message: str | None = None):
        self.fields: Tuple[str, ...] = tuple(fields)
        if message is None:
            message = "Missing or invalid: " + ", ".join(self.fields)
        super().__init__(message)


class SelectionError(FieldValidationError):
    """Mix-and-match selection used incorrectly."""


class BookingValidationError(FieldValidationError):
    """Booking step cannot advance with the data entered so far."""


class SearchCriteriaError(FieldValidationError):
    """Search request is incomplete or inconsistent."""


class OfferSearchError(LayoverHQError, RuntimeError):
    """Error talking to the offer search provider."""

    retryable = True


class BookingSubmissionError(LayoverHQError, RuntimeError):
    """Error talking to the booking submission service."""


__all__ = [
    "LayoverHQError",
    "FieldValidationError",
    "SelectionError",
    "BookingValidationError",
    "SearchCriteriaError",
    "OfferSearchError",
    "BookingSubmissionError",
]
