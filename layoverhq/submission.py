from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import get_settings
from .errors import BookingSubmissionError
from .models import BookingOrder, FrozenModel

logger = logging.getLogger(__name__)


class BookingConfirmation(FrozenModel):
    """Durable confirmation issued by the booking service."""

    booking_id: str
    status: str = "confirmed"
    provisional_reference: str = ""


class BookingSubmitter:
    """Hands finalized orders to the external booking/payment service."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.booking_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or settings.http_timeout
        self.session = session or requests.Session()

    def submit(self, order: BookingOrder) -> BookingConfirmation:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.info("Submitting booking %s", order.booking_reference)
        try:
            resp = self.session.post(
                f"{self.base_url}/bookings",
                json=order.model_dump(by_alias=True, mode="json"),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BookingSubmissionError(f"Network error: {exc}") from exc

        if resp.status_code not in (200, 201):
            raise BookingSubmissionError(
                f"HTTP {resp.status_code} – {resp.text[:120]}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise BookingSubmissionError("Invalid JSON from booking service") from exc

        body = data.get("data", data) if isinstance(data, dict) else None
        booking_id: Optional[str] = None
        if isinstance(body, dict):
            booking_id = body.get("bookingId") or body.get("id")
        if not booking_id:
            raise BookingSubmissionError("Booking service returned no booking id")

        confirmation = BookingConfirmation(
            booking_id=str(booking_id),
            status=str(body.get("status") or "confirmed"),
            provisional_reference=order.booking_reference,
        )
        logger.info(
            "Booking %s confirmed by service as %s",
            order.booking_reference,
            confirmation.booking_id,
        )
        return confirmation


__all__ = ["BookingConfirmation", "BookingSubmitter"]
