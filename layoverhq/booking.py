"""Booking state machine.

A booking walks ``passenger-details -> extras -> payment -> confirmation``.
Each call returns a new :class:`BookingFlow`; a failed precondition raises
:class:`~layoverhq.errors.BookingValidationError` naming the offending
fields and the original flow stays as it was.

Booking references come from :mod:`random`. They are not cryptographic and
two bookings can collide; the submission service issues the durable
identifier (see DESIGN.md).
"""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from .errors import BookingValidationError
from .models import (
    BookingOrder,
    ContactDetails,
    ItineraryOffer,
    Passenger,
    PassengerType,
    PaymentDetails,
)

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_LENGTH = 8
DEFAULT_REFERENCE_PREFIX = "LHQ"


class BookingStep(str, Enum):
    PASSENGER_DETAILS = "passenger-details"
    EXTRAS = "extras"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


STEP_ORDER: Tuple[BookingStep, ...] = tuple(BookingStep)


@dataclass(frozen=True)
class ExtraOption:
    id: str
    name: str
    description: str
    price: float


EXTRAS_CATALOG: Dict[str, ExtraOption] = {
    extra.id: extra
    for extra in (
        ExtraOption("baggage", "Extra Baggage", "Additional 23kg checked bag", 50),
        ExtraOption("seat-selection", "Seat Selection", "Choose your preferred seat", 25),
        ExtraOption("meal", "Special Meal", "Pre-order your in-flight meal", 35),
        ExtraOption("insurance", "Travel Insurance", "Comprehensive travel protection", 45),
    )
}


def generate_reference(
    prefix: str = DEFAULT_REFERENCE_PREFIX, rng: Optional[random.Random] = None
) -> str:
    """Return a provisional booking reference such as ``LHQ7K2M9QXA``.

    Pseudo-random, no uniqueness guarantee.
    """
    chooser = rng or random
    return prefix + "".join(chooser.choices(REFERENCE_ALPHABET, k=REFERENCE_LENGTH))


def initial_passengers(
    adults: int = 1, children: int = 0, infants: int = 0
) -> Tuple[Passenger, ...]:
    """Blank passenger records, adults first."""
    kinds = (
        [PassengerType.ADULT] * max(0, adults)
        + [PassengerType.CHILD] * max(0, children)
        + [PassengerType.INFANT] * max(0, infants)
    )
    return tuple(
        Passenger(id=f"passenger-{idx}", type=kind) for idx, kind in enumerate(kinds)
    )


def _parse_dob(raw: str) -> Optional[date]:
    try:
        return date.fromisoformat(raw.strip()[:10])
    except (AttributeError, ValueError):
        return None


def passenger_problems(passengers: Iterable[Passenger]) -> List[str]:
    """Field paths that keep the passenger step from completing."""
    problems: List[str] = []
    passengers = list(passengers)
    if not passengers:
        return ["passengers"]
    for idx, pax in enumerate(passengers):
        if not (pax.first_name or "").strip():
            problems.append(f"passengers[{idx}].first_name")
        if not (pax.last_name or "").strip():
            problems.append(f"passengers[{idx}].last_name")
        if _parse_dob(pax.date_of_birth) is None:
            problems.append(f"passengers[{idx}].date_of_birth")
    return problems


def payment_problems(payment: PaymentDetails) -> List[str]:
    required = ("card_number", "expiry_date", "cvv", "cardholder_name")
    return [
        f"payment.{name}"
        for name in required
        if not (getattr(payment, name) or "").strip()
    ]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BookingFlow:
    offer: ItineraryOffer
    passengers: Tuple[Passenger, ...] = ()
    contact: ContactDetails = ContactDetails()
    extras: Tuple[str, ...] = ()
    payment: PaymentDetails = PaymentDetails()
    step: BookingStep = BookingStep.PASSENGER_DETAILS
    order: Optional[BookingOrder] = None
    reference_prefix: str = DEFAULT_REFERENCE_PREFIX

    @classmethod
    def start(
        cls,
        offer: ItineraryOffer,
        *,
        adults: int = 1,
        children: int = 0,
        infants: int = 0,
        reference_prefix: str = DEFAULT_REFERENCE_PREFIX,
    ) -> "BookingFlow":
        logger.info("Starting booking for offer %s", offer.id)
        return cls(
            offer=offer,
            passengers=initial_passengers(adults, children, infants),
            reference_prefix=reference_prefix,
        )

    # ── pricing ──────────────────────────────────────────────────

    @property
    def extras_total(self) -> float:
        return sum(EXTRAS_CATALOG[e].price for e in self.extras)

    @property
    def total_price(self) -> float:
        return (self.offer.price.total or 0.0) + self.extras_total

    @property
    def is_complete(self) -> bool:
        return self.step is BookingStep.CONFIRMATION

    # ── data entry ───────────────────────────────────────────────

    def _editable(self) -> None:
        if self.is_complete:
            raise BookingValidationError(
                ["step"], "Booking is confirmed and can no longer be edited"
            )

    def with_passengers(self, passengers: Iterable[Passenger]) -> "BookingFlow":
        self._editable()
        return replace(self, passengers=tuple(passengers))

    def update_passenger(self, index: int, **changes) -> "BookingFlow":
        self._editable()
        if not 0 <= index < len(self.passengers):
            raise BookingValidationError([f"passengers[{index}]"])
        unknown = sorted(set(changes) - set(Passenger.model_fields))
        if unknown:
            raise BookingValidationError(
                [f"passengers[{index}].{name}" for name in unknown],
                "Unknown passenger field(s): " + ", ".join(unknown),
            )
        current = self.passengers[index]
        try:
            replacement = Passenger.model_validate(
                {**current.model_dump(), **changes, "id": current.id}
            )
        except ValidationError as exc:
            names = {
                (info.alias or name): name
                for name, info in Passenger.model_fields.items()
            }
            raise BookingValidationError(
                [
                    f"passengers[{index}].{names.get(err['loc'][0], err['loc'][0])}"
                    for err in exc.errors()
                ]
            ) from exc
        updated = list(self.passengers)
        updated[index] = replacement
        return replace(self, passengers=tuple(updated))

    def with_contact(self, contact: ContactDetails) -> "BookingFlow":
        """Set contact details; only the first passenger carries them."""
        self._editable()
        passengers = list(self.passengers)
        if passengers:
            passengers[0] = passengers[0].model_copy(
                update={"email": contact.email or None, "phone": contact.phone or None}
            )
        return replace(self, contact=contact, passengers=tuple(passengers))

    def add_extra(self, extra_id: str) -> "BookingFlow":
        self._editable()
        if extra_id not in EXTRAS_CATALOG:
            raise BookingValidationError(["extras"], f"Unknown extra {extra_id!r}")
        if extra_id in self.extras:
            return self
        return replace(self, extras=self.extras + (extra_id,))

    def remove_extra(self, extra_id: str) -> "BookingFlow":
        self._editable()
        return replace(self, extras=tuple(e for e in self.extras if e != extra_id))

    def toggle_extra(self, extra_id: str) -> "BookingFlow":
        if extra_id in self.extras:
            return self.remove_extra(extra_id)
        return self.add_extra(extra_id)

    def with_payment(self, payment: PaymentDetails) -> "BookingFlow":
        self._editable()
        return replace(self, payment=payment)

    # ── transitions ──────────────────────────────────────────────

    def missing_fields(self) -> List[str]:
        """What the current step still needs before :meth:`advance`.

        Passenger data stays editable after its own step, so every step
        re-checks it.
        """
        if self.is_complete:
            return []
        problems = passenger_problems(self.passengers)
        if self.step is BookingStep.PAYMENT:
            problems.extend(payment_problems(self.payment))
            if self.offer.price.total is None:
                problems.append("offer.price.total")
        return problems

    def advance(
        self,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> "BookingFlow":
        if self.is_complete:
            raise BookingValidationError(["step"], "Booking is already confirmed")
        problems = self.missing_fields()
        if problems:
            logger.info(
                "Cannot leave %s, missing: %s", self.step.value, ", ".join(problems)
            )
            raise BookingValidationError(problems)

        nxt = STEP_ORDER[STEP_ORDER.index(self.step) + 1]
        logger.info("Booking %s: %s -> %s", self.offer.id, self.step.value, nxt.value)
        if nxt is BookingStep.CONFIRMATION:
            return replace(self, step=nxt, order=self._build_order(rng, clock))
        return replace(self, step=nxt)

    def retreat(self) -> "BookingFlow":
        if self.step is BookingStep.PASSENGER_DETAILS:
            raise BookingValidationError(["step"], "Already at the first step")
        if self.is_complete:
            raise BookingValidationError(["step"], "Booking is already confirmed")
        prev = STEP_ORDER[STEP_ORDER.index(self.step) - 1]
        logger.info("Booking %s: back to %s", self.offer.id, prev.value)
        return replace(self, step=prev)

    def _build_order(
        self, rng: Optional[random.Random], clock: Callable[[], datetime]
    ) -> BookingOrder:
        order = BookingOrder(
            offer=self.offer,
            passengers=self.passengers,
            contact=self.contact,
            extras=self.extras,
            payment=self.payment,
            total_price=self.total_price,
            currency=self.offer.price.currency,
            booking_reference=generate_reference(self.reference_prefix, rng),
            created_at=clock(),
        )
        logger.info(
            "Booking %s confirmed, total %.2f %s",
            order.booking_reference,
            order.total_price,
            order.currency,
        )
        return order


__all__ = [
    "BookingStep",
    "STEP_ORDER",
    "ExtraOption",
    "EXTRAS_CATALOG",
    "generate_reference",
    "initial_passengers",
    "passenger_problems",
    "payment_problems",
    "BookingFlow",
]
