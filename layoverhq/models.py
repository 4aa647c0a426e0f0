"""Data models used throughout the project.

Every model is frozen: workflow steps derive new values with
``model_copy(update=...)`` instead of patching the ones they were given.
Offers arrive in camelCase from the search provider, so all models accept
both the camelCase alias and the Python field name.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def parse_duration_minutes(value: Any) -> Optional[int]:
    """Return *value* as whole minutes, or ``None`` when it cannot be read.

    Accepts integer minutes, numeric strings and ISO-8601 durations such as
    ``PT2H30M``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value) if value >= 0 else None
    if not isinstance(value, str):
        return None

    text = value.strip().upper()
    if text.isdigit():
        return int(text)
    match = _ISO_DURATION.match(text)
    if not match or text in ("P", "PT"):
        return None
    days = int(match.group("days") or 0)
    hours = int(match.group("hours") or 0)
    minutes = int(match.group("minutes") or 0)
    seconds = float(match.group("seconds") or 0)
    return days * 1440 + hours * 60 + minutes + int(seconds // 60)


class FrozenModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class Direction(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class TripType(str, Enum):
    ONE_WAY = "oneway"
    ROUND_TRIP = "roundtrip"


class CabinClass(str, Enum):
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"


class PassengerType(str, Enum):
    ADULT = "adult"
    CHILD = "child"
    INFANT = "infant"


class DataQualityIssue(FrozenModel):
    """Non-fatal problem found in offer data."""

    field: str
    message: str


class Endpoint(FrozenModel):
    airport: str
    city: str = ""
    country: str = ""
    time: str
    timezone: str = ""


class Carrier(FrozenModel):
    code: str = ""
    name: str = ""


class FlightSegment(FrozenModel):
    """One non-stop hop. ``duration`` is minutes, ``None`` if unreadable."""

    id: Optional[str] = None
    departure: Endpoint
    arrival: Endpoint
    airline: Carrier = Carrier()
    flight_number: str = ""
    aircraft: str = ""
    duration: Optional[int] = None

    @field_validator("airline", mode="before")
    @classmethod
    def _airline_from_code(cls, v):
        if isinstance(v, str):
            return {"code": v}
        return v

    @field_validator("aircraft", mode="before")
    @classmethod
    def _aircraft_code(cls, v):
        if isinstance(v, dict):
            return v.get("code") or v.get("name") or ""
        return v or ""

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_minutes(cls, v):
        return parse_duration_minutes(v)


class LayoverWindow(FrozenModel):
    """Connection between two consecutive segments of one direction.

    ``duration_minutes`` is ``None`` when the surrounding timestamps could
    not be parsed.
    """

    airport: str
    city: str = ""
    country: str = ""
    duration_minutes: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "duration_minutes", "durationMinutes", "duration"
        ),
        serialization_alias="durationMinutes",
    )
    direction: Direction = Direction.OUTBOUND
    arrival: str = ""
    departure: str = ""


class Price(FrozenModel):
    total: Optional[float] = None
    base: float = 0.0
    taxes: float = 0.0
    currency: str = "USD"

    @field_validator("total", mode="before")
    @classmethod
    def _finite_total(cls, v):
        if v is None or v == "":
            return None
        try:
            number = float(v)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None

    @field_validator("base", "taxes", mode="before")
    @classmethod
    def _zero_if_missing(cls, v):
        return 0.0 if v in (None, "") else v


class Itinerary(FrozenModel):
    outbound: Tuple[FlightSegment, ...] = Field(..., min_length=1)
    inbound: Optional[Tuple[FlightSegment, ...]] = None

    @field_validator("inbound", mode="before")
    @classmethod
    def _empty_inbound_is_none(cls, v):
        return v or None


class LegDurations(FrozenModel):
    outbound: Union[int, str, None] = None
    inbound: Union[int, str, None] = None


class ItineraryOffer(FrozenModel):
    """A priced travel option as supplied by the search provider."""

    id: str = Field(..., min_length=1)
    source: str = ""
    price: Price = Price()
    itinerary: Itinerary
    layovers: Tuple[LayoverWindow, ...] = ()
    airline: Carrier = Carrier()
    duration: LegDurations = LegDurations()
    can_mix_match: Optional[bool] = None
    outbound_only: Optional[bool] = None
    inbound_only: Optional[bool] = None

    @field_validator("airline", mode="before")
    @classmethod
    def _airline_from_code(cls, v):
        if isinstance(v, str):
            return {"code": v}
        return v

    @property
    def has_inbound(self) -> bool:
        return bool(self.itinerary.inbound)

    @property
    def currency(self) -> str:
        return self.price.currency

    def segments(self, direction: Direction) -> Tuple[FlightSegment, ...]:
        if direction is Direction.INBOUND:
            return self.itinerary.inbound or ()
        return self.itinerary.outbound


class Passenger(FrozenModel):
    id: str
    type: PassengerType = PassengerType.ADULT
    title: str = ""
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None


class ContactDetails(FrozenModel):
    email: str = ""
    phone: str = ""
    emergency_contact: str = ""


class BillingAddress(FrozenModel):
    street: str = ""
    city: str = ""
    country: str = ""
    postal_code: str = ""


class PaymentDetails(FrozenModel):
    card_number: str = Field("", repr=False)
    expiry_date: str = ""
    cvv: str = Field("", repr=False)
    cardholder_name: str = ""
    billing_address: BillingAddress = BillingAddress()


class BookingOrder(FrozenModel):
    """Result of a booking flow that reached confirmation."""

    offer: ItineraryOffer
    passengers: Tuple[Passenger, ...]
    contact: ContactDetails
    extras: Tuple[str, ...] = ()
    payment: PaymentDetails
    total_price: float
    currency: str
    booking_reference: str
    created_at: datetime


__all__ = [
    "parse_duration_minutes",
    "FrozenModel",
    "Direction",
    "TripType",
    "CabinClass",
    "PassengerType",
    "DataQualityIssue",
    "Endpoint",
    "Carrier",
    "FlightSegment",
    "LayoverWindow",
    "Price",
    "Itinerary",
    "LegDurations",
    "ItineraryOffer",
    "Passenger",
    "ContactDetails",
    "BillingAddress",
    "PaymentDetails",
    "BookingOrder",
]
