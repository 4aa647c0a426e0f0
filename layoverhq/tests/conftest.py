from datetime import datetime, timedelta

import pytest

from layoverhq.config import get_settings
from layoverhq.models import FlightSegment, ItineraryOffer
from layoverhq.reference import get_reference


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    get_reference.cache_clear()
    yield
    get_settings.cache_clear()
    get_reference.cache_clear()


def make_segment(
    origin: str,
    dest: str,
    depart: str,
    minutes: int | None = 120,
    *,
    arrive: str | None = None,
    airline: str = "QR",
) -> FlightSegment:
    if arrive is None:
        arrive = (
            datetime.fromisoformat(depart) + timedelta(minutes=minutes or 0)
        ).isoformat()
    return FlightSegment.model_validate(
        {
            "departure": {"airport": origin, "city": origin.title(), "time": depart},
            "arrival": {"airport": dest, "city": dest.title(), "time": arrive},
            "airline": {"code": airline, "name": ""},
            "flightNumber": f"{airline}100",
            "aircraft": "77W",
            "duration": minutes,
        }
    )


def make_offer(
    offer_id: str,
    total: float | None = 500.0,
    outbound=None,
    inbound=None,
    *,
    currency: str = "USD",
    **flags,
) -> ItineraryOffer:
    outbound = outbound or [make_segment("LOS", "ATL", "2025-08-21T08:00:00", 600)]
    return ItineraryOffer.model_validate(
        {
            "id": offer_id,
            "source": "test",
            "price": {
                "total": total,
                "base": (total or 0) * 0.8,
                "taxes": (total or 0) * 0.2,
                "currency": currency,
            },
            "itinerary": {"outbound": outbound, "inbound": inbound},
            "airline": {"code": "QR", "name": "Qatar Airways"},
            "duration": {"outbound": "PT10H0M"},
            **flags,
        }
    )


@pytest.fixture
def doha_connection():
    """LOS -> DOH -> ATL with a 210 minute stop in Doha."""
    return [
        make_segment("LOS", "DOH", "2025-08-21T08:00:00", 360),
        make_segment("DOH", "ATL", "2025-08-21T17:30:00", 840),
    ]
