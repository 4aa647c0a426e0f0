from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import Field, ValidationError

from .config import get_settings
from .errors import OfferSearchError, SearchCriteriaError
from .layovers import analyze_offer
from .models import (
    CabinClass,
    DataQualityIssue,
    FrozenModel,
    ItineraryOffer,
    TripType,
)

logger = logging.getLogger(__name__)


class PassengerCounts(FrozenModel):
    adults: int = 1
    children: int = 0
    infants: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants


class SearchCriteria(FrozenModel):
    """What the search provider is asked for.

    ``max_price`` and ``max_connections`` are applied by the provider; the
    results are never filtered again locally.
    """

    origin: str
    destination: str
    departure_date: str
    return_date: Optional[str] = None
    trip_type: TripType = TripType.ROUND_TRIP
    passengers: PassengerCounts = PassengerCounts()
    cabin_class: CabinClass = CabinClass.ECONOMY
    max_price: Optional[float] = Field(None, gt=0)
    max_connections: Optional[int] = Field(None, ge=0)

    def problems(self) -> List[str]:
        missing = [
            name
            for name in ("origin", "destination", "departure_date")
            if not getattr(self, name).strip()
        ]
        if self.trip_type is TripType.ROUND_TRIP and not self.return_date:
            missing.append("return_date")
        if self.passengers.adults < 1:
            missing.append("passengers.adults")
        if min(self.passengers.children, self.passengers.infants) < 0:
            missing.append("passengers")
        return missing

    def validated(self) -> "SearchCriteria":
        """Return the request as sent; one-way trips drop the return date."""
        problems = self.problems()
        if problems:
            raise SearchCriteriaError(problems)
        if self.trip_type is TripType.ONE_WAY and self.return_date:
            return self.model_copy(update={"return_date": None})
        return self


def parse_offers(payload: Any) -> List[ItineraryOffer]:
    """Map a ``{"success": ..., "data": {"flights": [...]}}`` body to offers.

    Records that fail validation are skipped; a body of the wrong shape is a
    search error.
    """
    if not isinstance(payload, dict):
        raise OfferSearchError("Malformed response body")
    if not payload.get("success"):
        raise OfferSearchError(
            f"API error: {payload.get('error') or 'Failed to search flights'}"
        )

    data = payload.get("data") or {}
    flights = data.get("flights") if isinstance(data, dict) else None
    if flights is None:
        flights = []
    if not isinstance(flights, list):
        raise OfferSearchError("Malformed response body: flights is not a list")

    offers: List[ItineraryOffer] = []
    for idx, item in enumerate(flights):
        try:
            offers.append(ItineraryOffer.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed offer #%d (%s): %d error(s)",
                idx,
                item.get("id") if isinstance(item, dict) else type(item).__name__,
                exc.error_count(),
            )
    return offers


class OfferSearchProvider(ABC):
    """Source of raw itinerary offers."""

    @abstractmethod
    async def search(self, criteria: SearchCriteria) -> List[ItineraryOffer]:
        """Return offers for *criteria* or raise ``OfferSearchError``."""


class HttpOfferProvider(OfferSearchProvider):
    """Client for the ``/flights/search`` endpoint of the LayoverHQ API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or settings.http_timeout
        self.session = session or requests.Session()

    def fetch(self, criteria: SearchCriteria) -> List[ItineraryOffer]:
        body = criteria.model_dump(by_alias=True, mode="json", exclude_none=True)
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.info(
            "Searching %s -> %s on %s",
            criteria.origin,
            criteria.destination,
            criteria.departure_date,
        )
        try:
            resp = self.session.post(
                f"{self.base_url}/flights/search",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise OfferSearchError(f"Network error: {exc}") from exc

        if resp.status_code != 200:
            raise OfferSearchError(f"HTTP {resp.status_code} – {resp.text[:120]}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise OfferSearchError("Server returned invalid JSON response") from exc
        return parse_offers(payload)

    async def search(self, criteria: SearchCriteria) -> List[ItineraryOffer]:
        return await asyncio.to_thread(self.fetch, criteria)


class SearchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class SearchOutcome:
    status: SearchStatus = SearchStatus.IDLE
    criteria: Optional[SearchCriteria] = None
    offers: Tuple[ItineraryOffer, ...] = ()
    error: Optional[str] = None
    generation: int = 0
    issues: Dict[str, Tuple[DataQualityIssue, ...]] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.status is SearchStatus.ERROR


class SearchSession:
    """Runs searches for one user session, newest request wins.

    Starting a search drops the previous results immediately. A response
    that arrives after a newer search has started is returned to its caller
    but never applied.
    """

    def __init__(self, provider: OfferSearchProvider) -> None:
        self.provider = provider
        self.outcome = SearchOutcome()
        self._generation = 0

    @property
    def status(self) -> SearchStatus:
        return self.outcome.status

    @property
    def offers(self) -> Tuple[ItineraryOffer, ...]:
        return self.outcome.offers

    async def search(self, criteria: SearchCriteria) -> SearchOutcome:
        criteria = criteria.validated()
        self._generation += 1
        generation = self._generation
        self.outcome = SearchOutcome(
            SearchStatus.LOADING, criteria=criteria, generation=generation
        )

        try:
            raw = await self.provider.search(criteria)
        except OfferSearchError as exc:
            logger.warning("Search #%d failed: %s", generation, exc)
            outcome = SearchOutcome(
                SearchStatus.ERROR, criteria, error=str(exc), generation=generation
            )
        except Exception as exc:
            logger.exception("Search #%d failed unexpectedly", generation)
            outcome = SearchOutcome(
                SearchStatus.ERROR,
                criteria,
                error=f"Unexpected search failure: {exc}",
                generation=generation,
            )
        else:
            outcome = self._annotated(raw, criteria, generation)

        if generation != self._generation:
            logger.info(
                "Ignoring search #%d, superseded by #%d", generation, self._generation
            )
            return outcome

        self.outcome = outcome
        logger.info(
            "Search #%d applied: %s (%d offers)",
            generation,
            outcome.status.value,
            len(outcome.offers),
        )
        return outcome

    @staticmethod
    def _annotated(
        raw: List[ItineraryOffer], criteria: SearchCriteria, generation: int
    ) -> SearchOutcome:
        offers = []
        issues: Dict[str, Tuple[DataQualityIssue, ...]] = {}
        for offer in raw:
            analysis = analyze_offer(offer)
            offers.append(offer.model_copy(update={"layovers": analysis.windows}))
            if analysis.issues:
                issues[offer.id] = analysis.issues
        status = SearchStatus.RESULTS if offers else SearchStatus.EMPTY
        return SearchOutcome(
            status, criteria, tuple(offers), generation=generation, issues=issues
        )


__all__ = [
    "PassengerCounts",
    "SearchCriteria",
    "parse_offers",
    "OfferSearchProvider",
    "HttpOfferProvider",
    "SearchStatus",
    "SearchOutcome",
    "SearchSession",
]
