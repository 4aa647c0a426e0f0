"""Session context tying search, ranking, selection and booking together.

One ``TravelSession`` per user. It holds the current value of each step and
swaps in the new value each operation returns; nothing it hands out is
mutated afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .booking import BookingFlow
from .composer import LegView, MixMatchSelection
from .config import Settings, get_settings
from .errors import BookingValidationError
from .models import ItineraryOffer, TripType
from .ranking import RankedResults, SortKey
from .search import OfferSearchProvider, SearchCriteria, SearchOutcome, SearchSession

logger = logging.getLogger(__name__)


class TravelSession:
    def __init__(
        self, provider: OfferSearchProvider, settings: Settings | None = None
    ) -> None:
        settings = settings or get_settings()
        self.searches = SearchSession(provider)
        self.preview_size = settings.preview_size
        self.reference_prefix = settings.reference_prefix
        self.sort_key = SortKey.SCORE
        self.show_all = False
        self.selection = MixMatchSelection()
        self.booking: Optional[BookingFlow] = None

    # ── search & ranking ─────────────────────────────────────────

    async def search(self, criteria: SearchCriteria) -> SearchOutcome:
        criteria = criteria.validated()
        self.selection = MixMatchSelection(
            trip_type=criteria.trip_type,
            mix_match_enabled=(
                self.selection.mix_match_enabled
                and criteria.trip_type is TripType.ROUND_TRIP
            ),
        )
        self.booking = None
        self.show_all = False
        return await self.searches.search(criteria)

    @property
    def outcome(self) -> SearchOutcome:
        return self.searches.outcome

    @property
    def results(self) -> RankedResults:
        return RankedResults(
            source=self.selection.visible(self.searches.offers),
            sort_key=self.sort_key,
            show_all=self.show_all,
            preview_size=self.preview_size,
        )

    def sort_by(self, key: SortKey | str) -> RankedResults:
        self.sort_key = SortKey(key)
        return self.results

    def show_all_results(self, show_all: bool = True) -> RankedResults:
        self.show_all = show_all
        return self.results

    # ── selection ────────────────────────────────────────────────

    def _passenger_counts(self) -> dict:
        criteria = self.outcome.criteria
        if criteria is None:
            return {}
        pax = criteria.passengers
        return {"adults": pax.adults, "children": pax.children, "infants": pax.infants}

    def _start_booking(self, offer: ItineraryOffer) -> BookingFlow:
        self.booking = BookingFlow.start(
            offer, reference_prefix=self.reference_prefix, **self._passenger_counts()
        )
        return self.booking

    def book(self, offer: ItineraryOffer) -> BookingFlow:
        """Book a whole offer directly, outside mix-and-match."""
        return self._start_booking(offer)

    def select_outbound(self, offer: ItineraryOffer) -> Optional[BookingFlow]:
        self.selection = self.selection.select_outbound(offer)
        if self.selection.finalized is not None:
            return self._start_booking(self.selection.finalized)
        return None

    def select_inbound(self, offer: ItineraryOffer) -> None:
        self.selection = self.selection.select_inbound(offer)

    def combine(self) -> BookingFlow:
        combined = self.selection.combine()
        self.selection = replace(self.selection, finalized=combined)
        return self._start_booking(combined)

    def toggle_mix_match(self) -> MixMatchSelection:
        self.selection = self.selection.toggle_mix_match()
        return self.selection

    def set_leg_view(self, view: LegView | str) -> RankedResults:
        self.selection = self.selection.with_leg_view(view)
        return self.results

    # ── booking ──────────────────────────────────────────────────

    def _current_booking(self) -> BookingFlow:
        if self.booking is None:
            raise BookingValidationError(["booking"], "No booking in progress")
        return self.booking

    def update_booking(self, flow: BookingFlow) -> BookingFlow:
        """Store an edited flow; it must belong to the booking in progress."""
        current = self._current_booking()
        if flow.offer.id != current.offer.id:
            raise BookingValidationError(["offer"], "Flow belongs to another offer")
        self.booking = flow
        return flow

    def advance_booking(self, **kwargs) -> BookingFlow:
        self.booking = self._current_booking().advance(**kwargs)
        return self.booking

    def retreat_booking(self) -> BookingFlow:
        self.booking = self._current_booking().retreat()
        return self.booking

    def back_to_results(self) -> None:
        logger.info("Leaving booking flow")
        self.booking = None


__all__ = ["TravelSession"]
