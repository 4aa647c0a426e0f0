"""Mix-and-match composition of two independently chosen offers.

The first offer supplies the outbound leg. The second offer is treated as
"provides a leg": its *outbound* segments become the return leg of the
combined offer, whatever its own inbound holds. This mirrors how the
results list presents one-way candidates for the return trip; see
DESIGN.md for the open question about round-trip offers picked as the
inbound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .errors import SelectionError
from .layovers import offer_layovers
from .models import (
    Direction,
    Itinerary,
    ItineraryOffer,
    LegDurations,
    Price,
    TripType,
)

logger = logging.getLogger(__name__)

COMBINED_SOURCE = "combined"


class LegView(str, Enum):
    ALL = "all"
    OUTBOUND_ONLY = "outbound_only"
    INBOUND_ONLY = "inbound_only"


def _sum(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return round(a + b, 2)


def combine_offers(
    outbound: ItineraryOffer, inbound: ItineraryOffer
) -> ItineraryOffer:
    """Fuse two offers into one bookable round trip."""
    out_windows = offer_layovers(outbound)
    in_windows = tuple(
        w.model_copy(update={"direction": Direction.INBOUND})
        for w in offer_layovers(inbound)
    )
    combined = ItineraryOffer(
        id=f"combined_{outbound.id}_{inbound.id}",
        source=COMBINED_SOURCE,
        price=Price(
            total=_sum(outbound.price.total, inbound.price.total),
            base=round(outbound.price.base + inbound.price.base, 2),
            taxes=round(outbound.price.taxes + inbound.price.taxes, 2),
            currency=outbound.price.currency,
        ),
        itinerary=Itinerary(
            outbound=outbound.itinerary.outbound,
            inbound=inbound.itinerary.outbound,
        ),
        layovers=tuple(out_windows) + in_windows,
        airline=outbound.airline,
        duration=LegDurations(
            outbound=outbound.duration.outbound,
            inbound=inbound.duration.outbound or inbound.duration.inbound,
        ),
    )
    if outbound.price.currency != inbound.price.currency:
        logger.warning(
            "Combining %s (%s) with %s (%s): totals added without conversion",
            outbound.id,
            outbound.price.currency,
            inbound.id,
            inbound.price.currency,
        )
    logger.info(
        "Combined %s + %s total=%s", outbound.id, inbound.id, combined.price.total
    )
    return combined


@dataclass(frozen=True)
class MixMatchSelection:
    """Selection state of one search session.

    Every operation returns a new selection; a rejected operation raises
    ``SelectionError`` and leaves the original untouched. ``finalized``
    holds an offer ready to be booked (one-way trips finalize on the first
    outbound pick).
    """

    trip_type: TripType = TripType.ROUND_TRIP
    mix_match_enabled: bool = False
    selected_outbound: Optional[ItineraryOffer] = None
    selected_inbound: Optional[ItineraryOffer] = None
    leg_view: LegView = LegView.ALL
    finalized: Optional[ItineraryOffer] = None

    @property
    def can_combine(self) -> bool:
        return (
            self.mix_match_enabled
            and self.selected_outbound is not None
            and self.selected_inbound is not None
        )

    def select_outbound(self, offer: ItineraryOffer) -> "MixMatchSelection":
        if self.mix_match_enabled:
            problems = []
            if offer.can_mix_match is False:
                problems.append("can_mix_match")
            if offer.inbound_only:
                problems.append("inbound_only")
            if problems:
                raise SelectionError(
                    problems,
                    f"Offer {offer.id} cannot supply the outbound leg: "
                    + ", ".join(problems),
                )
        logger.info("Selected outbound %s", offer.id)
        if self.trip_type is TripType.ONE_WAY:
            return replace(self, selected_outbound=offer, finalized=offer)
        return replace(self, selected_outbound=offer, finalized=None)

    def select_inbound(self, offer: ItineraryOffer) -> "MixMatchSelection":
        problems = []
        if self.trip_type is TripType.ONE_WAY:
            problems.append("trip_type")
        if self.mix_match_enabled:
            if offer.can_mix_match is False:
                problems.append("can_mix_match")
            if offer.outbound_only:
                problems.append("outbound_only")
        if problems:
            raise SelectionError(
                problems,
                f"Offer {offer.id} cannot supply the return leg: "
                + ", ".join(problems),
            )
        logger.info("Selected inbound %s", offer.id)
        return replace(self, selected_inbound=offer, finalized=None)

    def combine(self) -> ItineraryOffer:
        """Build the combined offer; both selections are required."""
        missing: List[str] = []
        if not self.mix_match_enabled:
            missing.append("mix_match_enabled")
        if self.selected_outbound is None:
            missing.append("selected_outbound")
        if self.selected_inbound is None:
            missing.append("selected_inbound")
        if missing:
            raise SelectionError(missing)
        return combine_offers(self.selected_outbound, self.selected_inbound)

    def toggle_mix_match(self) -> "MixMatchSelection":
        enabled = not self.mix_match_enabled
        logger.info("Mix-and-match %s", "enabled" if enabled else "disabled")
        return MixMatchSelection(trip_type=self.trip_type, mix_match_enabled=enabled)

    def with_leg_view(self, view: LegView | str) -> "MixMatchSelection":
        view = LegView(view)
        if view is not LegView.ALL and not self.mix_match_enabled:
            raise SelectionError(
                ["leg_view"], "Leg views are only available in mix-and-match mode"
            )
        return replace(self, leg_view=view)

    def visible(
        self, offers: Iterable[ItineraryOffer]
    ) -> Tuple[ItineraryOffer, ...]:
        """Offers shown under the current leg view, order preserved."""
        if not self.mix_match_enabled or self.leg_view is LegView.ALL:
            return tuple(offers)
        if self.leg_view is LegView.OUTBOUND_ONLY:
            return tuple(o for o in offers if not o.has_inbound)
        return tuple(o for o in offers if o.has_inbound)


__all__ = [
    "COMBINED_SOURCE",
    "LegView",
    "combine_offers",
    "MixMatchSelection",
]
