from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, Tuple

from .models import ItineraryOffer
from .scoring import score_breakdown

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 10


class SortKey(str, Enum):
    SCORE = "score"
    PRICE = "price"
    DURATION = "duration"


def outbound_minutes(offer: ItineraryOffer) -> float:
    """Total outbound flying time; unknown durations sort last."""
    total = 0
    for seg in offer.itinerary.outbound:
        if seg.duration is None:
            return math.inf
        total += seg.duration
    return total


def _price_key(offer: ItineraryOffer) -> float:
    total = offer.price.total
    return math.inf if total is None else total


def _score_key(offer: ItineraryOffer) -> float:
    return -score_breakdown(offer, quiet=True).score


SORT_KEYS: Dict[SortKey, Callable[[ItineraryOffer], float]] = {
    SortKey.SCORE: _score_key,
    SortKey.PRICE: _price_key,
    SortKey.DURATION: outbound_minutes,
}


def rank_offers(
    offers: Iterable[ItineraryOffer], key: SortKey | str = SortKey.SCORE
) -> Tuple[ItineraryOffer, ...]:
    """Stable sort: score descending, price or outbound duration ascending."""
    sort_key = SortKey(key)
    return tuple(sorted(offers, key=SORT_KEYS[sort_key]))


@dataclass(frozen=True)
class RankedResults:
    """A result set ordered by one key, with a bounded preview.

    ``source`` keeps the provider's order so that every re-sort starts from
    the same input; no offer is ever dropped.
    """

    source: Tuple[ItineraryOffer, ...] = ()
    sort_key: SortKey = SortKey.SCORE
    show_all: bool = False
    preview_size: int = PREVIEW_SIZE
    ranked: Tuple[ItineraryOffer, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", tuple(self.source))
        object.__setattr__(self, "sort_key", SortKey(self.sort_key))
        object.__setattr__(self, "ranked", rank_offers(self.source, self.sort_key))

    @property
    def preview(self) -> Tuple[ItineraryOffer, ...]:
        return self.ranked[: self.preview_size]

    @property
    def displayed(self) -> Tuple[ItineraryOffer, ...]:
        return self.ranked if self.show_all else self.preview

    @property
    def hidden_count(self) -> int:
        return len(self.ranked) - len(self.displayed)

    def sorted_by(self, key: SortKey | str) -> "RankedResults":
        logger.info("Re-ranking %d offers by %s", len(self.source), SortKey(key).value)
        return replace(self, sort_key=SortKey(key))

    def expanded(self, show_all: bool = True) -> "RankedResults":
        return replace(self, show_all=show_all)

    def __len__(self) -> int:
        return len(self.ranked)


__all__ = [
    "PREVIEW_SIZE",
    "SortKey",
    "SORT_KEYS",
    "outbound_minutes",
    "rank_offers",
    "RankedResults",
]
