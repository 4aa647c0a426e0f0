"""Itinerary scoring.

Turns a priced itinerary into a 1-10 quality score built from three
components, each on a 0-10 scale:

* price    -- ``10 - total / 200``
* duration -- ``10 - flying_minutes / 120`` over both directions
* layover  -- rating of the longest connection (exploration sweet spot)

The composite ``0.4 * price + 0.3 * duration + 0.3 * layover`` is rounded
half-up and clamped to ``[1, 10]``. Missing price or unreadable segment
durations make the score neutral (5) and the breakdown incomplete.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .layovers import offer_layovers
from .models import DataQualityIssue, Direction, ItineraryOffer

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10

SWEET_SPOT_MIN = 120
SWEET_SPOT_MAX = 480
TIGHT_CONNECTION = 60


@dataclass(frozen=True)
class Weights:
    price: float = 0.4
    duration: float = 0.3
    layover: float = 0.3


@dataclass(frozen=True)
class ScoreBreakdown:
    score: int
    price_score: Optional[float]
    duration_score: Optional[float]
    layover_score: float
    longest_layover: Optional[int]
    issues: Tuple[DataQualityIssue, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.issues


def clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def price_component(total: float) -> float:
    return clamp(0.0, 10.0, 10.0 - total / 200.0)


def duration_component(total_minutes: int) -> float:
    return clamp(0.0, 10.0, 10.0 - total_minutes / 120.0)


def layover_component(longest: Optional[int]) -> float:
    """Rate the longest connection; ``None`` means no layovers."""
    if longest is None:
        return NEUTRAL_SCORE
    if SWEET_SPOT_MIN <= longest <= SWEET_SPOT_MAX:
        return 8
    if longest > SWEET_SPOT_MAX:
        return 6
    if longest < TIGHT_CONNECTION:
        return 4
    return NEUTRAL_SCORE


def total_flight_minutes(
    offer: ItineraryOffer,
) -> Tuple[Optional[int], List[DataQualityIssue]]:
    """Sum of segment durations over both directions."""
    total = 0
    issues: List[DataQualityIssue] = []
    for direction in Direction:
        for idx, seg in enumerate(offer.segments(direction)):
            if seg.duration is None:
                issues.append(
                    DataQualityIssue(
                        field=f"itinerary.{direction.value}[{idx}].duration",
                        message="Missing or malformed segment duration",
                    )
                )
                continue
            total += seg.duration
    return (None if issues else total), issues


def score_breakdown(
    offer: ItineraryOffer, weights: Weights | None = None, *, quiet: bool = False
) -> ScoreBreakdown:
    """Compute every score component for *offer* without raising.

    With *quiet* set, incomplete data is logged at DEBUG only; use it where
    the offer's issues were already reported, e.g. when re-ranking.
    """
    weights = weights or Weights()
    issues: List[DataQualityIssue] = []

    total = offer.price.total
    price_score = None
    if total is None:
        issues.append(
            DataQualityIssue(field="price.total", message="Missing price")
        )
    elif total < 0:
        issues.append(
            DataQualityIssue(field="price.total", message=f"Negative price {total}")
        )
    else:
        price_score = price_component(total)

    minutes, duration_issues = total_flight_minutes(offer)
    issues.extend(duration_issues)
    duration_score = None if minutes is None else duration_component(minutes)

    windows = offer_layovers(offer)
    known = [w.duration_minutes for w in windows if w.duration_minutes is not None]
    longest = max(known) if known else None
    if len(known) != len(windows):
        issues.append(
            DataQualityIssue(
                field="layovers", message="Layover duration could not be derived"
            )
        )
        layover_score = float(NEUTRAL_SCORE)
    else:
        layover_score = float(layover_component(longest))

    if price_score is None or duration_score is None:
        final = NEUTRAL_SCORE
    else:
        composite = (
            weights.price * price_score
            + weights.duration * duration_score
            + weights.layover * layover_score
        )
        final = int(clamp(MIN_SCORE, MAX_SCORE, round_half_up(composite)))

    if issues:
        logger.log(
            logging.DEBUG if quiet else logging.WARNING,
            "Offer %s scored with incomplete data: %s",
            offer.id,
            ", ".join(i.field for i in issues),
        )
    logger.debug(
        "Offer %s price=%s duration=%s layover=%s -> %s",
        offer.id,
        price_score,
        duration_score,
        layover_score,
        final,
    )
    return ScoreBreakdown(
        score=final,
        price_score=price_score,
        duration_score=duration_score,
        layover_score=layover_score,
        longest_layover=longest,
        issues=tuple(issues),
    )


def score(offer: ItineraryOffer) -> int:
    """Return the 1-10 quality score of *offer*."""
    return score_breakdown(offer).score


__all__ = [
    "Weights",
    "ScoreBreakdown",
    "clamp",
    "round_half_up",
    "price_component",
    "duration_component",
    "layover_component",
    "total_flight_minutes",
    "score_breakdown",
    "score",
]
