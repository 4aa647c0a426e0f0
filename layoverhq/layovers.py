from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

from .models import (
    DataQualityIssue,
    Direction,
    FlightSegment,
    ItineraryOffer,
    LayoverWindow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoverAnalysis:
    """Connection windows of an itinerary plus any data problems found."""

    windows: Tuple[LayoverWindow, ...] = ()
    issues: Tuple[DataQualityIssue, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.issues

    def __add__(self, other: "LayoverAnalysis") -> "LayoverAnalysis":
        return LayoverAnalysis(
            self.windows + other.windows, self.issues + other.issues
        )


def parse_timestamp(raw: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; ``None`` if it is not one."""
    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _gap_minutes(arrived: datetime, departs: datetime) -> Optional[int]:
    if (arrived.tzinfo is None) != (departs.tzinfo is None):
        return None
    seconds = (departs - arrived).total_seconds()
    return math.floor(seconds / 60)


def layover_windows(
    segments: Sequence[FlightSegment],
    direction: Direction = Direction.OUTBOUND,
) -> LayoverAnalysis:
    """Return one window per adjacent pair of *segments*.

    A direct flight yields no windows. A pair whose timestamps cannot be
    compared yields a window with ``duration_minutes=None`` and an issue.
    """
    windows = []
    issues = []
    prefix = f"itinerary.{direction.value}"

    for idx in range(len(segments) - 1):
        landed, onward = segments[idx], segments[idx + 1]
        arrived = parse_timestamp(landed.arrival.time)
        departs = parse_timestamp(onward.departure.time)

        minutes = None
        if arrived is None:
            issues.append(
                DataQualityIssue(
                    field=f"{prefix}[{idx}].arrival.time",
                    message=f"Unparsable arrival time {landed.arrival.time!r}",
                )
            )
        if departs is None:
            issues.append(
                DataQualityIssue(
                    field=f"{prefix}[{idx + 1}].departure.time",
                    message=(
                        f"Unparsable departure time {onward.departure.time!r}"
                    ),
                )
            )
        if arrived is not None and departs is not None:
            minutes = _gap_minutes(arrived, departs)
            if minutes is None:
                issues.append(
                    DataQualityIssue(
                        field=f"{prefix}[{idx}:{idx + 2}]",
                        message="Cannot compare timestamps with and without offset",
                    )
                )
            elif minutes < 0:
                issues.append(
                    DataQualityIssue(
                        field=f"{prefix}[{idx + 1}].departure.time",
                        message=(
                            f"Departure precedes previous arrival by "
                            f"{-minutes} min"
                        ),
                    )
                )
                minutes = None

        windows.append(
            LayoverWindow(
                airport=landed.arrival.airport,
                city=landed.arrival.city,
                country=landed.arrival.country,
                duration_minutes=minutes,
                direction=direction,
                arrival=landed.arrival.time,
                departure=onward.departure.time,
            )
        )

    for issue in issues:
        logger.warning("Layover data issue at %s: %s", issue.field, issue.message)
    return LayoverAnalysis(tuple(windows), tuple(issues))


def analyze_offer(offer: ItineraryOffer) -> LayoverAnalysis:
    """Outbound windows followed by inbound windows; never across legs."""
    analysis = layover_windows(offer.itinerary.outbound, Direction.OUTBOUND)
    if offer.itinerary.inbound:
        analysis = analysis + layover_windows(
            offer.itinerary.inbound, Direction.INBOUND
        )
    return analysis


def annotate(offer: ItineraryOffer) -> ItineraryOffer:
    """Return a copy of *offer* whose ``layovers`` are derived from segments."""
    analysis = analyze_offer(offer)
    return offer.model_copy(update={"layovers": analysis.windows})


def offer_layovers(offer: ItineraryOffer) -> Tuple[LayoverWindow, ...]:
    """Layovers attached to *offer*, derived on the fly if none are."""
    if offer.layovers:
        return offer.layovers
    return analyze_offer(offer).windows


def longest_layover(offer: ItineraryOffer) -> Optional[int]:
    """Longest known layover in minutes across both directions."""
    known = [
        w.duration_minutes
        for w in offer_layovers(offer)
        if w.duration_minutes is not None
    ]
    return max(known) if known else None


def format_duration(minutes: Optional[int]) -> str:
    """Render minutes as ``Xh Ym``."""
    if minutes is None:
        return "n/a"
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m"


__all__ = [
    "LayoverAnalysis",
    "parse_timestamp",
    "layover_windows",
    "analyze_offer",
    "annotate",
    "offer_layovers",
    "longest_layover",
    "format_duration",
]
