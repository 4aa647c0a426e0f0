from __future__ import annotations

import logging
import pathlib
from typing import Iterable, List, NamedTuple, Optional

import pandas as pd

from .layovers import offer_layovers
from .models import ItineraryOffer
from .reference import ReferenceData, get_reference
from .scoring import score

logger = logging.getLogger(__name__)

AIRPORT_COLUMNS = [
    "airport",
    "city",
    "windows",
    "min_minutes",
    "mean_minutes",
    "max_minutes",
    "explorable",
]
AIRLINE_COLUMNS = ["airline", "name", "offers", "cheapest", "mean_score"]


class Summary(NamedTuple):
    airports: pd.DataFrame
    airlines: pd.DataFrame

    def to_csv(self, directory: str) -> List[str]:
        """Write both tables as CSV into *directory* and return the paths."""
        out = pathlib.Path(directory)
        out.mkdir(parents=True, exist_ok=True)
        paths = []
        for name, df in (("airports", self.airports), ("airlines", self.airlines)):
            path = out / f"{name}.csv"
            df.to_csv(path, index=False)
            paths.append(str(path))
        return paths


def layover_frame(
    offers: Iterable[ItineraryOffer], reference: Optional[ReferenceData] = None
) -> pd.DataFrame:
    """One row per layover window across *offers*."""
    reference = reference or get_reference()
    rows = []
    for offer in offers:
        for window in offer_layovers(offer):
            rows.append(
                {
                    "offer_id": offer.id,
                    "airport": window.airport,
                    "city": window.city,
                    "direction": window.direction.value,
                    "duration_minutes": window.duration_minutes,
                    "explorable": reference.can_explore(window),
                }
            )
    return pd.DataFrame(
        rows,
        columns=[
            "offer_id",
            "airport",
            "city",
            "direction",
            "duration_minutes",
            "explorable",
        ],
    )


def summarize_airports(
    offers: Iterable[ItineraryOffer], reference: Optional[ReferenceData] = None
) -> pd.DataFrame:
    """Connection statistics per airport, busiest first."""
    df = layover_frame(offers, reference)
    if df.empty:
        return pd.DataFrame(columns=AIRPORT_COLUMNS)

    df["duration_minutes"] = pd.to_numeric(df["duration_minutes"], errors="coerce")
    grouped = df.groupby("airport", as_index=False).agg(
        city=("city", "first"),
        windows=("offer_id", "size"),
        min_minutes=("duration_minutes", "min"),
        mean_minutes=("duration_minutes", "mean"),
        max_minutes=("duration_minutes", "max"),
        explorable=("explorable", "sum"),
    )
    grouped["explorable"] = grouped["explorable"].astype(int)
    return (
        grouped.sort_values(["windows", "airport"], ascending=[False, True])
        .reset_index(drop=True)[AIRPORT_COLUMNS]
    )


def summarize_airlines(
    offers: Iterable[ItineraryOffer], reference: Optional[ReferenceData] = None
) -> pd.DataFrame:
    """Offer count, cheapest total and mean score per primary airline."""
    reference = reference or get_reference()
    rows = [
        {
            "airline": offer.airline.code,
            "name": offer.airline.name or reference.airline_name(offer.airline.code),
            "price": offer.price.total,
            "score": score(offer),
        }
        for offer in offers
    ]
    if not rows:
        return pd.DataFrame(columns=AIRLINE_COLUMNS)

    df = pd.DataFrame(rows)
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    result = df.groupby(["airline", "name"], as_index=False).agg(
        offers=("score", "size"),
        cheapest=("price", "min"),
        mean_score=("score", "mean"),
    )
    result["mean_score"] = result["mean_score"].round(2)
    return (
        result.sort_values(["cheapest", "airline"], na_position="last")
        .reset_index(drop=True)[AIRLINE_COLUMNS]
    )


def summarize(
    offers: Iterable[ItineraryOffer], reference: Optional[ReferenceData] = None
) -> Summary:
    offers = list(offers)
    logger.info("Summarizing %d offers", len(offers))
    return Summary(
        airports=summarize_airports(offers, reference),
        airlines=summarize_airlines(offers, reference),
    )


__all__ = [
    "Summary",
    "layover_frame",
    "summarize_airports",
    "summarize_airlines",
    "summarize",
]
