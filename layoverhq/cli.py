from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import click

from .config import Settings, get_settings
from .errors import LayoverHQError, OfferSearchError
from .layovers import annotate, format_duration
from .models import CabinClass, ItineraryOffer, TripType
from .ranking import RankedResults, SortKey, outbound_minutes
from .reference import get_reference
from .report import summarize
from .scoring import score_breakdown
from .search import (
    HttpOfferProvider,
    PassengerCounts,
    SearchCriteria,
    SearchStatus,
    parse_offers,
)
from .session import TravelSession

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(level=settings.log_level, handlers=handlers, format=LOG_FORMAT)


def load_offers(path: str) -> List[ItineraryOffer]:
    """Read offers from a JSON list or a search API response body."""
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, list):
        payload = {"success": True, "data": {"flights": payload}}
    return [annotate(offer) for offer in parse_offers(payload)]


def _describe(rank: int, offer: ItineraryOffer) -> str:
    breakdown = score_breakdown(offer)
    total = offer.price.total
    price = f"{offer.price.currency} {total:.2f}" if total is not None else "n/a"
    minutes = outbound_minutes(offer)
    duration = format_duration(None if minutes == float("inf") else int(minutes))
    stops = ", ".join(
        f"{w.airport} ({format_duration(w.duration_minutes)})" for w in offer.layovers
    )
    flag = "" if breakdown.complete else " [incomplete data]"
    return (
        f"{rank:>2}. {offer.id}  {price}  score {breakdown.score}/10  "
        f"{duration}  {stops or 'Direct'}{flag}"
    )


def _echo_results(results: RankedResults) -> None:
    for idx, offer in enumerate(results.displayed, start=1):
        click.echo(_describe(idx, offer))
    if results.hidden_count:
        click.echo(f"... {results.hidden_count} more (use --all)")


@click.group()
def cli() -> None:
    """Layover-aware flight ranking."""
    configure_logging(get_settings())


@cli.command()
@click.argument("origin")
@click.argument("destination")
@click.option("--depart", "departure_date", required=True, help="YYYY-MM-DD")
@click.option("--return", "return_date", default=None, help="YYYY-MM-DD")
@click.option("--adults", default=1, show_default=True, type=int)
@click.option("--children", default=0, show_default=True, type=int)
@click.option("--infants", default=0, show_default=True, type=int)
@click.option(
    "--cabin",
    type=click.Choice([c.value for c in CabinClass]),
    default=CabinClass.ECONOMY.value,
    show_default=True,
)
@click.option("--max-price", type=float, default=None)
@click.option("--max-connections", type=int, default=None)
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice([k.value for k in SortKey]),
    default=SortKey.SCORE.value,
    show_default=True,
)
@click.option("--all", "show_all", is_flag=True, help="Show every offer")
def search(
    origin: str,
    destination: str,
    departure_date: str,
    return_date: Optional[str],
    adults: int,
    children: int,
    infants: int,
    cabin: str,
    max_price: Optional[float],
    max_connections: Optional[int],
    sort_key: str,
    show_all: bool,
) -> None:
    """Search the provider and print ranked offers."""
    criteria = SearchCriteria(
        origin=origin.upper(),
        destination=destination.upper(),
        departure_date=departure_date,
        return_date=return_date,
        trip_type=TripType.ROUND_TRIP if return_date else TripType.ONE_WAY,
        passengers=PassengerCounts(adults=adults, children=children, infants=infants),
        cabin_class=CabinClass(cabin),
        max_price=max_price,
        max_connections=max_connections,
    )
    session = TravelSession(HttpOfferProvider())
    try:
        outcome = asyncio.run(session.search(criteria))
    except LayoverHQError as exc:
        raise click.UsageError(str(exc)) from exc

    if outcome.status is SearchStatus.ERROR:
        raise click.ClickException(f"Search failed (retry possible): {outcome.error}")
    if outcome.status is SearchStatus.EMPTY:
        click.echo("No offers found")
        return

    session.sort_by(sort_key)
    _echo_results(session.show_all_results(show_all))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice([k.value for k in SortKey]),
    default=SortKey.SCORE.value,
    show_default=True,
)
@click.option("--all", "show_all", is_flag=True, help="Show every offer")
def rank(path: str, sort_key: str, show_all: bool) -> None:
    """Rank offers stored in a JSON file."""
    try:
        offers = load_offers(path)
    except (OfferSearchError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read offers: {exc}") from exc
    if not offers:
        click.echo("No offers found")
        return
    results = RankedResults(
        source=offers,
        sort_key=SortKey(sort_key),
        show_all=show_all,
        preview_size=get_settings().preview_size,
    )
    _echo_results(results)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--csv", "csv_dir", default=None, help="Write CSV files here")
def summary(path: str, csv_dir: Optional[str]) -> None:
    """Print connection and airline statistics for offers in a JSON file."""
    try:
        offers = load_offers(path)
    except (OfferSearchError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read offers: {exc}") from exc
    result = summarize(offers)
    click.echo("Connections by airport")
    click.echo(result.airports.to_string(index=False))
    click.echo("")
    click.echo("Offers by airline")
    click.echo(result.airlines.to_string(index=False))
    if csv_dir:
        for written in result.to_csv(csv_dir):
            click.echo(f"Wrote {written}")


@cli.command()
@click.argument("code")
@click.option("--layover", "minutes", type=int, default=None, help="Layover minutes")
def guide(code: str, minutes: Optional[int]) -> None:
    """Show what there is to do around an airport."""
    info = get_reference().city_guide(code)
    click.echo(f"{info.name}, {info.country} ({info.code or code.upper()})")
    click.echo(f"Minimum time to explore: {format_duration(info.min_explore_minutes)}")
    for item in info.highlights:
        click.echo(f"  - {item}")
    click.echo(f"Transit: {info.transport}")
    click.echo(f"Tip: {info.tips}")
    if minutes is not None:
        verdict = "enough" if minutes >= info.min_explore_minutes else "not enough"
        click.echo(f"{format_duration(minutes)} layover: {verdict} time to leave the airport")


if __name__ == "__main__":
    cli()
