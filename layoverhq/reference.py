"""Reference datasets: layover city guides, airline and aircraft names.

The bundled JSON files live in ``layoverhq/data``. A directory given via
``LAYOVERHQ_REFERENCE_DIR`` replaces any file it contains.
"""

from __future__ import annotations

import json
import logging
import pathlib
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import TypeAdapter

from .config import get_settings
from .models import LayoverWindow, FrozenModel

logger = logging.getLogger(__name__)

CITY_GUIDES_FILE = "city_guides.json"
AIRLINES_FILE = "airlines.json"
AIRCRAFT_FILE = "aircraft.json"

FALLBACK_MIN_EXPLORE = 180


class CityGuide(FrozenModel):
    code: str = ""
    name: str
    country: str = "Unknown"
    min_explore_minutes: int = FALLBACK_MIN_EXPLORE
    highlights: Tuple[str, ...] = ()
    transport: str = ""
    tips: str = ""
    fallback: bool = False


def fallback_guide(code: str) -> CityGuide:
    """Generic record used for airports missing from the table."""
    return CityGuide(
        code=code,
        name=code or "Unknown",
        country="Unknown",
        min_explore_minutes=FALLBACK_MIN_EXPLORE,
        highlights=("City Center", "Local Markets", "Cultural Sites"),
        transport="Public transport available",
        tips="Check visa requirements for your nationality",
        fallback=True,
    )


_GUIDES = TypeAdapter(Dict[str, CityGuide])
_NAMES = TypeAdapter(Dict[str, str])


def _read_json(name: str, directory: Optional[str]) -> Any:
    if directory:
        path = pathlib.Path(directory) / name
        if path.is_file():
            logger.info("Loading %s from %s", name, directory)
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
    with resources.files("layoverhq").joinpath("data", name).open(
        "r", encoding="utf-8"
    ) as fh:
        return json.load(fh)


class ReferenceData:
    """Airport code -> city guide, with fallback; airline/aircraft names."""

    def __init__(
        self,
        city_guides: Mapping[str, CityGuide],
        airlines: Mapping[str, str] | None = None,
        aircraft: Mapping[str, str] | None = None,
    ) -> None:
        self.city_guides = {
            code.upper(): guide.model_copy(update={"code": code.upper()})
            for code, guide in city_guides.items()
        }
        self.airlines = {k.upper(): v for k, v in (airlines or {}).items()}
        self.aircraft = {k.upper(): v for k, v in (aircraft or {}).items()}

    @classmethod
    def load(cls, directory: Optional[str] = None) -> "ReferenceData":
        return cls(
            city_guides=_GUIDES.validate_python(
                _read_json(CITY_GUIDES_FILE, directory)
            ),
            airlines=_NAMES.validate_python(_read_json(AIRLINES_FILE, directory)),
            aircraft=_NAMES.validate_python(_read_json(AIRCRAFT_FILE, directory)),
        )

    def city_guide(self, code: str) -> CityGuide:
        key = (code or "").strip().upper()
        guide = self.city_guides.get(key)
        if guide is None:
            logger.debug("No city guide for %r, using fallback", code)
            return fallback_guide(key)
        return guide

    def airline_name(self, code: str) -> str:
        key = (code or "").strip().upper()
        if not key or key in ("UNDEFINED", "NULL"):
            return "Unknown Airline"
        return self.airlines.get(key, f"{key} Airlines")

    def aircraft_name(self, code: str) -> str:
        key = (code or "").strip().upper()
        if not key or key in ("UNDEFINED", "NULL"):
            return "Commercial Aircraft"
        return self.aircraft.get(key, code.strip())

    def can_explore(self, window: LayoverWindow) -> bool:
        """Whether the layover is long enough to leave the airport."""
        if window.duration_minutes is None:
            return False
        return window.duration_minutes >= self.city_guide(window.airport).min_explore_minutes


@lru_cache()
def get_reference() -> ReferenceData:
    """Reference data for the configured override directory."""
    return ReferenceData.load(get_settings().reference_dir)


def city_guide(code: str) -> CityGuide:
    return get_reference().city_guide(code)


def can_explore(window: LayoverWindow) -> bool:
    return get_reference().can_explore(window)


__all__ = [
    "CityGuide",
    "fallback_guide",
    "ReferenceData",
    "get_reference",
    "city_guide",
    "can_explore",
]
