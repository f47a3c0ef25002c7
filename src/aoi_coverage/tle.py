"""
Two-line element (TLE) retrieval and parsing.

This module fetches three-line TLE text (name, line 1, line 2) from
source URLs such as CelesTrak GP groups, caches it with a time-to-live,
and parses it into OrbitalElements records.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

import requests
from pydantic import BaseModel, field_validator, model_validator

from .cache import MemoryCache, TextCache
from .errors import FetchError
from .models import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 6.0
DEFAULT_TIMEOUT_SECONDS = 30

TLE_SOURCES: Dict[str, str] = {
    "celestrak_active": "https://celestrak.org/NORAD/elements/gp.php?GROUP=active&FORMAT=tle",
    "celestrak_stations": "https://celestrak.org/NORAD/elements/gp.php?GROUP=stations&FORMAT=tle",
    "celestrak_resource": "https://celestrak.org/NORAD/elements/gp.php?GROUP=resource&FORMAT=tle",
    "celestrak_weather": "https://celestrak.org/NORAD/elements/gp.php?GROUP=weather&FORMAT=tle",
    "celestrak_sarsat": "https://celestrak.org/NORAD/elements/gp.php?GROUP=sarsat&FORMAT=tle",
    "celestrak_planet": "https://celestrak.org/NORAD/elements/gp.php?GROUP=planet&FORMAT=tle",
}


def parse_tle_epoch(line1: str) -> datetime:
    """
    Parse the epoch from TLE line 1.

    Columns 19-32 hold YYDDD.DDDDDDDD; two-digit years below 57 are in
    the 2000s.

    Raises:
        ValueError: If the epoch field is not numeric
    """
    epoch_str = line1[18:32].strip()
    year_2digit = int(epoch_str[:2])
    day_fraction = float(epoch_str[2:])
    year = 2000 + year_2digit if year_2digit < 57 else 1900 + year_2digit
    return datetime(year, 1, 1) + timedelta(days=day_fraction - 1)


class TLELines(BaseModel):
    """Fixed-format checks on a TLE pair, run before handing it to SGP4."""

    line1: str
    line2: str

    @field_validator("line1")
    @classmethod
    def validate_line1(cls, v: str) -> str:
        if not v.strip().startswith("1 "):
            raise ValueError('TLE line1 must start with "1 "')
        if len(v.strip()) < 69:
            raise ValueError("TLE line1 must be at least 69 characters")
        parse_tle_epoch(v.strip())
        return v.strip()

    @field_validator("line2")
    @classmethod
    def validate_line2(cls, v: str) -> str:
        if not v.strip().startswith("2 "):
            raise ValueError('TLE line2 must start with "2 "')
        if len(v.strip()) < 69:
            raise ValueError("TLE line2 must be at least 69 characters")
        return v.strip()

    @model_validator(mode="after")
    def check_catalog_numbers(self) -> "TLELines":
        if self.line1[2:7].strip() != self.line2[2:7].strip():
            raise ValueError(
                f"Catalog numbers differ between lines ({self.line1[2:7]!r} vs {self.line2[2:7]!r})"
            )
        return self


@dataclass(frozen=True)
class OrbitalElements:
    """A named TLE pair. Opaque to everything but the propagator."""

    name: str
    line1: str
    line2: str

    @property
    def epoch(self) -> Optional[datetime]:
        try:
            return parse_tle_epoch(self.line1)
        except (ValueError, IndexError):
            return None


def parse_element_sets(text: str) -> List[OrbitalElements]:
    """
    Parse three-line TLE text.

    Lines are trimmed and blank lines dropped, then read in strides of
    three. A triplet is kept only when line 1 starts with "1 " and line 2
    with "2 "; malformed and short trailing groups are skipped.

    Args:
        text: Raw TLE text

    Returns:
        Parsed element sets in input order
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    element_sets = []
    skipped = 0

    for i in range(0, len(lines), 3):
        group = lines[i:i + 3]
        if len(group) < 3:
            skipped += 1
            continue
        name, line1, line2 = group
        if not (line1.startswith("1 ") and line2.startswith("2 ")):
            skipped += 1
            continue
        element_sets.append(OrbitalElements(name=name, line1=line1, line2=line2))

    if skipped:
        logger.debug(f"Skipped {skipped} malformed TLE group(s)")
    return element_sets


def find_element_set(
    element_sets: List[OrbitalElements], name: str
) -> Optional[OrbitalElements]:
    """
    Look up an element set by display name.

    Exact case-insensitive match wins; otherwise the first
    case-insensitive substring match is returned.
    """
    wanted = name.strip().upper()
    if not wanted:
        return None

    for elements in element_sets:
        if elements.name.upper() == wanted:
            return elements

    for elements in element_sets:
        if wanted in elements.name.upper():
            return elements

    return None


def name_matches(element_sets: List[OrbitalElements], name: str) -> List[OrbitalElements]:
    """All case-insensitive substring matches, for ambiguity reporting."""
    wanted = name.strip().upper()
    if not wanted:
        return []
    return [e for e in element_sets if wanted in e.name.upper()]


class TLEStore:
    """
    Fetches TLE text through an injected TTL cache.

    Example:
        store = TLEStore(FileCache("~/.cache/aoi-coverage"))
        text = store.fetch_elements(TLE_SOURCES["celestrak_resource"], "resource", 6)
        sets = parse_element_sets(text)
    """

    def __init__(
        self,
        cache: Optional[TextCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.cache = cache if cache is not None else MemoryCache()
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_elements(self, source_url: str, cache_key: str, ttl_hours: float = DEFAULT_TTL_HOURS) -> str:
        """
        Return TLE text for a source, from cache when fresh.

        Args:
            source_url: URL returning three-line TLE text
            cache_key: Key for the cache entry
            ttl_hours: Maximum cache age in hours

        Returns:
            Raw TLE text

        Raises:
            FetchError: On network error or non-success HTTP status
        """
        with self.cache.lock_for(cache_key):
            cached = self.cache.get(cache_key, ttl_hours)
            if cached is not None:
                logger.info(f"Using cached TLE text for '{cache_key}'")
                return cached

            logger.info(f"Downloading TLE data from {source_url}")
            try:
                response = self.session.get(source_url, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise FetchError(source_url, str(e)) from e

            text = response.text
            try:
                self.cache.put(cache_key, text)
            except OSError as e:
                logger.warning(f"Could not cache TLE text for '{cache_key}': {e}")

            return text

    def try_fetch_elements(
        self, source_url: str, cache_key: str, ttl_hours: float = DEFAULT_TTL_HOURS
    ) -> FetchResult[str]:
        """Like fetch_elements, but returns a FetchResult instead of raising."""
        try:
            return FetchResult.success(self.fetch_elements(source_url, cache_key, ttl_hours))
        except FetchError as e:
            logger.warning(f"TLE source unavailable: {e}")
            return FetchResult.failure(e)
