"""Postcode geocoding with retries, caching and an offline area fallback."""
import logging
import re
from typing import Any, Dict, Optional

import streamlit as st
from geopy.exc import GeocoderServiceError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import MapBox

from .errors import GeocodingUnavailableError, InvalidPostcodeError
from .models import GeoPoint
from .validation import format_uk_postcode, is_valid_uk_postcode

logger = logging.getLogger(__name__)

# Exact postcodes known to geocode badly
KNOWN_POSTCODES: Dict[str, GeoPoint] = {
    "M33 5HW": GeoPoint(53.4032, -2.3231),
    "M41 9HE": GeoPoint(53.4512, -2.3650),
}

# Postcode area (leading letters) -> city centre
AREA_COORDINATES: Dict[str, GeoPoint] = {
    "M": GeoPoint(53.4808, -2.2426),  # Manchester
    "L": GeoPoint(53.4084, -2.9916),  # Liverpool
    "B": GeoPoint(52.4862, -1.8904),  # Birmingham
    "S": GeoPoint(53.3811, -1.4701),  # Sheffield
    "LS": GeoPoint(53.8008, -1.5491),  # Leeds
}

_AREA_PATTERN = re.compile(r"^[A-Z]{1,2}")


class PostcodeResolver:
    """Resolve free-text postcodes to coordinates through Mapbox.

    All configuration is passed in; nothing is read from the environment. A
    ready-made geopy geocoder may be supplied instead of an access token.
    """

    def __init__(
        self,
        access_token: str = "",
        country: str = "GB",
        timeout: float = 10,
        min_delay_seconds: float = 0.0,
        max_retries: int = 2,
        error_wait_seconds: float = 1.0,
        geocoder: Optional[Any] = None,
    ):
        self.country = country
        self.timeout = timeout
        if geocoder is None and access_token:
            geocoder = MapBox(api_key=access_token, timeout=timeout, user_agent="locksmith_finder")
        self._geocoder = geocoder
        self._geocode = None
        if geocoder is not None:
            self._geocode = RateLimiter(
                geocoder.geocode,
                min_delay_seconds=min_delay_seconds,
                max_retries=max_retries,
                error_wait_seconds=error_wait_seconds,
                swallow_exceptions=False,
            )

    @property
    def is_configured(self) -> bool:
        return self._geocode is not None

    def resolve(self, text: str) -> GeoPoint:
        """Resolve a postcode to a GeoPoint.

        Raises:
            InvalidPostcodeError: blank or malformed input, or no match
            GeocodingUnavailableError: service unreachable, failing, or not configured
        """
        if not text or not text.strip():
            raise InvalidPostcodeError(text or "", "Postcode is empty")

        postcode = text.strip()
        if self.country.upper() == "GB":
            postcode = format_uk_postcode(postcode)
            if not is_valid_uk_postcode(postcode):
                raise InvalidPostcodeError(text, "Not a valid UK postcode")

        if self._geocode is None:
            raise GeocodingUnavailableError("Map configuration is missing: no Mapbox access token")

        logger.info("Geocoding postcode %s", postcode)
        try:
            location = self._geocode(postcode, exactly_one=True, country=self.country, timeout=self.timeout)
        except GeocoderServiceError as e:
            logger.warning("Geocoding failed for %s: %s: %s", postcode, type(e).__name__, e)
            raise GeocodingUnavailableError(f"Postcode lookup failed ({type(e).__name__}): {e}") from e

        if location is None:
            logger.info("No geocoding match for %s", postcode)
            raise InvalidPostcodeError(postcode)

        try:
            point = GeoPoint(float(location.latitude), float(location.longitude))
        except (AttributeError, TypeError, ValueError) as e:
            raise GeocodingUnavailableError(f"Malformed geocoding response for '{postcode}'") from e
        if not point.is_valid():
            raise GeocodingUnavailableError(f"Geocoding returned out-of-range coordinates for '{postcode}'")

        logger.info("Postcode %s resolved to %.5f, %.5f", postcode, point.latitude, point.longitude)
        return point

    def try_resolve(self, text: str) -> Optional[GeoPoint]:
        """Resolve, returning None instead of raising. Used for HQ postcodes."""
        try:
            return self.resolve(text)
        except (InvalidPostcodeError, GeocodingUnavailableError) as e:
            logger.debug("HQ postcode %r not resolved: %s", text, e)
            return None


@st.cache_data(ttl=3600)
def resolve_postcode_with_cache(postcode: str, _resolver: PostcodeResolver) -> GeoPoint:
    return _resolver.resolve(postcode)


@st.cache_data(ttl=3600)
def lookup_hq_postcode_with_cache(postcode: str, _resolver: PostcodeResolver) -> Optional[GeoPoint]:
    """Cached HQ lookup. A postcode with no match is cached as None; outages are not cached."""
    try:
        return _resolver.resolve(postcode)
    except InvalidPostcodeError as e:
        logger.debug("HQ postcode %r not resolved: %s", postcode, e)
        return None


def approximate_postcode_location(postcode: str) -> Optional[GeoPoint]:
    """Offline fallback: an exact known postcode, else its area's city centre."""
    if not postcode or not postcode.strip():
        return None

    formatted = format_uk_postcode(postcode.strip()).upper()
    if formatted in KNOWN_POSTCODES:
        return KNOWN_POSTCODES[formatted]

    area = _AREA_PATTERN.match(formatted)
    if area:
        return AREA_COORDINATES.get(area.group(0))
    return None


class CachedPostcodeResolver:
    """Resolver facade that answers repeat lookups from the streamlit cache."""

    def __init__(self, resolver: PostcodeResolver):
        self.resolver = resolver

    @property
    def is_configured(self) -> bool:
        return self.resolver.is_configured

    def resolve(self, text: str) -> GeoPoint:
        return resolve_postcode_with_cache(text, _resolver=self.resolver)

    def try_resolve(self, text: str) -> Optional[GeoPoint]:
        try:
            return lookup_hq_postcode_with_cache(text, _resolver=self.resolver)
        except GeocodingUnavailableError as e:
            logger.debug("HQ postcode %r not resolved: %s", text, e)
            return None
