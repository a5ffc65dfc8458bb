"""Provider directory: loads locksmith records and validates them into candidates.

The directory is the boundary between the loosely typed backend export
(numeric strings, blank cells, optional live-location columns) and the strict
``ProviderCandidate`` snapshots the matcher works on. Every call to
``fetch_candidates`` reads the source again, so live positions are as fresh as
the source itself; nothing is cached here.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import pandas as pd

from src.utils.cleaning import (
    is_missing,
    parse_bool,
    parse_categories,
    parse_timestamp,
    safe_numeric_conversion,
    validate_and_clean_coordinates,
)
from src.utils.errors import DirectoryUnavailableError
from src.utils.freshness import DEFAULT_MAX_LIVE_AGE_MINUTES, is_live_location_fresh
from src.utils.geocoding import approximate_postcode_location
from src.utils.models import GeoPoint, ProviderCandidate

from .io_utils import load_dataframe

logger = logging.getLogger(__name__)

# Accepted spellings per field, first match wins
COLUMN_ALIASES: Dict[str, List[str]] = {
    "id": ["id", "profile_id", "user_id"],
    "name": ["company_name", "name", "fullname"],
    "phone": ["telephone_number", "phone", "phone_number"],
    "website": ["website", "url"],
    "service_radius": ["service_radius", "service_radius_km", "radius_km"],
    "latitude": ["latitude", "lat"],
    "longitude": ["longitude", "lon", "lng"],
    "share_location": ["share_location", "is_sharing"],
    "live_latitude": ["live_latitude", "live_lat"],
    "live_longitude": ["live_longitude", "live_lon", "live_lng"],
    "live_updated_at": ["live_updated_at", "date_updated", "location_updated_at"],
    "services": ["services", "services_offered", "categories", "service_type"],
    "postcode": ["postcode", "company_postcode", "hq_postcode"],
    "is_active": ["is_active", "is_activated"],
}

HQGeocoder = Callable[[str], Optional[GeoPoint]]


def _row_get(row: Dict[str, Any], field_name: str) -> Any:
    for key in COLUMN_ALIASES[field_name]:
        if key in row and not is_missing(row[key]):
            return row[key]
    return None


def _clean_text(value: Any) -> Optional[str]:
    if is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _point(lat: Any, lon: Any) -> Optional[GeoPoint]:
    lat_f = safe_numeric_conversion(lat)
    lon_f = safe_numeric_conversion(lon)
    if lat_f is None or lon_f is None:
        return None
    point = GeoPoint(lat_f, lon_f)
    return point if point.is_valid() else None


def row_to_candidate(
    row: Dict[str, Any],
    *,
    now: datetime,
    max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
    default_service_radius_km: Optional[float] = None,
    hq_geocoder: Optional[HQGeocoder] = None,
) -> Optional[ProviderCandidate]:
    """Validate one raw directory row.

    Returns None for rows that must not reach the matcher at all (no id, or
    deactivated). Rows that merely lack a location or radius are returned; the
    matcher treats them as ineligible.
    """
    provider_id = _clean_text(_row_get(row, "id"))
    if provider_id is None:
        logger.warning("Skipping directory row without an id (company: %s)", _row_get(row, "name"))
        return None

    if not parse_bool(_row_get(row, "is_active"), default=True):
        return None

    hq_postcode = _clean_text(_row_get(row, "postcode"))
    base_location = _point(_row_get(row, "latitude"), _row_get(row, "longitude"))
    if base_location is None and hq_postcode:
        if hq_geocoder is not None:
            base_location = hq_geocoder(hq_postcode)
        if base_location is None:
            base_location = approximate_postcode_location(hq_postcode)
        if base_location is not None:
            logger.debug("Placed %s at HQ postcode %s", provider_id, hq_postcode)

    share_location = parse_bool(_row_get(row, "share_location"))
    live_updated_at = parse_timestamp(_row_get(row, "live_updated_at"))
    live_location = _point(_row_get(row, "live_latitude"), _row_get(row, "live_longitude"))
    if live_location is not None and not (
        share_location and is_live_location_fresh(live_updated_at, max_age_minutes=max_live_age_minutes, now=now)
    ):
        live_location = None

    radius = safe_numeric_conversion(_row_get(row, "service_radius"))
    if radius is None and default_service_radius_km:
        radius = float(default_service_radius_km)

    return ProviderCandidate(
        id=provider_id,
        name=_clean_text(_row_get(row, "name")) or "Unknown Company",
        base_location=base_location,
        share_location=share_location,
        live_location=live_location,
        service_radius_km=radius if radius is not None else 0.0,
        categories=parse_categories(_row_get(row, "services")),
        phone=_clean_text(_row_get(row, "phone")),
        website=_clean_text(_row_get(row, "website")),
        hq_postcode=hq_postcode,
        live_updated_at=live_updated_at,
    )


def records_to_candidates(
    df: pd.DataFrame,
    *,
    now: Optional[datetime] = None,
    max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
    default_service_radius_km: Optional[float] = None,
    hq_geocoder: Optional[HQGeocoder] = None,
) -> List[ProviderCandidate]:
    """Convert a directory table into candidate snapshots, in table order."""
    if df is None or df.empty:
        return []

    now = now or datetime.now(timezone.utc)
    df = validate_and_clean_coordinates(df)

    candidates: List[ProviderCandidate] = []
    skipped = 0
    seen_ids = set()
    for row in df.to_dict(orient="records"):
        candidate = row_to_candidate(
            row,
            now=now,
            max_live_age_minutes=max_live_age_minutes,
            default_service_radius_km=default_service_radius_km,
            hq_geocoder=hq_geocoder,
        )
        if candidate is None:
            skipped += 1
            continue
        if candidate.id in seen_ids:
            logger.warning("Duplicate provider id %s in directory; keeping the first record", candidate.id)
            continue
        seen_ids.add(candidate.id)
        candidates.append(candidate)

    if skipped:
        logger.info("Skipped %d inactive or unidentified directory rows", skipped)
    return candidates


class ProviderDirectory:
    """Reads every locksmith from a tabular export of the backend.

    Args:
        source: Path, URL or DataFrame (or a zero-argument callable returning one)
        max_live_age_minutes: Live positions older than this fall back to HQ
        max_retries: Attempts for transient read failures
        retry_backoff_seconds: Linear backoff step between attempts
        default_service_radius_km: Radius for rows that don't declare one (None keeps them ineligible)
        hq_geocoder: Optional postcode lookup for rows without base coordinates
    """

    def __init__(
        self,
        source: Union[str, pd.DataFrame, Callable[[], pd.DataFrame]],
        max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
        default_service_radius_km: Optional[float] = None,
        hq_geocoder: Optional[HQGeocoder] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.max_live_age_minutes = float(max_live_age_minutes)
        self.max_retries = max(1, int(max_retries))
        self.retry_backoff_seconds = float(retry_backoff_seconds)
        self.default_service_radius_km = default_service_radius_km
        self.hq_geocoder = hq_geocoder
        self._sleep = sleep

    def _read(self) -> pd.DataFrame:
        if callable(self.source) and not isinstance(self.source, pd.DataFrame):
            return load_dataframe(self.source())
        return load_dataframe(self.source)

    def load_frame(self) -> pd.DataFrame:
        """Read the raw directory table, retrying transient I/O failures.

        Raises:
            DirectoryUnavailableError: when the source is missing, unreadable,
                or still failing after ``max_retries`` attempts
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                df = self._read()
                logger.info("Loaded %d directory rows", len(df))
                return df
            except FileNotFoundError as e:
                raise DirectoryUnavailableError(str(e)) from e
            except ValueError as e:
                raise DirectoryUnavailableError(f"Directory source could not be parsed: {e}") from e
            except OSError as e:
                if attempt >= self.max_retries:
                    logger.error("Directory read failed after %d attempts: %s", attempt, e)
                    raise DirectoryUnavailableError(f"Directory unavailable after {attempt} attempts: {e}") from e
                delay = self.retry_backoff_seconds * attempt
                logger.warning("Directory read attempt %d/%d failed (%s); retrying in %.1fs",
                               attempt, self.max_retries, e, delay)
                self._sleep(delay)
        raise DirectoryUnavailableError("Directory unavailable")  # pragma: no cover

    def to_candidates(self, df: pd.DataFrame, now: Optional[datetime] = None) -> List[ProviderCandidate]:
        return records_to_candidates(
            df,
            now=now,
            max_live_age_minutes=self.max_live_age_minutes,
            default_service_radius_km=self.default_service_radius_km,
            hq_geocoder=self.hq_geocoder,
        )

    def fetch_candidates(self, now: Optional[datetime] = None) -> List[ProviderCandidate]:
        """Return every provider regardless of distance, in directory order."""
        candidates = self.to_candidates(self.load_frame(), now=now)
        logger.info("Directory returned %d candidates", len(candidates))
        return candidates


def candidates_to_frame(
    candidates: Iterable[ProviderCandidate],
    now: Optional[datetime] = None,
    max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
) -> pd.DataFrame:
    """Flatten candidates for tables and the overview map."""
    from src.utils.freshness import format_time_ago, get_location_status

    rows = []
    for c in candidates:
        location = c.usable_location
        rows.append(
            {
                "ID": c.id,
                "Company": c.name,
                "Phone": c.phone or "",
                "Services": ", ".join(sorted(c.categories)),
                "Service Radius (km)": c.service_radius_km,
                "Latitude": location.latitude if location else None,
                "Longitude": location.longitude if location else None,
                "Location": get_location_status(c, now=now, max_age_minutes=max_live_age_minutes),
                "Last Live Update": format_time_ago(c.live_updated_at, now=now) if c.share_location else "",
                "Eligible": c.is_eligible,
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "ID",
            "Company",
            "Phone",
            "Services",
            "Service Radius (km)",
            "Latitude",
            "Longitude",
            "Location",
            "Last Live Update",
            "Eligible",
        ],
    )
