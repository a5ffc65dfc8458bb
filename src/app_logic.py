import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

from src.data.directory import ProviderDirectory
from src.utils.config import get_api_config, get_directory_config
from src.utils.errors import InvalidInputError
from src.utils.geocoding import CachedPostcodeResolver, PostcodeResolver
from src.utils.models import GeoPoint, MatchResult, ProviderCandidate
from src.utils.scoring import calculate_distances, estimate_eta_minutes

__all__ = [
    "build_postcode_resolver",
    "build_provider_directory",
    "filter_candidates_by_category",
    "get_unique_categories",
    "match",
    "run_search",
    "SearchOutcome",
    "SearchSession",
]

logger = logging.getLogger(__name__)


def _normalize_category(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    return category.strip().lower()


def filter_candidates_by_category(
    candidates: Iterable[ProviderCandidate], category: Optional[str]
) -> List[ProviderCandidate]:
    """Keep candidates offering ``category``.

    Comparison is case-insensitive and ignores surrounding whitespace. Only a
    missing (None) category keeps everything; a blank one matches nobody.
    """
    wanted = _normalize_category(category)
    if wanted is None:
        return list(candidates)
    return [c for c in candidates if wanted in c.categories]


def get_unique_categories(candidates: Iterable[ProviderCandidate]) -> list[str]:
    """Sorted list of every service category offered in the directory."""
    unique_categories = set()
    for candidate in candidates:
        unique_categories.update(candidate.categories)
    return sorted(unique_categories)


def match(
    origin: GeoPoint,
    candidates: Sequence[ProviderCandidate],
    category: Optional[str] = None,
) -> List[MatchResult]:
    """Select the providers able to serve ``origin``.

    Steps:
    1. Reject an out-of-range origin
    2. Drop candidates without a usable location or a positive radius
    3. Drop candidates not offering ``category`` (when given)
    4. Measure great-circle distance from each usable location
    5. Keep candidates whose radius reaches the origin (boundary inclusive)

    The output keeps input order; ranking is left to the caller.

    Args:
        origin: Search location
        candidates: Provider snapshots, e.g. from ``ProviderDirectory.fetch_candidates``
        category: Optional service category such as "home" or "car"

    Returns:
        List[MatchResult]: one entry per in-range candidate, possibly empty

    Raises:
        InvalidInputError: if ``origin`` is outside latitude/longitude bounds
    """
    if origin is None or not origin.is_valid():
        raise InvalidInputError(f"Invalid search origin: {origin}")

    working = [c for c in filter_candidates_by_category(candidates, category) if c.is_eligible]
    if not working:
        return []

    locations = [c.usable_location for c in working]
    distances = calculate_distances(
        origin.latitude,
        origin.longitude,
        [p.latitude for p in locations],
        [p.longitude for p in locations],
    )

    results = []
    for candidate, distance in zip(working, distances):
        if distance is None or distance > candidate.service_radius_km:
            continue
        results.append(
            MatchResult(
                candidate=candidate,
                distance_km=distance,
                eta_minutes=estimate_eta_minutes(distance),
                in_range=True,
                is_live=candidate.is_sharing_live,
            )
        )
    return results


@dataclass(frozen=True)
class SearchOutcome:
    """Everything one completed search produced."""

    origin: GeoPoint
    results: List[MatchResult] = field(default_factory=list)
    generation: int = 0
    searched_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not self.results


class SearchSession:
    """Generation counter for one user's searches.

    Each ``begin`` supersedes every earlier search. A caller holding an older
    generation must discard its outcome instead of displaying it.
    """

    def __init__(self):
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def reset(self) -> None:
        """Invalidate any in-flight search (e.g. when the form is cleared)."""
        with self._lock:
            self._generation += 1


def run_search(postcode, resolver, directory, category=None, session=None, now=None) -> SearchOutcome:
    """Run one customer search end to end.

    Resolves the postcode, then fetches candidates, then matches. Errors from
    the resolver or the directory propagate unchanged and the matcher is not
    called, so there are never partial results.

    Args:
        postcode: Free-text postcode entered by the customer
        resolver: Object with ``resolve(postcode) -> GeoPoint``
        directory: Object with ``fetch_candidates(now=None) -> list[ProviderCandidate]``
        category: Optional service category
        session: Optional SearchSession; the outcome carries the generation it started
        now: Reference time for live-location freshness

    Returns:
        SearchOutcome
    """
    generation = session.begin() if session is not None else 0
    logger.info("Search %d started for %r (category=%s)", generation, postcode, category or "any")

    origin = resolver.resolve(postcode)
    candidates = directory.fetch_candidates(now=now)
    results = match(origin, candidates, category)

    logger.info(
        "Search %d matched %d of %d providers",
        generation,
        len(results),
        len(candidates),
    )
    if session is not None and not session.is_current(generation):
        logger.info("Search %d was superseded before it finished", generation)

    return SearchOutcome(origin=origin, results=results, generation=generation, searched_at=now)


def build_postcode_resolver(config: Optional[dict] = None) -> PostcodeResolver:
    """Create the postcode resolver from the ``[geocoding]`` secrets section."""
    config = config if config is not None else get_api_config("geocoding")
    return PostcodeResolver(
        access_token=config.get("mapbox_access_token", ""),
        country=config.get("country", "GB"),
        timeout=float(config.get("request_timeout", 10)),
        min_delay_seconds=float(config.get("rate_limit_delay", 0.0)),
        max_retries=int(config.get("max_retries", 2)),
        error_wait_seconds=float(config.get("error_wait_seconds", 1.0)),
    )


def build_provider_directory(
    config: Optional[dict] = None,
    resolver: Optional[Union[PostcodeResolver, CachedPostcodeResolver]] = None,
) -> ProviderDirectory:
    """Create the provider directory from the ``[directory]`` secrets section.

    When a configured resolver is given, providers without base coordinates
    are placed by geocoding their HQ postcode. Lookups go through the
    postcode cache so repeat searches don't geocode the same HQ again.
    """
    config = config if config is not None else get_directory_config()
    hq_geocoder = None
    if config.get("geocode_hq_postcodes", True) and resolver is not None and resolver.is_configured:
        if not isinstance(resolver, CachedPostcodeResolver):
            resolver = CachedPostcodeResolver(resolver)
        hq_geocoder = resolver.try_resolve
    return ProviderDirectory(
        source=config.get("source", "data/locksmiths.csv"),
        max_live_age_minutes=float(config.get("max_live_age_minutes", 15)),
        max_retries=int(config.get("max_retries", 3)),
        retry_backoff_seconds=float(config.get("retry_backoff_seconds", 1.0)),
        default_service_radius_km=float(config.get("default_service_radius_km", 0)) or None,
        hq_geocoder=hq_geocoder,
    )
