"""Value types shared by the matcher, the provider directory and the UI.

GeoPoint and ProviderCandidate are immutable snapshots. MatchResult is derived
per search and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

from .validation import validate_coordinates


@dataclass(frozen=True)
class GeoPoint:
    """A WGS-84 latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        return validate_coordinates(self.latitude, self.longitude)[0]

    def as_tuple(self) -> tuple:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class ProviderCandidate:
    """Snapshot of one locksmith as read from the provider directory.

    Only the location fields, the service radius and the categories take part
    in matching. Contact fields are passed through to the presentation layer.
    """

    id: str
    name: str
    base_location: Optional[GeoPoint] = None
    share_location: bool = False
    live_location: Optional[GeoPoint] = None
    service_radius_km: float = 0.0
    categories: FrozenSet[str] = field(default_factory=frozenset)
    phone: Optional[str] = None
    website: Optional[str] = None
    hq_postcode: Optional[str] = None
    live_updated_at: Optional[datetime] = None

    def __post_init__(self):
        # Categories are lower-case tags whatever the caller passed in
        normalized = frozenset(c.strip().lower() for c in self.categories if c and c.strip())
        object.__setattr__(self, "categories", normalized)

    @property
    def is_sharing_live(self) -> bool:
        return self.share_location and self.live_location is not None

    @property
    def usable_location(self) -> Optional[GeoPoint]:
        if self.is_sharing_live:
            return self.live_location
        return self.base_location

    @property
    def is_eligible(self) -> bool:
        return self.usable_location is not None and self.service_radius_km > 0


@dataclass(frozen=True)
class MatchResult:
    """A candidate annotated with its distance and ETA from one search origin."""

    candidate: ProviderCandidate
    distance_km: float
    eta_minutes: int
    in_range: bool = True
    is_live: bool = False

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def location(self) -> GeoPoint:
        # Results only exist for eligible candidates, so this is never None
        return self.candidate.usable_location
