"""Great-circle distance, ETA heuristic and distance ranking."""
import math
from typing import List, Optional, Sequence

import numpy as np

from .models import GeoPoint, MatchResult

EARTH_RADIUS_KM = 6371.0


def calculate_distances(
    origin_lat: float, origin_lon: float, latitudes: Sequence[float], longitudes: Sequence[float]
) -> List[Optional[float]]:
    lat_arr = np.radians(np.asarray(latitudes, dtype=float))
    lon_arr = np.radians(np.asarray(longitudes, dtype=float))
    origin_lat_rad = np.radians(float(origin_lat))
    origin_lon_rad = np.radians(float(origin_lon))

    valid = ~np.isnan(lat_arr) & ~np.isnan(lon_arr)
    dlat = lat_arr[valid] - origin_lat_rad
    dlon = lon_arr[valid] - origin_lon_rad
    a = np.sin(dlat / 2) ** 2 + np.cos(origin_lat_rad) * np.cos(lat_arr[valid]) * np.sin(dlon / 2) ** 2
    # Rounding can push a a hair above 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    distances = np.full(len(lat_arr), np.nan)
    distances[valid] = EARTH_RADIUS_KM * c

    return [None if np.isnan(d) else float(d) for d in distances]


def haversine_km(start: GeoPoint, end: GeoPoint) -> float:
    return calculate_distances(start.latitude, start.longitude, [end.latitude], [end.longitude])[0]


def estimate_eta_minutes(distance_km: float) -> int:
    """Linear travel-time estimate: two minutes per km plus ten minutes.

    Halves round up, so 2.25 km gives 15 minutes.
    """
    return int(math.floor(distance_km * 2 + 10 + 0.5))


def rank_by_distance(results: Sequence[MatchResult]) -> List[MatchResult]:
    return sorted(results, key=lambda r: r.distance_km)
