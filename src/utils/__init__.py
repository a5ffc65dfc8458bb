"""Utilities package for Locksmith Finder.

Re-export stable helper functions from the utility modules.
"""
# This module intentionally re-exports symbols from submodules. Flake8 F401
# warnings are expected for re-exported names and are silenced locally.
# flake8: noqa: F401

from .cleaning import (
    parse_bool,
    parse_categories,
    parse_timestamp,
    safe_numeric_conversion,
    validate_and_clean_coordinates,
    validate_provider_data,
)
from .errors import (
    DirectoryUnavailableError,
    GeocodingUnavailableError,
    InvalidInputError,
    InvalidPostcodeError,
    LocksmithFinderError,
    describe_search_error,
)
from .freshness import format_time_ago, get_location_status, is_live_location_fresh
from .geocoding import CachedPostcodeResolver, PostcodeResolver, approximate_postcode_location
from .io_utils import format_phone_number, results_to_frame, show_search_error
from .models import GeoPoint, MatchResult, ProviderCandidate
from .scoring import calculate_distances, estimate_eta_minutes, haversine_km, rank_by_distance
from .validation import (
    format_uk_postcode,
    is_valid_uk_postcode,
    validate_coordinates,
    validate_phone_number,
    validate_postcode_input,
)

__all__ = [
    # Models and errors
    "GeoPoint",
    "MatchResult",
    "ProviderCandidate",
    "DirectoryUnavailableError",
    "GeocodingUnavailableError",
    "InvalidInputError",
    "InvalidPostcodeError",
    "LocksmithFinderError",
    "describe_search_error",
    # Geometry
    "calculate_distances",
    "estimate_eta_minutes",
    "haversine_km",
    "rank_by_distance",
    # Geocoding
    "CachedPostcodeResolver",
    "PostcodeResolver",
    "approximate_postcode_location",
    # Cleaning and validation
    "format_uk_postcode",
    "is_valid_uk_postcode",
    "parse_bool",
    "parse_categories",
    "parse_timestamp",
    "safe_numeric_conversion",
    "validate_and_clean_coordinates",
    "validate_coordinates",
    "validate_phone_number",
    "validate_postcode_input",
    "validate_provider_data",
    # Freshness and display
    "format_phone_number",
    "format_time_ago",
    "get_location_status",
    "is_live_location_fresh",
    "results_to_frame",
    "show_search_error",
]
