"""
Configuration and secrets management for the Locksmith Finder app.

Values come from Streamlit's secrets management (``.streamlit/secrets.toml``)
with defaults for everything, so the app and the tests run without a secrets
file. The matcher never reads configuration; the UI builds the postcode
resolver and the provider directory from these dictionaries and passes the
values into their constructors.

Usage:
    from src.utils.config import get_api_config, get_directory_config

    geocoding_config = get_api_config("geocoding")
    token = geocoding_config.get("mapbox_access_token")

Example secrets.toml:
    [geocoding]
    mapbox_access_token = "pk.xxx"

    [directory]
    source = "data/locksmiths.csv"
    max_live_age_minutes = 15
"""

import logging
from typing import Any, Dict

import streamlit as st

logger = logging.getLogger(__name__)


def get_secret(key_path: str, default: Any = None) -> Any:
    """
    Safely retrieve a secret from Streamlit's secrets management.

    Args:
        key_path: Dot-notation path to the secret (e.g., 'geocoding.mapbox_access_token')
        default: Default value if secret is not found

    Returns:
        The secret value or default if not found

    Examples:
        >>> get_secret('directory.source', 'data/locksmiths.csv')
        >>> get_secret('app.debug_mode', False)
    """
    try:
        keys = key_path.split(".")
        value = st.secrets

        for key in keys:
            try:
                value = value[key]
            except Exception:
                # Missing key, missing section or no secrets file at all
                return default

        return value
    except Exception as e:
        logger.warning(f"Failed to retrieve secret '{key_path}': {e}")
        return default


def get_api_config(api_name: str) -> Dict[str, Any]:
    """
    Get configuration for a specific external API.

    Args:
        api_name: Name of the API (currently only 'geocoding')

    Returns:
        Dictionary containing the API configuration
    """
    if api_name == "geocoding":
        return {
            "mapbox_access_token": get_secret("geocoding.mapbox_access_token", ""),
            "country": get_secret("geocoding.country", "GB"),
            "request_timeout": get_secret("geocoding.request_timeout", 10),
            "rate_limit_delay": get_secret("geocoding.rate_limit_delay", 0.0),
            "max_retries": get_secret("geocoding.max_retries", 2),
            "error_wait_seconds": get_secret("geocoding.error_wait_seconds", 1.0),
        }
    else:
        return {}


def get_directory_config() -> Dict[str, Any]:
    """
    Get provider directory configuration.

    Returns:
        Dictionary containing directory configuration
    """
    return {
        "source": get_secret("directory.source", "data/locksmiths.csv"),
        "max_live_age_minutes": get_secret("directory.max_live_age_minutes", 15),
        "max_retries": get_secret("directory.max_retries", 3),
        "retry_backoff_seconds": get_secret("directory.retry_backoff_seconds", 1.0),
        # 0 leaves rows without a declared radius ineligible
        "default_service_radius_km": get_secret("directory.default_service_radius_km", 0),
        "geocode_hq_postcodes": get_secret("directory.geocode_hq_postcodes", True),
    }


def get_search_config() -> Dict[str, Any]:
    return {
        "default_service_type": get_secret("search.default_service_type", "home"),
        "service_types": get_secret("search.service_types", ["home", "car", "commercial"]),
        "sort_by_distance": get_secret("search.sort_by_distance", True),
    }


def get_app_config() -> Dict[str, Any]:
    """
    Get general application configuration.

    Returns:
        Dictionary containing app configuration
    """
    return {
        "environment": get_secret("app.environment", "production"),
        "debug_mode": get_secret("app.debug_mode", False),
        "log_level": get_secret("app.log_level", "INFO"),
    }


def is_api_enabled(api_name: str) -> bool:
    """
    Check if a specific API is properly configured.

    Args:
        api_name: Name of the API to check

    Returns:
        True if the API has its required configuration
    """
    if api_name == "mapbox":
        config = get_api_config("geocoding")
        return bool(config["mapbox_access_token"])
    elif api_name == "directory":
        return bool(get_directory_config()["source"])
    else:
        return False


def validate_configuration() -> Dict[str, str]:
    """
    Validate the application configuration and return any warnings or errors.

    Returns:
        Dictionary with configuration validation results
    """
    issues = {}

    if not is_api_enabled("mapbox"):
        issues["geocoding"] = "No Mapbox access token configured; postcode search is disabled"

    directory_config = get_directory_config()
    if not directory_config["source"]:
        issues["directory"] = "No provider directory source configured"
    try:
        if float(directory_config["max_live_age_minutes"]) <= 0:
            issues["directory"] = "max_live_age_minutes must be positive"
    except (TypeError, ValueError):
        issues["directory"] = "max_live_age_minutes must be a number"

    app_config = get_app_config()
    if app_config["environment"] not in ["development", "staging", "production"]:
        issues["app"] = f"Unknown environment: {app_config['environment']}"

    return issues
