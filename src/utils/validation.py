"""Validation utilities for postcodes, coordinates, and phone numbers.

Small, self-contained helpers used by the search page, the geocoder and the
provider directory.
"""

import math
import re
from typing import Tuple

UK_POSTCODE_PATTERN = re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2}$", re.IGNORECASE)


def validate_coordinates(lat: float, lon: float) -> Tuple[bool, str]:
    """
    Validate latitude and longitude coordinates.

    Args:
        lat: Latitude value
        lon: Longitude value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False, "Coordinates must be numeric"
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return False, "Coordinates must be numeric"

    if math.isnan(lat) or math.isnan(lon):
        return False, "Coordinates must not be NaN"

    if not (-90 <= lat <= 90):
        return False, "Latitude must be between -90 and 90"

    if not (-180 <= lon <= 180):
        return False, "Longitude must be between -180 and 180"

    return True, "Valid coordinates"


def format_uk_postcode(postcode: str) -> str:
    """
    Normalise a UK postcode to upper case with a single space before the inward code.

    "sw1a1aa" becomes "SW1A 1AA". Values that are not 5-8 characters long once
    whitespace is removed are returned unchanged.

    Args:
        postcode: Free-text postcode

    Returns:
        Formatted postcode, or the original value
    """
    if not postcode:
        return postcode

    cleaned = re.sub(r"\s+", "", postcode).upper()
    if len(cleaned) < 5 or len(cleaned) > 8:
        return postcode

    return f"{cleaned[:-3]} {cleaned[-3:]}"


def is_valid_uk_postcode(postcode: str) -> bool:
    if not postcode:
        return False
    return bool(UK_POSTCODE_PATTERN.match(postcode.strip()))


def validate_postcode_input(postcode: str) -> Tuple[bool, str]:
    """
    Validate the postcode typed into the search form.

    Args:
        postcode: Free-text postcode

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not postcode or not postcode.strip():
        return False, "Please enter a postcode"

    formatted = format_uk_postcode(postcode.strip())
    if not is_valid_uk_postcode(formatted):
        return False, "Postcode should look like 'M1 1AE' or 'SW1A 1AA'"

    return True, "Valid postcode"


def validate_phone_number(phone: str) -> Tuple[bool, str]:
    """
    Validate UK phone number format.

    Args:
        phone: Phone number string

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not phone.strip():
        return True, "Phone number is optional"

    # Remove common formatting
    cleaned = re.sub(r"[^\d+]", "", phone)

    if cleaned.startswith("+44"):
        cleaned = "0" + cleaned[3:]
    elif cleaned.startswith("44") and len(cleaned) == 12:
        cleaned = "0" + cleaned[2:]

    if "+" in cleaned:
        return False, "Only UK numbers are supported"
    if cleaned.startswith("0") and len(cleaned) in (10, 11):
        return True, "Valid phone number"
    return False, "Phone number must be 10 or 11 digits starting with 0 (or +44)"
