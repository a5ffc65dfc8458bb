"""Coercion helpers and data-quality checks for raw provider tables."""
import logging
import numbers
from datetime import datetime, timezone
from typing import Any, FrozenSet, Optional

import pandas as pd

from .validation import validate_phone_number

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"yes", "y", "true", "t", "1", "on"}

# Treated as missing when read back from CSV / Excel exports
_EMPTY_STRINGS = {"", "nan", "none", "null", "nat"}


def _phone_text(value: Any) -> str:
    # Numeric cells lose the leading 0 of UK numbers
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return "0" + str(int(value))
    return str(value)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _EMPTY_STRINGS
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def safe_numeric_conversion(value: Any, default: Optional[float] = None) -> Optional[float]:
    if isinstance(value, bool):
        return default
    try:
        if is_missing(value):
            return default
        return float(str(value).strip()) if isinstance(value, str) else float(value)
    except (ValueError, TypeError):
        return default


def parse_bool(value: Any, default: bool = False) -> bool:
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def parse_categories(value: Any) -> FrozenSet[str]:
    """Turn "Home, Car" or ["home", "car"] into frozenset({"home", "car"})."""
    if isinstance(value, (list, tuple, set, frozenset)):
        parts = [str(v) for v in value if not is_missing(v)]
    elif is_missing(value):
        return frozenset()
    else:
        parts = str(value).split(",")
    return frozenset(p.strip().lower() for p in parts if p.strip())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (or datetime) into an aware UTC datetime.

    Naive values are assumed to be UTC, matching how the backend stores them.
    """
    if is_missing(value):
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize(timezone.utc)
    return ts.tz_convert(timezone.utc).to_pydatetime()


def validate_and_clean_coordinates(
    df: pd.DataFrame, lat_col: str = "latitude", lon_col: str = "longitude"
) -> pd.DataFrame:
    if df.empty:
        return df

    df = df.copy()
    if lat_col in df.columns:
        df[lat_col] = pd.to_numeric(df[lat_col], errors="coerce")
    if lon_col in df.columns:
        df[lon_col] = pd.to_numeric(df[lon_col], errors="coerce")

    if lat_col in df.columns and lon_col in df.columns:
        invalid_lat = (df[lat_col] < -90) | (df[lat_col] > 90)
        invalid_lon = (df[lon_col] < -180) | (df[lon_col] > 180)
        invalid_coords = invalid_lat | invalid_lon
        if invalid_coords.any():
            invalid_count = int(invalid_coords.sum())
            logger.warning(
                "%d providers have out-of-range %s/%s values; treating them as missing",
                invalid_count,
                lat_col,
                lon_col,
            )
            df.loc[invalid_coords, [lat_col, lon_col]] = float("nan")

    return df


def validate_provider_data(df: pd.DataFrame) -> tuple[bool, str]:
    if df.empty:
        return False, "❌ **Error**: No locksmith data available. Please check the directory source."

    issues = []
    info = []

    required_cols = ["id", "company_name"]
    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        issues.append(f"Missing required columns: {', '.join(missing_cols)}")

    if "latitude" in df.columns and "longitude" in df.columns:
        lat = pd.to_numeric(df["latitude"], errors="coerce")
        lon = pd.to_numeric(df["longitude"], errors="coerce")
        missing_coords = int((lat.isna() | lon.isna()).sum())
        if missing_coords > 0:
            issues.append(f"{missing_coords} locksmiths missing base coordinates")
    else:
        info.append("Base coordinate columns missing (providers will be placed from HQ postcodes)")

    if "service_radius" in df.columns:
        radius = pd.to_numeric(df["service_radius"], errors="coerce")
        bad_radius = int((radius.isna() | (radius <= 0)).sum())
        if bad_radius > 0:
            issues.append(f"{bad_radius} locksmiths have no positive service radius")
        else:
            info.append(f"Average service radius: {radius.mean():.1f} km")
    else:
        issues.append("Missing required columns: service_radius")

    phone_col = next((c for c in ("telephone_number", "phone", "phone_number") if c in df.columns), None)
    if phone_col is not None:
        phones = df[phone_col].dropna().map(_phone_text)
        bad_phones = sum(1 for p in phones if not validate_phone_number(p)[0])
        if bad_phones > 0:
            info.append(f"{bad_phones} locksmiths have an unrecognised phone number")

    if "share_location" in df.columns:
        sharing = int(df["share_location"].apply(parse_bool).sum())
        info.append(f"{sharing} locksmiths share a live location")

    total_providers = len(df)
    info.append(f"Total locksmiths in directory: {total_providers}")

    message_parts = []
    if issues:
        message_parts.append("⚠️ **Data Quality Issues**: " + "; ".join(issues))
    if info:
        message_parts.append("ℹ️ **Data Summary**: " + "; ".join(info))

    is_valid = len(issues) == 0
    message = "\n\n".join(message_parts)
    return is_valid, message
