"""Display helpers: phone formatting, result tables and the streamlit error handler."""
import logging
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd
import streamlit as st

from .errors import InvalidPostcodeError, LocksmithFinderError, describe_search_error
from .freshness import DEFAULT_MAX_LIVE_AGE_MINUTES, get_location_status
from .models import MatchResult

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["Rank", "Company", "Phone", "Website", "Distance (km)", "ETA (min)", "Location"]


def format_phone_number(phone):
    """
    Convert a UK phone number to its usual display grouping.

    "02079460000" -> "020 7946 0000", "07700900123" -> "07700 900123".
    Handles float, int and string input, and +44 prefixes.

    Args:
        phone: Phone number as float, int, or string

    Returns:
        Formatted phone string or original value if formatting fails
    """
    if phone is None or (not isinstance(phone, str) and pd.isna(phone)):
        return None

    if isinstance(phone, float):
        phone = int(phone)
    phone_str = str(phone).strip()
    digits = "".join(filter(str.isdigit, phone_str))

    if digits.startswith("44") and len(digits) == 12:
        digits = "0" + digits[2:]
    elif isinstance(phone, int) and len(digits) == 10 and not digits.startswith("0"):
        # Leading zero lost when the number was stored as a number
        digits = "0" + digits

    if len(digits) == 11 and digits.startswith("02"):
        return f"{digits[:3]} {digits[3:7]} {digits[7:]}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"{digits[:5]} {digits[5:]}"
    if len(digits) == 10 and digits.startswith("0"):
        return f"{digits[:4]} {digits[4:]}"
    return phone_str


def results_to_frame(
    results: Sequence[MatchResult],
    now: Optional[datetime] = None,
    max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
) -> pd.DataFrame:
    """Build the numbered results table shown under the map.

    Rows keep the order of ``results``; rank them first if needed.
    """
    rows = []
    for rank, result in enumerate(results, start=1):
        candidate = result.candidate
        rows.append(
            {
                "Rank": rank,
                "Company": candidate.name,
                "Phone": format_phone_number(candidate.phone) or "",
                "Website": candidate.website or "",
                "Distance (km)": round(result.distance_km, 1),
                "ETA (min)": result.eta_minutes,
                "Location": get_location_status(candidate, now=now, max_age_minutes=max_live_age_minutes),
            }
        )
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def show_search_error(error: Exception) -> None:
    message = describe_search_error(error)
    if isinstance(error, InvalidPostcodeError):
        st.warning(message)
        return
    st.error(message)
    if not isinstance(error, LocksmithFinderError):
        logger.exception("Unexpected search failure", exc_info=error)
        st.exception(error)
