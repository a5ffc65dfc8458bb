"""
Shared I/O utilities for loading the provider directory table.

The directory can be exported from the backend in several formats, so this
module detects the format from the source name and hands back a DataFrame
with normalised column names.

Supported Formats:
- CSV (.csv)
- Excel (.xlsx)
- Parquet (.parquet)
- JSON records (.json), e.g. a REST export of the profiles table
- pandas DataFrames (pass-through with column normalization)

Sources may be local paths or http(s) URLs; pandas fetches URLs itself.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)


def is_remote_source(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def detect_file_format(filename: str) -> tuple[Optional[str], Optional[str]]:
    """Detect file format from the filename extension.

    Query strings on URLs are ignored.

    Args:
        filename: File name, path or URL

    Returns:
        Tuple of (format_type, engine) where:
        - format_type: 'csv', 'xlsx', 'parquet', 'json', or None
        - engine: 'openpyxl' for Excel files, otherwise None
    """
    fname_lower = filename.lower().split("?", 1)[0]
    if fname_lower.endswith(".csv"):
        return "csv", None
    if fname_lower.endswith(".xlsx"):
        return "xlsx", "openpyxl"
    if fname_lower.endswith(".parquet"):
        return "parquet", None
    if fname_lower.endswith(".json"):
        return "json", None
    return None, None


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(col).strip().lower().replace(" ", "_") for col in df.columns]
    return df


def load_dataframe(raw_input: Union[Path, str, pd.DataFrame]) -> pd.DataFrame:
    """Load the directory table from a path, URL or DataFrame.

    Args:
        raw_input: Data source

    Returns:
        pd.DataFrame with lower-case, underscore-separated column names

    Raises:
        FileNotFoundError: If a local path doesn't exist
        OSError: If a remote source can't be fetched
        ValueError: If the format is not supported
    """
    if isinstance(raw_input, pd.DataFrame):
        logger.info("Processing DataFrame with %d rows", len(raw_input))
        return normalize_columns(raw_input)

    source = str(raw_input)
    if not is_remote_source(source) and not Path(source).exists():
        raise FileNotFoundError(f"File not found: {source}")

    logger.info("Loading data from %s", source)
    format_type, engine = detect_file_format(source)

    if format_type == "csv":
        df = pd.read_csv(source, dtype={"id": str, "telephone_number": str})
    elif format_type == "xlsx":
        df = pd.read_excel(source, engine=engine, dtype={"id": str, "telephone_number": str})
    elif format_type == "parquet":
        df = pd.read_parquet(source)
    elif format_type == "json":
        df = pd.read_json(source, orient="records", dtype={"id": str, "telephone_number": str})
    else:
        raise ValueError(f"Unsupported directory source: {source} (expected .csv/.xlsx/.parquet/.json)")

    return normalize_columns(df)


__all__ = [
    "detect_file_format",
    "is_remote_source",
    "load_dataframe",
    "normalize_columns",
]
