"""Data loading package for Locksmith Finder."""

from .directory import ProviderDirectory, candidates_to_frame, records_to_candidates, row_to_candidate
from .io_utils import detect_file_format, load_dataframe, normalize_columns

__all__ = [
    "ProviderDirectory",
    "candidates_to_frame",
    "records_to_candidates",
    "row_to_candidate",
    "detect_file_format",
    "load_dataframe",
    "normalize_columns",
]
