"""
Streamlit app entrypoint - logging setup and page navigation.

This module configures logging from the ``[app]`` secrets section, surfaces
configuration problems once per session and hands over to the multipage
navigation (Home, Find a Locksmith, Provider Map, How It Works).
"""

from __future__ import annotations

import logging
from pathlib import Path

import streamlit as st

from src.utils.config import get_app_config, validate_configuration

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_nav_items = [
    ("pages/0_🏠_home.py", "Home", "🏠"),
    ("pages/1_🔎_Find_a_Locksmith.py", "Find a Locksmith", "🔎"),
    ("pages/20_🗺️_Provider_Map.py", "Provider Map", "🗺️"),
    ("pages/10_🛠️_How_It_Works.py", "How It Works", "🛠️"),
]


def configure_logging() -> None:
    app_config = get_app_config()
    level_name = "DEBUG" if app_config.get("debug_mode") else str(app_config.get("log_level", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


def report_configuration_issues() -> None:
    """Log configuration problems once per browser session."""
    if st.session_state.get("_config_checked"):
        return
    st.session_state["_config_checked"] = True
    for section, issue in validate_configuration().items():
        logger.warning("Configuration issue [%s]: %s", section, issue)


def _build_and_run_app():
    """Build navigation and run the selected page.

    Encapsulated so pages importing this module don't render navigation twice.
    """
    st.set_page_config(page_title="Locksmith Finder", page_icon="🔑", layout="wide")
    configure_logging()
    report_configuration_issues()

    nav_pages = [st.Page(path, title=title, icon=icon) for path, title, icon in _nav_items if Path(path).exists()]
    pg = st.navigation(nav_pages)
    pg.run()


if __name__ == "__main__":
    _build_and_run_app()
