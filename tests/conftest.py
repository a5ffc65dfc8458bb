"""Pytest configuration helpers.

Ensure the project root is on sys.path so tests can import the `src` package
when pytest is invoked from the repository root or an isolated test runner.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest


def pytest_configure():
    # Insert the repository root (parent of the tests directory) at the front
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def sample_fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def fixture_now():
    """Reference time the fixture directory's live timestamps are written against."""
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def london_origin():
    from src.utils.models import GeoPoint

    return GeoPoint(51.5074, -0.1278)


@pytest.fixture
def make_candidate():
    """Factory for ProviderCandidate with sensible defaults."""
    from src.utils.models import GeoPoint, ProviderCandidate

    def _make(
        provider_id="p1",
        base=(51.5074, -0.1278),
        live=None,
        share=False,
        radius=10.0,
        categories=("home",),
        **kwargs,
    ):
        return ProviderCandidate(
            id=provider_id,
            name=kwargs.pop("name", f"Locksmith {provider_id}"),
            base_location=GeoPoint(*base) if base is not None else None,
            share_location=share,
            live_location=GeoPoint(*live) if live is not None else None,
            service_radius_km=radius,
            categories=frozenset(categories),
            **kwargs,
        )

    return _make


class FakeLocation:
    def __init__(self, latitude, longitude):
        self.latitude = latitude
        self.longitude = longitude


class FakeGeocoder:
    """Stands in for a geopy geocoder: replays a scripted list of outcomes.

    Each outcome is either an exception instance (raised), None (no match) or a
    (lat, lon) tuple.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def geocode(self, query, exactly_one=True, country=None, timeout=None):
        self.calls.append(query)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return None
        return FakeLocation(*outcome)


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder
