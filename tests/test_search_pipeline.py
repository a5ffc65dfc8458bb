"""Tests for the search pipeline: call order, error propagation and supersession."""
from unittest.mock import patch

import pandas as pd
import pytest

from src.app_logic import (
    SearchOutcome,
    SearchSession,
    build_postcode_resolver,
    build_provider_directory,
    run_search,
)
from src.utils.errors import DirectoryUnavailableError, GeocodingUnavailableError, InvalidPostcodeError
from src.utils.geocoding import AREA_COORDINATES, PostcodeResolver, lookup_hq_postcode_with_cache
from src.utils.models import GeoPoint


class RecordingResolver:
    def __init__(self, calls, point=None, error=None):
        self.calls = calls
        self.point = point
        self.error = error

    def resolve(self, postcode):
        self.calls.append(("resolve", postcode))
        if self.error:
            raise self.error
        return self.point


class RecordingDirectory:
    def __init__(self, calls, candidates=None, error=None):
        self.calls = calls
        self.candidates = candidates or []
        self.error = error

    def fetch_candidates(self, now=None):
        self.calls.append(("fetch", now))
        if self.error:
            raise self.error
        return self.candidates


def test_resolves_then_fetches_then_matches(london_origin, make_candidate):
    calls = []
    candidates = [make_candidate("near", base=(51.5114, -0.1368)), make_candidate("far", base=(53.48, -2.24))]

    outcome = run_search(
        "SW1A 1AA",
        RecordingResolver(calls, point=london_origin),
        RecordingDirectory(calls, candidates),
        category="home",
    )

    assert [c[0] for c in calls] == ["resolve", "fetch"]
    assert isinstance(outcome, SearchOutcome)
    assert outcome.origin == london_origin
    assert [r.id for r in outcome.results] == ["near"]
    assert not outcome.is_empty


def test_no_results_is_an_empty_outcome(london_origin):
    outcome = run_search("SW1A 1AA", RecordingResolver([], point=london_origin), RecordingDirectory([]))

    assert outcome.is_empty
    assert outcome.results == []


@pytest.mark.parametrize(
    "error",
    [InvalidPostcodeError("ZZ9 9ZZ"), GeocodingUnavailableError("Service unavailable")],
)
def test_resolver_errors_stop_the_pipeline(error):
    calls = []

    with patch("src.app_logic.match") as mock_match:
        with pytest.raises(type(error)):
            run_search("ZZ9 9ZZ", RecordingResolver(calls, error=error), RecordingDirectory(calls))

    assert calls == [("resolve", "ZZ9 9ZZ")], "Directory must not be queried after a failed lookup"
    mock_match.assert_not_called()


def test_directory_error_propagates_without_matching(london_origin):
    calls = []

    with patch("src.app_logic.match") as mock_match:
        with pytest.raises(DirectoryUnavailableError):
            run_search(
                "SW1A 1AA",
                RecordingResolver(calls, point=london_origin),
                RecordingDirectory(calls, error=DirectoryUnavailableError("down")),
            )

    mock_match.assert_not_called()


class TestSearchSession:
    def test_outcome_carries_generation(self, london_origin):
        session = SearchSession()

        first = run_search("A", RecordingResolver([], point=london_origin), RecordingDirectory([]), session=session)
        second = run_search("B", RecordingResolver([], point=london_origin), RecordingDirectory([]), session=session)

        assert (first.generation, second.generation) == (1, 2)
        assert not session.is_current(first.generation), "Older search is superseded"
        assert session.is_current(second.generation)

    def test_search_superseded_while_in_flight(self, london_origin):
        session = SearchSession()

        class InterruptingDirectory(RecordingDirectory):
            def fetch_candidates(self, now=None):
                session.begin()  # a newer search starts meanwhile
                return super().fetch_candidates(now)

        outcome = run_search(
            "A", RecordingResolver([], point=london_origin), InterruptingDirectory([]), session=session
        )

        assert not session.is_current(outcome.generation)

    def test_reset_invalidates(self):
        session = SearchSession()
        generation = session.begin()

        session.reset()

        assert not session.is_current(generation)


class TestFactories:
    def test_resolver_without_token_is_unconfigured(self):
        resolver = build_postcode_resolver({"mapbox_access_token": ""})

        assert not resolver.is_configured
        assert resolver.country == "GB"

    def test_resolver_with_token(self):
        resolver = build_postcode_resolver({"mapbox_access_token": "pk.test", "request_timeout": 5})

        assert resolver.is_configured
        assert resolver.timeout == 5.0

    def test_directory_uses_resolver_for_hq_postcodes(self):
        resolver = build_postcode_resolver({"mapbox_access_token": "pk.test"})

        directory = build_provider_directory(
            {"source": "data/locksmiths.csv", "max_live_age_minutes": 30, "default_service_radius_km": 0},
            resolver=resolver,
        )

        assert directory.hq_geocoder.__self__.resolver is resolver
        assert directory.max_live_age_minutes == 30.0
        assert directory.default_service_radius_km is None

    def test_directory_without_configured_resolver(self):
        directory = build_provider_directory({"source": "x.csv"}, resolver=build_postcode_resolver({}))

        assert directory.hq_geocoder is None
        assert directory.max_retries == 3

    def test_hq_postcodes_are_geocoded_once_across_searches(self, fake_geocoder):
        lookup_hq_postcode_with_cache.clear()
        geocoder = fake_geocoder([(52.4862, -1.8904)])
        resolver = PostcodeResolver(geocoder=geocoder, error_wait_seconds=0)
        source = pd.DataFrame(
            {
                "id": ["h1", "h2"],
                "company_name": ["HQ One", "HQ Two"],
                "service_radius": [10, 10],
                "postcode": ["B1 1BB", "B2 4QA"],
            }
        )
        directory = build_provider_directory({"source": source}, resolver=resolver)

        first = directory.fetch_candidates()
        second = directory.fetch_candidates()

        assert geocoder.calls == ["B1 1BB", "B2 4QA"]
        assert [c.base_location for c in second] == [c.base_location for c in first]
        assert first[0].base_location == GeoPoint(52.4862, -1.8904)

    def test_unmatched_hq_postcode_is_not_looked_up_again(self, fake_geocoder):
        lookup_hq_postcode_with_cache.clear()
        geocoder = fake_geocoder([None])
        resolver = PostcodeResolver(geocoder=geocoder, error_wait_seconds=0)
        source = pd.DataFrame(
            {"id": ["h1"], "company_name": ["HQ One"], "service_radius": [10], "postcode": ["M4 9ZZ"]}
        )
        directory = build_provider_directory({"source": source}, resolver=resolver)

        directory.fetch_candidates()
        candidate = directory.fetch_candidates()[0]

        assert geocoder.calls == ["M4 9ZZ"]
        assert candidate.base_location == AREA_COORDINATES["M"]
