"""Tests for the provider directory boundary: loading, validation and retries."""
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from src.app_logic import match
from src.data.directory import ProviderDirectory, candidates_to_frame, records_to_candidates
from src.utils.errors import DirectoryUnavailableError
from src.utils.geocoding import AREA_COORDINATES
from src.utils.models import GeoPoint


@pytest.fixture
def fixture_directory(sample_fixtures_dir):
    return ProviderDirectory(source=str(sample_fixtures_dir / "locksmiths.csv"))


@pytest.fixture
def fixture_candidates(fixture_directory, fixture_now):
    return {c.id: c for c in fixture_directory.fetch_candidates(now=fixture_now)}


class TestFetchCandidates:
    def test_skips_inactive_and_unidentified_rows(self, fixture_directory, fixture_now):
        candidates = fixture_directory.fetch_candidates(now=fixture_now)

        assert [c.id for c in candidates] == ["L1", "L2", "L3", "L6", "L7", "L8"]

    def test_fresh_live_location_is_kept(self, fixture_candidates):
        fresh = fixture_candidates["L1"]

        assert fresh.is_sharing_live
        assert fresh.usable_location == GeoPoint(51.5155, -0.1419)
        assert fresh.categories == frozenset({"home", "car"})
        assert fresh.phone == "07700900001", "Leading zero must survive loading"

    def test_stale_live_location_falls_back_to_base(self, fixture_candidates):
        stale = fixture_candidates["L2"]

        assert stale.share_location is True
        assert stale.live_location is None
        assert stale.usable_location == GeoPoint(53.4808, -2.2426)
        assert stale.live_updated_at == datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc)

    def test_longer_staleness_window_keeps_live_location(self, sample_fixtures_dir, fixture_now):
        directory = ProviderDirectory(source=str(sample_fixtures_dir / "locksmiths.csv"), max_live_age_minutes=120)

        stale = {c.id: c for c in directory.fetch_candidates(now=fixture_now)}["L2"]

        assert stale.is_sharing_live

    def test_future_live_timestamp_falls_back_to_base(self, fixture_now):
        df = pd.DataFrame(
            {
                "id": ["F1"],
                "company_name": ["Future Fix"],
                "latitude": [53.4808],
                "longitude": [-2.2426],
                "service_radius": [10],
                "share_location": ["yes"],
                "live_latitude": [51.5],
                "live_longitude": [-0.12],
                "live_updated_at": [(fixture_now + timedelta(days=3)).isoformat()],
            }
        )

        candidate = records_to_candidates(df, now=fixture_now)[0]

        assert candidate.live_location is None
        assert candidate.usable_location == GeoPoint(53.4808, -2.2426)

    def test_postcode_only_row_placed_at_area_centre(self, fixture_candidates):
        assert fixture_candidates["L6"].base_location == AREA_COORDINATES["M"]
        assert fixture_candidates["L6"].hq_postcode == "M1 1AE"

    def test_hq_geocoder_is_preferred_over_area_centre(self, sample_fixtures_dir, fixture_now):
        looked_up = []

        def hq_geocoder(postcode):
            looked_up.append(postcode)
            return GeoPoint(53.4772, -2.2309)

        directory = ProviderDirectory(source=str(sample_fixtures_dir / "locksmiths.csv"), hq_geocoder=hq_geocoder)
        candidates = {c.id: c for c in directory.fetch_candidates(now=fixture_now)}

        assert looked_up == ["M1 1AE"]
        assert candidates["L6"].base_location == GeoPoint(53.4772, -2.2309)

    def test_missing_radius_is_ineligible(self, fixture_candidates):
        assert fixture_candidates["L7"].service_radius_km == 0.0
        assert not fixture_candidates["L7"].is_eligible

    def test_default_radius_applies_when_configured(self, sample_fixtures_dir, fixture_now):
        directory = ProviderDirectory(source=str(sample_fixtures_dir / "locksmiths.csv"), default_service_radius_km=25)

        no_radius = {c.id: c for c in directory.fetch_candidates(now=fixture_now)}["L7"]

        assert no_radius.service_radius_km == 25.0

    def test_out_of_range_coordinates_are_dropped(self, fixture_candidates):
        assert fixture_candidates["L8"].base_location is None
        assert not fixture_candidates["L8"].is_eligible

    def test_search_over_fixture_directory(self, fixture_directory, fixture_now, london_origin):
        """Only the fresh live locksmith serves central London for home jobs."""
        candidates = fixture_directory.fetch_candidates(now=fixture_now)

        assert [r.id for r in match(london_origin, candidates, "home")] == ["L1"]
        assert [r.id for r in match(london_origin, candidates, "car")] == ["L1", "L3"]


class TestRecordsToCandidates:
    def test_empty_frame(self):
        assert records_to_candidates(pd.DataFrame()) == []

    def test_numeric_strings_are_coerced(self):
        df = pd.DataFrame(
            {
                "id": ["a"],
                "company_name": ["Strings Ltd"],
                "latitude": ["51.5"],
                "longitude": ["-0.12"],
                "service_radius": ["7.5"],
                "share_location": ["no"],
                "services": [["Home", "Car"]],
            }
        )

        (candidate,) = records_to_candidates(df)

        assert candidate.base_location == GeoPoint(51.5, -0.12)
        assert candidate.service_radius_km == 7.5
        assert candidate.categories == frozenset({"home", "car"})

    def test_numeric_ids_become_strings(self):
        df = pd.DataFrame({"id": [1.0, 2.0], "company_name": ["A", "B"]})

        assert [c.id for c in records_to_candidates(df)] == ["1", "2"]

    def test_duplicate_ids_keep_first(self):
        df = pd.DataFrame({"id": ["a", "a"], "company_name": ["First", "Second"]})

        candidates = records_to_candidates(df)

        assert len(candidates) == 1
        assert candidates[0].name == "First"

    def test_missing_name_gets_placeholder(self):
        df = pd.DataFrame({"id": ["a"], "company_name": [None]})

        assert records_to_candidates(df)[0].name == "Unknown Company"

    def test_live_location_without_timestamp_is_stale(self):
        df = pd.DataFrame(
            {
                "id": ["a"],
                "latitude": [53.0],
                "longitude": [-2.0],
                "share_location": [True],
                "live_latitude": [51.5],
                "live_longitude": [-0.1],
                "service_radius": [5],
            }
        )

        candidate = records_to_candidates(df)[0]

        assert candidate.live_location is None
        assert candidate.usable_location == GeoPoint(53.0, -2.0)


class TestLoadRetries:
    def test_transient_errors_are_retried_with_linear_backoff(self):
        attempts = []
        delays = []

        def flaky_source():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("connection reset")
            return pd.DataFrame({"id": ["a"], "company_name": ["Recovered"]})

        directory = ProviderDirectory(
            source=flaky_source, max_retries=3, retry_backoff_seconds=0.5, sleep=delays.append
        )

        candidates = directory.fetch_candidates()

        assert [c.name for c in candidates] == ["Recovered"]
        assert delays == [0.5, 1.0]

    def test_persistent_errors_raise_directory_unavailable(self):
        delays = []

        def broken_source():
            raise TimeoutError("backend timed out")

        directory = ProviderDirectory(source=broken_source, max_retries=3, retry_backoff_seconds=1.0, sleep=delays.append)

        with pytest.raises(DirectoryUnavailableError) as excinfo:
            directory.fetch_candidates()

        assert delays == [1.0, 2.0]
        assert excinfo.value.retryable is True

    def test_missing_file_is_not_retried(self, tmp_path):
        delays = []
        directory = ProviderDirectory(source=str(tmp_path / "missing.csv"), sleep=delays.append)

        with pytest.raises(DirectoryUnavailableError):
            directory.fetch_candidates()
        assert delays == []

    def test_unsupported_format_is_reported(self, tmp_path):
        path = tmp_path / "locksmiths.txt"
        path.write_text("id,company_name\n1,A\n")
        directory = ProviderDirectory(source=str(path), sleep=lambda _: None)

        with pytest.raises(DirectoryUnavailableError, match="could not be parsed"):
            directory.fetch_candidates()


def test_candidates_to_frame(fixture_candidates, fixture_now):
    frame = candidates_to_frame(fixture_candidates.values(), now=fixture_now)

    assert list(frame["ID"]) == ["L1", "L2", "L3", "L6", "L7", "L8"]
    row = frame.set_index("ID").loc["L1"]
    assert row["Location"] == "Live @ 12:55 PM"
    assert row["Last Live Update"] == "5 minutes ago"
    assert frame.set_index("ID").loc["L2", "Location"] == "Using HQ (Live > 15m ago)"


def test_candidates_to_frame_uses_given_staleness_window(fixture_candidates, fixture_now):
    frame = candidates_to_frame(fixture_candidates.values(), now=fixture_now, max_live_age_minutes=30)

    assert frame.set_index("ID").loc["L2", "Location"] == "Using HQ (Live > 30m ago)"
