import pytest

from site_locator.models import InsufficientDataError, StationNotOnSiteError, VisitKind
from site_locator.service import LocatorService


@pytest.fixture
def service(config):
    return LocatorService(config)


class TestBeacons:

    def test_catalog_loaded(self, service):
        assert sorted(service.beacons) == ["anna", "ben", "carla"]
        anna = service.get_beacon("anna")
        assert anna.worker == "Anna Bauer"
        assert anna.site_id == "site-munich"
        assert anna.total_ms == 0

    def test_register_beacon_is_idempotent(self, service):
        state = service.register_beacon("dora", "site-augsburg", "Beacon D-02", "Dora Klein")
        assert service.register_beacon("dora") is state
        assert [b.beacon_id for b in service.beacons_for_site("site-augsburg")] == ["carla", "dora"]

    def test_unknown_beacon(self, service):
        with pytest.raises(KeyError):
            service.get_beacon("nobody")
        with pytest.raises(KeyError):
            service.upsert_distance("nobody", "beacon-east", 3.0)


class TestLocate:

    def test_locate_uses_site_stations_only(self, service):
        for station_id, distance in [
            ("beacon-east", 90),
            ("augsburg-a", 15),
            ("beacon-west", 120),
            ("beacon-south", 80),
            ("beacon-north", 110),
        ]:
            service.upsert_distance("anna", station_id, distance)

        estimate = service.locate("anna")
        assert [r.station.id for r in estimate.used_stations] == [
            "beacon-east",
            "beacon-west",
            "beacon-south",
            "beacon-north",
        ]
        assert estimate.estimated_error >= 0
        assert estimate.to_dict()["stations"] == [r.station.id for r in estimate.used_stations]

    def test_locate_insufficient(self, service):
        service.upsert_distance("carla", "augsburg-a", 20)
        service.upsert_distance("carla", "augsburg-b", 30)
        with pytest.raises(InsufficientDataError):
            service.locate("carla")

    def test_locate_all_skips_unlocatable(self, service):
        for station_id in ["beacon-east", "beacon-west", "beacon-south"]:
            service.upsert_distance("anna", station_id, 100)
        service.upsert_distance("ben", "beacon-east", 45)

        results = service.locate_all()
        assert list(results) == ["anna"]

    def test_estimate_cached_until_readings_change(self, service):
        for station_id, d in [("beacon-east", 90), ("beacon-west", 120), ("beacon-south", 80)]:
            service.upsert_distance("anna", station_id, d)

        first = service.locate("anna")
        assert service.locate("anna") is first
        service.upsert_distance("anna", "beacon-west", 121)
        assert service.locate("anna") != first


class TestPresence:

    def test_break_station_classified(self, service):
        service.toggle_range("anna", "beacon-east", 0)
        service.toggle_range("anna", "beacon-east", 1000)
        service.toggle_range("anna", "munich-break", 1000)
        service.toggle_range("anna", "munich-break", 1600)

        anna = service.get_beacon("anna")
        assert [v.kind for v in anna.visits] == [VisitKind.WORK, VisitKind.BREAK]

        summary = service.summarize("anna", 2000)
        assert summary.total_ms == 1600
        assert summary.break_ms == 600
        assert summary.work_ms == 1000

    def test_toggle_unknown_station(self, service):
        with pytest.raises(StationNotOnSiteError):
            service.toggle_range("anna", "ghost", 0)

    def test_toggle_cross_site_station(self, service):
        with pytest.raises(StationNotOnSiteError):
            service.toggle_range("anna", "augsburg-a", 0)
        assert service.get_beacon("anna").active_stations == {}

    def test_summarize_site(self, service):
        service.toggle_range("anna", "beacon-east", 0)
        service.toggle_range("anna", "beacon-east", 1000)
        service.toggle_range("ben", "beacon-south", 500)
        service.toggle_range("carla", "augsburg-a", 0)

        munich = service.summarize_site("site-munich", 2000)
        assert munich.beacon_count == 2
        assert munich.station_count == 5
        assert munich.total_ms == 1000 + 1500
        assert munich.work_ms + munich.break_ms == munich.total_ms
        assert munich.to_dict()["site_id"] == "site-munich"
        assert service.summarize("ben", 2000).to_dict()["per_station"] == {"beacon-south": 1500}

    def test_live_break_station_counts_as_break(self, service):
        service.toggle_range("anna", "beacon-east", 0)
        service.toggle_range("anna", "beacon-east", 1000)
        service.toggle_range("anna", "munich-break", 1000)

        summary = service.summarize("anna", 1500)
        assert summary.break_ms == 500
        assert summary.work_ms == 1000
        assert service.summarize_site("site-munich", 1500).break_ms == 500
