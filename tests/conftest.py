import pytest
import yaml

from site_locator.config_manager import ConfigManager


ENV_KEYS = [
    "SITE_LOCATOR_CONFIG",
    "SITE_LOCATOR_EARTH_RADIUS",
    "SITE_LOCATOR_CACHE_SIZE",
    "SITE_LOCATOR_BREAK_STATIONS",
    "SITE_LOCATOR_STATION_DB",
    "SITE_LOCATOR_BEACON_DB",
]

STATIONS_CSV = """station_id,name,latitude,longitude,site_id,coverage_meters
beacon-east,Beacon Ost,48.1375,11.6004,site-munich,120
beacon-west,Beacon West,48.1341,11.561,site-munich,150
beacon-south,Beacon Süd,48.1277,11.5821,site-munich,140
beacon-north,Beacon Nord,48.1452,11.5794,site-munich,160
munich-break,Pausenfläche,48.139,11.5878,site-munich,80
augsburg-a,Tor A,48.3705,10.8973,site-augsburg,200
augsburg-b,Rampe B,48.3612,10.8891,site-augsburg,110
augsburg-c,Halle C,48.3671,10.9034,site-augsburg,140
"""

BEACONS_CSV = """beacon_id,site_id,label,worker
anna,site-munich,Beacon A-01,Anna Bauer
ben,site-munich,Beacon B-12,Ben Fischer
carla,site-augsburg,Beacon C-07,Carla Wolf
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def station_csv(tmp_path):
    path = tmp_path / "stations.csv"
    path.write_text(STATIONS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def beacon_csv(tmp_path):
    path = tmp_path / "beacons.csv"
    path.write_text(BEACONS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def config_path(tmp_path, station_csv, beacon_csv):
    path = tmp_path / "config.yaml"
    data = {
        "presence": {"break_stations": ["munich-break"]},
        "paths": {"station_db": str(station_csv), "beacon_db": str(beacon_csv)},
    }
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def config(config_path):
    return ConfigManager(str(config_path))
