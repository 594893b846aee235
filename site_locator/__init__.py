"""Site Locator package.

This package provides:
- estimate_position / PositionCalculator: least-squares multilateration from station distances
- presence: per-beacon range enter/exit tracking with break/work accounting
- ConfigManager: YAML-based configuration management
- StationStore / BeaconCatalog: CSV-backed station and beacon catalogs
- LocatorService: orchestration used by display and HTTP layers
"""

from .config_manager import ConfigManager
from .calculator import PositionCalculator, estimate_position
from .presence import BreakPolicy, summarize, toggle_range, upsert_distance
from .station_store import StationStore
from .beacon_catalog import BeaconCatalog
from .service import LocatorService
from .models import (
    BeaconState,
    InsufficientDataError,
    PositionEstimate,
    PresenceSummary,
    Station,
    StationNotOnSiteError,
    StationReading,
    Visit,
    VisitKind,
)

__all__ = [
    "ConfigManager",
    "PositionCalculator",
    "estimate_position",
    "BreakPolicy",
    "summarize",
    "toggle_range",
    "upsert_distance",
    "StationStore",
    "BeaconCatalog",
    "LocatorService",
    "BeaconState",
    "InsufficientDataError",
    "PositionEstimate",
    "PresenceSummary",
    "Station",
    "StationNotOnSiteError",
    "StationReading",
    "Visit",
    "VisitKind",
]
