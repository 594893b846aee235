from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, List, Tuple
from enum import Enum


class InsufficientDataError(ValueError):
    """可用距离读数不足，无法进行三边定位"""

    def __init__(self, usable: int, required: int = 3):
        super().__init__(f"至少需要 {required} 个有效基站读数，当前仅 {usable} 个")
        self.usable = usable
        self.required = required


class StationNotOnSiteError(ValueError):
    """基站不存在或不属于信标所在工地"""


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Station:
    id: str
    latitude: float
    longitude: float
    name: str = ""
    site_id: Optional[str] = None
    coverage_meters: Optional[float] = None

    @property
    def position(self) -> Position:
        return Position(latitude=self.latitude, longitude=self.longitude)


@dataclass(frozen=True)
class StationReading:
    station: Station
    distance: float


@dataclass(frozen=True)
class PositionEstimate:
    """
    定位结果
    """

    position: Position
    estimated_error: float
    used_stations: Tuple[StationReading, ...]

    @property
    def station_count(self) -> int:
        return len(self.used_stations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "estimated_error": self.estimated_error,
            "stations": [r.station.id for r in self.used_stations],
        }


class VisitKind(Enum):
    WORK = "work"
    BREAK = "break"


@dataclass(frozen=True)
class Visit:
    """
    信标在某基站范围内的一次停留
    """

    station_id: str
    started_at: int
    ended_at: Optional[int] = None
    duration_ms: Optional[int] = None
    kind: VisitKind = VisitKind.WORK

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def elapsed_ms(self, now: Optional[int] = None) -> int:
        # 优先使用预先计算的时长；未结束的停留按 now 计算
        if self.duration_ms is not None:
            return max(0, self.duration_ms)
        end = self.ended_at if self.ended_at is not None else now
        if end is None:
            return 0
        return max(0, end - self.started_at)


@dataclass
class BeaconState:
    """
    单个信标的距离读数与在场状态
    """

    beacon_id: str
    site_id: Optional[str] = None
    label: str = ""
    worker: str = ""

    distances: Dict[str, float] = field(default_factory=dict)
    # 基站ID -> 本次停留开始时间（毫秒）
    active_stations: Dict[str, int] = field(default_factory=dict)
    presence_started_at: Optional[int] = None
    total_ms: int = 0
    visits: List[Visit] = field(default_factory=list)


@dataclass(frozen=True)
class PresenceSummary:
    total_ms: int
    break_ms: int
    work_ms: int
    first_start: Optional[int]
    last_end: Optional[int]
    per_station: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SiteSummary:
    site_id: str
    beacon_count: int
    station_count: int
    total_ms: int
    break_ms: int
    work_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
