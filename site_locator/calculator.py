from __future__ import annotations

import math
from functools import lru_cache
from typing import Iterable, Optional, Tuple

import numpy as np

from .config_manager import ConfigManager
from .station_store import StationStore
from .models import (
    BeaconState,
    InsufficientDataError,
    Position,
    PositionEstimate,
    StationReading,
)

EARTH_RADIUS_M = 6_371_000.0
MIN_STATIONS = 3
# 行列式相对阈值，低于该值视为共线
DET_EPSILON = 1e-9


def to_local(reference: Position, point: Position, earth_radius: float = EARTH_RADIUS_M) -> Tuple[float, float]:
    """等距矩形投影：经纬度 -> 以参考点为原点的平面坐标（米）"""
    lat = math.radians(point.latitude)
    lon = math.radians(point.longitude)
    ref_lat = math.radians(reference.latitude)
    ref_lon = math.radians(reference.longitude)

    x = (lon - ref_lon) * math.cos((lat + ref_lat) / 2) * earth_radius
    y = (lat - ref_lat) * earth_radius
    return x, y


def to_geo(reference: Position, x: float, y: float, earth_radius: float = EARTH_RADIUS_M) -> Position:
    """to_local 的逆变换"""
    ref_lat = math.radians(reference.latitude)
    ref_lon = math.radians(reference.longitude)

    lat = ref_lat + y / earth_radius
    lon = ref_lon + x / (earth_radius * math.cos((lat + ref_lat) / 2))
    return Position(latitude=math.degrees(lat), longitude=math.degrees(lon))


def haversine_distance(pos1: Position, pos2: Position, earth_radius: float = EARTH_RADIUS_M) -> float:
    """两点球面距离（米）。"""
    phi1 = math.radians(pos1.latitude)
    phi2 = math.radians(pos2.latitude)
    dphi = math.radians(pos2.latitude - pos1.latitude)
    dlambda = math.radians(pos2.longitude - pos1.longitude)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return earth_radius * c


def _is_usable_distance(distance) -> bool:
    # bool 不是距离；其余数值类型（numpy 标量、Decimal 等）统一转为 float
    if isinstance(distance, bool):
        return False
    try:
        d = float(distance)
    except (TypeError, ValueError):
        return False
    return math.isfinite(d) and d >= 0


def estimate_position(
    readings: Iterable[StationReading], earth_radius: float = EARTH_RADIUS_M
) -> PositionEstimate:
    """
    线性最小二乘多边定位（二维）
    readings: [(基站, 距离), ...]，第一个有效读数的基站作为参考点
    少于 3 个有效读数时抛出 InsufficientDataError；
    基站共线（行列式为 0）时回退到参考基站位置。
    """
    usable = tuple(r for r in readings if _is_usable_distance(r.distance))
    if len(usable) < MIN_STATIONS:
        raise InsufficientDataError(len(usable), MIN_STATIONS)

    reference = usable[0].station.position
    coords = np.array([to_local(reference, r.station.position, earth_radius) for r in usable])
    distances = np.array([float(r.distance) for r in usable])

    x1, y1 = coords[0]
    d1 = distances[0]
    dx = coords[1:, 0] - x1
    dy = coords[1:, 1] - y1
    # 2dx*X + 2dy*Y = (xi^2 - x1^2) + (yi^2 - y1^2) - (di^2 - d1^2)
    c = (
        coords[1:, 0] ** 2 - x1**2
        + coords[1:, 1] ** 2 - y1**2
        - (distances[1:] ** 2 - d1**2)
    )

    # 正规方程系数（整体乘以 1/2）
    a11 = float(np.sum(2 * dx**2))
    a22 = float(np.sum(2 * dy**2))
    a12 = float(np.sum(2 * dx * dy))
    b1 = float(np.sum(dx * c))
    b2 = float(np.sum(dy * c))

    det = a11 * a22 - a12**2
    if det == 0 or abs(det) <= DET_EPSILON * a11 * a22:
        x, y = float(x1), float(y1)
    else:
        x = (a22 * b1 - a12 * b2) / det
        y = (a11 * b2 - a12 * b1) / det

    residuals = np.abs(np.hypot(x - coords[:, 0], y - coords[:, 1]) - distances)

    return PositionEstimate(
        position=to_geo(reference, x, y, earth_radius),
        estimated_error=float(np.mean(residuals)),
        used_stations=usable,
    )


class PositionCalculator:
    """根据信标距离读数与基站目录计算位置，结果按输入缓存"""

    def __init__(
        self,
        config_manager: ConfigManager,
        station_store: StationStore,
    ):
        self.config_manager = config_manager
        estimation_config = self.config_manager.get_estimation_config()

        self.earth_radius = float(estimation_config.get("earth_radius", EARTH_RADIUS_M))
        self.min_stations = max(MIN_STATIONS, int(estimation_config.get("min_stations", MIN_STATIONS)))

        self.station_store = station_store
        self._estimate = lru_cache(maxsize=int(estimation_config.get("cache_size", 256)))(
            estimate_position
        )

    def usable_readings(self, beacon: BeaconState) -> Tuple[StationReading, ...]:
        """过滤出可参与计算的读数：基站存在、同一工地、距离有效"""
        readings = []
        for station_id, distance in beacon.distances.items():
            station = self.station_store.get(station_id)
            if station is None or station.site_id != beacon.site_id:
                continue
            if not _is_usable_distance(distance):
                continue
            readings.append(StationReading(station=station, distance=float(distance)))
        return tuple(readings)

    def can_locate(self, beacon: BeaconState) -> bool:
        return len(self.usable_readings(beacon)) >= self.min_stations

    def locate(self, beacon: BeaconState) -> PositionEstimate:
        readings = self.usable_readings(beacon)
        if len(readings) < self.min_stations:
            raise InsufficientDataError(len(readings), self.min_stations)
        return self._estimate(readings, self.earth_radius)

    def try_locate(self, beacon: BeaconState) -> Optional[PositionEstimate]:
        if not self.can_locate(beacon):
            return None
        return self.locate(beacon)
