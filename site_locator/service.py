from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .config_manager import ConfigManager
from .calculator import PositionCalculator
from .station_store import StationStore
from .beacon_catalog import BeaconCatalog
from .models import (
    BeaconState,
    InsufficientDataError,
    PositionEstimate,
    PresenceSummary,
    SiteSummary,
    StationNotOnSiteError,
)
from . import presence


logger = logging.getLogger(__name__)


class LocatorService:
    """
    定位与在场计时的编排层：
    - 持有所有信标状态（单写者，无需加锁）
    - 校验基站目录与工地归属
    - 按休息区配置给停留分类
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        station_store: Optional[StationStore] = None,
        beacon_catalog: Optional[BeaconCatalog] = None,
    ):
        self.config_manager = config_manager

        # 基站与计算器
        if station_store is None:
            station_store = StationStore(self.config_manager)
            station_store.load()
        self.station_store = station_store
        self.calculator = PositionCalculator(self.config_manager, self.station_store)

        # 信标状态
        if beacon_catalog is None:
            beacon_catalog = BeaconCatalog(self.config_manager)
            beacon_catalog.load()
        self.beacons: Dict[str, BeaconState] = beacon_catalog.create_states()

        self.break_policy = presence.BreakPolicy(self.config_manager.get_break_stations())

    # ---------- Beacons ----------
    def register_beacon(
        self, beacon_id: str, site_id: Optional[str] = None, label: str = "", worker: str = ""
    ) -> BeaconState:
        if beacon_id in self.beacons:
            return self.beacons[beacon_id]
        state = BeaconState(beacon_id=beacon_id, site_id=site_id, label=label, worker=worker)
        self.beacons[beacon_id] = state
        logger.debug("注册信标 %s (工地 %s)", beacon_id, site_id)
        return state

    def get_beacon(self, beacon_id: str) -> BeaconState:
        try:
            return self.beacons[beacon_id]
        except KeyError:
            raise KeyError(f"未知信标: {beacon_id}") from None

    def beacons_for_site(self, site_id: str) -> List[BeaconState]:
        return [b for b in self.beacons.values() if b.site_id == site_id]

    # ---------- Mutations ----------
    def upsert_distance(self, beacon_id: str, station_id: str, distance: float) -> BeaconState:
        state = presence.upsert_distance(self.get_beacon(beacon_id), station_id, distance)
        logger.debug("信标 %s 距离基站 %s: %s m", beacon_id, station_id, distance)
        return state

    def toggle_range(self, beacon_id: str, station_id: str, now: int) -> BeaconState:
        state = self.get_beacon(beacon_id)
        station = self.station_store.get(station_id)
        if station is None:
            raise StationNotOnSiteError(f"未知基站: {station_id}")
        if station.site_id != state.site_id:
            raise StationNotOnSiteError(
                f"基站 {station_id} 属于工地 {station.site_id}，信标 {beacon_id} 属于工地 {state.site_id}"
            )

        entering = station_id not in state.active_stations
        presence.toggle_range(state, station_id, now, self.break_policy.classify(station_id))
        logger.debug(
            "信标 %s %s基站 %s 范围 @%s",
            beacon_id,
            "进入" if entering else "离开",
            station_id,
            now,
        )
        return state

    # ---------- Queries ----------
    def locate(self, beacon_id: str) -> PositionEstimate:
        return self.calculator.locate(self.get_beacon(beacon_id))

    def locate_all(self) -> Dict[str, PositionEstimate]:
        """计算所有可定位信标的位置；有效读数不足 3 个的信标跳过"""
        results: Dict[str, PositionEstimate] = {}
        for beacon_id, state in self.beacons.items():
            try:
                results[beacon_id] = self.calculator.locate(state)
            except InsufficientDataError as e:
                logger.warning("信标 %s 无法定位: %s", beacon_id, e)
        return results

    def summarize(self, beacon_id: str, now: int) -> PresenceSummary:
        return presence.summarize(self.get_beacon(beacon_id), now, self.break_policy)

    def summarize_site(self, site_id: str, now: int) -> SiteSummary:
        summaries = [presence.summarize(b, now, self.break_policy) for b in self.beacons_for_site(site_id)]
        return SiteSummary(
            site_id=site_id,
            beacon_count=len(summaries),
            station_count=len(self.station_store.for_site(site_id)),
            total_ms=sum(s.total_ms for s in summaries),
            break_ms=sum(s.break_ms for s in summaries),
            work_ms=sum(s.work_ms for s in summaries),
        )
