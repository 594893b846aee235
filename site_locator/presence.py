"""
信标在场计时

每个信标对当前在范围内的每个基站保持一次未结束的停留，
同时维护一个总在场窗口：只要信标仍在任一基站范围内，该窗口就保持打开。
所有函数的 now（毫秒时间戳）均由调用方传入，本模块不读取系统时钟。
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

from .models import BeaconState, PresenceSummary, Visit, VisitKind


class BreakPolicy:
    """按基站分类停留：配置为休息区的基站记为 break"""

    def __init__(self, break_stations: Iterable[str] = ()):
        self.break_stations = frozenset(break_stations)

    def classify(self, station_id: str) -> VisitKind:
        return VisitKind.BREAK if station_id in self.break_stations else VisitKind.WORK


def upsert_distance(state: BeaconState, station_id: str, distance: float) -> BeaconState:
    distance = float(distance)
    if not math.isfinite(distance):
        raise ValueError(f"基站 {station_id} 的距离必须为有限数值: {distance}")
    state.distances[station_id] = distance
    return state


def toggle_range(
    state: BeaconState,
    station_id: str,
    now: int,
    kind: VisitKind = VisitKind.WORK,
) -> BeaconState:
    """
    进入或离开基站范围：
    - 进入：开始一次停留；若此前没有任何活动基站，同时开始总在场窗口
    - 离开：以 kind 结束停留；若已无活动基站，将总在场窗口累加到 total_ms
    """

    started_at = state.active_stations.get(station_id)
    if started_at is None:
        if not state.active_stations:
            state.presence_started_at = now
        state.active_stations[station_id] = now
        return state

    state.visits.append(
        Visit(
            station_id=station_id,
            started_at=started_at,
            ended_at=now,
            duration_ms=max(0, now - started_at),
            kind=kind,
        )
    )
    del state.active_stations[station_id]

    if not state.active_stations:
        if state.presence_started_at is not None:
            state.total_ms += max(0, now - state.presence_started_at)
        state.presence_started_at = None
    return state


def station_elapsed(state: BeaconState, station_id: str, now: int) -> int:
    """当前停留的实时时长，不在范围内时为 0"""

    started_at = state.active_stations.get(station_id)
    if started_at is None:
        return 0
    return max(0, now - started_at)


def total_elapsed(state: BeaconState, now: int) -> int:
    if state.presence_started_at is None:
        return state.total_ms
    return state.total_ms + max(0, now - state.presence_started_at)


def _union_length(intervals: List[Tuple[int, int]]) -> int:
    total = 0
    current_start: Optional[int] = None
    current_end = 0
    for start, end in sorted(intervals):
        if current_start is None or start > current_end:
            if current_start is not None:
                total += current_end - current_start
            current_start, current_end = start, end
        else:
            current_end = max(current_end, end)
    if current_start is not None:
        total += current_end - current_start
    return total


def summarize(state: BeaconState, now: int, policy: Optional[BreakPolicy] = None) -> PresenceSummary:
    """
    汇总信标截至 now 的在场时长。
    不同基站的重叠停留在总时长中只计一次，per_station 保留各基站各自的时长。
    给定 policy 时，仍在休息区基站范围内的实时时长计入 break_ms。
    """

    intervals: List[Tuple[int, int]] = []
    break_intervals: List[Tuple[int, int]] = []
    per_station: Dict[str, int] = {}
    ends: List[int] = []

    for visit in state.visits:
        elapsed = visit.elapsed_ms(now)
        span = (visit.started_at, visit.started_at + elapsed)
        intervals.append(span)
        if visit.kind is VisitKind.BREAK:
            break_intervals.append(span)
        per_station[visit.station_id] = per_station.get(visit.station_id, 0) + elapsed
        ends.append(visit.ended_at if visit.ended_at is not None else visit.started_at + elapsed)

    for station_id, started_at in state.active_stations.items():
        elapsed = max(0, now - started_at)
        span = (started_at, started_at + elapsed)
        intervals.append(span)
        if policy is not None and policy.classify(station_id) is VisitKind.BREAK:
            break_intervals.append(span)
        per_station[station_id] = per_station.get(station_id, 0) + elapsed
        ends.append(now)

    total_ms = _union_length(intervals)
    break_ms = _union_length(break_intervals)

    return PresenceSummary(
        total_ms=total_ms,
        break_ms=break_ms,
        work_ms=total_ms - break_ms,
        first_start=min((start for start, _ in intervals), default=None),
        last_end=max(ends, default=None),
        per_station=per_station,
    )
