from __future__ import annotations

import argparse
import logging
import math
import sys
from typing import List, Optional

import pandas as pd

from .config_manager import ConfigManager
from .service import LocatorService
from .models import StationNotOnSiteError
from .timeutils import format_clock, format_millis


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_csv(path: str, required: List[str]) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"beacon_id": str, "station_id": str})
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise KeyError(f"CSV 文件 {path} 缺少列: {', '.join(missing)}")
    return df


def _emit(df: pd.DataFrame, output: Optional[str]) -> None:
    if output:
        df.to_csv(output, index=False, encoding="utf-8")
        logger.info("结果已写入 %s", output)
    print(df.to_string(index=False) if not df.empty else "(无结果)")


def run_locate(args) -> int:
    service = LocatorService(ConfigManager(args.config))
    readings = _read_csv(args.distances, ["beacon_id", "station_id", "distance"])

    for row in readings.itertuples(index=False):
        if row.beacon_id not in service.beacons:
            logger.warning("跳过未知信标 %s", row.beacon_id)
            continue
        distance = pd.to_numeric(row.distance, errors="coerce")
        if pd.isna(distance) or not math.isfinite(distance):
            logger.warning("跳过无效距离: 信标 %s, 基站 %s", row.beacon_id, row.station_id)
            continue
        service.upsert_distance(row.beacon_id, row.station_id, float(distance))

    rows = []
    for beacon_id, estimate in service.locate_all().items():
        beacon = service.beacons[beacon_id]
        rows.append(
            {
                "beacon_id": beacon_id,
                "worker": beacon.worker,
                "latitude": round(estimate.position.latitude, 7),
                "longitude": round(estimate.position.longitude, 7),
                "estimated_error": round(estimate.estimated_error, 3),
                "stations": estimate.station_count,
            }
        )
    _emit(pd.DataFrame(rows), args.output)
    return 0


def run_replay(args) -> int:
    service = LocatorService(ConfigManager(args.config))
    events = _read_csv(args.events, ["beacon_id", "station_id", "timestamp_ms"])
    events = events.sort_values("timestamp_ms", kind="mergesort")

    last_ts = None
    for row in events.itertuples(index=False):
        ts = int(row.timestamp_ms)
        try:
            service.toggle_range(row.beacon_id, row.station_id, ts)
        except (KeyError, StationNotOnSiteError) as e:
            logger.warning("跳过事件 (%s, %s, %s): %s", row.beacon_id, row.station_id, ts, e)
            continue
        last_ts = ts

    now = args.now if args.now is not None else last_ts
    if now is None:
        logger.warning("没有可回放的事件")
        _emit(pd.DataFrame(), args.output)
        return 0

    rows = []
    for beacon_id, beacon in service.beacons.items():
        summary = service.summarize(beacon_id, now)
        if summary.first_start is None:
            continue
        rows.append(
            {
                "beacon_id": beacon_id,
                "worker": beacon.worker,
                "first_start": format_clock(summary.first_start, args.tz),
                "last_end": format_clock(summary.last_end, args.tz),
                "total": format_millis(summary.total_ms),
                "break": format_millis(summary.break_ms),
                "work": format_millis(summary.work_ms),
                "in_range": len(beacon.active_stations),
            }
        )
    _emit(pd.DataFrame(rows), args.output)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(prog="site-locator", description="Site Locator CLI")
    parser.add_argument("--config", default=None, help="配置文件路径，默认读取 ./config/config.yaml 或环境变量 SITE_LOCATOR_CONFIG")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_locate = sub.add_parser("locate", help="根据距离读数计算信标位置")
    p_locate.add_argument("--distances", required=True, help="距离 CSV: beacon_id,station_id,distance")
    p_locate.add_argument("--output", default=None, help="结果 CSV 输出路径")
    p_locate.set_defaults(func=run_locate)

    p_replay = sub.add_parser("replay", help="回放进出范围事件并汇总在场时长")
    p_replay.add_argument("--events", required=True, help="事件 CSV: beacon_id,station_id,timestamp_ms")
    p_replay.add_argument("--now", type=int, default=None, help="汇总时刻（毫秒时间戳），默认取最后一个事件")
    p_replay.add_argument("--tz", default=None, help="显示时区，例如 Europe/Berlin，默认 UTC")
    p_replay.add_argument("--output", default=None, help="结果 CSV 输出路径")
    p_replay.set_defaults(func=run_replay)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        return args.func(args)
    except (OSError, KeyError, ValueError) as e:
        logger.error("执行 %s 失败: %s", args.cmd, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
