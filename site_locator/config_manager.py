from __future__ import annotations

import copy
import logging
import os
import yaml

from typing import Callable, Any, Dict, List


logger = logging.getLogger(__name__)


def _env_or_default(env_key: str, default: Any, cast: Callable[[str], Any] = str) -> Any:
    v = os.environ.get(env_key)
    if v is not None:
        try:
            return cast(v)
        except ValueError:
            return v
    return default


def _split_ids(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def default_config_path() -> str:
    return _env_or_default(
        "SITE_LOCATOR_CONFIG",
        os.path.join(".", "config", "config.yaml"),
    )


class ConfigManager:
    """配置管理类，负责读写YAML配置文件"""

    def __init__(self, config_file: str | None = None):
        self.config_file = config_file or default_config_path()
        self.default_config = {
            "estimation": {
                "min_stations": 3,
                "earth_radius": _env_or_default("SITE_LOCATOR_EARTH_RADIUS", 6_371_000.0, float),
                "cache_size": _env_or_default("SITE_LOCATOR_CACHE_SIZE", 256, int),
            },
            "presence": {
                "break_stations": _env_or_default("SITE_LOCATOR_BREAK_STATIONS", [], _split_ids),
            },
            "paths": {
                "station_db": _env_or_default(
                    "SITE_LOCATOR_STATION_DB", os.path.join(".", "stations", "stations.csv")
                ),
                "beacon_db": _env_or_default(
                    "SITE_LOCATOR_BEACON_DB", os.path.join(".", "beacons", "beacons.csv")
                ),
            },
        }
        self.load_config()

    def load_config(self) -> None:
        """加载配置文件，如果不存在则创建默认配置"""
        if not os.path.exists(self.config_file):
            self.config = copy.deepcopy(self.default_config)
            self.save_config()
            return
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                self.config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            # 配置文件损坏时回退到默认配置，但不覆盖原文件
            logger.warning("读取配置文件 %s 失败，使用默认配置: %s", self.config_file, e)
            self.config = copy.deepcopy(self.default_config)
            return
        self._merge_default_config()

    def _merge_default_config(self) -> None:
        def merge_dict(default, current):
            for key, value in default.items():
                if key not in current:
                    current[key] = copy.deepcopy(value)
                elif isinstance(value, dict) and isinstance(current[key], dict):
                    merge_dict(value, current[key])

        merge_dict(self.default_config, self.config)

    def save_config(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.config_file) or ".", exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.dump(
                    self.config,
                    f,
                    default_flow_style=False,
                    allow_unicode=True,
                    indent=2,
                )
        except OSError as e:
            logger.warning("保存配置文件 %s 失败: %s", self.config_file, e)

    # ---------- Accessors ----------
    def get_estimation_config(self) -> Dict[str, Any]:
        return self.config["estimation"]

    def get_presence_config(self) -> Dict[str, Any]:
        return self.config["presence"]

    def get_break_stations(self) -> List[str]:
        stations = self.get_presence_config().get("break_stations") or []
        if isinstance(stations, str):
            return _split_ids(stations)
        return [str(s) for s in stations]

    def get_paths(self):
        return self.config.get("paths", {})

    def get_station_db_path(self):
        return self.get_paths()["station_db"]

    def get_beacon_db_path(self):
        return self.get_paths()["beacon_db"]

    def set_break_stations(self, station_ids: List[str]) -> None:
        self.config["presence"]["break_stations"] = list(station_ids)
        self.save_config()
