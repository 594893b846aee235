from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import pandas as pd

from .models import BeaconState
from .config_manager import ConfigManager
from .station_store import _optional_str


logger = logging.getLogger(__name__)


class BeaconCatalog:
    """信标目录（beacon_id, site_id, label, worker），从 CSV 读取"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self._config = config_manager or ConfigManager()
        self._df = pd.DataFrame(columns=["site_id", "label", "worker"])
        self._df.index.name = "beacon_id"

    def load(self, beacon_file_path: Optional[str] = None):
        csv_path = beacon_file_path or self._config.get_beacon_db_path()
        if not os.path.exists(csv_path):
            logger.warning("信标文件不存在: %s", csv_path)
            return
        df = pd.read_csv(csv_path, dtype=str)
        if "beacon_id" not in df.columns:
            raise KeyError("CSV 文件缺少 'beacon_id' 列")
        for col in ["site_id", "label", "worker"]:
            if col not in df.columns:
                df[col] = None
        df = df.drop_duplicates(subset=["beacon_id"], keep="last").set_index("beacon_id")
        self._df = df[["site_id", "label", "worker"]]
        logger.info("已加载 %d 个信标: %s", len(self._df), csv_path)

    def __len__(self) -> int:
        return len(self._df)

    def create_states(self) -> Dict[str, BeaconState]:
        """为目录中的每个信标生成初始状态（无读数、无停留、总时长为 0）"""
        states: Dict[str, BeaconState] = {}
        for beacon_id, row in self._df.iterrows():
            states[str(beacon_id)] = BeaconState(
                beacon_id=str(beacon_id),
                site_id=_optional_str(row["site_id"]),
                label=_optional_str(row["label"]) or "",
                worker=_optional_str(row["worker"]) or "",
            )
        return states
