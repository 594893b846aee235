from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, cast

import pandas as pd

from .models import Station
from .config_manager import ConfigManager


logger = logging.getLogger(__name__)

COLUMNS = ["name", "latitude", "longitude", "site_id", "coverage_meters"]


def _optional_str(value: Any) -> Optional[str]:
    if value is None or pd.isna(value) or str(value) == "":
        return None
    return str(value)


def _optional_coverage(value: Any) -> Optional[float]:
    # 覆盖半径只接受正数
    if value is None or pd.isna(value):
        return None
    radius = float(value)
    return radius if radius > 0 else None


class StationStore:
    """管理基站数据的存储与访问（pandas + CSV）"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        # 使用 DataFrame 管理，索引为 station_id
        self._df = self._empty_df()
        self._config = config_manager or ConfigManager()

    # ---- Utils ----
    @staticmethod
    def _empty_df() -> pd.DataFrame:
        df = pd.DataFrame(columns=COLUMNS)
        df.index.name = "station_id"
        return df

    def _normalize_df(self, df: pd.DataFrame) -> pd.DataFrame:
        for col in ["station_id", "latitude", "longitude"]:
            if col not in df.columns:
                raise KeyError(f"CSV 文件缺少 '{col}' 列")
        for col in ["name", "site_id"]:
            if col not in df.columns:
                df[col] = None
        if "coverage_meters" not in df.columns:
            df["coverage_meters"] = None
        for col in ["latitude", "longitude", "coverage_meters"]:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        # 坐标无效的基站无法参与定位，直接丢弃
        invalid = df["latitude"].isna() | df["longitude"].isna()
        if invalid.any():
            logger.warning("忽略 %d 个坐标无效的基站", int(invalid.sum()))
        df = df[~invalid]
        df = df[["station_id"] + COLUMNS]
        df = df.drop_duplicates(subset=["station_id"], keep="last").set_index("station_id")
        df.index = df.index.astype(str)
        df.index.name = "station_id"
        return df.sort_index()

    # ---- Load/Save ----
    def load(self, station_file_path: Optional[str] = None):
        csv_path = station_file_path or self._config.get_station_db_path()
        if not os.path.exists(csv_path):
            # 首次运行：生成仅含表头的空文件
            self._df = self._empty_df()
            self.save(csv_path)
            logger.info("基站文件不存在，已创建空文件: %s", csv_path)
            return
        df = pd.read_csv(csv_path, dtype=str)
        self._df = self._normalize_df(df)
        logger.info("已加载 %d 个基站: %s", len(self._df), csv_path)

    def save(self, station_file_path: Optional[str] = None):
        csv_path = station_file_path or self._config.get_station_db_path()
        os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
        # 保存为 CSV（将索引写为列 station_id）
        self._df.to_csv(csv_path, index=True, index_label="station_id", encoding="utf-8")

    # ---- CRUD ----
    def _write_row(self, station: Station):
        self._df.loc[station.id, COLUMNS] = [
            station.name,
            float(station.latitude),
            float(station.longitude),
            station.site_id,
            station.coverage_meters,
        ]

    def add(self, station: Station):
        # 新增或覆盖
        self._write_row(station)
        self.save()

    def update(self, station: Station) -> bool:
        if station.id in self._df.index:
            self._write_row(station)
            self.save()
            return True
        return False

    def delete(self, station_id: str) -> bool:
        if station_id in self._df.index:
            self._df = self._df.drop(index=station_id)
            self.save()
            return True
        return False

    # ---- Accessors ----
    def __len__(self) -> int:
        return len(self._df)

    def has(self, station_id: str) -> bool:
        return station_id in self._df.index

    def _row_to_station(self, station_id: Any, row: pd.Series) -> Station:
        return Station(
            id=str(station_id),
            name=_optional_str(row.at["name"]) or str(station_id),
            latitude=float(row.at["latitude"]),
            longitude=float(row.at["longitude"]),
            site_id=_optional_str(row.at["site_id"]),
            coverage_meters=_optional_coverage(row.at["coverage_meters"]),
        )

    def get(self, station_id: str) -> Optional[Station]:
        if station_id not in self._df.index:
            return None
        row = cast(pd.Series, self._df.loc[station_id])
        return self._row_to_station(station_id, row)

    def all(self) -> Dict[str, Station]:
        result: Dict[str, Station] = {}
        for station_id, row in self._df.iterrows():
            result[str(station_id)] = self._row_to_station(station_id, cast(pd.Series, row))
        return result

    def for_site(self, site_id: str) -> List[Station]:
        return [s for s in self.all().values() if s.site_id == site_id]
