from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def format_millis(ms: Optional[int]) -> str:
    """毫秒时长 -> HH:MM:SS"""
    if not ms or ms < 0:
        ms = 0
    s = int(round(ms / 1000.0))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    return f"{h:02d}:{m:02d}:{sec:02d}"


def format_clock(epoch_ms: Optional[int], tz_name: Optional[str] = None) -> str:
    """毫秒时间戳 -> HH:MM，缺失时返回 '–'"""
    if epoch_ms is None:
        return "–"
    tz = ZoneInfo(tz_name) if tz_name else timezone.utc
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tz).strftime("%H:%M")
