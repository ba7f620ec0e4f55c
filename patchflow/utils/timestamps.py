# patchflow/utils/timestamps.py
import time
from datetime import datetime, timezone

def now_millis() -> int:
    """当前时间的毫秒时间戳"""
    return int(time.time() * 1000)

def millis_to_iso(timestamp: int) -> str:
    """毫秒时间戳 -> ISO 8601 (UTC)"""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).isoformat()
