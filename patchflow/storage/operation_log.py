# patchflow/storage/operation_log.py
"""
操作日志：备份目录下的 operations.log，内容是一个 JSON 数组。
未配置备份目录时只保存在内存中。
"""

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from adaptcoder.utils.console import warning
from .file_lock import FileLock, LockTimeout
from ..utils.timestamps import now_millis

LOG_FILENAME = "operations.log"


class OperationLog:
    def __init__(self, base_dir: Optional[str] = None, max_entries: int = 500):
        self.base_dir = Path(base_dir) if base_dir else None
        self.max_entries = max_entries
        self._memory: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def log_file(self) -> Optional[Path]:
        return self.base_dir / LOG_FILENAME if self.base_dir else None

    def append(self, entry_type: str, status: str, **details) -> Dict[str, Any]:
        entry = {"timestamp": now_millis(), "type": entry_type, "status": status}
        entry.update(details)

        with self._lock:
            self._memory.append(entry)
            del self._memory[:-self.max_entries]
            if self.base_dir is not None:
                try:
                    self._persist(entry)
                except (OSError, ValueError, LockTimeout) as e:
                    warning(f"Could not write operation log: {e}")
        return entry

    def _persist(self, entry: Dict[str, Any]):
        self.base_dir.mkdir(parents=True, exist_ok=True)
        with FileLock(str(self.base_dir / ".operations.lock")):
            entries = self._read_file()
            entries.append(entry)
            entries = entries[-self.max_entries:]
            temp_file = self.log_file.with_suffix(".log.tmp")
            temp_file.write_text(json.dumps(entries, indent=2), encoding="utf-8")
            temp_file.replace(self.log_file)

    def _read_file(self) -> List[Dict[str, Any]]:
        if self.log_file is None or not self.log_file.exists():
            return []
        data = json.loads(self.log_file.read_text(encoding="utf-8"))
        return data if isinstance(data, list) else []

    def entries(self) -> List[Dict[str, Any]]:
        """持久化时返回文件中的记录，否则返回内存记录"""
        with self._lock:
            if self.base_dir is not None:
                try:
                    return self._read_file()
                except (OSError, ValueError) as e:
                    warning(f"Could not read operation log: {e}")
            return list(self._memory)
