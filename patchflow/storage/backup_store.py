# patchflow/storage/backup_store.py
"""
备份存储 (BackupStore)

snapshot() 为 SourceStore 中的每个文件保存一份当前内容，以毫秒时间戳标识；
restore() 把某个快照写回。快照在进程生命周期内一直保留，不会自动淘汰，
只有操作者显式调用 prune() 才会删除。

配置了 backup_dir 时，快照同时落盘到 <backup_dir>/<timestamp>/，
附带 backup-info.json 清单，进程重启后仍可恢复。
"""

import json
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from adaptcoder.utils.console import info, warning
from treecontext.core.store import SourceStore, read_source

from .operation_log import OperationLog
from ..utils.checksum import calculate_checksum, verify_checksum
from ..utils.timestamps import now_millis, millis_to_iso

MANIFEST_FILENAME = "backup-info.json"


@dataclass
class BackupInfo:
    timestamp: int
    date: str
    file_count: int
    in_memory: bool
    persisted: bool


@dataclass
class RollbackResult:
    success: bool
    restored_backup: Optional[int] = None
    files_restored: int = 0
    message: str = ""
    error: Optional[str] = None


class BackupStore:
    def __init__(
        self,
        store: SourceStore,
        backup_dir: Optional[str] = None,
        operation_log: Optional[OperationLog] = None,
    ):
        self.store = store
        self.backup_dir = Path(backup_dir) if backup_dir else None
        self.operation_log = operation_log
        self._entries: Dict[Tuple[str, int], str] = {}
        self._timestamps: List[int] = []
        self._last_timestamp = 0
        self._lock = threading.RLock()

    # --- 快照 ---

    def _next_timestamp(self) -> int:
        # 同一毫秒内的多次快照也必须拿到不同的时间戳
        ts = max(now_millis(), self._last_timestamp + 1)
        if self.backup_dir is not None:
            while (self.backup_dir / str(ts)).exists():
                ts += 1
        self._last_timestamp = ts
        return ts

    def snapshot(self, operation: str = "pre-modification-backup") -> int:
        with self._lock:
            ts = self._next_timestamp()
            files = self.store.files()
            for f in files:
                self._entries[(f.path, ts)] = f.content
            self._timestamps.append(ts)

            if self.backup_dir is not None:
                try:
                    self._persist(ts, {f.path: f.content for f in files}, operation)
                except OSError as e:
                    warning(f"Backup {ts} kept in memory only, could not write to disk: {e}")

        if self.operation_log is not None:
            self.operation_log.append("backup", "completed", backupTimestamp=ts, filesCount=len(files))
        info(f"Backup {ts} created ({len(files)} files)")
        return ts

    def _persist(self, ts: int, contents: Dict[str, str], operation: str):
        target = self.backup_dir / str(ts)
        target.mkdir(parents=True, exist_ok=True)
        manifest_files = {}
        used_names = set()
        for path, content in contents.items():
            name = path.replace("/", "_").replace("\\", "_")
            base, n = name, 1
            while name in used_names:
                name = f"{base}.{n}"
                n += 1
            used_names.add(name)
            with open(target / name, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            manifest_files[path] = {
                "originalPath": path,
                "backupPath": name,
                "size": len(content.encode("utf-8")),
                "checksum": calculate_checksum(content),
            }

        manifest = {
            "timestamp": ts,
            "date": millis_to_iso(ts),
            "operation": operation,
            "files": manifest_files,
        }
        (target / MANIFEST_FILENAME).write_text(json.dumps(manifest, indent=2), encoding="utf-8")

    def _load_persisted(self, ts: int) -> bool:
        """把磁盘上的快照装入内存，不存在或清单损坏时返回 False"""
        if self.backup_dir is None:
            return False
        folder = self.backup_dir / str(ts)
        manifest_file = folder / MANIFEST_FILENAME
        if not manifest_file.exists():
            return False
        try:
            manifest = json.loads(manifest_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            warning(f"Backup {ts} manifest unreadable: {e}")
            return False

        for path, meta in manifest.get("files", {}).items():
            try:
                content = read_source(folder / meta["backupPath"])
            except (OSError, KeyError, ValueError) as e:
                warning(f"Backup {ts}: cannot read copy of {path}: {e}")
                continue
            if meta.get("checksum") and not verify_checksum(content, meta["checksum"]):
                warning(f"Backup {ts}: checksum mismatch for {path}, skipping")
                continue
            self._entries[(path, ts)] = content
        self._timestamps.append(ts)
        return True

    # --- 恢复 ---

    def restore(self, timestamp: int) -> int:
        """
        把快照写回存储中当前已有的每个路径，返回恢复的文件数。
        未知时间戳不做任何修改；快照之后新建的文件不会被删除。
        """
        restored = 0
        with self._lock:
            if timestamp not in self._timestamps and not self._load_persisted(timestamp):
                warning(f"Unknown backup: {timestamp}")
                return 0

            for path in self.store.paths():
                content = self._entries.get((path, timestamp))
                if content is None:
                    continue
                try:
                    self.store.write(path, content)
                except (OSError, ValueError) as e:
                    warning(f"Could not restore {path}: {e}")
                    continue
                restored += 1

        if self.operation_log is not None:
            self.operation_log.append("restore", "completed", backupTimestamp=timestamp, filesCount=restored)
        info(f"Restored {restored} files from backup {timestamp}")
        return restored

    # --- 查询与维护 ---

    def timestamps(self) -> List[int]:
        with self._lock:
            return list(self._timestamps)

    def _persisted_timestamps(self) -> List[int]:
        if self.backup_dir is None or not self.backup_dir.is_dir():
            return []
        return [int(p.name) for p in self.backup_dir.iterdir() if p.is_dir() and p.name.isdigit()]

    def list_backups(self) -> List[BackupInfo]:
        """所有已知快照（内存 + 磁盘），最新的在前"""
        with self._lock:
            memory = set(self._timestamps)
            persisted = set(self._persisted_timestamps())
            result = []
            for ts in sorted(memory | persisted, reverse=True):
                if ts in memory:
                    count = sum(1 for (_, t) in self._entries if t == ts)
                else:
                    count = self._count_persisted_files(ts)
                result.append(BackupInfo(
                    timestamp=ts,
                    date=millis_to_iso(ts),
                    file_count=count,
                    in_memory=ts in memory,
                    persisted=ts in persisted,
                ))
            return result

    def _count_persisted_files(self, ts: int) -> int:
        try:
            manifest = json.loads((self.backup_dir / str(ts) / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return 0
        return len(manifest.get("files", {}))

    def rollback(self, index: int = 0) -> RollbackResult:
        """按 list_backups() 的顺序恢复第 index 个快照（0 = 最新）"""
        backups = self.list_backups()
        if not 0 <= index < len(backups):
            return RollbackResult(success=False, error=f"No backup at index {index} ({len(backups)} available)")
        ts = backups[index].timestamp
        restored = self.restore(ts)
        return RollbackResult(
            success=True,
            restored_backup=ts,
            files_restored=restored,
            message=f"Rolled back to backup {ts} ({restored} files restored)",
        )

    def prune(self, max_keep: int) -> int:
        """只保留最新的 max_keep 个快照，返回删除的快照数"""
        if max_keep < 0:
            raise ValueError("max_keep must be >= 0")
        with self._lock:
            doomed = [b.timestamp for b in self.list_backups()[max_keep:]]
            for ts in doomed:
                for key in [k for k in self._entries if k[1] == ts]:
                    del self._entries[key]
                if ts in self._timestamps:
                    self._timestamps.remove(ts)
                if self.backup_dir is not None:
                    shutil.rmtree(self.backup_dir / str(ts), ignore_errors=True)
        if doomed:
            info(f"Pruned {len(doomed)} backups")
        return len(doomed)
