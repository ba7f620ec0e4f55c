# treecontext/core/store.py
"""
源码存储 (SourceStore)

进程内 路径 -> SourceFile 的映射，是补丁引擎读写源码的唯一入口。
写入采用 "临时文件 + 原子替换"，成功后立即更新存储 (read-after-write)。
"""

import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from .models import SourceFile

PathLike = Union[str, Path]


def read_source(path: PathLike) -> str:
    """按原样读取 UTF-8 文本（不转换换行符）"""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


class SourceStore:
    """线程安全的源码存储，所有路径都被约束在项目根目录之内。"""

    def __init__(self, root: PathLike = "."):
        self.root = Path(root).resolve()
        self._files: Dict[str, SourceFile] = {}
        self._lock = threading.RLock()

    # --- 路径处理 ---

    def resolve(self, path: PathLike) -> Path:
        """
        将相对（或位于根目录内的绝对）路径解析为绝对路径。
        路径逃逸出项目根目录时抛出 ValueError。
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path escapes project root: {path}")
        if candidate == self.root:
            raise ValueError(f"Path does not name a file: {path}")
        return candidate

    def normalize(self, path: PathLike) -> str:
        """返回存储键：相对项目根目录的 POSIX 路径"""
        return self.resolve(path).relative_to(self.root).as_posix()

    # --- 查询 ---

    def get(self, path: PathLike) -> Optional[SourceFile]:
        key = self.normalize(path)
        with self._lock:
            return self._files.get(key)

    def content(self, path: PathLike) -> Optional[str]:
        entry = self.get(path)
        return entry.content if entry else None

    def paths(self) -> List[str]:
        with self._lock:
            return sorted(self._files)

    def files(self) -> List[SourceFile]:
        with self._lock:
            return [self._files[k] for k in sorted(self._files)]

    def __contains__(self, path) -> bool:
        try:
            return self.get(path) is not None
        except ValueError:
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    # --- 更新 ---

    def put(self, path: PathLike, content: str) -> SourceFile:
        """替换（或新增）存储中的条目，不触碰磁盘"""
        key = self.normalize(path)
        entry = SourceFile.from_content(key, content)
        with self._lock:
            self._files[key] = entry
        return entry

    def load_from_disk(self, path: PathLike) -> Optional[SourceFile]:
        """
        从磁盘读取文件并放入存储。
        文件不存在时返回 None；其他 I/O 错误向上抛出。
        """
        target = self.resolve(path)
        if not target.is_file():
            return None
        return self.put(target, read_source(target))

    def write(self, path: PathLike, content: str) -> SourceFile:
        """
        原子写入磁盘并同步更新存储。
        父目录不存在时自动创建；写入失败时磁盘上的原文件保持不变。
        """
        target = self.resolve(path)
        with self._lock:
            target.parent.mkdir(parents=True, exist_ok=True)
            temp_file = target.with_name(target.name + ".tmp")
            try:
                with open(temp_file, "w", encoding="utf-8", newline="") as f:
                    f.write(content)
                os.replace(temp_file, target)
            except OSError:
                temp_file.unlink(missing_ok=True)
                raise
            return self.put(target, content)

    def clear(self):
        with self._lock:
            self._files.clear()
