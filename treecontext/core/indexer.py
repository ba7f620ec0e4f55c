# treecontext/core/indexer.py
"""
源码树索引器 (TreeIndexer)

遍历配置的源码根目录，把匹配后缀的文件装入 SourceStore。
每批补丁应用之后都会重新扫描一次。
"""

from pathlib import Path
from typing import Iterable, List, Optional

from adaptcoder.utils.console import info, warning
from .store import SourceStore, read_source

DEFAULT_SOURCE_ROOTS = [
    "src", "public", "assets", "config", "database", "scripts", "components",
    "pages", "styles", "utils", "lib", "api", "docs", "tests",
]

DEFAULT_SOURCE_SUFFIXES = [
    ".js", ".ts", ".json", ".html", ".css", ".scss", ".jsx", ".tsx",
    ".vue", ".md", ".txt", ".sql", ".py",
]

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules", ".git", ".vscode", "dist", "build", ".next", ".nuxt",
    "coverage", ".nyc_output", ".adaptcoder", "logs", "__pycache__",
]


class TreeIndexer:
    """把磁盘上的源码树同步到 SourceStore"""

    def __init__(
        self,
        store: SourceStore,
        source_roots: Optional[Iterable[str]] = None,
        source_suffixes: Optional[Iterable[str]] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        include_root_files: bool = True,
    ):
        self.store = store
        self.source_roots: List[str] = list(source_roots if source_roots is not None else DEFAULT_SOURCE_ROOTS)
        self.source_suffixes = tuple(s.lower() for s in (source_suffixes if source_suffixes is not None else DEFAULT_SOURCE_SUFFIXES))
        self.exclude_patterns: List[str] = list(exclude_patterns if exclude_patterns is not None else DEFAULT_EXCLUDE_PATTERNS)
        self.include_root_files = include_root_files

    def scan(self) -> int:
        """
        扫描所有源码根目录，返回本次装入（或刷新）的文件数。
        已在存储中但磁盘上已消失的文件不会被移除。
        """
        loaded = 0
        root = self.store.root
        for name in self.source_roots:
            directory = root / name
            if not directory.is_dir():
                info(f"Source root not found, skipping: {name}")
                continue
            loaded += self._scan_dir(directory)

        if self.include_root_files:
            loaded += self._scan_dir(root, recursive=False)

        return loaded

    def is_excluded(self, path: Path) -> bool:
        """路径中任何一段命中排除规则，或以 '.' 开头，都跳过"""
        try:
            parts = path.relative_to(self.store.root).parts
        except ValueError:
            return True
        for part in parts:
            if part.startswith("."):
                return True
            if part in self.exclude_patterns:
                return True
        return False

    def is_source_file(self, path: Path) -> bool:
        return path.name.lower().endswith(self.source_suffixes)

    def _scan_dir(self, directory: Path, recursive: bool = True) -> int:
        loaded = 0
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            warning(f"Cannot read directory {directory}: {e}")
            return 0

        for entry in entries:
            if self.is_excluded(entry):
                continue
            if entry.is_dir():
                if recursive:
                    loaded += self._scan_dir(entry)
            elif entry.is_file() and self.is_source_file(entry):
                if self._load(entry):
                    loaded += 1
        return loaded

    def _load(self, path: Path) -> bool:
        try:
            content = read_source(path)
        except (OSError, UnicodeDecodeError) as e:
            warning(f"Cannot read {path}: {e}")
            return False
        try:
            self.store.put(path, content)
        except ValueError as e:
            # 指向根目录之外的符号链接
            warning(str(e))
            return False
        return True
