# treecontext/providers/tree_overview.py
"""源码树概览 Provider：文件统计与符号索引"""

from collections import Counter
from pathlib import PurePosixPath
from typing import List

from ..core.provider import IContextProvider
from ..core.models import ContextRequest, ProvidedContext, ContextType
from ..core.store import SourceStore


class TreeOverviewProvider(IContextProvider):
    """提供文件总数、各扩展名数量和主要目录"""

    MAX_KEY_DIRECTORIES = 10

    def __init__(self, store: SourceStore):
        self.store = store

    @property
    def name(self) -> str:
        return "TreeOverviewProvider"

    def get_priority(self, request: ContextRequest) -> int:
        return 80

    def provide(self, request: ContextRequest) -> List[ProvidedContext]:
        files = self.store.files()
        by_extension = Counter(f.extension or "(none)" for f in files)

        directories = []
        for f in files:
            parent = PurePosixPath(f.path).parent.as_posix()
            if parent != "." and parent not in directories:
                directories.append(parent)

        lines = [f"Total files: {len(files)}"]
        if by_extension:
            counts = ", ".join(f"{ext}: {n}" for ext, n in sorted(by_extension.items()))
            lines.append(f"File types: {counts}")
        if directories:
            lines.append("Key directories: " + ", ".join(directories[:self.MAX_KEY_DIRECTORIES]))
        summary = "\n".join(lines)

        return [
            ProvidedContext(
                content={
                    "tree_summary": summary,
                    "total_files": len(files),
                    "file_types": dict(by_extension),
                },
                context_type=ContextType.INFORMATIONAL,
                provider_name=self.name,
                size_estimate=len(summary),
            )
        ]


class SymbolIndexProvider(IContextProvider):
    """每个文件一行：`path: classes | functions: ...`"""

    def __init__(self, store: SourceStore):
        self.store = store

    @property
    def name(self) -> str:
        return "SymbolIndexProvider"

    def get_priority(self, request: ContextRequest) -> int:
        return 70

    def provide(self, request: ContextRequest) -> List[ProvidedContext]:
        entries = []
        for f in self.store.files():
            if not f.functions and not f.classes:
                continue
            classes = ", ".join(f.classes) or "-"
            functions = ", ".join(f.functions) or "-"
            entries.append(f"{f.path}: {classes} | functions: {functions}")

        omitted = max(0, len(entries) - request.max_symbol_lines)
        entries = entries[:request.max_symbol_lines]
        if omitted:
            entries.append(f"... ({omitted} more files)")
        symbol_index = "\n".join(entries)

        return [
            ProvidedContext(
                content={"symbol_index": symbol_index},
                context_type=ContextType.GUIDING,
                provider_name=self.name,
                size_estimate=len(symbol_index),
            )
        ]
