# treecontext/core/models.py
"""TreeContext 核心数据模型"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Any, List, Optional
from enum import Enum

from .symbols import extract_functions, extract_classes


@dataclass
class SourceFile:
    """
    源码存储中的一个文件条目。
    path 是相对项目根目录的 POSIX 路径，也是存储中的唯一键。
    lines / functions / classes 都由 content 派生，每次写入后重新计算。
    """
    path: str
    content: str
    lines: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)

    @classmethod
    def from_content(cls, path: str, content: str) -> 'SourceFile':
        return cls(
            path=path,
            content=content,
            lines=content.split("\n"),
            functions=extract_functions(content),
            classes=extract_classes(content),
        )

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()


class ContextType(Enum):
    """上下文信息的类型"""
    INFORMATIONAL = "informational"  # 通用信息 (如文件统计)
    GUIDING = "guiding"             # 指导性信息 (如符号索引)
    ACTIONABLE = "actionable"       # 可直接引用的源码片段


@dataclass
class ContextRequest:
    """
    向 ContextManager 发起上下文生成请求的数据结构。
    """
    task_description: str
    conversation: List[Dict[str, str]] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    # --- 请求约束 ---
    max_files: int = 5
    excerpt_chars: int = 1500
    max_symbol_lines: int = 40
    max_context_size: Optional[int] = None


@dataclass
class ProvidedContext:
    """
    单个 ContextProvider 提供的上下文片段。
    """
    content: Dict[str, Any]
    context_type: ContextType
    provider_name: str
    meta: Dict[str, Any] = field(default_factory=dict)
    size_estimate: Optional[int] = None


@dataclass
class FinalContext:
    """
    ContextManager 最终合并后返回的上下文，merged_data 直接供 Jinja2 渲染使用。
    """
    merged_data: Dict[str, Any]
    provider_diagnostics: List[Dict[str, Any]] = field(default_factory=list)
    generation_time: float = 0.0
    total_size: int = 0
