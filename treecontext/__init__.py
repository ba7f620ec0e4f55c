"""
TreeContext 库 - 源码树索引与提示词上下文生成。
"""

from .core.store import SourceStore
from .core.indexer import TreeIndexer
from .core.manager import ContextManager
from .core.models import SourceFile, ContextRequest, FinalContext

__all__ = ['SourceStore', 'TreeIndexer', 'ContextManager', 'SourceFile', 'ContextRequest', 'FinalContext']
