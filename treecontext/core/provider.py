# treecontext/core/provider.py
from abc import ABC, abstractmethod
from typing import List

from .models import ContextRequest, ProvidedContext


class IContextProvider(ABC):
    """
    上下文来源。每个 Provider 只负责提示词中的一部分信息
    （目录概览、符号索引、相关文件片段……）。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def provide(self, request: ContextRequest) -> List[ProvidedContext]:
        pass

    def get_priority(self, request: ContextRequest) -> int:
        # 0-100，越大越先运行
        return 50

    def can_provide(self, request: ContextRequest) -> bool:
        return True
