# treecontext/core/manager.py
"""
上下文管理器：按优先级调用各 Provider，合并它们的输出。
"""

import time
from typing import Any, Dict, List, Tuple

from adaptcoder.utils.console import warning
from .models import ContextRequest, FinalContext, ProvidedContext
from .provider import IContextProvider


class ContextManager:

    def __init__(self):
        self._providers: List[IContextProvider] = []

    @property
    def providers(self) -> List[IContextProvider]:
        return list(self._providers)

    def register_provider(self, provider: IContextProvider):
        """同名 Provider 会被替换"""
        self._providers = [p for p in self._providers if p.name != provider.name]
        self._providers.append(provider)

    def get_context(self, request: ContextRequest) -> FinalContext:
        """
        高优先级的 Provider 先运行；合并时后运行者覆盖同名键。
        单个 Provider 抛出异常只会记入诊断信息。
        """
        started = time.perf_counter()
        active = [p for p in self._providers if p.can_provide(request)]
        active.sort(key=lambda p: p.get_priority(request), reverse=True)

        pieces: List[ProvidedContext] = []
        diagnostics: List[Dict[str, Any]] = []
        for provider in active:
            provided, diagnostic = self._run(provider, request)
            pieces.extend(provided)
            diagnostics.append(diagnostic)

        merged: Dict[str, Any] = {}
        total_size = 0
        for piece in pieces:
            merged.update(piece.content)
            total_size += piece.size_estimate or 0

        return FinalContext(
            merged_data=merged,
            provider_diagnostics=diagnostics,
            generation_time=time.perf_counter() - started,
            total_size=total_size,
        )

    @staticmethod
    def _run(provider: IContextProvider, request: ContextRequest) -> Tuple[List[ProvidedContext], Dict[str, Any]]:
        started = time.perf_counter()
        diagnostic: Dict[str, Any] = {"provider": provider.name}
        try:
            provided = provider.provide(request)
        except Exception as e:
            warning(f"Provider {provider.name} failed: {e}")
            diagnostic.update(status="error", error=str(e), time_taken=time.perf_counter() - started)
            return [], diagnostic
        diagnostic.update(status="success", contexts_provided=len(provided),
                          time_taken=time.perf_counter() - started)
        return provided, diagnostic
