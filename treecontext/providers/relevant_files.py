# treecontext/providers/relevant_files.py
"""
相关文件 Provider

根据对话关键词给存储中的文件打分，取得分最高的若干文件，
附带截断后的内容片段，避免把整个文件塞进提示词。
"""

import re
from typing import Dict, List

from ..core.provider import IContextProvider
from ..core.models import ContextRequest, ProvidedContext, ContextType, SourceFile
from ..core.store import SourceStore

TRUNCATION_MARKER = "\n...[truncated]"

UI_WORDS = frozenset({
    "ui", "button", "page", "panel", "layout", "theme", "color", "colour",
    "style", "display", "screen", "sidebar", "menu", "modal", "view",
})
STYLE_WORDS = ("color", "colour", "style", "theme")
SCRIPT_SUFFIXES = (".js", ".ts", ".jsx", ".tsx", ".py")

STOP_WORDS = frozenset({
    "the", "and", "for", "that", "this", "with", "from", "have", "want",
    "would", "could", "should", "please", "into", "about", "like", "make",
    "need", "some", "when", "then", "them", "they", "your", "also", "just",
    "able", "add", "can", "you", "let", "get", "its", "are", "was", "will",
    "user", "assistant",
})

MAX_KEYWORDS = 12


def extract_keywords(text: str) -> List[str]:
    """从自由文本中提取去重的小写关键词"""
    keywords = []
    for word in re.findall(r"[a-zA-Z][a-zA-Z0-9_-]{2,}", text.lower()):
        if word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= MAX_KEYWORDS:
            break
    return keywords


def score_file(source: SourceFile, keywords: List[str]) -> int:
    score = 0
    path = source.path.lower()
    ui_request = any(k in UI_WORDS for k in keywords)

    if ui_request and ("ui" in path or "app" in path):
        score += 20
    if source.extension in (".css", ".scss") and any(s in k for k in keywords for s in STYLE_WORDS):
        score += 25
    if source.extension in SCRIPT_SUFFIXES:
        score += 15

    content = source.content.lower()
    for keyword in keywords:
        if keyword in content:
            score += 10

    if 50 < source.line_count < 500:
        score += 5
    return score


def excerpt(content: str, limit: int) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


class RelevantFilesProvider(IContextProvider):
    """提供与请求最相关的文件片段"""

    def __init__(self, store: SourceStore):
        self.store = store

    @property
    def name(self) -> str:
        return "RelevantFilesProvider"

    def get_priority(self, request: ContextRequest) -> int:
        return 60

    def can_provide(self, request: ContextRequest) -> bool:
        return request.max_files > 0

    def _keywords(self, request: ContextRequest) -> List[str]:
        if request.keywords:
            return [k.lower() for k in request.keywords]
        text = " ".join(
            [request.task_description]
            + [t.get("content", "") for t in request.conversation if t.get("role") == "user"]
        )
        return extract_keywords(text)

    def provide(self, request: ContextRequest) -> List[ProvidedContext]:
        keywords = self._keywords(request)
        scored = [(score_file(f, keywords), f) for f in self.store.files()]
        # 同分时按路径排序，保证结果稳定
        scored.sort(key=lambda item: (-item[0], item[1].path))

        relevant: List[Dict] = []
        size = 0
        for score, source in scored[:request.max_files]:
            text = excerpt(source.content, request.excerpt_chars)
            size += len(text)
            relevant.append({
                "path": source.path,
                "score": score,
                "lines": source.line_count,
                "key_elements": (source.classes + source.functions)[:5],
                "content": text,
            })

        return [
            ProvidedContext(
                content={"relevant_files": relevant, "keywords": keywords},
                context_type=ContextType.ACTIONABLE,
                provider_name=self.name,
                size_estimate=size,
            )
        ]
