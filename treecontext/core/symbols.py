# treecontext/core/symbols.py
"""
基于正则的近似符号提取。

只识别 `name(...) {` 形式的函数/方法签名和 `class Name` 声明，
不做语法分析，结果仅用于提示词中的结构概览。
"""

import re
from typing import List

FUNCTION_PATTERN = re.compile(r"(?:async\s+)?(?:function\s+)?(\w+)\s*\([^)]*\)\s*\{")
CLASS_PATTERN = re.compile(r"class\s+(\w+)")

# 会被函数正则误匹配的控制流关键字
CONTROL_KEYWORDS = frozenset({
    "if", "for", "while", "switch", "catch", "function", "return", "with",
})


def _unique(names: List[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def extract_functions(content: str) -> List[str]:
    """返回文件中出现的函数/方法名（去重，保持出现顺序）"""
    names = [m.group(1) for m in FUNCTION_PATTERN.finditer(content)]
    return _unique([n for n in names if n not in CONTROL_KEYWORDS])


def extract_classes(content: str) -> List[str]:
    return _unique([m.group(1) for m in CLASS_PATTERN.finditer(content)])
