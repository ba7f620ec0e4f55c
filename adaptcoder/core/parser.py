# adaptcoder/core/parser.py
"""
模型回复解析：从自由文本中提取第一个 JSON 对象并转为 ChangeSet。
"""

import json
import re
from typing import Any, Dict, Optional

from patchflow.core.models import ChangeSet, operation_from_dict
from ..utils.console import warning

FENCED_JSON = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
FENCED_ANY = re.compile(r"```\w*\s*(\{.*?\})\s*```", re.DOTALL)
GREEDY_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _first_balanced_object(text: str) -> Optional[str]:
    """从第一个 `{` 开始按括号配对截取，忽略字符串中的括号"""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find("{", start + 1)
    return None


def repair_json(candidate: str) -> str:
    """修复常见的格式问题：尾随逗号、未加引号的键、单引号字符串"""
    repaired = re.sub(r",\s*([}\]])", r"\1", candidate)
    repaired = re.sub(r"([{,]\s*)([A-Za-z_]\w*)(\s*:)", r'\1"\2"\3', repaired)
    repaired = re.sub(r":\s*'([^'\\]*(?:\\.[^'\\]*)*)'", lambda m: ": " + json.dumps(m.group(1)), repaired)
    return repaired


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    依次尝试：```json 代码块、任意代码块、第一个配对完整的对象、贪婪匹配；
    全部失败后对候选文本做一次修复再解析。
    """
    if not text:
        return None

    candidates = []
    for pattern in (FENCED_JSON, FENCED_ANY):
        m = pattern.search(text)
        if m:
            candidates.append(m.group(1))
    balanced = _first_balanced_object(text)
    if balanced:
        candidates.append(balanced)
    m = GREEDY_OBJECT.search(text)
    if m:
        candidates.append(m.group(0))

    for candidate in candidates:
        value = _loads_object(candidate)
        if value is not None:
            return value
    for candidate in candidates:
        value = _loads_object(repair_json(candidate))
        if value is not None:
            return value
    return None


def parse_change_set(text: str) -> Optional[ChangeSet]:
    """
    把模型回复解析为 ChangeSet。
    找不到对象或没有 changes 列表时返回 None；单条非法 change 被跳过。
    """
    data = extract_json_object(text)
    if data is None:
        return None
    changes = data.get("changes")
    if not isinstance(changes, list):
        return None

    operations = []
    for raw in changes:
        try:
            operations.append(operation_from_dict(raw))
        except ValueError as e:
            warning(f"Skipping malformed change: {e}")

    return ChangeSet(
        operations=operations,
        description=str(data.get("description", "")),
        needs_restart=bool(data.get("needsRestart", False)),
        source="oracle",
    )
