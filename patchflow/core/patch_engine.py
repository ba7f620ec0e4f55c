# patchflow/core/patch_engine.py
"""
PatchFlow 核心实现 - 补丁引擎 (PatchEngine)

按顺序把补丁操作应用到 SourceStore。所有操作都是纯文本的：
锚点找不到时该操作记为失败，文件保持不变，批次继续执行。
"""

import re
from typing import Iterable, Optional, Tuple

from adaptcoder.utils.console import info, success, warning
from treecontext.core.indexer import TreeIndexer
from treecontext.core.store import SourceStore

from .models import (
    PatchOperation, AddMethod, UpdateMethod, InsertAfter, ReplaceSection, CreateFile,
    ApplicationResult,
)
from ..storage.backup_store import BackupStore
from ..storage.operation_log import OperationLog

# 签名前允许出现的修饰符
METHOD_MODIFIERS = r"(?:(?:async|static|function|public|private|protected|get|set)\s+)*"


class AnchorNotFound(Exception):
    """操作的锚点在目标文件中不存在"""


def _find_signature(content: str, method_name: str) -> Optional[re.Match]:
    signature = re.compile(
        r"^(?P<indent>[ \t]*)" + METHOD_MODIFIERS + re.escape(method_name) + r"\s*\([^)]*\)\s*\{",
        re.MULTILINE,
    )
    return signature.search(content)


def find_method_body(content: str, method_name: str) -> Optional[Tuple[int, int]]:
    """
    定位方法体，返回 (body_start, body_end)：
    body_start 紧跟签名行的 `{`，body_end 指向结束行（或同行的 `}`）。

    签名行上的括号在行内配平（`name() { ... }`）时，以配平的 `}` 为界；
    否则结束行是签名之后第一行仅由 `}` 组成、且缩进与签名行完全相同的行。
    行尾的 `\\r` 不影响匹配。
    """
    match = _find_signature(content, method_name)
    if not match:
        return None

    body_start = match.end()
    line_end = content.find("\n", body_start)
    if line_end == -1:
        line_end = len(content)

    depth = 1
    for i in range(body_start, line_end):
        if content[i] == "{":
            depth += 1
        elif content[i] == "}":
            depth -= 1
            if depth == 0:
                return body_start, i

    closing = re.compile(r"^" + re.escape(match.group("indent")) + r"\}[ \t]*\r?$", re.MULTILINE)
    close_match = closing.search(content, line_end)
    if not close_match:
        return None
    return body_start, close_match.start()


def add_method(content: str, op: AddMethod) -> str:
    index = content.rfind("}")
    if index == -1:
        raise AnchorNotFound("no closing brace in file")
    return content[:index] + op.method_code + "\n" + content[index:]


def update_method(content: str, op: UpdateMethod) -> str:
    span = find_method_body(content, op.method_name)
    if span is None:
        if _find_signature(content, op.method_name):
            raise AnchorNotFound(f"end of method body not found: {op.method_name}")
        raise AnchorNotFound(f"method not found: {op.method_name}")
    start, end = span
    # 沿用文件原有的换行符
    newline = "\r\n" if "\r\n" in content else "\n"
    body = op.new_body.replace("\r\n", "\n").strip("\n").replace("\n", newline)
    return content[:start] + newline + body + newline + content[end:]


def insert_after(content: str, op: InsertAfter) -> str:
    index = content.find(op.anchor_text) if op.anchor_text else -1
    if index == -1:
        raise AnchorNotFound(f"anchor not found: {op.anchor_text!r}")
    end = index + len(op.anchor_text)
    return content[:end] + "\n" + op.content + content[end:]


def replace_section(content: str, op: ReplaceSection) -> str:
    if not op.search_text or op.search_text not in content:
        raise AnchorNotFound(f"search text not found: {op.search_text!r}")
    return content.replace(op.search_text, op.replacement, 1)


TRANSFORMS = {
    AddMethod: add_method,
    UpdateMethod: update_method,
    InsertAfter: insert_after,
    ReplaceSection: replace_section,
}


class PatchEngine:
    """
    补丁引擎。

    :param store: 源码存储，读写都经过它
    :param indexer: 批次结束后用于刷新索引（可选）
    :param backup_store: snapshot=True 时在第一个操作之前做快照（可选）
    :param operation_log: 记录每个批次的结果（可选）
    """

    def __init__(
        self,
        store: SourceStore,
        indexer: Optional[TreeIndexer] = None,
        backup_store: Optional[BackupStore] = None,
        operation_log: Optional[OperationLog] = None,
    ):
        self.store = store
        self.indexer = indexer
        self.backup_store = backup_store
        self.operation_log = operation_log

    def apply(self, operations: Iterable[PatchOperation], snapshot: bool = False) -> ApplicationResult:
        operations = list(operations)
        result = ApplicationResult()

        if snapshot and self.backup_store is not None:
            result.backup_timestamp = self.backup_store.snapshot()

        for op in operations:
            applied, reason = self.apply_one(op)
            result.record(op, applied, reason)

        if self.indexer is not None:
            self.indexer.scan()

        if self.operation_log is not None:
            self.operation_log.append(
                "code-modification",
                "completed" if result.failure_count == 0 else "partial",
                changesApplied=result.success_count,
                changesFailed=result.failure_count,
                backupTimestamp=result.backup_timestamp,
            )

        info(f"Applied {result.success_count}/{result.total} operations")
        return result

    def apply_one(self, op: PatchOperation) -> Tuple[bool, Optional[str]]:
        """应用单个操作，返回 (是否成功, 失败原因)。不会抛出异常。"""
        try:
            if isinstance(op, CreateFile):
                self.store.write(op.file_path, op.content)
                success(f"CREATED: {op.file_path}")
                return True, None

            current = self.store.get(op.file_path)
            if current is None:
                current = self.store.load_from_disk(op.file_path)
            if current is None:
                warning(f"{op.kind.value}: file not found: {op.file_path}")
                return False, "file not found"

            transform = TRANSFORMS[type(op)]
            new_content = transform(current.content, op)
            self.store.write(op.file_path, new_content)
            success(f"{op.kind.value}: {op.file_path}")
            return True, None

        except AnchorNotFound as e:
            warning(f"{op.kind.value} skipped in {op.file_path}: {e}")
            return False, str(e)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            warning(f"{op.kind.value} failed for {op.file_path}: {e}")
            return False, str(e)
