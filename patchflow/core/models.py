# patchflow/core/models.py
"""
PatchFlow 核心数据模型
补丁操作 (PatchOperation)、变更集 (ChangeSet) 与应用结果 (ApplicationResult)。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Union


class PatchKind(Enum):
    ADD_METHOD = "addMethod"
    UPDATE_METHOD = "updateMethod"
    INSERT_AFTER = "insertAfter"
    REPLACE_SECTION = "replaceSection"
    CREATE_FILE = "createFile"


@dataclass
class AddMethod:
    """在文件最后一个 `}` 之前插入一段方法代码"""
    file_path: str
    method_code: str
    kind: PatchKind = field(default=PatchKind.ADD_METHOD, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"filePath": self.file_path, "operation": self.kind.value, "content": self.method_code}


@dataclass
class UpdateMethod:
    """替换已有方法的方法体"""
    file_path: str
    method_name: str
    new_body: str
    kind: PatchKind = field(default=PatchKind.UPDATE_METHOD, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path, "operation": self.kind.value,
            "method": self.method_name, "content": self.new_body,
        }


@dataclass
class InsertAfter:
    """在锚点文本首次出现处之后插入内容"""
    file_path: str
    anchor_text: str
    content: str
    kind: PatchKind = field(default=PatchKind.INSERT_AFTER, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path, "operation": self.kind.value,
            "insertAfter": self.anchor_text, "content": self.content,
        }


@dataclass
class ReplaceSection:
    """替换搜索文本的首次出现"""
    file_path: str
    search_text: str
    replacement: str
    kind: PatchKind = field(default=PatchKind.REPLACE_SECTION, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path, "operation": self.kind.value,
            "search": self.search_text, "content": self.replacement,
        }


@dataclass
class CreateFile:
    """创建（或覆盖）文件"""
    file_path: str
    content: str
    kind: PatchKind = field(default=PatchKind.CREATE_FILE, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"filePath": self.file_path, "operation": self.kind.value, "content": self.content}


PatchOperation = Union[AddMethod, UpdateMethod, InsertAfter, ReplaceSection, CreateFile]


def _require(data: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value
    raise ValueError(f"Missing field {keys[0]!r} in change: {data}")


def operation_from_dict(data: Dict[str, Any]) -> PatchOperation:
    """
    把 ChangeSet JSON 中的一条 change 转为 PatchOperation。
    targetLocation 可作为 search / insertAfter 的别名。
    字段缺失或操作类型未知时抛出 ValueError。
    """
    if not isinstance(data, dict):
        raise ValueError(f"Change must be an object, got {type(data).__name__}")

    file_path = _require(data, "filePath")
    raw_kind = data.get("operation")
    try:
        kind = PatchKind(raw_kind)
    except ValueError:
        raise ValueError(f"Unknown operation: {raw_kind!r}")

    if kind is PatchKind.ADD_METHOD:
        return AddMethod(file_path, _require(data, "content"))
    if kind is PatchKind.UPDATE_METHOD:
        return UpdateMethod(file_path, _require(data, "method"), _require(data, "content"))
    if kind is PatchKind.INSERT_AFTER:
        return InsertAfter(file_path, _require(data, "insertAfter", "targetLocation"), _require(data, "content"))
    if kind is PatchKind.REPLACE_SECTION:
        return ReplaceSection(file_path, _require(data, "search", "targetLocation"), _require(data, "content"))
    return CreateFile(file_path, _require(data, "content"))


@dataclass
class ChangeSet:
    """
    一次功能生成的结果：有序的补丁操作列表 + 描述 + 是否需要重启。
    source 标记来源：oracle / fallback / none（生成失败的空变更集）。
    """
    operations: List[PatchOperation] = field(default_factory=list)
    description: str = ""
    needs_restart: bool = False
    source: str = "oracle"

    @property
    def is_empty(self) -> bool:
        return not self.operations

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [op.to_dict() for op in self.operations],
            "description": self.description,
            "needsRestart": self.needs_restart,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "oracle") -> 'ChangeSet':
        """严格解析：任何一条 change 非法都会抛出 ValueError"""
        changes = data.get("changes")
        if not isinstance(changes, list):
            raise ValueError("ChangeSet requires a 'changes' list")
        return cls(
            operations=[operation_from_dict(c) for c in changes],
            description=str(data.get("description", "")),
            needs_restart=bool(data.get("needsRestart", False)),
            source=source,
        )

    @classmethod
    def empty(cls, description: str) -> 'ChangeSet':
        return cls(operations=[], description=description, needs_restart=False, source="none")


@dataclass
class OperationOutcome:
    operation: PatchOperation
    applied: bool
    reason: Optional[str] = None


@dataclass
class ApplicationResult:
    success_count: int = 0
    failure_count: int = 0
    outcomes: List[OperationOutcome] = field(default_factory=list)
    backup_timestamp: Optional[int] = None

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_applied(self) -> bool:
        return self.failure_count == 0 and self.success_count > 0

    def record(self, operation: PatchOperation, applied: bool, reason: Optional[str] = None):
        self.outcomes.append(OperationOutcome(operation, applied, reason))
        if applied:
            self.success_count += 1
        else:
            self.failure_count += 1

    @property
    def failures(self) -> List[OperationOutcome]:
        return [o for o in self.outcomes if not o.applied]
