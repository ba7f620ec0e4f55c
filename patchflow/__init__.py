"""
PatchFlow 库 - 文本补丁操作、补丁引擎与备份/恢复。
"""

from .core.models import (
    PatchKind, AddMethod, UpdateMethod, InsertAfter, ReplaceSection, CreateFile,
    ChangeSet, ApplicationResult, operation_from_dict,
)
from .core.patch_engine import PatchEngine
from .storage.backup_store import BackupStore
from .storage.operation_log import OperationLog

__all__ = [
    'PatchKind', 'AddMethod', 'UpdateMethod', 'InsertAfter', 'ReplaceSection', 'CreateFile',
    'ChangeSet', 'ApplicationResult', 'operation_from_dict',
    'PatchEngine', 'BackupStore', 'OperationLog',
]
