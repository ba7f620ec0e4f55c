# adaptcoder/core/models.py
"""
AdaptCoder 数据模型：对话轮次、意图识别结果、功能请求工作流状态。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TypedDict


class Turn(TypedDict):
    role: str      # user | assistant | system
    content: str


def user_turn(content: str) -> Turn:
    return {"role": "user", "content": content}


def assistant_turn(content: str) -> Turn:
    return {"role": "assistant", "content": content}


@dataclass
class DetectionResult:
    is_feature_request: bool
    confidence: float = 0.0
    target: str = ""
    feature_type: str = ""
    priority: str = "medium"
    description: str = ""
    method: str = "none"   # primary | secondary | guard | none

    @classmethod
    def negative(cls, method: str = "none") -> 'DetectionResult':
        return cls(is_feature_request=False, method=method)


class WorkflowStage(Enum):
    CLARIFICATION = "clarification"
    CONFIRMATION = "confirmation"
    EXECUTING = "executing"


@dataclass
class FeatureWorkflowState:
    """同一时刻至多存在一个；退出、否认或执行结束后被清除"""
    original_request: str
    detection: DetectionResult
    stage: WorkflowStage = WorkflowStage.CLARIFICATION
    clarification: Optional[str] = None
    conversation: List[Turn] = field(default_factory=list)


class ReplyKind(Enum):
    NOT_HANDLED = "not_handled"
    CLARIFY = "clarify"
    CONFIRM = "confirm"
    REPROMPT = "reprompt"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class WorkflowReply:
    """FeatureWorkflow.handle() 的返回值；handled=False 时调用方按普通对话处理"""
    kind: ReplyKind
    message: str = ""
    details: Dict = field(default_factory=dict)

    @property
    def handled(self) -> bool:
        return self.kind is not ReplyKind.NOT_HANDLED
