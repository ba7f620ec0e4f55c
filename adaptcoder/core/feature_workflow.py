# adaptcoder/core/feature_workflow.py
"""
功能请求工作流 (FeatureWorkflow)

Idle -> Clarifying -> Confirming -> Executing -> Idle
Clarifying / Confirming -> Cancelled -> Idle

工作流激活期间，所有输入都交给工作流处理，不再做意图识别。
"""

import re
import threading
from typing import Optional

from ..utils.console import warning
from .config import get_profile
from .generator import FeatureGenerator
from .intent import IntentDetector
from .models import (
    DetectionResult, FeatureWorkflowState, ReplyKind, WorkflowReply, WorkflowStage,
    assistant_turn, user_turn,
)
from .oracle import IOracle, OracleError
from .prompt import render_prompt
from .restart import RestartTrigger

QUIT_PHRASES = frozenset({
    "quit", "cancel", "stop", "exit", "abort", "never mind", "nevermind", "forget it",
})
AFFIRMATIONS = (
    "yes", "y", "yeah", "yep", "yup", "sure", "confirm", "confirmed", "proceed",
    "go ahead", "go for it", "do it", "ok", "okay", "build it", "no problem", "no worries",
)
NEGATIONS = ("no", "n", "nope", "nah", "don't", "dont", "do not", "not now")

CANCELLED_MESSAGE = "👍 Feature request cancelled. Nothing was changed."
REPROMPT_MESSAGE = 'Please answer "yes" to build the feature, or "no" to cancel.'
BUSY_MESSAGE = "A feature is being built right now, please wait."


def normalize(text: str) -> str:
    """小写、去掉标点（保留撇号）、合并空白"""
    text = re.sub(r"[^\w\s']", " ", text.lower())
    return " ".join(text.split())


def _matches(text: str, phrases) -> bool:
    return any(text == p or text.startswith(p + " ") for p in phrases)


def is_quit(text: str) -> bool:
    return normalize(text) in QUIT_PHRASES


def is_affirmation(text: str) -> bool:
    return _matches(normalize(text), AFFIRMATIONS)


def is_negation(text: str) -> bool:
    # "no problem" 之类以 no 开头的肯定回答不算拒绝
    return not is_affirmation(text) and _matches(normalize(text), NEGATIONS)


class FeatureWorkflow:
    """
    对话入口。handle() 对每一句用户输入返回 WorkflowReply；
    reply.handled 为 False 时调用方应按普通对话处理该输入。
    """

    def __init__(
        self,
        oracle: IOracle,
        detector: IntentDetector,
        generator: FeatureGenerator,
        restart_trigger: Optional[RestartTrigger] = None,
        config: Optional[dict] = None,
    ):
        self.oracle = oracle
        self.detector = detector
        self.generator = generator
        self.restart_trigger = restart_trigger
        self.config = config or generator.config
        self.state: Optional[FeatureWorkflowState] = None
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self.state is not None

    def handle(self, utterance: str) -> WorkflowReply:
        with self._lock:
            if self.state is None:
                detection = self.detector.detect(utterance)
                if not detection.is_feature_request:
                    return WorkflowReply(ReplyKind.NOT_HANDLED)
                return self._start(utterance, detection)

            if self.state.stage is WorkflowStage.CLARIFICATION:
                return self._on_clarification(utterance)
            if self.state.stage is WorkflowStage.CONFIRMATION:
                return self._on_confirmation(utterance)
            return WorkflowReply(ReplyKind.REPROMPT, BUSY_MESSAGE)

    def cancel(self) -> WorkflowReply:
        with self._lock:
            self.state = None
            return WorkflowReply(ReplyKind.CANCELLED, CANCELLED_MESSAGE)

    # --- 各阶段 ---

    def _start(self, utterance: str, detection: DetectionResult) -> WorkflowReply:
        self.state = FeatureWorkflowState(original_request=utterance, detection=detection)
        self.state.conversation.append(user_turn(utterance))

        fallback = (
            "🛠️ I can add that feature. Could you tell me a bit more about how it should work "
            "or where it should appear? (Say \"cancel\" at any time to stop.)"
        )
        question = self._ask_oracle(
            "clarify", fallback,
            original_request=utterance,
            description=detection.description,
        )
        self.state.conversation.append(assistant_turn(question))
        return WorkflowReply(ReplyKind.CLARIFY, question, {"detection": detection})

    def _on_clarification(self, utterance: str) -> WorkflowReply:
        if is_quit(utterance):
            return self.cancel()

        state = self.state
        state.clarification = utterance
        state.conversation.append(user_turn(utterance))
        state.stage = WorkflowStage.CONFIRMATION

        fallback = (
            f'Just to confirm: you asked for "{state.original_request}", with these details: '
            f'"{utterance}". I will modify the application source code (a backup is taken first). '
            "Shall I proceed? (yes/no)"
        )
        message = self._ask_oracle(
            "confirm", fallback,
            original_request=state.original_request,
            clarification=utterance,
        )
        state.conversation.append(assistant_turn(message))
        return WorkflowReply(ReplyKind.CONFIRM, message)

    def _on_confirmation(self, utterance: str) -> WorkflowReply:
        if is_quit(utterance) or is_negation(utterance):
            return self.cancel()
        if not is_affirmation(utterance):
            return WorkflowReply(ReplyKind.REPROMPT, REPROMPT_MESSAGE)

        self.state.conversation.append(user_turn(utterance))
        return self._execute()

    def _execute(self) -> WorkflowReply:
        state = self.state
        state.stage = WorkflowStage.EXECUTING
        try:
            change_set = self.generator.generate(state.conversation)
            if change_set.is_empty:
                return WorkflowReply(
                    ReplyKind.FAILED,
                    f"❌ Failed to generate the feature: {change_set.description}. "
                    "The codebase remains unchanged.",
                    {"change_set": change_set},
                )

            result = self.generator.apply(change_set, snapshot=True)
            details = {"change_set": change_set, "result": result}
            if result.success_count == 0:
                reasons = "; ".join(o.reason or "unknown" for o in result.failures)
                return WorkflowReply(
                    ReplyKind.FAILED,
                    f"❌ Failed to apply the feature: none of the {result.total} changes could be applied "
                    f"({reasons}). The codebase remains unchanged.",
                    details,
                )

            lines = []
            if result.failure_count == 0:
                kind = ReplyKind.COMPLETED
                lines.append(f"✅ Feature implemented: {change_set.description}")
                lines.append(f"Applied all {result.success_count} changes.")
            else:
                kind = ReplyKind.PARTIAL
                lines.append(f"⚠️ Feature partially implemented: {change_set.description}")
                lines.append(
                    f"Applied {result.success_count} of {result.total} changes; "
                    f"{result.failure_count} could not be applied."
                )
            if result.backup_timestamp is not None:
                lines.append(f"A backup ({result.backup_timestamp}) was taken before the changes.")

            if change_set.needs_restart and self.restart_trigger is not None:
                restart = self.restart_trigger.request_restart()
                details["restart"] = restart
                if restart.error:
                    lines.append(f"⚠️ Automatic restart failed ({restart.error}). Please restart the application manually.")
                elif restart.scheduled:
                    lines.append("🔄 Restarting the application to load the new feature...")
            elif change_set.needs_restart:
                lines.append("Please restart the application to load the new feature.")

            return WorkflowReply(kind, "\n".join(lines), details)

        except Exception as e:
            warning(f"Feature execution failed: {e}")
            return WorkflowReply(
                ReplyKind.FAILED,
                f"❌ Failed to generate the feature: {e}. The codebase may be partially modified; "
                "use `adaptcoder backup rollback` to restore it.",
            )
        finally:
            self.state = None

    def _ask_oracle(self, template: str, fallback: str, **variables) -> str:
        """生成对话文本；模型失败或返回空白时使用固定文本"""
        profile = get_profile(self.config, "chat")
        try:
            reply = self.oracle.complete(render_prompt(template, **variables),
                                         profile["temperature"], profile["max_tokens"])
        except OracleError as e:
            warning(f"Oracle unavailable, using built-in text: {e}")
            return fallback
        return reply.strip() or fallback
