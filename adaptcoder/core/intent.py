# adaptcoder/core/intent.py
"""
意图识别：判断一句用户输入是否在请求新功能。

1. 明显的系统/控制文本直接判为否，不调用模型；
2. 主提示词要求 JSON，置信度 >= 阈值才判为是；
3. 主提示词失败时用粗粒度的 START_WORKFLOW / NORMAL_CHAT 提示词再问一次；
4. 两次都失败则判为否。
"""

import re
from typing import Any, Dict, Optional

from ..utils.console import warning
from .config import DEFAULT_CONFIG, get_profile
from .models import DetectionResult
from .oracle import IOracle, OracleError
from .parser import extract_json_object
from .prompt import render_prompt

SYSTEM_PREFIXES = (
    "SYSTEM:", "CONTEXT:", "ASSISTANT:", "CONVERSATION HISTORY:", "PROJECT STRUCTURE",
    "EXECUTE_FEATURE_GENERATION", "CANCEL_WORKFLOW", "START_WORKFLOW", "NORMAL_CHAT",
    "✅", "❌", "⚠️", "🔄",
)
MAX_UTTERANCE_LENGTH = 1000
START_WORKFLOW = re.compile(r"START_WORKFLOW\s*:\s*(.*)", re.IGNORECASE)


def looks_like_system_text(utterance: str) -> bool:
    text = utterance.strip()
    if not text or len(text) > MAX_UTTERANCE_LENGTH:
        return True
    if text.upper().startswith(tuple(p.upper() for p in SYSTEM_PREFIXES)):
        return True
    if text.startswith("{") and text.endswith("}"):
        return True
    return False


class IntentDetector:
    def __init__(self, oracle: IOracle, config: Optional[Dict[str, Any]] = None):
        self.oracle = oracle
        self.config = config or DEFAULT_CONFIG
        self.threshold = float(self.config.get("intent", {}).get("threshold", 0.85))

    def detect(self, utterance: str) -> DetectionResult:
        if looks_like_system_text(utterance):
            return DetectionResult.negative(method="guard")

        result = self._primary(utterance)
        if result is not None:
            return result

        result = self._secondary(utterance)
        if result is not None:
            return result
        return DetectionResult.negative()

    def _primary(self, utterance: str) -> Optional[DetectionResult]:
        """返回 None 表示本步失败，需要走备用提示词"""
        profile = get_profile(self.config, "classify")
        try:
            reply = self.oracle.complete(render_prompt("classify", utterance=utterance),
                                         profile["temperature"], profile["max_tokens"])
        except OracleError as e:
            warning(f"Intent classification failed: {e}")
            return None

        data = extract_json_object(reply)
        if data is None or "isFeatureRequest" not in data:
            return None
        try:
            confidence = float(data.get("confidence", 0))
        except (TypeError, ValueError):
            return None

        is_request = bool(data.get("isFeatureRequest")) and confidence >= self.threshold
        return DetectionResult(
            is_feature_request=is_request,
            confidence=confidence,
            target=str(data.get("target", "")),
            feature_type=str(data.get("type", "")),
            priority=str(data.get("priority", "medium")),
            description=str(data.get("description", "")),
            method="primary",
        )

    def _secondary(self, utterance: str) -> Optional[DetectionResult]:
        profile = get_profile(self.config, "classify")
        try:
            reply = self.oracle.complete(render_prompt("classify_simple", utterance=utterance),
                                         profile["temperature"], profile["max_tokens"])
        except OracleError as e:
            warning(f"Fallback intent classification failed: {e}")
            return None

        m = START_WORKFLOW.search(reply)
        if m:
            return DetectionResult(
                is_feature_request=True,
                confidence=self.threshold,
                description=m.group(1).strip() or utterance,
                method="secondary",
            )
        if "NORMAL_CHAT" in reply.upper():
            return DetectionResult.negative(method="secondary")
        return None
