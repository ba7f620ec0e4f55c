# adaptcoder/core/generator.py
"""
功能生成编排器 (FeatureGenerator)

对话 + 源码树摘要 -> 提示词 -> 模型 -> ChangeSet -> 补丁引擎。
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from patchflow.core.models import ApplicationResult, ChangeSet
from patchflow.core.patch_engine import PatchEngine
from treecontext.core.manager import ContextManager
from treecontext.core.models import ContextRequest

from ..utils.console import info, warning
from .config import DEFAULT_CONFIG, get_profile
from .fallbacks import find_fallback
from .models import Turn
from .oracle import IOracle, OracleError
from .parser import extract_json_object, parse_change_set
from .prompt import render_prompt, format_conversation, conversation_text, template_variables


@dataclass
class GenerationOutcome:
    change_set: ChangeSet
    result: Optional[ApplicationResult] = None


class FeatureGenerator:
    def __init__(
        self,
        oracle: IOracle,
        engine: PatchEngine,
        context_manager: ContextManager,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.oracle = oracle
        self.engine = engine
        self.context_manager = context_manager
        self.config = config or DEFAULT_CONFIG
        self.generator_cfg = {**DEFAULT_CONFIG["generator"], **self.config.get("generator", {})}

    def build_prompt(self, conversation: List[Turn]) -> str:
        """对话 + 文件统计 + 符号索引 + 相关文件片段（不含完整文件内容）"""
        request = ContextRequest(
            task_description=conversation[0]["content"] if conversation else "",
            conversation=list(conversation),
            max_files=self.generator_cfg["max_relevant_files"],
            excerpt_chars=self.generator_cfg["excerpt_chars"],
            max_symbol_lines=self.generator_cfg["max_symbol_lines"],
        )
        context = self.context_manager.get_context(request)
        return render_prompt(
            "generate",
            conversation=format_conversation(conversation),
            **template_variables(context.merged_data),
        )

    def generate(self, conversation: List[Turn]) -> ChangeSet:
        """
        调用模型生成 ChangeSet。
        模型不可用、回复无法解析或 changes 为空时，若对话提到已知能力则返回兜底变更集，
        否则返回带失败说明的空变更集。
        """
        prompt = self.build_prompt(conversation)
        profile = get_profile(self.config, "generate")
        failure = "The model reply did not contain a usable change list"
        change_set = None
        try:
            reply = self.oracle.complete(prompt, profile["temperature"], profile["max_tokens"])
            change_set = parse_change_set(reply)
        except OracleError as e:
            warning(f"Feature generation call failed: {e}")
            failure = f"Feature generation failed: {e}"

        if change_set is not None and not change_set.is_empty:
            if self.generator_cfg.get("review"):
                return self.review(change_set)
            return change_set

        notes_file = self.config.get("fallbacks", {}).get("notes_file", DEFAULT_CONFIG["fallbacks"]["notes_file"])
        fallback = find_fallback(conversation_text(conversation), notes_file)
        if fallback is not None:
            info(f"Using built-in change set: {fallback.description}")
            return fallback
        return ChangeSet.empty(failure)

    def review(self, change_set: ChangeSet) -> ChangeSet:
        """
        第二次调用模型对变更做安全审查。
        分数低于阈值时拒绝（返回空变更集）；审查给出修正列表时采用修正版本。
        审查调用本身失败时保留原变更集。
        """
        prompt = render_prompt(
            "review",
            description=change_set.description,
            changes_json=json.dumps(change_set.to_dict()["changes"], indent=2),
        )
        profile = get_profile(self.config, "review")
        try:
            reply = self.oracle.complete(prompt, profile["temperature"], profile["max_tokens"])
        except OracleError as e:
            warning(f"Review skipped: {e}")
            return change_set

        data = extract_json_object(reply)
        if data is None:
            warning("Review reply was not JSON, keeping original changes")
            return change_set

        try:
            score = float(data.get("safetyScore", 0))
        except (TypeError, ValueError):
            score = 0.0
        threshold = self.generator_cfg["review_threshold"]
        if score < threshold:
            issues = "; ".join(str(i) for i in data.get("issues", [])) or "no details"
            return ChangeSet.empty(f"Changes rejected by review (safety score {score:.0f} < {threshold}): {issues}")

        if isinstance(data.get("changes"), list) and data["changes"]:
            corrected = parse_change_set(json.dumps({
                "changes": data["changes"],
                "description": change_set.description,
                "needsRestart": change_set.needs_restart,
            }))
            if corrected is not None and not corrected.is_empty:
                return corrected
        return change_set

    def apply(self, change_set: ChangeSet, snapshot: bool = True) -> ApplicationResult:
        return self.engine.apply(change_set.operations, snapshot=snapshot)

    def generate_and_apply(self, conversation: List[Turn]) -> GenerationOutcome:
        change_set = self.generate(conversation)
        if change_set.is_empty:
            return GenerationOutcome(change_set=change_set)
        return GenerationOutcome(change_set=change_set, result=self.apply(change_set))
