# tests/test_generator.py
"""
FeatureGenerator 测试：提示词组装、回复解析、兜底变更集、安全审查。
"""

import json

from adaptcoder.core.models import assistant_turn, user_turn
from adaptcoder.core.oracle import OracleError
from adaptcoder.core.workspace import Workspace
from patchflow.core.models import AddMethod, PatchKind

APP = "src/ui/app.js"

PING_REPLY = json.dumps({
    "changes": [{"filePath": APP, "operation": "addMethod", "content": "    ping() {\n        return 1;\n    }\n"}],
    "description": "Adds ping",
    "needsRestart": False,
})


def test_build_prompt_contains_summaries_and_excerpts(project_dir, scripted_oracle):
    ws = Workspace(
        {"source_roots": ["src", "public", "styles"], "generator": {"excerpt_chars": 40}},
        root=str(project_dir),
    )
    ws.scan()
    generator = ws.build_generator(scripted_oracle())
    prompt = generator.build_prompt([user_turn("add a notes page to the ui"), assistant_turn("Which fields?")])

    assert "USER: add a notes page to the ui" in prompt
    assert "ASSISTANT: Which fields?" in prompt
    assert "Total files: 4" in prompt
    assert "src/ui/app.js: App | functions: constructor, loadNotes, showSuccess" in prompt
    assert "=== src/ui/app.js ===" in prompt
    assert "...[truncated]" in prompt
    # 只有片段，没有完整文件内容
    assert "console.log(message)" not in prompt
    assert "vendored" not in prompt


def test_generate_parses_oracle_reply(workspace, scripted_oracle):
    oracle = scripted_oracle(["Here are the changes:\n```json\n" + PING_REPLY + "\n```"])
    cs = workspace.build_generator(oracle).generate([user_turn("add a ping method")])
    assert cs.source == "oracle"
    assert cs.operations == [AddMethod(APP, "    ping() {\n        return 1;\n    }\n")]
    assert oracle.calls[0]["temperature"] == 0.2
    assert oracle.calls[0]["max_tokens"] == 4000


def test_generate_falls_back_for_notes_when_reply_is_prose(workspace, scripted_oracle):
    oracle = scripted_oracle(["I am not able to write that code right now."])
    cs = workspace.build_generator(oracle).generate([user_turn("add notes to the dashboard")])
    assert cs.is_fallback
    assert cs.needs_restart
    assert [op.kind for op in cs.operations] == [
        PatchKind.ADD_METHOD, PatchKind.ADD_METHOD, PatchKind.INSERT_AFTER, PatchKind.UPDATE_METHOD,
    ]
    assert all(op.file_path == APP for op in cs.operations)


def test_generate_uses_configured_fallback_target(project_dir, scripted_oracle):
    ws = Workspace({"fallbacks": {"notes_file": "src/main.js"}}, root=str(project_dir))
    cs = ws.build_generator(scripted_oracle([])).generate([user_turn("note taking please")])
    assert {op.file_path for op in cs.operations} == {"src/main.js"}


def test_generate_without_fallback_returns_empty(workspace, scripted_oracle):
    oracle = scripted_oracle([OracleError("connection refused")])
    cs = workspace.build_generator(oracle).generate([user_turn("add a dark mode toggle")])
    assert cs.is_empty
    assert cs.source == "none"
    assert "connection refused" in cs.description


def test_generate_with_empty_change_list_uses_fallback_rules(workspace, scripted_oracle):
    oracle = scripted_oracle(['{"changes": [], "description": "nothing to do"}'])
    cs = workspace.build_generator(oracle).generate([user_turn("add a settings page")])
    assert cs.is_empty


def test_generate_and_apply(workspace, scripted_oracle):
    outcome = workspace.build_generator(scripted_oracle([PING_REPLY])).generate_and_apply(
        [user_turn("add a ping method")]
    )
    assert outcome.result.success_count == 1
    assert outcome.result.backup_timestamp is not None
    assert "ping() {" in (workspace.root / APP).read_text(encoding="utf-8")


def test_generate_and_apply_skips_engine_for_empty_change_set(workspace, scripted_oracle):
    outcome = workspace.build_generator(scripted_oracle(["no"])).generate_and_apply([user_turn("dark mode")])
    assert outcome.result is None
    assert workspace.backup_store.timestamps() == []


def _reviewing_workspace(project_dir):
    ws = Workspace({"source_roots": ["src"], "generator": {"review": True}}, root=str(project_dir))
    ws.scan()
    return ws


def test_review_rejects_low_score(project_dir, scripted_oracle):
    ws = _reviewing_workspace(project_dir)
    review = json.dumps({"safetyScore": 30, "issues": ["deletes the constructor"]})
    cs = ws.build_generator(scripted_oracle([PING_REPLY, review])).generate([user_turn("add ping")])
    assert cs.is_empty
    assert "deletes the constructor" in cs.description


def test_review_accepts_and_applies_corrections(project_dir, scripted_oracle):
    ws = _reviewing_workspace(project_dir)
    review = json.dumps({
        "safetyScore": 90,
        "issues": [],
        "changes": [{"filePath": APP, "operation": "addMethod", "content": "    pong() {}\n"}],
    })
    oracle = scripted_oracle([PING_REPLY, review])
    cs = ws.build_generator(oracle).generate([user_turn("add ping")])
    assert cs.operations == [AddMethod(APP, "    pong() {}\n")]
    assert cs.description == "Adds ping"
    assert "PROPOSED CHANGES" in oracle.calls[1]["prompt"]


def test_review_failure_keeps_original(project_dir, scripted_oracle):
    ws = _reviewing_workspace(project_dir)
    cs = ws.build_generator(scripted_oracle([PING_REPLY, OracleError("timeout")])).generate([user_turn("add ping")])
    assert cs.operations[0].method_code.startswith("    ping()")
