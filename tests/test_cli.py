# tests/test_cli.py
"""
CLI 命令测试 (click.testing.CliRunner)
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from adaptcoder.cli import cli
from adaptcoder.core.oracle import HttpOracle

APP_JS = "class App {\n    constructor() {\n        this.page = 'home';\n    }\n}\n"
CONFIG_YAML = "source_roots:\n  - src\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(runner, tmp_path):
    """在临时目录中准备一个最小项目并切换进去"""
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path("src").mkdir()
        Path("src/app.js").write_text(APP_JS, encoding="utf-8")
        Path(".adaptcoder").mkdir()
        Path(".adaptcoder/config.yaml").write_text(CONFIG_YAML, encoding="utf-8")
        yield Path.cwd()


def write_change_set(changes, needs_restart=False):
    Path("changes.json").write_text(json.dumps({
        "changes": changes, "description": "test change", "needsRestart": needs_restart,
    }), encoding="utf-8")
    return "changes.json"


def backup_dirs():
    return sorted(p.name for p in Path(".adaptcoder/backups").iterdir() if p.is_dir())


def test_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("init", "config", "validate", "index", "apply", "generate", "chat", "backup"):
        assert command in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "AdaptCoder CLI v" in result.output


def test_init_writes_config(runner, tmp_path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path("public").mkdir()
        result = runner.invoke(cli, ["init"], input="public\n\nllama3\n")
        assert result.exit_code == 0, result.output
        text = Path(".adaptcoder/config.yaml").read_text(encoding="utf-8")
        assert "llama3" in text
        assert "- public" in text


def test_config_and_validate(runner, project):
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    assert '"source_roots"' in result.output

    result = runner.invoke(cli, ["validate"])
    assert result.exit_code == 0
    assert "Configuration is valid" in result.output


def test_validate_reports_bad_config(runner, project):
    Path(".adaptcoder/config.yaml").write_text("intent:\n  threshold: 3\n", encoding="utf-8")
    result = runner.invoke(cli, ["validate"])
    assert result.exit_code != 0
    assert "intent.threshold" in result.output


def test_unreadable_config_aborts(runner, project):
    Path(".adaptcoder/config.yaml").write_text("source_roots: [\n", encoding="utf-8")
    result = runner.invoke(cli, ["index"])
    assert result.exit_code != 0
    assert "Failed to read" in result.output


def test_index(runner, project):
    result = runner.invoke(cli, ["index"])
    assert result.exit_code == 0
    assert "src/app.js" in result.output


def test_apply_with_backup(runner, project):
    path = write_change_set([
        {"filePath": "src/app.js", "operation": "insertAfter", "insertAfter": "constructor() {",
         "content": "        this.ready = true;"},
        {"filePath": "src/app.js", "operation": "updateMethod", "method": "missing", "content": "x"},
    ])
    result = runner.invoke(cli, ["apply", path, "--yes"])
    assert result.exit_code == 0, result.output
    assert "this.ready = true;" in Path("src/app.js").read_text(encoding="utf-8")
    assert "Applied 1 of 2 changes" in result.output
    assert len(backup_dirs()) == 1


def test_apply_no_backup_and_cancel(runner, project):
    path = write_change_set([{"filePath": "src/app.js", "operation": "replaceSection",
                              "search": "'home'", "content": "'start'"}])
    result = runner.invoke(cli, ["apply", path], input="n\n")
    assert result.exit_code == 0
    assert "'home'" in Path("src/app.js").read_text(encoding="utf-8")

    result = runner.invoke(cli, ["apply", path, "--yes", "--no-backup"])
    assert result.exit_code == 0
    assert "'start'" in Path("src/app.js").read_text(encoding="utf-8")
    assert not Path(".adaptcoder/backups").exists() or backup_dirs() == []


def test_apply_rejects_non_change_set(runner, project):
    Path("notes.txt").write_text("just words", encoding="utf-8")
    result = runner.invoke(cli, ["apply", "notes.txt", "--yes"])
    assert result.exit_code != 0
    assert "does not contain a ChangeSet" in result.output


def test_backup_lifecycle(runner, project):
    assert runner.invoke(cli, ["backup", "create"]).exit_code == 0
    Path("src/app.js").write_text("broken", encoding="utf-8")
    assert runner.invoke(cli, ["backup", "create"]).exit_code == 0
    stamps = backup_dirs()
    assert len(stamps) == 2

    result = runner.invoke(cli, ["backup", "list"])
    assert result.exit_code == 0
    assert stamps[0] in result.output and stamps[1] in result.output

    result = runner.invoke(cli, ["backup", "rollback", "--index", "1"])
    assert result.exit_code == 0, result.output
    assert Path("src/app.js").read_text(encoding="utf-8") == APP_JS

    result = runner.invoke(cli, ["backup", "restore", stamps[1]])
    assert result.exit_code == 0
    assert Path("src/app.js").read_text(encoding="utf-8") == "broken"

    result = runner.invoke(cli, ["backup", "prune", "--keep", "1"])
    assert result.exit_code == 0
    assert backup_dirs() == [stamps[1]]

    result = runner.invoke(cli, ["backup", "log"])
    assert result.exit_code == 0
    assert '"restore"' in result.output


def test_backup_rollback_without_backups(runner, project):
    result = runner.invoke(cli, ["backup", "rollback"])
    assert result.exit_code != 0
    assert "No backup at index 0" in result.output


def test_generate_dry_run_and_apply(runner, project, monkeypatch, scripted_oracle):
    reply = json.dumps({"changes": [{"filePath": "src/app.js", "operation": "addMethod",
                                     "content": "    greet() {\n        return 'hi';\n    }\n"}],
                        "description": "Adds greet", "needsRestart": False})
    oracle = scripted_oracle([reply, reply])
    monkeypatch.setattr(HttpOracle, "from_config", classmethod(lambda cls, config: oracle))

    result = runner.invoke(cli, ["generate", "-d", "add a greeting", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert '"addMethod"' in result.output
    assert "greet()" not in Path("src/app.js").read_text(encoding="utf-8")

    result = runner.invoke(cli, ["generate", "-d", "add a greeting", "--yes"])
    assert result.exit_code == 0, result.output
    assert "greet() {" in Path("src/app.js").read_text(encoding="utf-8")


def test_generate_failure_aborts(runner, project, monkeypatch, scripted_oracle):
    oracle = scripted_oracle(["I don't know how."])
    monkeypatch.setattr(HttpOracle, "from_config", classmethod(lambda cls, config: oracle))
    result = runner.invoke(cli, ["generate", "-d", "add a dark mode toggle", "--yes"])
    assert result.exit_code != 0
    assert Path("src/app.js").read_text(encoding="utf-8") == APP_JS


def test_chat_routes_feature_requests(runner, project, monkeypatch, scripted_oracle):
    oracle = scripted_oracle([
        json.dumps({"isFeatureRequest": False, "confidence": 0.9}),
        "Hello there!",
        json.dumps({"isFeatureRequest": True, "confidence": 0.95}),
        "What should it look like?",
    ])
    monkeypatch.setattr(HttpOracle, "from_config", classmethod(lambda cls, config: oracle))
    result = runner.invoke(cli, ["chat", "--no-restart"], input="hi\nadd a greeting banner\nquit\n\n")
    assert result.exit_code == 0, result.output
    assert "Hello there!" in result.output
    assert "What should it look like?" in result.output
    assert "Feature request cancelled" in result.output
