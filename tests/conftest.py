# tests/conftest.py
"""
AdaptCoder 测试配置和共享 fixtures
"""

import os
from pathlib import Path
from typing import List, Optional, Union

import pytest

from adaptcoder.core.oracle import IOracle, OracleError
from adaptcoder.core.restart import ProcessLauncher
from adaptcoder.core.workspace import Workspace

APP_JS = """class App {
    constructor() {
        this.currentPage = 'dashboard';
    }

    loadNotes() {
        console.log('notes page');
    }

    showSuccess(message) {
        console.log(message);
    }
}

module.exports = App;
"""

INDEX_HTML = """<!DOCTYPE html>
<html>
<body>
    <div id="notesList"></div>
    <button id="sendBtn">Send</button>
</body>
</html>
"""

STYLES_CSS = """body {
    color: #333;
}
"""


class ScriptedOracle(IOracle):
    """
    按顺序返回预设回复的模型替身。
    回复可以是字符串，也可以是异常实例（调用时抛出）；用完后抛出 OracleError。
    """

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        self.replies = list(replies or [])
        self.calls = []

    def complete(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        if not self.replies:
            raise OracleError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingLauncher(ProcessLauncher):
    """记录 launch / exit 调用，不真正启动进程"""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.launches = []
        self.exits = []

    def launch(self, command, cwd):
        if self.fail_with is not None:
            raise self.fail_with
        self.launches.append((list(command), cwd))

    def exit(self, after_delay):
        self.exits.append(after_delay)


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """一个最小的前端项目：src/ui/app.js, public/index.html, styles/main.css"""
    (tmp_path / "src" / "ui").mkdir(parents=True)
    (tmp_path / "src" / "ui" / "app.js").write_text(APP_JS, encoding="utf-8")
    (tmp_path / "public").mkdir()
    (tmp_path / "public" / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (tmp_path / "styles").mkdir()
    (tmp_path / "styles" / "main.css").write_text(STYLES_CSS, encoding="utf-8")
    (tmp_path / "node_modules" / "lib").mkdir(parents=True)
    (tmp_path / "node_modules" / "lib" / "index.js").write_text("function vendored() {}\n", encoding="utf-8")
    (tmp_path / "package.json").write_text('{"name": "demo"}\n', encoding="utf-8")
    return tmp_path


@pytest.fixture
def workspace(project_dir) -> Workspace:
    """已完成扫描的 Workspace，备份持久化到 .adaptcoder/backups"""
    ws = Workspace({"source_roots": ["src", "public", "styles"]}, root=str(project_dir))
    ws.scan()
    return ws


@pytest.fixture
def scripted_oracle():
    return ScriptedOracle


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def launcher_class():
    return RecordingLauncher


@pytest.fixture
def isolated_filesystem(tmp_path):
    """切换当前工作目录到临时目录，测试结束后恢复"""
    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)
