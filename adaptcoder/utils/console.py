# adaptcoder/utils/console.py
"""
控制台输出，基于 rich。
treecontext / patchflow / adaptcoder 的诊断信息都经由这里输出，
消息内容（源码片段、模型回复）一律转义后再交给 rich 渲染。
"""
from typing import Iterable, Optional, Sequence

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

THEME = Theme({
    "info": "cyan bold",
    "success": "green bold",
    "warning": "yellow bold",
    "error": "red bold",
    "heading": "bold underline",
    "assistant": "blue",
    "prompt": "green",
})

# soft_wrap: 长路径和 JSON 不被折行
console = RichConsole(theme=THEME, soft_wrap=True)

# 级别 -> (图标, 标签)
LEVELS = {
    "info": ("💡", "INFO"),
    "success": ("✅", "SUCCESS"),
    "warning": ("⚠️ ", "WARNING"),
    "error": ("❌", "ERROR"),
}


def _emit(level: str, message: str):
    icon, label = LEVELS[level]
    console.print(f"{icon} [{level}]{label}[/{level}]: {escape(message)}")


def info(message: str):
    _emit("info", message)


def success(message: str):
    _emit("success", message)


def warning(message: str):
    _emit("warning", message)


def error(message: str):
    _emit("error", message)


def heading(title: str):
    console.print(f"\n🎯 [heading]{escape(title)}[/heading]\n")


def assistant_says(message: str):
    """工作流或普通对话中助手的回复"""
    console.print(f"🤖 [assistant]{escape(message)}[/assistant]")


def confirm(question: str, default: bool = True) -> bool:
    """Y/N 确认；直接回车取默认值"""
    hint = "[Y/n]" if default else "[y/N]"
    answer = console.input(f"❓ {escape(question)} {escape(hint)}: ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes", "是")


def print_table(rows: Iterable[Sequence], headers: Sequence[str], title: Optional[str] = None):
    table = Table(title=title, show_header=True, header_style="bold magenta")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*[escape(str(cell)) for cell in row])
    console.print(table)


def show_welcome():
    rule = "═" * 50
    console.print("\n" + rule, style="bold blue")
    console.print("🚀 [bold green]AdaptCoder CLI[/bold green] - 自适应源码补丁助手 🤖")
    console.print(rule + "\n", style="bold blue")
