# adaptcoder/core/prompt.py
from pathlib import Path
from typing import Any, Dict, List

import jinja2

from .models import Turn

# 📁 模板目录（随包分发）
TEMPLATES_DIR = Path(__file__).parent.parent / "prompts"
ALIASES = {
    'generate': 'generate.md.j2',
    'classify': 'classify.md.j2',
    'classify_simple': 'classify_simple.md.j2',
    'clarify': 'clarify.md.j2',
    'confirm': 'confirm.md.j2',
    'review': 'review.md.j2',
}


def create_jinja_env() -> jinja2.Environment:
    loader = jinja2.FileSystemLoader(str(TEMPLATES_DIR))
    return jinja2.Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )


_env = None


def get_env() -> jinja2.Environment:
    global _env
    if _env is None:
        _env = create_jinja_env()
    return _env


def resolve_template_path(template: str) -> str:
    """解析模板路径：支持别名 + 自动补全 .md.j2"""
    if template in ALIASES:
        return ALIASES[template]
    if not template.endswith('.j2'):
        template += '.md.j2'
    return template


def render_prompt(template: str, **variables: Any) -> str:
    resolved = resolve_template_path(template)
    try:
        tpl = get_env().get_template(resolved)
    except jinja2.TemplateNotFound:
        raise FileNotFoundError(f"Prompt template not found: {TEMPLATES_DIR / resolved}")
    return tpl.render(**variables).strip()


def format_conversation(conversation: List[Turn]) -> str:
    """`ROLE: content` 每轮一行"""
    return "\n".join(f"{t['role'].upper()}: {t['content']}" for t in conversation)


def conversation_text(conversation: List[Turn]) -> str:
    return " ".join(t["content"] for t in conversation)


def template_variables(context: Dict[str, Any]) -> Dict[str, Any]:
    """给缺失的上下文键补默认值，避免 StrictUndefined 报错"""
    return {
        "tree_summary": context.get("tree_summary", ""),
        "symbol_index": context.get("symbol_index", ""),
        "relevant_files": context.get("relevant_files", []),
    }
