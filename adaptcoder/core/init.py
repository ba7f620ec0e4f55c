# adaptcoder/core/init.py
"""
项目初始化模块：生成 .adaptcoder/config.yaml
"""
import copy
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml

from .config import DEFAULT_CONFIG, validate_config

CONFIG_HEADER = "# AdaptCoder configuration, see `adaptcoder config` for the effective values\n"


def detect_source_roots(root: Path = Path(".")) -> List[str]:
    """默认源码根目录中实际存在的那些"""
    found = [name for name in DEFAULT_CONFIG["source_roots"] if (root / name).is_dir()]
    return found or ["src"]


def build_config(source_roots: List[str], base_url: str, model: str) -> Dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["source_roots"] = source_roots
    config["oracle"]["base_url"] = base_url
    config["oracle"]["model"] = model
    return config


def render_config(config: Dict[str, Any]) -> str:
    return CONFIG_HEADER + yaml.safe_dump(config, sort_keys=False, allow_unicode=True)


def init_project() -> str:
    """
    交互式初始化，返回 config.yaml 的内容（由调用方写入）
    """
    roots_answer = click.prompt(
        "源码根目录 (逗号分隔)",
        default=",".join(detect_source_roots()),
    )
    source_roots = [r.strip() for r in roots_answer.split(",") if r.strip()]
    base_url = click.prompt("模型服务地址 (OpenAI 兼容)", default=DEFAULT_CONFIG["oracle"]["base_url"])
    model = click.prompt("模型名称", default=DEFAULT_CONFIG["oracle"]["model"])

    config = build_config(source_roots, base_url, model)
    problems = validate_config(config)
    if problems:
        raise ValueError("; ".join(problems))
    return render_config(config)
