# adaptcoder/core/config.py
"""
配置加载：.adaptcoder/config.yaml

文件中缺失的键取 DEFAULT_CONFIG 中的默认值（深度合并）。
"""

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from treecontext.core.indexer import (
    DEFAULT_SOURCE_ROOTS, DEFAULT_SOURCE_SUFFIXES, DEFAULT_EXCLUDE_PATTERNS,
)

STATE_DIR = Path(".adaptcoder")
CONFIG_FILE = STATE_DIR / "config.yaml"


class ConfigError(Exception):
    """配置文件无法读取或内容非法"""


DEFAULT_CONFIG: Dict[str, Any] = {
    "project_root": ".",
    "source_roots": list(DEFAULT_SOURCE_ROOTS),
    "source_suffixes": list(DEFAULT_SOURCE_SUFFIXES),
    "exclude_patterns": list(DEFAULT_EXCLUDE_PATTERNS),
    "include_root_files": True,
    "backup": {
        "dir": ".adaptcoder/backups",
    },
    "oracle": {
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
        "timeout": 60,
        "profiles": {
            "classify": {"temperature": 0.1, "max_tokens": 300},
            "chat": {"temperature": 0.7, "max_tokens": 500},
            "generate": {"temperature": 0.2, "max_tokens": 4000},
            "review": {"temperature": 0.1, "max_tokens": 3000},
        },
    },
    "intent": {
        "threshold": 0.85,
    },
    "generator": {
        "max_relevant_files": 5,
        "excerpt_chars": 1500,
        "max_symbol_lines": 40,
        "review": False,
        "review_threshold": 70,
    },
    "fallbacks": {
        "notes_file": "src/ui/app.js",
    },
    "restart": {
        "command": None,
        "grace_delay": 2.0,
        "exit_delay": 1.0,
    },
}

DEFAULT_PROFILE = {"temperature": 0.7, "max_tokens": 2000}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """返回 base 的副本，override 中的值逐层覆盖"""
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    读取配置并与默认值合并。
    文件不存在时直接返回默认配置；YAML 非法时抛出 ConfigError。
    """
    config_file = Path(config_file) if config_file else CONFIG_FILE
    if not config_file.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {config_file}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a mapping")
    return deep_merge(DEFAULT_CONFIG, data)


def validate_config(data: Dict[str, Any]) -> List[str]:
    """返回配置中的问题列表，空列表表示合法"""
    problems = []
    for key in ("source_roots", "source_suffixes", "exclude_patterns"):
        value = data.get(key)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            problems.append(f"'{key}' must be a list of strings")

    threshold = data.get("intent", {}).get("threshold")
    if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
        problems.append("'intent.threshold' must be a number between 0 and 1")

    review_threshold = data.get("generator", {}).get("review_threshold")
    if not isinstance(review_threshold, (int, float)) or not 0 <= review_threshold <= 100:
        problems.append("'generator.review_threshold' must be a number between 0 and 100")

    restart = data.get("restart", {})
    command = restart.get("command")
    if command is not None and not (
        isinstance(command, str) or (isinstance(command, list) and all(isinstance(c, str) for c in command))
    ):
        problems.append("'restart.command' must be a string, a list of strings or null")
    for key in ("grace_delay", "exit_delay"):
        value = restart.get(key)
        if not isinstance(value, (int, float)) or value < 0:
            problems.append(f"'restart.{key}' must be a non-negative number")

    profiles = data.get("oracle", {}).get("profiles", {})
    if not isinstance(profiles, dict):
        problems.append("'oracle.profiles' must be a mapping")
    return problems


def get_profile(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """取某类调用的 temperature / max_tokens，未配置时退回默认值"""
    profile = config.get("oracle", {}).get("profiles", {}).get(name) or {}
    return {**DEFAULT_PROFILE, **profile}
