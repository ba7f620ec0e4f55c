# tests/test_config.py
import unittest
import tempfile
from pathlib import Path

import yaml

from adaptcoder.core.config import (
    DEFAULT_CONFIG, ConfigError, deep_merge, get_profile, load_config, validate_config,
)
from adaptcoder.core.init import build_config, detect_source_roots, render_config


class TestConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_missing_file_returns_defaults(self):
        config = load_config(self.root / "missing.yaml")
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertIsNot(config["oracle"], DEFAULT_CONFIG["oracle"])

    def test_file_values_are_deep_merged(self):
        path = self.root / "config.yaml"
        path.write_text("oracle:\n  model: local-llama\nintent:\n  threshold: 0.7\n", encoding="utf-8")
        config = load_config(path)
        self.assertEqual(config["oracle"]["model"], "local-llama")
        self.assertEqual(config["oracle"]["base_url"], DEFAULT_CONFIG["oracle"]["base_url"])
        self.assertEqual(config["intent"]["threshold"], 0.7)

    def test_invalid_yaml_raises(self):
        path = self.root / "config.yaml"
        path.write_text("oracle: [unclosed\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(path)

    def test_non_mapping_raises(self):
        path = self.root / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(path)

    def test_validate_defaults(self):
        self.assertEqual(validate_config(DEFAULT_CONFIG), [])

    def test_validate_reports_problems(self):
        bad = deep_merge(DEFAULT_CONFIG, {
            "source_roots": "src",
            "intent": {"threshold": 1.5},
            "restart": {"command": 42, "grace_delay": -1},
        })
        problems = validate_config(bad)
        self.assertEqual(len(problems), 4)
        self.assertTrue(any("intent.threshold" in p for p in problems))

    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = deep_merge(base, {"a": {"b": 5}})
        self.assertEqual(merged, {"a": {"b": 5, "c": 2}})
        self.assertEqual(base, {"a": {"b": 1, "c": 2}})

    def test_get_profile_falls_back(self):
        self.assertEqual(get_profile(DEFAULT_CONFIG, "generate"), {"temperature": 0.2, "max_tokens": 4000})
        self.assertEqual(get_profile({}, "anything"), {"temperature": 0.7, "max_tokens": 2000})


class TestInit(unittest.TestCase):

    def test_detect_source_roots(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self.assertEqual(detect_source_roots(root), ["src"])
            (root / "public").mkdir()
            (root / "styles").mkdir()
            self.assertEqual(detect_source_roots(root), ["public", "styles"])

    def test_render_config_round_trips(self):
        config = build_config(["app"], "http://localhost:11434/v1", "llama3")
        text = render_config(config)
        self.assertTrue(text.startswith("# AdaptCoder configuration"))
        loaded = yaml.safe_load(text)
        self.assertEqual(loaded["source_roots"], ["app"])
        self.assertEqual(loaded["oracle"]["model"], "llama3")


if __name__ == '__main__':
    unittest.main()
