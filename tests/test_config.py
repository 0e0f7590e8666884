"""
Test suite for Quill engine configuration.

Tests cover:
- Defaults when no config file exists
- Config discovery by walking up directories
- Field parsing and relative module paths
- Unreadable or malformed files

Author: xwest
"""

import json
import os
import shutil
import sys
import tempfile
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill.config import EngineConfig, find_config, load_config


class TestConfig(unittest.TestCase):

    def setUp(self):
        """Set up a temporary project tree."""
        self.root = tempfile.mkdtemp()
        self.nested = os.path.join(self.root, "src", "pkg")
        os.makedirs(self.nested)

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def _write(self, name: str, content: str, directory: str = None):
        path = os.path.join(directory or self.root, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_defaults(self):
        config = EngineConfig()
        self.assertEqual(config.max_loop_iterations, 1_000_000)
        self.assertEqual(config.max_call_depth, 200)
        self.assertTrue(config.optimize)
        self.assertEqual(config.module_paths, ["."])
        self.assertEqual(config.default_target, "python")
        self.assertIsNone(config.echo)

    def test_find_config_walks_up(self):
        path = self._write(".quillrc.json", "{}")
        self.assertEqual(find_config(self.nested), path)

    def test_rc_file_takes_priority(self):
        self._write("quill.config.json", "{}")
        rc = self._write(".quillrc.json", "{}")
        self.assertEqual(find_config(self.root), rc)

    def test_load_fields(self):
        path = self._write("quill.config.json", json.dumps({
            "max_loop_iterations": 500,
            "max_call_depth": 30,
            "optimize": False,
            "module_paths": ["lib", "/opt/quill"],
            "default_target": "ruby",
            "unknown_key": True,
        }))
        config = load_config(path)

        self.assertEqual(config.max_loop_iterations, 500)
        self.assertEqual(config.max_call_depth, 30)
        self.assertFalse(config.optimize)
        self.assertEqual(config.default_target, "ruby")
        self.assertEqual(config.module_paths, [os.path.join(self.root, "lib"), "/opt/quill"])

    def test_load_discovers_from_start_dir(self):
        self._write(".quillrc.json", '{"default_target": "lua"}')
        self.assertEqual(load_config(start_dir=self.nested).default_target, "lua")

    def test_malformed_file_gives_defaults(self):
        path = self._write(".quillrc.json", "{not json")
        with self.assertLogs("quill.config", level="WARNING"):
            config = load_config(path)
        self.assertEqual(config, EngineConfig())

    def test_non_object_file_gives_defaults(self):
        path = self._write(".quillrc.json", "[1, 2]")
        with self.assertLogs("quill.config", level="WARNING"):
            self.assertEqual(load_config(path), EngineConfig())


if __name__ == '__main__':
    unittest.main()
