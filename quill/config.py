"""
Engine configuration for Quill.

Settings come from a JSON file found by walking up from a start
directory (`.quillrc.json`, then `quill.config.json`). Missing or
unreadable files yield defaults.

Example .quillrc.json:
    {
        "max_loop_iterations": 500000,
        "max_call_depth": 300,
        "optimize": true,
        "module_paths": ["lib", "vendor/quill"],
        "default_target": "javascript"
    }

Author: xwest
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Settings shared by the evaluator and the compiler pipeline."""
    # Evaluator limits
    max_loop_iterations: int = 1_000_000
    max_call_depth: int = 200
    # Run the optimizer before handing IR to a backend
    optimize: bool = True
    # Directories searched for `.ql` modules named in import statements
    module_paths: List[str] = field(default_factory=lambda: ["."])
    # Target used when compile_to_target() is given no target
    default_target: str = "python"
    # Stream `print` writes to; None means sys.stdout at call time
    echo: Optional[TextIO] = None


# Config file names (in priority order)
_CONFIG_FILES = [
    ".quillrc.json",
    "quill.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> EngineConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. Relative module paths are
    resolved against the config file's directory.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return EngineConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (IOError, OSError, json.JSONDecodeError) as e:
        logger.warning("ignoring unreadable config %s: %s", path, e)
        return EngineConfig()

    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level must be an object", path)
        return EngineConfig()

    config = _dict_to_config(data)
    base_dir = os.path.dirname(os.path.abspath(path))
    config.module_paths = [
        p if os.path.isabs(p) else os.path.join(base_dir, p) for p in config.module_paths
    ]
    logger.debug("loaded config from %s", path)
    return config


def _dict_to_config(data: Dict[str, Any]) -> EngineConfig:
    """Convert a parsed dict to EngineConfig."""
    config = EngineConfig()

    if "max_loop_iterations" in data:
        config.max_loop_iterations = int(data["max_loop_iterations"])
    if "max_call_depth" in data:
        config.max_call_depth = int(data["max_call_depth"])
    if "optimize" in data:
        config.optimize = bool(data["optimize"])
    if "module_paths" in data and isinstance(data["module_paths"], list):
        config.module_paths = [str(p) for p in data["module_paths"]]
    if "default_target" in data:
        config.default_target = str(data["default_target"])

    return config
