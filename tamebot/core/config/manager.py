"""
ConfigManager: encounter balance values looked up by dotted key.

Every ``*.yaml`` under ``Config.CONFIG_DIR`` is deep-merged into one tree
(``mount.yaml`` holds thresholds, prices and fees). Runtime overrides are
stored by exact key and win over the tree. A missing key returns the
caller's default; reads never raise.

    ConfigManager.get("mount.thresholds.sneak", 5)
    ConfigManager.set_override("mount.registration_fee", 0)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tamebot.core.config.config import Config
from tamebot.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


def _merge(into: Dict[str, Any], data: Dict[str, Any]) -> None:
    for key, value in data.items():
        current = into.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge(current, value)
        else:
            into[key] = value


def _lookup(tree: Dict[str, Any], dotted: str) -> Any:
    node: Any = tree
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


class ConfigManager:
    _tree: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _init_lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    def load_yaml_configs(cls, config_dir: Optional[Path] = None) -> int:
        """Merge every YAML mapping under ``config_dir``; returns how many files were merged."""
        root = Path(config_dir or Config.CONFIG_DIR)
        if not root.is_dir():
            logger.warning("Config directory missing", extra={"config_dir": str(root)})
            return 0

        merged = 0
        for path in sorted([*root.rglob("*.yaml"), *root.rglob("*.yml")]):
            with path.open(encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
            if not isinstance(data, dict):
                if data is not None:
                    logger.warning(
                        "Skipping YAML file without a mapping at the top",
                        extra={"file": path.name, "root_type": type(data).__name__},
                    )
                continue
            _merge(cls._tree, data)
            merged += 1

        logger.info("Balance config loaded", extra={"files": merged, "sections": sorted(cls._tree)})
        return merged

    @classmethod
    async def initialize(cls, config_dir: Optional[Path] = None) -> None:
        async with cls._init_lock:
            if not cls._initialized:
                cls.load_yaml_configs(config_dir)
                cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded tree and all overrides (tests)."""
        cls._tree = {}
        cls._overrides = {}
        cls._initialized = False

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        if not cls._initialized:
            cls.load_yaml_configs()
            cls._initialized = True

        if key in cls._overrides:
            return cls._overrides[key]
        value = _lookup(cls._tree, key)
        return default if value is _MISSING or value is None else value

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        logger.info(
            "Config override applied",
            extra={"config_key": key, "previous": cls.get(key), "value": value},
        )
        cls._overrides[key] = value

    @classmethod
    def clear_override(cls, key: str) -> None:
        cls._overrides.pop(key, None)
