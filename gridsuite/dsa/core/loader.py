# gridsuite/dsa/core/loader.py
"""
Reading engine configuration files.

Provider entries live in YAML files selected by glob patterns
(``settings.providers_config_paths``). String values may reference the
environment as ``${VAR}`` or ``${VAR:-default}``, and each entry names its
engine class as ``module.path:ClassName``.
"""
from __future__ import annotations

import importlib
import logging
import os
import re
from glob import glob
from pathlib import Path
from typing import Any, Iterable

import yaml

logger = logging.getLogger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def import_attr(path: str) -> Any:
    """Resolve ``module.path:attribute``, e.g. an engine ``class_path``."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid import path '{path}', expected 'module:attr'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ImportError(f"Cannot import module '{module_name}' for '{path}'") from exc

    if not hasattr(module, attr):
        raise AttributeError(f"Module '{module_name}' has no attribute '{attr}'")
    return getattr(module, attr)


def _expand(match: re.Match) -> str:
    name = match.group("name")
    value = os.environ.get(name, match.group("default"))
    if value is None:
        raise ValueError(f"Environment variable '{name}' is not set and no default provided")
    return value


def substitute_env_vars(value: Any) -> Any:
    """Expand environment references in every string of a parsed YAML value."""
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_expand, value)
    if isinstance(value, dict):
        return {key: substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def config_files(patterns: Iterable[str]) -> list[Path]:
    """Distinct files matched by ``patterns``, sorted so later files override earlier ones."""
    return sorted({Path(match).resolve() for pattern in patterns for match in glob(pattern)})


def load_yaml_files(patterns: Iterable[str]) -> list[dict[str, Any]]:
    patterns = list(patterns)
    files = config_files(patterns)
    if not files:
        logger.warning("No provider configuration matches %s", patterns)
        return []

    logger.info("Loading provider configuration from %s", [str(f) for f in files])
    return [yaml.safe_load(f.read_text(encoding="utf-8")) or {} for f in files]
