"""Loading :class:`Settings` from TOML configuration files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .config import CONFIG_FILE_NAMES, CONFIG_SECTION, Settings, config_file_from_env

logger = logging.getLogger(__name__)


def find_config_file(root: Path) -> Optional[Path]:
    """Return the configuration file that applies to *root*, if any.

    ``$RECOVERCHECK_CONFIG`` wins, then ``recovercheck.toml`` and
    ``.recovercheck.toml`` in *root*, then a ``pyproject.toml`` carrying a
    ``[tool.recovercheck]`` table.
    """
    env_file = config_file_from_env()
    if env_file:
        return Path(env_file)
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    pyproject = root / "pyproject.toml"
    if pyproject.is_file() and CONFIG_SECTION in _tool_tables(pyproject):
        return pyproject
    return None


def _tool_tables(pyproject: Path) -> Dict[str, Any]:
    try:
        data = toml.load(pyproject)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s: %s", pyproject, exc)
        return {}
    return data.get("tool", {})


def load_section(config_file: Path) -> Dict[str, Any]:
    """Return the recovercheck table of *config_file* (empty on failure)."""
    try:
        data = toml.load(config_file)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring config file %s: %s", config_file, exc)
        return {}
    if config_file.name == "pyproject.toml":
        return data.get("tool", {}).get(CONFIG_SECTION, {})
    return data.get(CONFIG_SECTION, {})


def load_settings(root: Path, config_file: Optional[Path] = None) -> Settings:
    """Build settings from the config file that applies to *root*.

    Unknown keys and values of the wrong type are ignored with a warning.
    """
    settings = Settings()
    path = config_file or find_config_file(root)
    if path is None:
        return settings

    section = load_section(path)
    logger.debug("Loaded settings from %s: %s", path, section)
    for key in ("skip_test_files", "check_errgroup"):
        if key in section:
            if isinstance(section[key], bool):
                setattr(settings, key, section[key])
            else:
                logger.warning("%s: '%s' must be a boolean", path, key)
    if "jobs" in section:
        jobs = section["jobs"]
        if isinstance(jobs, int) and not isinstance(jobs, bool) and jobs >= 1:
            settings.jobs = jobs
        else:
            logger.warning("%s: 'jobs' must be a positive integer", path)
    if "extra_src_roots" in section:
        roots = section["extra_src_roots"]
        if isinstance(roots, list) and all(isinstance(r, str) for r in roots):
            settings.extra_src_roots = roots
        else:
            logger.warning("%s: 'extra_src_roots' must be a list of strings", path)
    for key in section:
        if key not in ("skip_test_files", "check_errgroup", "jobs", "extra_src_roots"):
            logger.warning("%s: unknown setting '%s'", path, key)
    return settings
