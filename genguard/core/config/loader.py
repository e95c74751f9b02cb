"""
Configuration loader — reads genguard.yml into domain models.

Reads YAML, validates against the Pydantic schemas, resolves relative
paths against the config file's directory, and checks that every
declared dependency names a known package.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from genguard.core.models.generation import GenerationConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "genguard.yml"

_PATH_FIELDS = ("srcdir", "builddir", "prefix", "install_marker")


class ConfigError(Exception):
    """Raised when the generation configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for genguard.yml starting from the given directory, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _resolve_paths(entries: list, base: Path) -> None:
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        for key in _PATH_FIELDS:
            value = entry.get(key)
            if value and not Path(value).is_absolute():
                entry[key] = str((base / value).resolve())


def parse_config(data: object, base_dir: Path, source: str = "<config>") -> GenerationConfig:
    """Validate an already-parsed YAML document.

    Raises:
        ConfigError: If the document is not a valid configuration.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")

    data = dict(data)
    for section in ("nodes", "packages"):
        entries = data.get(section) or []
        if not isinstance(entries, list):
            raise ConfigError(f"'{section}' must be a list in {source}")
        entries = [dict(e) if isinstance(e, dict) else e for e in entries]
        _resolve_paths(entries, base_dir)
        data[section] = entries

    settings = data.get("settings")
    if isinstance(settings, dict) and settings.get("tool_path"):
        tool_path = Path(settings["tool_path"])
        if not tool_path.is_absolute():
            data["settings"] = {**settings, "tool_path": str((base_dir / tool_path).resolve())}

    try:
        config = GenerationConfig.model_validate(data)
    except ValueError as e:
        raise ConfigError(f"Invalid generation configuration in {source}: {e}") from e

    _check_references(config, source)
    return config


def _check_references(config: GenerationConfig, source: str) -> None:
    seen: set[str] = set()
    for name in config.all_names():
        if name in seen:
            raise ConfigError(f"Duplicate package name '{name}' in {source}")
        seen.add(name)

    for pkg in config.packages:
        if not pkg.prefix and not pkg.install_marker:
            raise ConfigError(
                f"Package '{pkg.name}' needs a prefix or an install_marker in {source}"
            )

    for node in config.nodes:
        for dep in node.dependencies:
            if config.find_provider(dep) is None:
                raise ConfigError(
                    f"Node '{node.name}' depends on unknown package '{dep}' in {source}"
                )


def load_config(path: Path | None = None) -> GenerationConfig:
    """Load and validate the generation configuration.

    Args:
        path: Explicit path to genguard.yml. If None, searches upward.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigError(f"No {CONFIG_FILE} found. Specify one with --config.")

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading generation config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(data, path.parent.resolve(), source=str(path))
    logger.info("Loaded %d generation nodes from %s", len(config.nodes), path)
    return config


def config_root(config_path: Path) -> Path:
    """Directory holding the config file."""
    return config_path.parent.resolve()
