"""
Configuration file loader for kanban_sync_engine.

Provides convention-based config file discovery, YAML ``!include`` support
and env var interpolation.  JSON config files are valid YAML, so a single
loader handles ``.yml``, ``.yaml`` and ``.json`` files.

Usage:
    from kanban_sync_engine.config_loader import find_config_file, load_config_file

    path = find_config_file()
    raw = load_config_file(path)
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KANBAN_SYNC_CONFIG"
DEFAULT_CONFIG_NAMES = (
    "kanban-sync-engine.config.yml",
    "kanban-sync-engine.config.yaml",
    "kanban-sync-engine.config.json",
)

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` is replaced with ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    * Literal ``${`` with no closing ``}`` is left untouched.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)  # None when no :- clause
        env_val = os.environ.get(var_name)
        if env_val:
            return env_val
        if default is not None:
            return default
        return ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Walk a nested dict/list and interpolate env vars in all strings."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. YAML !include support (dedicated SafeLoader subclass)
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """YAML SafeLoader subclass with ``!include`` support.

    Uses a dedicated subclass so the global ``yaml.SafeLoader`` is never
    modified.  Tracks an *include stack* per-load to detect circular includes.
    """


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Handle ``!include path/to/file.yml`` directives."""
    include_path_str: str = loader.construct_scalar(node)

    # Resolve relative to the file that contains the !include
    if os.path.isabs(include_path_str):
        include_path = Path(include_path_str)
    else:
        parent_dir = Path(loader.name).resolve().parent
        include_path = parent_dir / include_path_str

    include_path = include_path.resolve()

    include_stack: list[Path] = getattr(loader, "_include_stack", [])
    if include_path in include_stack:
        chain = (
            " -> ".join(str(p) for p in include_stack) + f" -> {include_path}"
        )
        raise ConfigurationError(f"Circular include detected: {chain}")

    if not include_path.exists():
        source_file = Path(loader.name).resolve()
        raise ConfigurationError(
            f"Include file not found: {include_path} "
            f"(referenced from {source_file})"
        )

    return _load_yaml_with_includes(
        include_path, _include_stack=include_stack + [include_path]
    )


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    """Load a YAML file using the ``ConfigLoader`` (with ``!include``)."""
    path = path.resolve()
    if _include_stack is None:
        _include_stack = [path]

    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# 3. Convention-based file discovery
# ---------------------------------------------------------------------------


def find_config_file(
    explicit: str | None = None, cwd: Path | None = None
) -> Path:
    """Return the config file to use.

    Search order:
        1. *explicit* path (``--config``), relative to *cwd*.
        2. ``KANBAN_SYNC_CONFIG`` env var.
        3. ``kanban-sync-engine.config.yml`` / ``.yaml`` / ``.json`` in *cwd*.

    Raises:
        ConfigurationError: If an explicit path does not exist or nothing
            was found.
    """
    base = cwd or Path.cwd()

    for label, value in (
        ("--config", explicit),
        (CONFIG_ENV_VAR, os.environ.get(CONFIG_ENV_VAR)),
    ):
        if not value:
            continue
        path = (base / Path(value).expanduser()).resolve()
        if not path.is_file():
            raise ConfigurationError(
                f"Config file not found: {path} (from {label})"
            )
        return path

    for name in DEFAULT_CONFIG_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate.resolve()

    raise ConfigurationError(
        f"No config file found in {base}. "
        f"Expected one of: {', '.join(DEFAULT_CONFIG_NAMES)}",
        f"Create {DEFAULT_CONFIG_NAMES[0]} or pass --config PATH.",
    )


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse *path* and interpolate env vars in every string value.

    Raises:
        ConfigurationError: If the file cannot be parsed or its root is not
            a mapping.
    """
    logger.debug("Loading config: %s", path)
    try:
        data = _load_yaml_with_includes(path)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse config file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, "
            f"got {type(data).__name__}"
        )
    return _interpolate_recursive(data)
