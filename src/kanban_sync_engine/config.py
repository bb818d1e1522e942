"""Runtime configuration for kanban-sync-engine.

Two pieces are resolved here:

* the sync config file (``SyncConfig``): discovered, parsed, validated with
  pydantic and checked against the status invariants, all before any board
  or remote I/O happens;
* the GitHub connection settings (``GitHubSettings``).

Precedence for GitHub settings (highest to lowest):
    CLI args > Environment variables > .env file > config ``github`` section
    > Built-in defaults

Environment variables:
    GITHUB_TOKEN / GH_TOKEN: API token
    GITHUB_API_URL: REST API root (default: https://api.github.com)
    KANBAN_SYNC_CONFIG: Config file path (see ``config_loader``)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from .config_loader import find_config_file, load_config_file
from .config_schema import SyncConfig, build_config
from .errors import ConfigurationError
from .statuses import validate_status_config

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


@dataclass
class GitHubSettings:
    token: str | None = None
    api_url: str = DEFAULT_API_URL
    timeout: float = 60.0


def _format_validation_error(path: Path, exc: ValidationError) -> str:
    lines = [f"Invalid config file {path}:"]
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "(root)"
        lines.append(f"- {location}: {err['msg']}")
    return "\n".join(lines)


def load_config(
    config_path: str | None = None,
    tasks_file: str | None = None,
    cwd: Path | None = None,
) -> SyncConfig:
    """Load, validate and path-resolve the sync configuration.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available for interpolation.

    Args:
        config_path: Explicit config path (``--config``).
        tasks_file: Override for the tasks file (``--tasks-file``), resolved
            relative to *cwd*.
        cwd: Working directory used for discovery (defaults to CWD).

    Returns:
        Validated ``SyncConfig`` whose ``tasks_file`` is an absolute path.

    Raises:
        ConfigurationError: For a missing file, malformed content, or a
            violated status invariant.
    """
    base = cwd or Path.cwd()
    path = find_config_file(config_path, cwd=base)
    raw = load_config_file(path)

    try:
        config = build_config(raw)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_error(path, exc)) from exc

    validate_status_config(config)

    if tasks_file:
        resolved = (base / tasks_file).resolve()
    else:
        resolved = (path.parent / config.tasks_file).resolve()
    logger.debug("Using config %s, tasks file %s", path, resolved)

    return config.model_copy(update={"tasks_file": str(resolved)})


def load_github_settings(
    config: SyncConfig,
    token: str | None = None,
    api_url: str | None = None,
) -> GitHubSettings:
    """Resolve GitHub connection settings with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > config ``github`` section > default
    """
    section = config.github

    final_token = (
        token
        or os.getenv("GITHUB_TOKEN")
        or os.getenv("GH_TOKEN")
        or section.token
    )
    if not final_token:
        logger.warning(
            "No GitHub token found. Set GITHUB_TOKEN; "
            "unauthenticated requests are heavily rate limited."
        )

    final_url = (
        api_url
        or os.getenv("GITHUB_API_URL")
        or section.api_url
        or DEFAULT_API_URL
    )

    return GitHubSettings(
        token=final_token or None,
        api_url=final_url.strip().removesuffix("/"),
        timeout=section.timeout,
    )
