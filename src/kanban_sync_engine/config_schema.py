"""Configuration schema for kanban-sync-engine.

Defines Pydantic models for the sync config file.  Keys are accepted in
snake_case and, for compatibility with existing JSON config files, in
camelCase (``statusMap``, ``tasksFile``, ``projectId``...).

Usage:
    from kanban_sync_engine.config_schema import build_config

    raw = load_config_file(path)
    config = build_config(raw)
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

DEFAULT_ALLOWED_STATUSES = ["backlog", "doing", "review", "done", "paused"]
DEFAULT_COMPLETION_STATUSES = ["done"]


def _alias(name: str, camel: str) -> AliasChoices:
    return AliasChoices(name, camel)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BootstrapConfig(BaseModel):
    """Policy flags for one-time bootstrap imports."""

    create_missing_detail_files: bool = Field(
        default=False,
        validation_alias=_alias(
            "create_missing_detail_files", "createMissingDetailFiles"
        ),
        description="Create stub detail documents for tasks lacking one",
    )
    default_status_for_imported_issues: str | None = Field(
        default=None,
        validation_alias=_alias(
            "default_status_for_imported_issues",
            "defaultStatusForImportedIssues",
        ),
        description="Local status given to imported open issues",
    )
    require_confirm_flag: bool = Field(
        default=False,
        validation_alias=_alias(
            "require_confirm_flag", "requireConfirmFlag"
        ),
        description="Refuse non-dry-run bootstrap without --confirm",
    )

    model_config = {"frozen": True, "populate_by_name": True}


class GitHubSection(BaseModel):
    """GitHub connection settings.

    All fields are optional: ``GITHUB_TOKEN`` and CLI args can supply them
    at runtime instead.
    """

    token: str | None = Field(default=None, description="API token")
    api_url: str | None = Field(
        default=None,
        validation_alias=_alias("api_url", "apiUrl"),
        description="REST API root (GitHub Enterprise)",
    )
    timeout: float = Field(
        default=60.0, gt=0, description="Read timeout in seconds"
    )

    model_config = {"frozen": True, "populate_by_name": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Top-level sync configuration.

    ``owner``, ``repo`` and ``status_map`` are required; everything else has
    a default.  Status invariants (status map coverage, completion subset)
    are checked separately by ``statuses.validate_status_config`` so that
    every violation is reported at once.
    """

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    tasks_file: str = Field(
        default="./TASKS.md",
        validation_alias=_alias("tasks_file", "tasksFile"),
    )
    status_map: dict[str, str] = Field(
        validation_alias=_alias("status_map", "statusMap"),
        description="Local status -> remote board status option name",
    )
    allowed_statuses: list[str] | None = Field(
        default=None,
        validation_alias=_alias("allowed_statuses", "allowedStatuses"),
    )
    completion_statuses: list[str] | None = Field(
        default=None,
        validation_alias=_alias(
            "completion_statuses", "completionStatuses"
        ),
    )
    project_id: str | None = Field(
        default=None, validation_alias=_alias("project_id", "projectId")
    )
    status_field_id: str | None = Field(
        default=None,
        validation_alias=_alias("status_field_id", "statusFieldId"),
    )
    start_date_field_id: str | None = Field(
        default=None,
        validation_alias=_alias(
            "start_date_field_id", "startDateFieldId"
        ),
    )
    due_date_field_id: str | None = Field(
        default=None,
        validation_alias=_alias("due_date_field_id", "dueDateFieldId"),
    )
    completed_date_field_id: str | None = Field(
        default=None,
        validation_alias=_alias(
            "completed_date_field_id", "completedDateFieldId"
        ),
    )
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    github: GitHubSection = Field(default_factory=GitHubSection)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def board_enabled(self) -> bool:
        """True when a Projects board with a status field is configured."""
        return bool(self.project_id and self.status_field_id)

    @property
    def date_fields_enabled(self) -> bool:
        """True when at least one board date field is configured."""
        return bool(
            self.project_id
            and (
                self.start_date_field_id
                or self.due_date_field_id
                or self.completed_date_field_id
            )
        )


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> SyncConfig:
    """Construct a ``SyncConfig`` from the raw dict of a config file.

    Args:
        raw_data: Parsed (and env-interpolated) configuration dictionary.

    Returns:
        Validated ``SyncConfig`` instance.

    Raises:
        pydantic.ValidationError: If required keys are missing or malformed.
    """
    return SyncConfig.model_validate(raw_data or {})
