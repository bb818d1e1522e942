import json
import logging
import os
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    if with_name:
        return logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
            datefmt=_DATEFMT,
        )
    return logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s", datefmt=_DATEFMT
    )


def resolve_log_level(debug: bool = False, config_level: str | None = None) -> int:
    """Pick the effective level: --debug > LOG_LEVEL > config file > INFO."""
    if debug:
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL") or config_level or "INFO"
    level = getattr(logging, name.upper(), None)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    config_level: str | None = None,
) -> None:
    """
    Configure logging for CLI runs.

    Logs go to stderr so that stdout stays reserved for reports (plain text
    or ``--json``).  When a log file is given, records are also appended
    there with the logger name included.

    Args:
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Optional log file path.
        debug_format: "text" (default) or "json" for structured output.
        config_level: Level from the config file ``logging.level``.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: INFO.
    """
    log_level = resolve_log_level(debug, config_level)

    handlers: list[logging.Handler] = []
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_make_formatter(debug_format, with_name=False))
    handlers.append(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(_make_formatter(debug_format, with_name=True))
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)

    # Silence third-party libs unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)


def apply_config_logging(
    level: str | None,
    log_file: str | None = None,
    debug: bool = False,
    debug_format: str = "text",
) -> None:
    """Apply the config file ``logging`` section once the config is loaded.

    ``--debug`` and ``LOG_LEVEL`` still take precedence over *level*.
    """
    root = logging.getLogger()
    root.setLevel(resolve_log_level(debug, level))
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(_make_formatter(debug_format, with_name=True))
        root.addHandler(file_handler)
