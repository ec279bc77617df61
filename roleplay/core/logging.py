"""
Logging for the training backend, the Streamlit client and the console driver.

structlog renders every event. stdlib logging only carries the rendered line
to the console and, for long-running processes, to logs/training_*.log.

Identifiers are bound through contextvars rather than passed around: the
HTTP middleware binds request_id, and each WorkflowController action binds
workflow_action and scenario_id, so every event emitted while serving it
carries them.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from roleplay.core.config import settings
from roleplay.core.exceptions import ConfigurationError

LOG_FILE_PREFIX = "training_"


def resolve_level(name: str) -> int:
    """Map a level name such as "info" or "WARNING" to its numeric value."""
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {name}")
    return level


def drop_unset_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Remove keys bound as None (e.g. scenario_id before a scenario is chosen)."""
    return {key: value for key, value in event_dict.items() if value is not None}


def _prune_log_files(logs_dir: Path, keep: int) -> None:
    """Keep only the `keep` most recent training log files."""
    log_files = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    for old_file in log_files[keep:]:
        try:
            old_file.unlink()
        except OSError:
            # Held open by another process on some platforms
            continue


def _file_handler(logs_dir: Path, keep: int) -> logging.Handler:
    logs_dir.mkdir(parents=True, exist_ok=True)
    # Make room for the file about to be created
    _prune_log_files(logs_dir, keep=keep - 1)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return logging.FileHandler(logs_dir / f"{LOG_FILE_PREFIX}{timestamp}.log", mode="w")


def configure_logging(
    log_to_file: bool = True,
    keep_files: Optional[int] = None,
    level: Optional[str] = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Call once at process start, before any logging. Calling again replaces
    the previous handlers, so tests can reconfigure freely.

    Args:
        log_to_file: Also write to <logs_dir>/training_YYYYMMDD_HHMMSS.log
            (the API server does; the console driver and tests do not)
        keep_files: Log files to retain (default: settings.log_files_to_keep)
        level: Minimum level name (default: settings.log_level)

    Raises:
        ConfigurationError: Unknown level name
    """
    min_level = resolve_level(level or settings.log_level)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        drop_unset_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        handlers.append(
            _file_handler(settings.logs_dir, keep_files or settings.log_files_to_keep)
        )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(min_level)
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind request-scoped values (request_id) until clear_context()."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def action_context(action: str, **kwargs) -> Iterator[None]:
    """
    Bind workflow identifiers for the duration of one controller action.

    Previous values are restored on exit, so nested or consecutive actions
    never leak identifiers into each other.
    """
    with structlog.contextvars.bound_contextvars(workflow_action=action, **kwargs):
        yield
