"""
Structured logging configuration for sindbad-setup.

Emits one JSON object per event so setup runs can be inspected or
collected by CI without scraping the console commentary.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .error_handling import sanitize_message, setup_error_handling

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
    "message",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return sanitize_message(json.dumps(log_entry, default=str))


class SetupLogger:
    """Structured logger for one component of a setup run."""

    def __init__(self, name: str = "sindbad_setup"):
        self.logger = logging.getLogger(f"sindbad_setup.{name}")
        self.run_context: Dict[str, Any] = {}
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False
            self.logger.setLevel(logging.WARNING)

    def set_run_context(
        self,
        run_id: Optional[str] = None,
        mode: Optional[str] = None,
        project: Optional[str] = None,
    ) -> None:
        """Set run context for logging."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if mode:
            self.run_context["mode"] = mode
        if project:
            self.run_context["project"] = project

    def clear_run_context(self) -> None:
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level)(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


# Global logger instances
_setup_logger = SetupLogger("setup")
_vcs_logger = SetupLogger("vcs")
_pkg_logger = SetupLogger("pkg")
_verify_logger = SetupLogger("verify")

_ALL_LOGGERS = [_setup_logger, _vcs_logger, _pkg_logger, _verify_logger]


def log_run_start(run_id: str, mode: str, project: str) -> None:
    """Log setup start event."""
    set_run_context(run_id, mode, project)
    _setup_logger.info("setup_started", run_id=run_id, mode=mode, project=project)


def log_run_complete(
    run_id: str,
    mode: str,
    duration_ms: int,
    failures: int,
    verified: Optional[bool],
    error_counts: Optional[Dict[str, int]] = None,
) -> None:
    """Log setup completion event with the handled-error counts of the run."""
    _setup_logger.info(
        "setup_completed",
        run_id=run_id,
        mode=mode,
        duration_ms=duration_ms,
        failed_operations=failures,
        verification_passed=verified,
        error_counts=error_counts or {},
    )
    clear_run_context()


def log_dependency_operation(
    dependency: str, operation: str, status: str, **kwargs
) -> None:
    """Log the outcome of one per-dependency operation."""
    log_data = {"dependency": dependency, "operation": operation, "status": status}
    log_data.update(kwargs)

    if status == "failed":
        _setup_logger.warning("dependency_operation", **log_data)
    else:
        _setup_logger.info("dependency_operation", **log_data)


def log_command(
    component: str, command: str, returncode: Optional[int], duration_ms: int
) -> None:
    """Log an external command invocation."""
    logger = _vcs_logger if component == "git" else _pkg_logger
    logger.debug(
        "command_executed",
        command=command,
        returncode=returncode,
        duration_ms=duration_ms,
    )


def log_verification(mode: str, passed: bool, failed_checks: int) -> None:
    _verify_logger.info(
        "verification_completed",
        verified_mode=mode,
        passed=passed,
        failed_checks=failed_checks,
    )


def set_run_context(
    run_id: Optional[str] = None, mode: Optional[str] = None, project: Optional[str] = None
) -> None:
    """Set global run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(run_id, mode, project)


def clear_run_context() -> None:
    """Clear global run context."""
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)
    setup_error_handling(level)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        if not enable_json:
            for handler in logger.logger.handlers:
                handler.setFormatter(
                    logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
                )
