"""Logging setup.

structlog is configured on top of the standard library's logging module, so
every line (request handling, script ``log`` output, uvicorn's own loggers)
ends up on the same handler: stderr by default, or an append-mode file when
``--log`` is given.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    json_output: bool = False,
) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Minimum level name, e.g. "INFO".
        log_file: Append log output to this file instead of stderr.
        json_output: Render events as JSON instead of key=value text.

    Raises:
        OSError: If the log file cannot be opened.
    """
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
