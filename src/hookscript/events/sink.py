"""Log sinks for script output.

Scripts write log lines through the ``log`` and ``logf`` control functions.
Those lines go to a LogSink injected at startup instead of a process-wide
logger, so the destination can be swapped out:

- StructlogSink: Writes each line as a structlog event (production)
- MemoryLogSink: Keeps lines in memory (tests, diagnostics)

Sinks are shared by every concurrent evaluation. Implementations must make
write() safe to call from several threads at once; one call always produces
one whole line.
"""

import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import structlog

SCRIPT_LOGGER_NAME = "hookscript.script"


class LogSink(ABC):
    """Abstract destination for script log lines."""

    @abstractmethod
    def write(self, message: str) -> None:
        """Write a single log line.

        Args:
            message: The line to write, without a trailing newline.
        """


class StructlogSink(LogSink):
    """Log sink that emits each line as a structlog event.

    Lines end up wherever logging was configured to write (stderr or the
    ``--log`` file). The stdlib handlers underneath serialize records, so
    concurrent writes never interleave.

    Attributes:
        logger_name: Name of the logger the lines are written to.
    """

    def __init__(self, logger_name: Optional[str] = None):
        self.logger_name = logger_name or SCRIPT_LOGGER_NAME
        self._logger = structlog.get_logger(self.logger_name)

    def write(self, message: str) -> None:
        self._logger.info(message)


class MemoryLogSink(LogSink):
    """Log sink that records lines in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lines: List[str] = []

    def write(self, message: str) -> None:
        with self._lock:
            self._lines.append(message)

    @property
    def lines(self) -> List[str]:
        """A copy of the recorded lines, oldest first."""
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
