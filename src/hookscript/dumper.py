"""Debug payload dumper.

In debug mode every delivery body is written to
``<dump_dir>/<event>-<timestamp>.json`` so it can be replayed later or used
as a test fixture. Dumping is best-effort: problems are logged and never
raised, and they never affect the response.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import structlog

logger = structlog.get_logger(__name__)

# Characters allowed in the event part of a dump file name
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


def dump_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp used in dump file names, e.g. ``2024-05-01 at 13.04.05.123``."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%d at %H.%M.%S.%f")[:-3]


class PayloadDumper:
    """Writes raw delivery bodies to timestamped files.

    Attributes:
        directory: Directory the files are written to, created on demand.
    """

    def __init__(self, directory: Union[str, Path] = "testdata"):
        self.directory = Path(directory)

    def path_for(self, event_name: str, now: Optional[datetime] = None) -> Path:
        safe_name = _UNSAFE_NAME_RE.sub("_", event_name).lstrip(".") or "_"
        return self.directory / f"{safe_name}-{dump_timestamp(now)}.json"

    def dump(self, event_name: Optional[str], body: bytes) -> Optional[Path]:
        """Write one delivery body.

        Args:
            event_name: The ``X-GitHub-Event`` label.
            body: The raw request body.

        Returns:
            The written path, or None if nothing was written.
        """
        if not event_name:
            logger.warning("dump_skipped", reason="empty event name")
            return None
        if not body:
            logger.warning("dump_skipped", reason="empty payload", github_event=event_name)
            return None

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("dump_failed", directory=str(self.directory), error=str(exc))
            return None

        path = self.path_for(event_name)
        try:
            path.write_bytes(body)
        except OSError as exc:
            logger.error("dump_failed", path=str(path), error=str(exc))
            return None

        logger.debug("payload_dumped", path=str(path), bytes=len(body))
        return path
