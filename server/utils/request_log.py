"""
Request log module.

Append-only record of every list/put request handled by the server, one line
per request:

    yyyy-MM-dd|HH:mm:ss|<client address>|<command>

The file is recreated empty each time the server starts. Appends are not
synchronised here; callers go through the store coordinator, which holds the
shared lock around every append.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List

from common.constants import LOG_TIMESTAMP_FORMAT, LOG_FIELD_SEPARATOR
from server.utils.logger import logger


@dataclass
class LogRecord:
    """One request log entry."""
    timestamp: datetime
    client: str
    command: str

    def to_line(self) -> str:
        return LOG_FIELD_SEPARATOR.join([
            self.timestamp.strftime(LOG_TIMESTAMP_FORMAT),
            self.client,
            self.command,
        ])

    @classmethod
    def from_line(cls, line: str) -> 'LogRecord':
        # The timestamp itself contains one separator, so split from the right.
        stamp, client, command = line.rstrip('\n').rsplit(LOG_FIELD_SEPARATOR, 2)
        return cls(datetime.strptime(stamp, LOG_TIMESTAMP_FORMAT), client, command)


class RequestLog:
    """Append-only request log file."""

    def __init__(self, path, clock: Callable[[], datetime] = datetime.now):
        self.path = Path(path)
        self.clock = clock

    def reset(self):
        """Create the log file empty, truncating any previous run.

        Raises OSError if the file cannot be created; the server treats that
        as a fatal startup error.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8'):
            pass

    def append(self, client: str, command: str) -> bool:
        """Append one record. Failures are logged, never raised."""
        record = LogRecord(self.clock().replace(microsecond=0), client, command)
        try:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(record.to_line() + '\n')
        except OSError as e:
            logger.error(f"Failed to write to request log {self.path}: {e}")
            return False
        return True

    def records(self) -> List[LogRecord]:
        """Read back every record in append order."""
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return [LogRecord.from_line(line) for line in f if line.strip()]
