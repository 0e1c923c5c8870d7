"""
Self-Logger

Each world logs to itself (not to an external logging system).

Design:
- Entries kept in memory by default, queryable for the world's lifetime
- With a log_dir, entries are also appended to TSV files (human-readable,
  grep-able): logs/{world_id}/log.tsv
- Append-only (immutable history)
- Log rotation when the file exceeds the size limit
- Query logs with filters (level, custom fields)

Philosophy:
Worlds are self-contained. They own their modules, log their own
events, and can be inspected independently.
"""

import csv
import hashlib
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


DEFAULT_FIELDNAMES = ['entry_id', 'timestamp', 'level', 'message']


class WorldLogger:
    """
    Self-logging for worlds.

    With a log_dir, each world has its own log file stored in:
    logs/{world_id}/log.tsv
    """

    def __init__(
        self,
        world_id: str,
        log_dir: Optional[Path | str] = None,
        max_log_size: Optional[int] = None,
    ):
        """
        Initialize self-logger.

        Args:
            world_id: ID of the world
            log_dir: Base directory for log storage, None keeps logs in memory
            max_log_size: Maximum log file size in bytes before rotation
                         (default: 10MB)
        """
        self.world_id = world_id
        self.max_log_size = max_log_size or (10 * 1024 * 1024)
        self._entries: List[Dict[str, Any]] = []

        self.log_dir: Optional[Path] = None
        self.log_file: Optional[Path] = None
        if log_dir is not None:
            self.log_dir = Path(log_dir) / 'logs' / world_id
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / 'log.tsv'

    def log(
        self,
        level: str,
        message: str,
        **kwargs,
    ) -> None:
        """
        Log an entry.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            message: Log message
            **kwargs: Additional fields to log (identifier, kind, status, etc.)
        """
        timestamp = datetime.now().isoformat()
        entry = {
            'entry_id': self._generate_entry_id(timestamp, level, message),
            'timestamp': timestamp,
            'level': level,
            'message': message,
            **kwargs,
        }

        # Don't log empty fields
        entry = {k: v for k, v in entry.items() if v is not None}

        self._entries.append(entry)

        if self.log_file is not None:
            self._write(entry)

    def debug(self, message: str, **kwargs) -> None:
        """Log DEBUG level message"""
        self.log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log INFO level message"""
        self.log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log WARNING level message"""
        self.log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log ERROR level message"""
        self.log('ERROR', message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        """Log CRITICAL level message"""
        self.log('CRITICAL', message, **kwargs)

    def get_logs(
        self,
        level: Optional[Union[str, List[str]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters,
    ) -> List[Dict[str, Any]]:
        """
        Get log entries.

        Args:
            level: Filter by level (string or list of strings)
            limit: Maximum number of entries to return
            offset: Number of entries to skip
            **filters: Additional filters (e.g., identifier='/app/index.py')

        Returns:
            List of log entries (dictionaries)
        """
        entries = list(self._entries)

        if level is not None:
            if isinstance(level, str):
                level = [level]
            entries = [e for e in entries if e.get('level') in level]

        for key, value in filters.items():
            entries = [e for e in entries if e.get(key) == value]

        if offset > 0:
            entries = entries[offset:]

        if limit is not None:
            entries = entries[:limit]

        return entries

    def read_log_file(self) -> List[Dict[str, str]]:
        """Read back persisted entries, rotated files included"""
        if self.log_dir is None:
            return []

        files = sorted(self.log_dir.glob('log-*.tsv'))
        if self.log_file.exists():
            files.append(self.log_file)

        entries = []
        for log_file in files:
            with open(log_file, 'r', newline='') as f:
                reader = csv.DictReader(f, delimiter='\t')
                for row in reader:
                    entries.append(row)
        return entries

    def _write(self, entry: Dict[str, Any]) -> None:
        """Append one entry to the TSV file"""
        self._rotate_if_needed()

        fieldnames = self._get_fieldnames()
        new_fields = [key for key in entry.keys() if key not in fieldnames]
        fieldnames.extend(new_fields)

        is_new_file = not self.log_file.exists()
        if new_fields and not is_new_file:
            self._rewrite_header(fieldnames)

        with open(self.log_file, 'a', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter='\t')

            if is_new_file:
                writer.writeheader()

            writer.writerow(entry)

    def _rewrite_header(self, fieldnames: List[str]) -> None:
        """Rewrite the current log file under a wider header"""
        with open(self.log_file, 'r', newline='') as f:
            rows = list(csv.DictReader(f, delimiter='\t'))

        with open(self.log_file, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter='\t')
            writer.writeheader()
            writer.writerows(rows)

    def _get_fieldnames(self) -> List[str]:
        """Get existing fieldnames from log file"""
        if not self.log_file.exists():
            return list(DEFAULT_FIELDNAMES)

        with open(self.log_file, 'r', newline='') as f:
            reader = csv.DictReader(f, delimiter='\t')
            return list(reader.fieldnames or DEFAULT_FIELDNAMES)

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size"""
        if not self.log_file.exists():
            return

        if self.log_file.stat().st_size < self.max_log_size:
            return

        # Rename current log to log-TIMESTAMP.tsv
        timestamp = datetime.now().strftime('%Y%m%d-%H%M%S-%f')
        self.log_file.rename(self.log_dir / f'log-{timestamp}.tsv')

        # Next write creates a new log.tsv with header

    def _generate_entry_id(self, timestamp: str, level: str, message: str) -> str:
        """
        Generate a unique entry ID.

        Uses hash of timestamp + world_id + message.
        """
        content = f"{timestamp}:{self.world_id}:{level}:{message}:{len(self._entries)}"
        return hashlib.sha256(content.encode()).hexdigest()[:16]
