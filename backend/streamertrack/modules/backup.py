"""Dated SQLite snapshots with rotation, and the background timer that takes them.

Backups use SQLite's online backup API through the raw DBAPI connection, so
they are consistent even while WAL-mode writers are active. The scheduler
logs its failures and never lets them reach request handling.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine

from streamertrack.errors import NotFound, StoreFailure, ValidationError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "streamer_backup_"
BACKUP_SUFFIX = ".db"


def backup_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{BACKUP_PREFIX}{now.strftime('%Y-%m-%dT%H-%M-%S-%f')}Z{BACKUP_SUFFIX}"


def _require_sqlite(engine: Engine) -> None:
    if engine.dialect.name != "sqlite":
        raise StoreFailure("Backups are only supported for SQLite databases")


def _backup_files(backup_dir: Path) -> list[Path]:
    """Backup files, newest first. Names embed the UTC timestamp so they sort chronologically."""
    if not backup_dir.exists():
        return []
    files = [
        p for p in backup_dir.iterdir()
        if p.is_file() and p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
    ]
    return sorted(files, key=lambda p: p.name, reverse=True)


def prune_backups(backup_dir: Path, keep: int) -> list[Path]:
    removed = []
    for old in _backup_files(Path(backup_dir))[keep:]:
        old.unlink()
        removed.append(old)
        logger.info("Deleted old backup: %s", old.name)
    return removed


def create_backup(engine: Engine, backup_dir: Path, max_backups: int) -> Path:
    """Snapshot the live database into ``backup_dir`` and rotate old files."""
    _require_sqlite(engine)
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    dest_path = backup_dir / backup_filename()

    raw_conn = engine.raw_connection()
    try:
        dest = sqlite3.connect(dest_path)
        try:
            raw_conn.driver_connection.backup(dest)
        finally:
            dest.close()
    finally:
        raw_conn.close()

    logger.info("Database backup created: %s", dest_path.name)
    prune_backups(backup_dir, max_backups)
    return dest_path


def list_backups(backup_dir: Path) -> list[dict]:
    result = []
    for path in _backup_files(Path(backup_dir)):
        stat = path.stat()
        result.append({
            "filename": path.name,
            "size": stat.st_size,
            "createdAt": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        })
    return result


def validate_backup_name(filename: str) -> None:
    if (
        not filename.startswith(BACKUP_PREFIX)
        or not filename.endswith(BACKUP_SUFFIX)
        or ".." in filename
        or "/" in filename
        or "\\" in filename
    ):
        raise ValidationError("Invalid backup filename")


def restore_backup(engine: Engine, backup_dir: Path, filename: str, max_backups: int) -> Path:
    """Copy a backup over the live database, taking a safety backup first."""
    _require_sqlite(engine)
    validate_backup_name(filename)
    source_path = Path(backup_dir) / filename
    if not source_path.is_file():
        raise NotFound("Backup file not found")

    # Load the source first: rotation after the safety backup may delete it
    source = sqlite3.connect(":memory:")
    source_file = sqlite3.connect(source_path)
    try:
        source_file.backup(source)
    finally:
        source_file.close()

    safety = create_backup(engine, backup_dir, max_backups)

    raw_conn = engine.raw_connection()
    try:
        source.backup(raw_conn.driver_connection)
    finally:
        raw_conn.close()
        source.close()
    engine.dispose()
    logger.warning("Database restored from %s (safety backup %s)", filename, safety.name)
    return safety


class BackupScheduler:
    """Takes a backup at start and then every ``interval_hours`` on a daemon thread."""

    def __init__(self, engine: Engine, backup_dir: Path, interval_hours: float, max_backups: int):
        self.engine = engine
        self.backup_dir = Path(backup_dir)
        self.interval_seconds = interval_hours * 3600
        self.max_backups = max_backups
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.backups_taken = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[Path]:
        try:
            path = create_backup(self.engine, self.backup_dir, self.max_backups)
        except Exception:
            self.failures += 1
            logger.exception("Scheduled backup failed")
            return None
        self.backups_taken += 1
        return path

    def start(self) -> None:
        if self._thread is not None:
            return
        if self.engine.dialect.name != "sqlite":
            logger.info("Backup scheduler disabled: database is %s, not SQLite", self.engine.dialect.name)
            return

        def backup_loop():
            self.run_once()
            while not self._stop_event.wait(timeout=self.interval_seconds):
                logger.info("Running scheduled database backup")
                self.run_once()

        logger.info("Starting backup scheduler (every %.1f hours, keeping %d)",
                    self.interval_seconds / 3600, self.max_backups)
        self._thread = threading.Thread(target=backup_loop, name="backup-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("Backup scheduler stopped")
