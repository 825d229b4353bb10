"""
Report Backup Manager

Copies the reports directory to a shared or local backup location after a
run, keeping a timestamped history.

Features:
- Timestamped backup folders (never overwrites a previous run)
- UNC / mapped drive / local destinations
- Optional ZIP compression
- Pruning to the last N backups
- index.html listing every retained run

Backup failures are logged and swallowed; they never fail the test run.
"""

import asyncio
import re
import shutil
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import Settings
from ..log import get_logging_manager

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_TIMESTAMP_NAME = re.compile(r"^\d{8}_\d{6}")


@dataclass
class BackupEntry:
    name: str
    path: Path
    date: datetime

    @property
    def entry(self) -> str:
        """Link target inside the backup folder"""
        if (self.path / "reports.zip").exists():
            return "reports.zip"
        return "index.html"


class ReportBackupManager:
    """Archive report directories with retention"""

    def __init__(
        self,
        source_dir: Optional[str] = None,
        backup_path: Optional[str] = None,
        enabled: Optional[bool] = None,
        keep_last_n: Optional[int] = None,
        compress: Optional[bool] = None,
        project_name: Optional[str] = None,
        settings: Optional[Settings] = None,
        logger=None
    ):
        """
        Initialize the backup manager. Unset options come from settings.

        Args:
            source_dir: Local reports directory
            backup_path: Destination root (UNC or local)
            enabled: Whether backup runs at all
            keep_last_n: Number of backups to retain
            compress: Write reports.zip instead of a plain copy
            project_name: Folder name grouping this project's backups
            settings: Resolved settings
            logger: Logger handle (defaults to the process logging manager)
        """
        settings = settings or Settings()
        self.source_dir = Path(source_dir or settings.reports_dir).resolve()
        self.backup_path = backup_path if backup_path is not None else settings.report_backup_path
        self.enabled = settings.report_backup_enabled if enabled is None else enabled
        self.keep_last_n = keep_last_n or settings.report_backup_keep
        self.compress = settings.report_backup_compress if compress is None else compress
        self.project_name = project_name or settings.project_name
        self.logger = logger or get_logging_manager().get_logger("ReportBackupManager")

    @property
    def project_dir(self) -> Path:
        return Path(self.backup_path) / self.project_name

    # ==================== Public API ====================

    async def backup(self) -> Optional[Path]:
        """
        Run the backup. No-op when disabled or unconfigured.

        Returns:
            Backup folder, or None if nothing was written
        """
        if not self.enabled:
            self.logger.debug("Report backup is disabled (set REPORT_BACKUP_ENABLE=true to enable)")
            return None

        if not self.backup_path:
            self.logger.warning("REPORT_BACKUP_PATH not configured - skipping backup")
            return None

        if not self.source_dir.exists():
            self.logger.warning(f"Source directory does not exist: {self.source_dir}")
            return None

        try:
            dest = self._reserve_destination(datetime.now().strftime(TIMESTAMP_FORMAT))
            self.logger.info(f"Backing up reports to: {dest}")
            loop = asyncio.get_running_loop()
            if self.compress:
                await loop.run_in_executor(None, self._compress_to, dest)
            else:
                await loop.run_in_executor(None, self._copy_to, dest)
            self.logger.info(f"Report backup complete: {dest}")

            self._prune_old_backups()
            self._generate_backup_index()
            return dest
        except Exception as e:
            self.logger.error(f"Report backup failed: {e}")
            return None

    def list_backups(self) -> List[BackupEntry]:
        """Existing backups, newest first."""
        if not self.project_dir.exists():
            return []

        backups = [
            BackupEntry(name=d.name, path=d, date=self._parse_timestamp(d.name))
            for d in self.project_dir.iterdir()
            if d.is_dir() and _TIMESTAMP_NAME.match(d.name)
        ]
        return sorted(backups, key=lambda b: (b.date, _collision_index(b.name)), reverse=True)

    # ==================== Helpers ====================

    def _reserve_destination(self, stamp: str) -> Path:
        """
        Create and return an unused folder for this run.

        A second run within the same second gets "<stamp>_1", "<stamp>_2" and
        so on, so earlier backups are never merged into.
        """
        self.project_dir.mkdir(parents=True, exist_ok=True)
        dest = self.project_dir / stamp
        suffix = 0
        while True:
            try:
                dest.mkdir()
                return dest
            except FileExistsError:
                suffix += 1
                dest = self.project_dir / f"{stamp}_{suffix}"

    def _copy_to(self, dest: Path):
        shutil.copytree(self.source_dir, dest, dirs_exist_ok=True)

    def _compress_to(self, dest: Path):
        dest.mkdir(parents=True, exist_ok=True)
        zip_path = dest / "reports.zip"
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as archive:
            for file in sorted(self.source_dir.rglob("*")):
                if file.is_file():
                    archive.write(file, file.relative_to(self.source_dir))
        self.logger.info(f"Compressed backup: {zip_path} ({zip_path.stat().st_size} bytes)")

    @staticmethod
    def _parse_timestamp(name: str) -> datetime:
        try:
            return datetime.strptime(name[:15], TIMESTAMP_FORMAT)
        except ValueError:
            return datetime.fromtimestamp(0)

    def _prune_old_backups(self):
        backups = self.list_backups()
        if len(backups) <= self.keep_last_n:
            return

        to_remove = backups[self.keep_last_n:]
        for backup in to_remove:
            try:
                shutil.rmtree(backup.path)
                self.logger.debug(f"Pruned old backup: {backup.name}")
            except OSError as e:
                self.logger.warning(f"Failed to prune backup {backup.name}: {e}")

        self.logger.info(f"Pruned {len(to_remove)} old backup(s) - keeping last {self.keep_last_n}")

    def _generate_backup_index(self) -> Path:
        env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"])
        )
        template = env.get_template("backup_index.html")
        html = template.render(
            project_name=self.project_name,
            backups=self.list_backups(),
            keep_last_n=self.keep_last_n
        )
        index_path = self.project_dir / "index.html"
        index_path.write_text(html, encoding="utf-8")
        return index_path


def _collision_index(name: str) -> int:
    """Suffix number of "<stamp>_<n>" folders; 0 for the first run in a second."""
    suffix = name[16:]
    return int(suffix) if suffix.isdigit() else 0
