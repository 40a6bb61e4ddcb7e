# context_deploy/services/backup_service.py
"""Snapshot-before-write and restore-on-failure"""

import hashlib
import json
import logging
import os
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional

from ..api.exceptions import BackupError
from ..constants import (
    BACKUP_DIR_PREFIX,
    BACKUP_MANIFEST_FILE,
    DEFAULT_BACKUP_RETENTION_DAYS,
    DEFAULT_CHUNK_SIZE,
    WarningCode,
)
from ..models.backup import BackupManifest
from ..models.result import RollbackResult
from ..utils.file_utils import copy_file_async, calculate_file_checksum

logger = logging.getLogger(__name__)


def backup_file_name(path: Path) -> str:
    """Name of a file's copy inside a backup set, unique per original path"""
    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:12]
    return f"{digest}-{path.name}"


class BackupService:
    """Manage timestamped backups under a backup root"""

    def __init__(self, backup_root: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """Initialize backup service

        Args:
            backup_root: Directory under which backup sets are created
            chunk_size: Copy chunk size in bytes
        """
        self.backup_root = Path(backup_root).expanduser()
        self.chunk_size = chunk_size

    def new_manifest(self, platform: Optional[str] = None, on_demand: bool = False) -> BackupManifest:
        """Create an empty manifest; its directory appears on first snapshot"""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        directory = self.backup_root / f"{BACKUP_DIR_PREFIX}{stamp}_{uuid.uuid4().hex[:8]}"
        return BackupManifest(backup_dir=directory, platform=platform, on_demand=on_demand)

    async def create_backup(self, paths: Iterable[Path], platform: Optional[str] = None) -> BackupManifest:
        """
        Copy each existing file into a new backup set

        Nonexistent paths are skipped.

        Args:
            paths: Files to back up
            platform: Platform label recorded in the manifest

        Returns:
            BackupManifest for the new backup set
        """
        manifest = self.new_manifest(platform)
        for path in paths:
            await self.snapshot(manifest, Path(path))
        return manifest

    async def snapshot(self, manifest: BackupManifest, path: Path) -> Optional[Path]:
        """
        Back up one file into a manifest before it is overwritten

        No-op if the file does not exist or is already in the manifest.

        Returns:
            Backup copy path, or None if nothing was copied

        Raises:
            BackupError: If the copy fails
        """
        path = Path(path)
        if path in manifest.original_paths or not path.is_file():
            return None

        backup_path = manifest.backup_dir / "files" / backup_file_name(path)
        # Reserve the entry before the copy so concurrent snapshots never share it
        manifest.add_entry(path, backup_path)
        try:
            checksum = await copy_file_async(path, backup_path, self.chunk_size)
            shutil.copystat(path, backup_path)
        except OSError as e:
            manifest.remove_entry(path)
            raise BackupError(f"Failed to back up {path}: {e}", str(path))

        manifest.set_checksum(path, checksum)
        self.save_manifest(manifest)
        logger.debug(f"Backed up {path} -> {backup_path}")
        return backup_path

    def record_created(self, manifest: BackupManifest, path: Path) -> None:
        """Remember a file that did not exist before this run"""
        path = Path(path)
        if not manifest.contains(path):
            manifest.created_paths.append(path)
            if manifest.is_active:
                self.save_manifest(manifest)

    def save_manifest(self, manifest: BackupManifest) -> Path:
        manifest.backup_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = manifest.backup_dir / BACKUP_MANIFEST_FILE
        temp_path = manifest_path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(manifest.to_dict(), f, indent=2)
        os.replace(temp_path, manifest_path)
        return manifest_path

    def load_manifest(self, backup_dir: Path) -> BackupManifest:
        """
        Load a manifest from a backup set directory

        Raises:
            BackupError: If the manifest is missing or malformed
        """
        manifest_path = Path(backup_dir) / BACKUP_MANIFEST_FILE
        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                return BackupManifest.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise BackupError(f"Cannot read backup manifest {manifest_path}: {e}", str(manifest_path))

    async def rollback(self, manifest: BackupManifest) -> RollbackResult:
        """
        Restore every backed-up file and remove files this run created

        Idempotent. Individual failures become warnings; this method does
        not raise for them.

        Args:
            manifest: Manifest of the failed run

        Returns:
            RollbackResult
        """
        result = RollbackResult()

        for original, backup, checksum in manifest.entries():
            try:
                original.parent.mkdir(parents=True, exist_ok=True)
                restored = await copy_file_async(backup, original, self.chunk_size)
                shutil.copystat(backup, original)
            except OSError as e:
                result.add_warning(WarningCode.ROLLBACK_PARTIAL, f"Could not restore {original}: {e}",
                                   path=str(original))
                continue
            if checksum and restored != checksum:
                result.add_warning(WarningCode.ROLLBACK_PARTIAL,
                                   f"Restored {original} does not match its backup checksum",
                                   path=str(original))
                continue
            result.files_restored.append(original)

        for created in manifest.created_paths:
            try:
                created.unlink()
                result.files_removed.append(created)
            except FileNotFoundError:
                pass
            except OSError as e:
                result.add_warning(WarningCode.ROLLBACK_PARTIAL, f"Could not remove {created}: {e}",
                                   path=str(created))

        logger.info(
            f"Rollback restored {len(result.files_restored)} file(s), "
            f"removed {len(result.files_removed)} file(s), {len(result.warnings)} warning(s)"
        )
        return result

    def discard(self, manifest: BackupManifest) -> None:
        """Delete a backup set"""
        if manifest.backup_dir.exists():
            shutil.rmtree(manifest.backup_dir, ignore_errors=True)

    def verify(self, manifest: BackupManifest) -> List[Path]:
        """Return backup copies whose checksum no longer matches"""
        corrupted = []
        for _, backup, checksum in manifest.entries():
            if not backup.exists() or calculate_file_checksum(backup) != checksum:
                corrupted.append(backup)
        return corrupted

    def list_backups(self) -> List[BackupManifest]:
        """List backup sets, newest first"""
        manifests = []
        if not self.backup_root.exists():
            return manifests
        for directory in self.backup_root.glob(f"{BACKUP_DIR_PREFIX}*"):
            if not (directory / BACKUP_MANIFEST_FILE).exists():
                continue
            try:
                manifests.append(self.load_manifest(directory))
            except BackupError as e:
                logger.warning(str(e))
        return sorted(manifests, key=lambda m: m.created_at, reverse=True)

    def cleanup_old_backups(self, retention_days: int = DEFAULT_BACKUP_RETENTION_DAYS) -> List[Path]:
        """
        Delete backup sets older than the retention period

        Returns:
            Removed backup directories
        """
        cutoff = datetime.now() - timedelta(days=retention_days)
        removed = []
        for manifest in self.list_backups():
            if manifest.created_at < cutoff:
                self.discard(manifest)
                removed.append(manifest.backup_dir)
        if removed:
            logger.info(f"Removed {len(removed)} backup(s) older than {retention_days} day(s)")
        return removed
