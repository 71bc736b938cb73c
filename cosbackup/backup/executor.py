"""
Backup executor - uploads every configured source path.

Workflow (per path):
1. Check the path exists
2. Directory: zip into a temporary directory / File: upload as-is
3. Upload under {COS_TARGET_DIR}/{name}_{YYYYMMDD_HHMMSS}{.ext}
4. Verify the upload with a HEAD request
Temporary archives are removed when the run ends.
"""

import os
import shutil
import tempfile
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from cosbackup.config import parse_comma_list
from .compression import zip_directory, get_archive_size, CompressionError
from .naming import generate_artifact_name
from .storage import StorageError, join_key


logger = logging.getLogger(__name__)


class BackupError(Exception):
    """Raised when a single source path cannot be backed up."""
    pass


class BackupExecutor:
    """
    Uploads the configured source paths to the object store.
    """

    def __init__(self, storage, config: Dict[str, Any]):
        """
        Initialize backup executor.

        Args:
            storage: ObjectStore (needs upload and get_size)
            config: Settings dict (SOURCEFOLDER, COS_TARGET_DIR, TEMP_DIR)
        """
        self.storage = storage
        self.config = config
        self.target_dir = config.get('COS_TARGET_DIR') or ''
        self.source_paths = parse_comma_list(config.get('SOURCEFOLDER'))
        self.temp_dir = None
        self.logs = []

    def execute(self) -> Dict[str, Any]:
        """
        Back up every configured path.

        A failing path is logged and counted; the remaining paths are still
        processed.

        Returns:
            Dict with summary:
            {
                'total': int,
                'succeeded': int,
                'failed': int,
                'uploaded': List[str],
                'errors': List[str],
                'logs': List[str]
            }
        """
        summary = {
            'total': len(self.source_paths),
            'succeeded': 0,
            'failed': 0,
            'uploaded': [],
            'errors': []
        }

        if not self.source_paths:
            self._log("SOURCEFOLDER not configured, nothing to back up", logging.WARNING)
            summary['logs'] = self.logs
            return summary

        self._log(f"Starting backup of {len(self.source_paths)} paths")
        for index, path in enumerate(self.source_paths, start=1):
            self._log(f"  {index}. {path}")

        try:
            for source_path in self.source_paths:
                self._log(f"Processing: {source_path}")
                try:
                    key = self._backup_and_upload(source_path)
                    summary['succeeded'] += 1
                    summary['uploaded'].append(key)
                except (BackupError, CompressionError, StorageError) as e:
                    summary['failed'] += 1
                    error_msg = f"Backup of {source_path} failed: {e}"
                    summary['errors'].append(error_msg)
                    self._log(error_msg, logging.ERROR)
        finally:
            self._cleanup()

        self._log(
            f"Backup complete. "
            f"Total: {summary['total']}, "
            f"Uploaded: {summary['succeeded']}, "
            f"Failed: {summary['failed']}"
        )

        summary['logs'] = self.logs
        return summary

    def backup_one(self, source_path: str, now: Optional[datetime] = None) -> Tuple[str, str]:
        """
        Produce the local artifact and object key for one source path.

        Args:
            source_path: Local file or directory
            now: Moment stamped into the artifact name (default: now)

        Returns:
            (local_artifact_path, object_key)

        Raises:
            BackupError: If the path does not exist or cannot be read
            CompressionError: If zipping a directory fails
        """
        if not os.path.exists(source_path):
            raise BackupError(f"Path does not exist: {source_path}")

        if os.path.isdir(source_path):
            artifact_name = generate_artifact_name(source_path, is_dir=True, now=now)
            local_path = os.path.join(self._ensure_temp_dir(), artifact_name)

            self._log(f"Compressing directory: {source_path} -> {local_path}")
            zip_directory(source_path, local_path)
            size = get_archive_size(local_path)
            self._log(f"Directory compressed: {local_path} ({size / 1024 / 1024:.2f} MB)")
        elif os.path.isfile(source_path):
            artifact_name = generate_artifact_name(source_path, is_dir=False, now=now)
            local_path = source_path
            self._log(f"Uploading file directly: {source_path}")
        else:
            raise BackupError(f"Unsupported path type: {source_path}")

        return local_path, join_key(self.target_dir, artifact_name)

    def _backup_and_upload(self, source_path: str) -> str:
        local_path, key = self.backup_one(source_path)

        self._log(f"Uploading: {local_path} -> {key}")
        self.storage.upload(local_path, key)
        self._log(f"Upload succeeded: {key}")

        try:
            size = self.storage.get_size(key)
            self._log(f"Upload verified, size: {size} bytes")
        except StorageError as e:
            self._log(f"Warning: failed to verify upload {key}: {e}", logging.WARNING)

        return key

    def _ensure_temp_dir(self) -> str:
        if self.temp_dir is None:
            parent = self.config.get('TEMP_DIR') or None
            self.temp_dir = tempfile.mkdtemp(prefix='cosbackup_', dir=parent)
            self._log(f"Temporary directory: {self.temp_dir}")
        return self.temp_dir

    def _cleanup(self):
        """Remove temporary directory and archives."""
        if self.temp_dir and os.path.exists(self.temp_dir):
            try:
                shutil.rmtree(self.temp_dir)
                self._log("Cleaned up temporary directory")
            except OSError as e:
                self._log(f"Warning: Failed to cleanup temp directory: {e}", logging.WARNING)
        self.temp_dir = None

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: logging level
        """
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def execute_backup(storage, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Back up all configured source paths.

    Returns:
        Summary dict from BackupExecutor.execute()
    """
    executor = BackupExecutor(storage, config)
    return executor.execute()
