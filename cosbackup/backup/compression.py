"""
Zip archives for directory backups.

Directories are uploaded as a single zip whose entries are relative to the
directory itself (the directory name is carried by the artifact name).
"""

import os
import zipfile
from pathlib import Path


class CompressionError(Exception):
    """Raised when archive creation fails."""
    pass


def zip_directory(source_dir: str, archive_path: str) -> str:
    """
    Create a ZIP archive of a directory's contents.

    Sub-directories are stored as explicit entries (name ending in '/'),
    so empty directories survive a restore.

    Args:
        source_dir: Directory to archive
        archive_path: Output archive path

    Returns:
        archive_path

    Raises:
        CompressionError: If the directory is missing or archiving fails
    """
    source = Path(source_dir)
    if not source.is_dir():
        raise CompressionError(f"Not a directory: {source_dir}")

    try:
        with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
            for item in sorted(source.rglob('*')):
                relative_path = item.relative_to(source).as_posix()
                if item.is_dir():
                    zipf.writestr(relative_path + '/', b'')
                elif item.is_file():
                    zipf.write(item, relative_path)
        return archive_path
    except Exception as e:
        # Clean up partial archive on failure
        if os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError:
                pass
        raise CompressionError(f"Failed to create archive: {e}")


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except Exception as e:
        raise CompressionError(f"Failed to get archive size: {e}")
