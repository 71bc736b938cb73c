"""
Backup module for cos-backup.

This module handles the backup job itself:
- Artifact naming (encode/decode of timestamped object names)
- Compression of directories
- Object store access (COS through the S3 API)
- Upload orchestration
- Retention policy enforcement
"""

from .naming import DecodedArtifact, decode_artifact_name, encode_artifact_name, generate_artifact_name
from .compression import zip_directory
from .storage import ObjectStore, StorageError
from .executor import BackupExecutor, BackupError
from .retention import RetentionConfig, RetentionManager, classify, run_cleanup_pass

__all__ = [
    'DecodedArtifact',
    'decode_artifact_name',
    'encode_artifact_name',
    'generate_artifact_name',
    'zip_directory',
    'ObjectStore',
    'StorageError',
    'BackupExecutor',
    'BackupError',
    'RetentionConfig',
    'RetentionManager',
    'classify',
    'run_cleanup_pass'
]
