"""
Artifact naming for uploaded backups.

Every uploaded object is named:
    {logical_name}_{YYYYMMDD}_{HHMMSS}{.ext}

Directories are always uploaded as zip archives, files keep their own
extension. The retention policy recovers the logical name and timestamp
from the object name alone, so this module is the only place that knows
the format.
"""

import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'

# The logical name is matched lazily: with several timestamp-looking runs in a
# name, the prefix ends at the shortest split that still lets the rest match.
ARTIFACT_NAME_PATTERN = re.compile(r'(.+?)_(\d{8}_\d{6})\..+', re.ASCII)


@dataclass(frozen=True)
class DecodedArtifact:
    """Result of parsing an object name."""

    prefix: str
    timestamp: str
    recognized: bool


UNRECOGNIZED = DecodedArtifact(prefix='', timestamp='', recognized=False)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a moment as YYYYMMDD_HHMMSS in local wall-clock time.

    Args:
        moment: Naive local datetime or aware datetime (default: now)

    Returns:
        Timestamp string
    """
    if moment is None:
        moment = datetime.now()
    elif moment.tzinfo is not None:
        moment = moment.astimezone()

    return moment.strftime(TIMESTAMP_FORMAT)


def encode_artifact_name(logical_name: str, timestamp: str, is_zip: bool = False, extension: str = '') -> str:
    """
    Build a canonical artifact name.

    Args:
        logical_name: Base name without directory and, for files, without extension
        timestamp: Timestamp formatted as YYYYMMDD_HHMMSS
        is_zip: True for zipped directories (extension is forced to .zip)
        extension: Original file extension including the leading dot, or ''

    Returns:
        Artifact name
    """
    if is_zip:
        extension = '.zip'

    return f"{logical_name}_{timestamp}{extension}"


def generate_artifact_name(source_path: str, is_dir: bool, now: Optional[datetime] = None) -> str:
    """
    Generate the artifact name for a local source path.

    Format: {name}_{YYYYMMDD_HHMMSS}.zip for directories,
            {stem}_{YYYYMMDD_HHMMSS}{ext} for files

    Args:
        source_path: Local file or directory path
        is_dir: Whether the path is a directory
        now: Moment to stamp into the name (default: now)

    Returns:
        Artifact name (without any target directory)
    """
    timestamp = format_timestamp(now)
    base_name = os.path.basename(os.path.normpath(source_path))

    if is_dir:
        return encode_artifact_name(base_name, timestamp, is_zip=True)

    stem, extension = os.path.splitext(base_name)
    return encode_artifact_name(stem, timestamp, extension=extension)


def decode_artifact_name(name) -> DecodedArtifact:
    """
    Parse an object name back into its logical prefix and timestamp.

    Names that were not produced by generate_artifact_name (or do not look
    like it) come back with recognized=False. Never raises.

    Args:
        name: Object name, relative to the target directory

    Returns:
        DecodedArtifact
    """
    if not isinstance(name, str):
        return UNRECOGNIZED

    match = ARTIFACT_NAME_PATTERN.fullmatch(name)
    if not match:
        return UNRECOGNIZED

    return DecodedArtifact(prefix=match.group(1), timestamp=match.group(2), recognized=True)
