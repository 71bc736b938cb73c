"""
Retention policy enforcement for uploaded backups.

Objects in the target directory are classified from their names alone:
the embedded timestamp gives the age, the logical prefix is checked against
a whitelist. Nothing is kept between runs; every pass starts from a fresh
listing of the store.

Decision order for one object name:
1. Name not in artifact format      -> skip (unrecognized-format)
2. Timestamp is not a real date     -> skip (unrecognized-format)
3. Age <= retention window          -> skip (within-retention-window)
4. Prefix is whitelisted            -> skip (whitelisted)
5. Otherwise                        -> delete
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional

from cosbackup.config import parse_comma_list
from .naming import TIMESTAMP_FORMAT, DecodedArtifact, decode_artifact_name
from .storage import StorageError, join_key


logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class InvalidTimestampError(ValueError):
    """Raised when an artifact timestamp is not a valid local date/time."""
    pass


class CleanupAction(Enum):
    DELETE = 'delete'
    SKIP = 'skip'


class SkipReason(Enum):
    UNRECOGNIZED_FORMAT = 'unrecognized-format'
    WITHIN_RETENTION_WINDOW = 'within-retention-window'
    WHITELISTED = 'whitelisted'


@dataclass(frozen=True)
class CleanupDecision:
    action: CleanupAction
    reason: Optional[SkipReason] = None
    detail: str = ''

    @property
    def should_delete(self) -> bool:
        return self.action is CleanupAction.DELETE

    @classmethod
    def skip(cls, reason: SkipReason, detail: str = '') -> 'CleanupDecision':
        return cls(action=CleanupAction.SKIP, reason=reason, detail=detail)

    @classmethod
    def delete(cls, detail: str = '') -> 'CleanupDecision':
        return cls(action=CleanupAction.DELETE, detail=detail)


@dataclass(frozen=True)
class RetentionConfig:
    """Retention settings for a single cleanup pass."""

    max_age_days: int = DEFAULT_RETENTION_DAYS
    whitelist: FrozenSet[str] = frozenset()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'RetentionConfig':
        """
        Build retention settings from the application settings.

        Args:
            config: Settings dict (CLEANUP_DAYS, CLEANUP_WHITELIST)

        Returns:
            RetentionConfig
        """
        return cls(
            max_age_days=parse_retention_days(config.get('CLEANUP_DAYS')),
            whitelist=frozenset(parse_comma_list(config.get('CLEANUP_WHITELIST')))
        )


def parse_retention_days(value) -> int:
    """
    Parse the retention window in days.

    Missing, non-integer and negative values fall back to
    DEFAULT_RETENTION_DAYS so a bad setting never aborts the run.

    Args:
        value: Raw setting (str, int or None)

    Returns:
        Non-negative number of days
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_RETENTION_DAYS

    try:
        days = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid CLEANUP_DAYS value {value!r}, using default of {DEFAULT_RETENTION_DAYS} days")
        return DEFAULT_RETENTION_DAYS

    if days < 0:
        logger.warning(f"Negative CLEANUP_DAYS value {days}, using default of {DEFAULT_RETENTION_DAYS} days")
        return DEFAULT_RETENTION_DAYS

    return days


def parse_artifact_timestamp(timestamp: str) -> datetime:
    """
    Parse a YYYYMMDD_HHMMSS timestamp as local wall-clock time.

    Raises:
        InvalidTimestampError: If the value is not a real date/time
    """
    try:
        return datetime.strptime(timestamp, TIMESTAMP_FORMAT)
    except (TypeError, ValueError) as e:
        raise InvalidTimestampError(f"Invalid artifact timestamp {timestamp!r}: {e}")


def _as_local_aware(moment: datetime) -> datetime:
    # Naive values are local wall-clock time; resolve them to real instants
    # so differences across a DST change are elapsed time.
    return moment.astimezone()


def artifact_age_hours(timestamp: str, now: Optional[datetime] = None) -> float:
    """
    Age of an artifact in fractional hours.

    Args:
        timestamp: Timestamp from the artifact name (YYYYMMDD_HHMMSS, local time)
        now: Reference moment (default: now)

    Returns:
        Hours elapsed since the timestamp (negative for future timestamps)

    Raises:
        InvalidTimestampError: If the timestamp cannot be parsed
    """
    created = parse_artifact_timestamp(timestamp)
    if now is None:
        now = datetime.now()

    # Years at the edge of the calendar cannot be resolved to a local instant
    try:
        return (_as_local_aware(now) - _as_local_aware(created)).total_seconds() / 3600
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidTimestampError(f"Invalid artifact timestamp {timestamp!r}: {e}")


def is_older_than(timestamp: str, max_age_days: int, now: Optional[datetime] = None) -> bool:
    """
    Check whether an artifact is older than the retention window.

    An artifact exactly max_age_days * 24 hours old is not older. An
    unparseable timestamp is never older.
    """
    try:
        age = artifact_age_hours(timestamp, now)
    except InvalidTimestampError as e:
        logger.warning(str(e))
        return False

    return age > max_age_days * 24


def is_whitelisted(prefix: str, whitelist: Iterable[str]) -> bool:
    """Exact, case-sensitive match of a prefix against the whitelist."""
    return any(prefix == allowed for allowed in whitelist)


def classify(decoded: DecodedArtifact, config: RetentionConfig, now: Optional[datetime] = None) -> CleanupDecision:
    """
    Decide whether an artifact should be deleted.

    Args:
        decoded: Parsed object name
        config: Retention settings for this pass
        now: Reference moment (default: now)

    Returns:
        CleanupDecision
    """
    if not decoded.recognized:
        return CleanupDecision.skip(SkipReason.UNRECOGNIZED_FORMAT, 'name is not in artifact format')

    if now is None:
        now = datetime.now()

    try:
        age = artifact_age_hours(decoded.timestamp, now)
    except InvalidTimestampError as e:
        logger.warning(str(e))
        return CleanupDecision.skip(SkipReason.UNRECOGNIZED_FORMAT, f"invalid timestamp {decoded.timestamp}")

    threshold = config.max_age_days * 24
    logger.debug(f"Artifact {decoded.prefix} ({decoded.timestamp}): age {age:.1f}h, threshold {threshold}h")

    if not is_older_than(decoded.timestamp, config.max_age_days, now):
        return CleanupDecision.skip(
            SkipReason.WITHIN_RETENTION_WINDOW,
            f"age {age:.1f}h within {config.max_age_days} days"
        )

    if is_whitelisted(decoded.prefix, config.whitelist):
        return CleanupDecision.skip(SkipReason.WHITELISTED, f"prefix {decoded.prefix} is whitelisted")

    return CleanupDecision.delete(f"age {age:.1f}h exceeds {config.max_age_days} days")


def _default_log(message: str, level: int = logging.INFO):
    logger.log(level, message)


def run_cleanup_pass(
    names: Iterable[str],
    config: RetentionConfig,
    now: Optional[datetime],
    delete_fn: Callable[[str], Any],
    log: Optional[Callable[..., None]] = None
) -> Dict[str, Any]:
    """
    Classify every object name and delete the expired ones.

    Deletion failures are recorded and the pass continues with the
    remaining names.

    Args:
        names: Object names relative to the target directory
        config: Retention settings for this pass
        now: Reference moment used for every name (None: now)
        delete_fn: Called with each name to delete; may raise
        log: Callable(message, level) receiving one line per decision

    Returns:
        Dict with counts:
        {
            'checked': int,
            'deleted': int,
            'skipped': int,
            'failed': int,
            'errors': List[str]
        }
    """
    if now is None:
        now = datetime.now()
    if log is None:
        log = _default_log

    result = {
        'checked': 0,
        'deleted': 0,
        'skipped': 0,
        'failed': 0,
        'errors': []
    }

    for name in names:
        result['checked'] += 1
        decoded = decode_artifact_name(name)
        decision = classify(decoded, config, now)

        if not decision.should_delete:
            result['skipped'] += 1
            log(f"Skipping {name}: {decision.reason.value} ({decision.detail})", logging.INFO)
            continue

        log(f"Deleting expired file: {name} (prefix: {decoded.prefix}, time: {decoded.timestamp})", logging.INFO)

        try:
            delete_fn(name)
            result['deleted'] += 1
            log(f"Deleted: {name}", logging.INFO)
        except Exception as e:
            result['failed'] += 1
            error_msg = f"Failed to delete {name}: {e}"
            result['errors'].append(error_msg)
            log(error_msg, logging.ERROR)

    return result


class RetentionManager:
    """
    Applies the retention policy to the backup target directory.
    """

    def __init__(self, storage, config: Dict[str, Any]):
        """
        Initialize retention manager.

        Args:
            storage: ObjectStore (needs list_files and delete)
            config: Settings dict
        """
        self.storage = storage
        self.config = config
        self.target_dir = config.get('COS_TARGET_DIR') or ''
        self.logs = []

    def enforce(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run one cleanup pass over the target directory.

        Args:
            now: Reference moment (default: now)

        Returns:
            Summary dict from run_cleanup_pass plus 'logs'
        """
        retention_config = RetentionConfig.from_config(self.config)
        whitelist = sorted(retention_config.whitelist)
        self._log(
            f"Starting cleanup: retention {retention_config.max_age_days} days, "
            f"whitelist {whitelist}"
        )

        try:
            names = self.storage.list_files(self.target_dir)
        except StorageError as e:
            self._log(f"Failed to list files: {e}", logging.ERROR)
            return {
                'checked': 0,
                'deleted': 0,
                'skipped': 0,
                'failed': 0,
                'errors': [str(e)],
                'logs': self.logs
            }

        self._log(f"Found {len(names)} files to check")

        summary = run_cleanup_pass(
            names,
            retention_config,
            now=now,
            delete_fn=self._delete,
            log=self._log
        )

        self._log(
            f"Cleanup complete. "
            f"Checked: {summary['checked']}, "
            f"Deleted: {summary['deleted']}, "
            f"Skipped: {summary['skipped']}, "
            f"Failed: {summary['failed']}"
        )

        summary['logs'] = self.logs
        return summary

    def _delete(self, name: str):
        self.storage.delete(join_key(self.target_dir, name))

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


def enforce_retention_policy(storage, config: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Enforce the retention policy if cleanup is enabled.

    This function is called by the scheduler after each backup run.

    Returns:
        Summary dict from RetentionManager.enforce(), or None when disabled
    """
    if not config.get('CLEANUP_ENABLED'):
        logger.info("Cleanup disabled (CLEANUP_ENABLED is not true), skipping")
        return None

    manager = RetentionManager(storage, config)
    return manager.enforce()
