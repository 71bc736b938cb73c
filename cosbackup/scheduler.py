"""
APScheduler configuration for cos-backup.

Runs one backup-and-cleanup cycle per day at CLEANUP_TIME (HH:MM, local
time). The scheduler has a single worker and allows one running instance of
the cycle, so cycles never overlap.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.executors.pool import ThreadPoolExecutor

from cosbackup.backup.executor import execute_backup
from cosbackup.backup.retention import enforce_retention_policy


logger = logging.getLogger(__name__)

CYCLE_JOB_ID = 'backup_cycle'

# Global scheduler instance
scheduler = None


def parse_cleanup_time(value: Optional[str]) -> Tuple[int, int]:
    """
    Parse an HH:MM time of day.

    Args:
        value: Time string such as '03:30'

    Returns:
        (hour, minute)

    Raises:
        ValueError: If the value is missing, malformed or out of range
    """
    if not value:
        raise ValueError("CLEANUP_TIME not configured")

    parts = value.strip().split(':')
    if len(parts) != 2:
        raise ValueError(f"CLEANUP_TIME must be in HH:MM format, got: {value}")

    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        raise ValueError(f"CLEANUP_TIME could not be parsed: {value}")

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"CLEANUP_TIME out of range: {value}")

    return hour, minute


def get_next_run_time(cleanup_time: str, now: Optional[datetime] = None) -> datetime:
    """
    Compute the next daily run for an HH:MM time.

    Today's run time is used unless it has already passed, in which case the
    run is tomorrow.

    Raises:
        ValueError: If cleanup_time is invalid
    """
    hour, minute = parse_cleanup_time(cleanup_time)
    if now is None:
        now = datetime.now()

    run_time = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if run_time < now:
        run_time += timedelta(days=1)

    return run_time


def build_trigger(cleanup_time: Optional[str]):
    """
    Build the trigger for the daily cycle.

    Falls back to running every 24 hours when CLEANUP_TIME is missing or
    invalid.
    """
    try:
        hour, minute = parse_cleanup_time(cleanup_time)
    except ValueError as e:
        logger.error(f"Invalid schedule: {e}. Retrying every 24 hours instead")
        return IntervalTrigger(hours=24)

    return CronTrigger(hour=hour, minute=minute)


def run_backup_cycle(storage, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run a backup followed by retention cleanup.

    Errors are logged and never propagate into the scheduler.

    Returns:
        Dict with 'backup' and 'cleanup' summaries (None where a step failed
        or was skipped)
    """
    result = {'backup': None, 'cleanup': None}

    logger.info("=== Starting backup ===")
    try:
        result['backup'] = execute_backup(storage, config)
    except Exception as e:
        logger.exception(f"Backup run failed: {e}")

    try:
        result['cleanup'] = enforce_retention_policy(storage, config)
    except Exception as e:
        logger.exception(f"Cleanup run failed: {e}")

    if config.get('CLEANUP_TIME'):
        try:
            logger.info(f"Next run at {get_next_run_time(config['CLEANUP_TIME']):%Y-%m-%d %H:%M:%S}")
        except ValueError:
            pass

    return result


def init_scheduler(storage, config: Dict[str, Any]):
    """
    Initialize and configure APScheduler.

    Args:
        storage: ObjectStore passed to every cycle
        config: Settings dict passed to every cycle
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    executors = {
        'default': ThreadPoolExecutor(max_workers=1)
    }

    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Only one instance of a job at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    # Local time zone: CLEANUP_TIME is wall-clock time
    scheduler = BlockingScheduler(
        executors=executors,
        job_defaults=job_defaults
    )

    scheduler.add_job(
        func=run_backup_cycle,
        args=[storage, config],
        trigger=build_trigger(config.get('CLEANUP_TIME')),
        id=CYCLE_JOB_ID,
        name='Daily Backup and Cleanup',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the APScheduler.

    Blocks until the scheduler is shut down.
    """
    global scheduler

    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if scheduler.running:
        logger.info(f"Scheduler already running (state={scheduler.state})")
        return

    logger.info("Scheduler starting; backups and cleanup will run on schedule")
    scheduler.start()


def stop_scheduler():
    """Stop the APScheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
