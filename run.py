#!/usr/bin/env python3
"""Backup job runner"""
import sys
import argparse
import logging

from cosbackup import init_app
from cosbackup.config import ConfigError
from cosbackup.backup.storage import ObjectStore, StorageError
from cosbackup.scheduler import (
    init_scheduler, start_scheduler, stop_scheduler, run_backup_cycle, get_next_run_time
)

logger = logging.getLogger('cosbackup.run')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Back up local files and directories to Tencent COS and prune old backups."
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help="run one backup and cleanup cycle now and exit"
    )
    parser.add_argument(
        '--env',
        default=None,
        help="configuration name (development, production); defaults to $APP_ENV"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = init_app(args.env)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        storage = ObjectStore.from_config(config)
        logger.info(f"Using bucket: {storage.bucket_name}, region: {storage.region}")
        storage.test_connection()

        if storage.ensure_directory(config['COS_TARGET_DIR']):
            logger.info(f"Created target directory: {config['COS_TARGET_DIR']}")
    except (ConfigError, StorageError) as e:
        logger.error(f"Failed to initialize object store: {e}")
        return 1

    target_dir = config['COS_TARGET_DIR'] or '/'
    logger.info(f"Target directory: {target_dir}")

    if args.once:
        result = run_backup_cycle(storage, config)
        backup = result['backup']
        if backup is None or backup['failed']:
            return 1
        return 0

    try:
        logger.info(f"Next run at {get_next_run_time(config['CLEANUP_TIME']):%Y-%m-%d %H:%M:%S}")
    except ValueError as e:
        logger.error(f"Failed to compute next run time: {e}")

    init_scheduler(storage, config)
    try:
        start_scheduler()
    except (KeyboardInterrupt, SystemExit):
        stop_scheduler()

    return 0


if __name__ == '__main__':
    sys.exit(main())
