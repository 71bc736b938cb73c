"""
Shared pytest fixtures for cos-backup tests.

This module provides fixtures for:
- Test configuration with temporary directories
- Mock object store (moto) with a test bucket
- Temporary file fixtures
"""

import logging

import pytest
import boto3
from moto import mock_aws

from cosbackup.config import load_config
from cosbackup.backup.storage import ObjectStore
from cosbackup import scheduler as scheduler_module


@pytest.fixture(scope='function')
def config(tmp_path):
    """
    Settings dict from TestingConfig.

    Target directory is 'backups', retention 7 days, cleanup enabled.
    """
    temp_dir = tmp_path / 'temp'
    temp_dir.mkdir()

    return load_config(
        'testing',
        LOG_DIR=str(tmp_path / 'logs'),
        TEMP_DIR=str(temp_dir)
    )


@pytest.fixture
def mock_cos():
    """
    Mock the object store using moto.

    Creates a test bucket 'test-bucket' in us-east-1 region and yields a raw
    boto3 client for arranging and inspecting objects.
    """
    with mock_aws():
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket='test-bucket')

        yield client


@pytest.fixture
def object_store(mock_cos):
    """ObjectStore bound to the mocked test bucket (default AWS endpoint)."""
    return ObjectStore(
        secret_id='testing',
        secret_key='testing',
        bucket_name='test-bucket',
        region='us-east-1'
    )


@pytest.fixture
def bucket_keys(mock_cos):
    """Return a function listing every key currently in the test bucket."""
    def _keys():
        response = mock_cos.list_objects_v2(Bucket='test-bucket')
        return sorted(obj['Key'] for obj in response.get('Contents', []))
    return _keys


@pytest.fixture
def temp_files(tmp_path):
    """
    Create temporary test files and directories.

    Creates:
    - source/test_file1.txt
    - source/test_file2.log
    - source/nested/test_file3.txt
    - source/empty/ (empty directory)
    """
    source = tmp_path / 'source'
    source.mkdir()

    (source / 'test_file1.txt').write_text('Test content 1')
    (source / 'test_file2.log').write_text('Test log content')

    nested_dir = source / 'nested'
    nested_dir.mkdir()
    (nested_dir / 'test_file3.txt').write_text('Nested test content')

    (source / 'empty').mkdir()

    return source


@pytest.fixture
def reset_scheduler():
    """Reset the global scheduler around a test."""
    scheduler_module.scheduler = None
    yield
    scheduler_module.scheduler = None


@pytest.fixture
def restore_logging():
    """Restore root logger handlers replaced by configure_logging()."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
