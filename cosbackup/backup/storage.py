"""
Object store gateway for backup artifacts.

Talks to Tencent COS through its S3-compatible API with boto3. Keys are
laid out flat under a single target directory:
    {target_dir}/{artifact_name}
"""

import os
from typing import Any, Dict, List

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, BotoCoreError

from cosbackup.config import ConfigError


COS_ENDPOINT_TEMPLATE = 'https://cos.{region}.myqcloud.com'

NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NotFound')


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


def normalize_dir(dir_path: str) -> str:
    """Strip leading/trailing slashes from a directory prefix ('' is the bucket root)."""
    return (dir_path or '').strip('/')


def join_key(dir_path: str, name: str) -> str:
    """
    Build an object key from a target directory and a name.

    Args:
        dir_path: Target directory ('' or '/' for the bucket root)
        name: Object name relative to the directory

    Returns:
        Object key without a leading slash
    """
    clean_dir = normalize_dir(dir_path)
    clean_name = name.lstrip('/')

    if not clean_dir:
        return clean_name

    return f"{clean_dir}/{clean_name}"


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


class ObjectStore:
    """
    Handler for the backup bucket.

    Provides the operations the backup and retention code need: listing,
    uploading, existence checks and deletion.
    """

    def __init__(self, secret_id: str, secret_key: str, bucket_name: str, region: str, endpoint_url: str = None):
        """
        Initialize object store handler.

        Args:
            secret_id: COS SecretId (S3 access key)
            secret_key: COS SecretKey (S3 secret key)
            bucket_name: Bucket name, including the COS APPID suffix
            region: Bucket region (e.g. ap-guangzhou)
            endpoint_url: S3 endpoint; None uses the boto3 default
        """
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url

        try:
            self.client = boto3.client(
                's3',
                aws_access_key_id=secret_id,
                aws_secret_access_key=secret_key,
                region_name=region,
                endpoint_url=endpoint_url,
                config=BotoConfig(s3={'addressing_style': 'virtual'})
            )
        except Exception as e:
            raise StorageError(f"Failed to initialize object store client: {e}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ObjectStore':
        """
        Create a handler from application settings.

        Args:
            config: Settings dict

        Returns:
            ObjectStore

        Raises:
            ConfigError: If credentials, bucket or region are missing
        """
        secret_id = config.get('TENCENTCLOUD_SECRET_ID')
        secret_key = config.get('TENCENTCLOUD_SECRET_KEY')
        if not secret_id or not secret_key:
            raise ConfigError(
                "Credentials not configured. Set TENCENTCLOUD_SECRET_ID and "
                "TENCENTCLOUD_SECRET_KEY in .env or the environment"
            )

        bucket_name = config.get('COS_BUCKET_NAME')
        if not bucket_name:
            raise ConfigError("Bucket not configured. Set COS_BUCKET_NAME in .env or the environment")

        region = config.get('COS_REGION')
        if not region:
            raise ConfigError("Region not configured. Set COS_REGION in .env or the environment")

        endpoint_url = config.get('COS_ENDPOINT_URL') or COS_ENDPOINT_TEMPLATE.format(region=region)

        return cls(
            secret_id=secret_id,
            secret_key=secret_key,
            bucket_name=bucket_name,
            region=region,
            endpoint_url=endpoint_url
        )

    def upload(self, local_path: str, key: str) -> str:
        """
        Upload a local file.

        boto3's managed transfer switches to multipart upload for large files.

        Args:
            local_path: Path to local file
            key: Destination object key

        Returns:
            Object key

        Raises:
            StorageError: If upload fails
        """
        if not os.path.isfile(local_path):
            raise StorageError(f"Local file not found: {local_path}")

        try:
            self.client.upload_file(local_path, self.bucket_name, key)
            return key
        except ClientError as e:
            raise StorageError(f"Upload failed ({_error_code(e)}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"Upload failed: {e}")
        except Exception as e:
            raise StorageError(f"Failed to upload {local_path}: {e}")

    def head(self, key: str) -> Dict[str, Any]:
        """
        Fetch object metadata.

        Raises:
            StorageError: If the object does not exist or the request fails
        """
        try:
            return self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                raise StorageError(f"Object not found: {key}")
            raise StorageError(f"HEAD failed ({code}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"HEAD failed: {e}")

    def get_size(self, key: str) -> int:
        """Return the size of an object in bytes."""
        return self.head(key)['ContentLength']

    def exists(self, key: str) -> bool:
        """
        Check whether an object exists.

        Raises:
            StorageError: On failures other than "not found"
        """
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                return False
            raise StorageError(f"Existence check failed ({code}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"Existence check failed: {e}")

    def delete(self, key: str):
        """
        Delete an object.

        Args:
            key: Object key to delete

        Raises:
            StorageError: If deletion fails
        """
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise StorageError(f"Delete failed ({_error_code(e)}): {e}")
        except Exception as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def list_keys(self, prefix: str = '') -> List[str]:
        """
        List object keys with given prefix.

        Args:
            prefix: Key prefix to filter by

        Returns:
            List of keys

        Raises:
            StorageError: If listing fails
        """
        try:
            keys = []
            paginator = self.client.get_paginator('list_objects_v2')

            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get('Contents', []):
                    keys.append(obj['Key'])

            return keys

        except ClientError as e:
            raise StorageError(f"List failed ({_error_code(e)}): {e}")
        except Exception as e:
            raise StorageError(f"Failed to list objects: {e}")

    def list_files(self, dir_path: str = '') -> List[str]:
        """
        List file names under a directory.

        Directory markers (keys ending in '/') are left out; returned names
        are relative to dir_path.

        Args:
            dir_path: Directory to list ('' for the bucket root)

        Returns:
            List of names relative to dir_path
        """
        clean_dir = normalize_dir(dir_path)
        prefix = f"{clean_dir}/" if clean_dir else ''

        return [
            key[len(prefix):]
            for key in self.list_keys(prefix)
            if not key.endswith('/')
        ]

    def ensure_directory(self, dir_path: str) -> bool:
        """
        Make sure a directory marker exists for dir_path.

        Args:
            dir_path: Directory path ('' for the bucket root)

        Returns:
            True if the marker was created, False if nothing had to be done

        Raises:
            StorageError: If the check or creation fails
        """
        clean_dir = normalize_dir(dir_path)
        if not clean_dir:
            return False

        marker = f"{clean_dir}/"
        if self.exists(marker):
            return False

        try:
            self.client.put_object(Bucket=self.bucket_name, Key=marker, Body=b'')
            return True
        except ClientError as e:
            raise StorageError(f"Failed to create directory {clean_dir} ({_error_code(e)}): {e}")
        except Exception as e:
            raise StorageError(f"Failed to create directory {clean_dir}: {e}")

    def test_connection(self) -> bool:
        """
        Test connection and bucket access.

        Returns:
            True if connection is successful

        Raises:
            StorageError: If connection test fails
        """
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            return True
        except ClientError as e:
            code = _error_code(e)
            if code == '404':
                raise StorageError(f"Bucket does not exist: {self.bucket_name}")
            elif code == '403':
                raise StorageError(f"Access denied to bucket: {self.bucket_name}")
            else:
                raise StorageError(f"Connection test failed ({code}): {e}")
        except Exception as e:
            raise StorageError(f"Failed to connect to object store: {e}")
