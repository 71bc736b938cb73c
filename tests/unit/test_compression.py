"""
Unit tests for compression module (cosbackup/backup/compression.py).
"""

import os
import zipfile

import pytest

from cosbackup.backup.compression import (
    zip_directory,
    get_archive_size,
    CompressionError
)


class TestZipDirectory:
    """Test zip_directory."""

    def test_zip_directory_entries_are_relative(self, temp_files, tmp_path):
        """Test entries are relative to the archived directory."""
        archive_path = str(tmp_path / 'source_20251021_095449.zip')

        result = zip_directory(str(temp_files), archive_path)

        assert result == archive_path
        with zipfile.ZipFile(archive_path, 'r') as zipf:
            names = set(zipf.namelist())

        assert names == {
            'test_file1.txt',
            'test_file2.log',
            'nested/',
            'nested/test_file3.txt',
            'empty/',
        }

    def test_zip_directory_contents(self, temp_files, tmp_path):
        """Test file contents survive the round trip."""
        archive_path = str(tmp_path / 'archive.zip')

        zip_directory(str(temp_files), archive_path)

        with zipfile.ZipFile(archive_path, 'r') as zipf:
            assert zipf.testzip() is None
            assert zipf.read('nested/test_file3.txt') == b'Nested test content'

    def test_zip_empty_directory(self, tmp_path):
        """Test an empty directory gives a valid, empty archive."""
        source = tmp_path / 'nothing'
        source.mkdir()
        archive_path = str(tmp_path / 'nothing.zip')

        zip_directory(str(source), archive_path)

        assert zipfile.is_zipfile(archive_path)
        with zipfile.ZipFile(archive_path, 'r') as zipf:
            assert zipf.namelist() == []

    def test_zip_missing_directory(self, tmp_path):
        """Test a missing directory raises CompressionError."""
        with pytest.raises(CompressionError, match="Not a directory"):
            zip_directory(str(tmp_path / 'missing'), str(tmp_path / 'out.zip'))

    def test_zip_file_instead_of_directory(self, temp_files, tmp_path):
        """Test a regular file is rejected."""
        with pytest.raises(CompressionError):
            zip_directory(str(temp_files / 'test_file1.txt'), str(tmp_path / 'out.zip'))

    def test_zip_failure_removes_partial_archive(self, temp_files, tmp_path):
        """Test a failed archive is not left behind."""
        archive_path = tmp_path / 'broken.zip'

        with pytest.raises(CompressionError, match="Failed to create archive"):
            zip_directory(str(temp_files), str(tmp_path / 'no-such-dir' / 'broken.zip'))

        assert not archive_path.exists()


class TestGetArchiveSize:
    """Test get_archive_size."""

    def test_get_archive_size(self, tmp_path):
        """Test size of an existing file."""
        archive = tmp_path / 'a.zip'
        archive.write_bytes(b'x' * 128)

        assert get_archive_size(str(archive)) == 128

    def test_get_archive_size_missing(self, tmp_path):
        """Test a missing archive raises CompressionError."""
        with pytest.raises(CompressionError, match="Archive not found"):
            get_archive_size(os.path.join(str(tmp_path), 'missing.zip'))
