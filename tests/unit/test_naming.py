"""
Unit tests for artifact naming (cosbackup/backup/naming.py).

Tests encoding of timestamped object names and decoding them back.
"""

from datetime import datetime

import pytest
from freezegun import freeze_time

from cosbackup.backup.naming import (
    DecodedArtifact,
    format_timestamp,
    encode_artifact_name,
    generate_artifact_name,
    decode_artifact_name
)


STAMP = datetime(2025, 10, 21, 9, 54, 49)


class TestEncodeArtifactName:
    """Test encode_artifact_name and format_timestamp."""

    def test_format_timestamp(self):
        """Test timestamp uses YYYYMMDD_HHMMSS."""
        assert format_timestamp(datetime(2025, 1, 2, 3, 4, 5)) == '20250102_030405'

    @freeze_time("2025-10-21 09:54:49")
    def test_format_timestamp_defaults_to_now(self):
        """Test timestamp defaults to the current local time."""
        assert format_timestamp() == '20251021_095449'

    def test_encode_file_keeps_extension(self):
        """Test files keep their original extension."""
        name = encode_artifact_name('test1', '20251021_095449', extension='.txt')

        assert name == 'test1_20251021_095449.txt'

    def test_encode_zip_forces_zip_extension(self):
        """Test zipped directories always end in .zip."""
        name = encode_artifact_name('VCPToolBox', '20251021_095449', is_zip=True, extension='.txt')

        assert name == 'VCPToolBox_20251021_095449.zip'

    def test_encode_without_extension(self):
        """Test a file without extension gets no trailing dot."""
        name = encode_artifact_name('Makefile', '20251021_095449')

        assert name == 'Makefile_20251021_095449'


class TestGenerateArtifactName:
    """Test generate_artifact_name for local paths."""

    def test_generate_for_file(self):
        """Test file name is stem + timestamp + extension."""
        name = generate_artifact_name('/data/docs/test1.txt', is_dir=False, now=STAMP)

        assert name == 'test1_20251021_095449.txt'

    def test_generate_for_directory(self):
        """Test directory name gets a .zip extension."""
        name = generate_artifact_name('/data/VCPToolBox', is_dir=True, now=STAMP)

        assert name == 'VCPToolBox_20251021_095449.zip'

    def test_generate_for_directory_with_trailing_slash(self):
        """Test a trailing slash does not lose the directory name."""
        name = generate_artifact_name('/data/VCPToolBox/', is_dir=True, now=STAMP)

        assert name == 'VCPToolBox_20251021_095449.zip'

    def test_generate_for_multi_dot_file(self):
        """Test only the last extension is kept after the timestamp."""
        name = generate_artifact_name('/backups/db.tar.gz', is_dir=False, now=STAMP)

        assert name == 'db.tar_20251021_095449.gz'

    def test_generate_for_dotfile(self):
        """Test a dotfile is treated as having no extension."""
        name = generate_artifact_name('/home/user/.bashrc', is_dir=False, now=STAMP)

        assert name == '.bashrc_20251021_095449'

    @freeze_time("2025-10-21 09:54:49")
    def test_generate_uses_current_time(self):
        """Test the current time is used when none is given."""
        name = generate_artifact_name('/data/notes.md', is_dir=False)

        assert name == 'notes_20251021_095449.md'


class TestDecodeArtifactName:
    """Test decode_artifact_name."""

    def test_decode_zip_artifact(self):
        """Test decoding a zipped directory artifact."""
        decoded = decode_artifact_name('backup_20200101_000000.zip')

        assert decoded == DecodedArtifact(prefix='backup', timestamp='20200101_000000', recognized=True)

    def test_decode_prefix_with_underscores(self):
        """Test underscores in the logical name stay in the prefix."""
        decoded = decode_artifact_name('my_app_data_20251021_095449.tar')

        assert decoded.prefix == 'my_app_data'
        assert decoded.timestamp == '20251021_095449'

    def test_decode_name_with_embedded_timestamp(self):
        """Test a logical name that already contains a timestamp-looking run."""
        decoded = decode_artifact_name('report_20250101_000000_20251021_095449.csv')

        assert decoded.recognized is True
        assert decoded.prefix == 'report_20250101_000000'
        assert decoded.timestamp == '20251021_095449'

    def test_decode_prefix_is_lazy(self):
        """Test the shortest possible prefix wins when several splits match."""
        decoded = decode_artifact_name('a_20250101_000000.b_20251021_095449.zip')

        assert decoded.prefix == 'a'
        assert decoded.timestamp == '20250101_000000'

    def test_decode_nested_name(self):
        """Test names below a sub-directory keep the path in the prefix."""
        decoded = decode_artifact_name('sub/x_20251021_095449.log')

        assert decoded.prefix == 'sub/x'
        assert decoded.recognized is True

    @pytest.mark.parametrize("name", [
        'notes.txt',
        '',
        'backup_2025101_000000.zip',
        'backup_20251021_09544.zip',
        'backup_20251021_095449',
        'backup_20251021_095449.',
        '_20251021_095449.zip',
        'backup-20251021_095449.zip',
        'backup_20251021_095449.zip\n',
        'backup_٢٠٢٥١٠٢١_095449.zip',
    ])
    def test_decode_unrecognized_names(self, name):
        """Test names outside the artifact format are not recognized."""
        decoded = decode_artifact_name(name)

        assert decoded.recognized is False
        assert decoded.prefix == ''
        assert decoded.timestamp == ''

    @pytest.mark.parametrize("value", [None, 42, b'backup_20200101_000000.zip'])
    def test_decode_non_string_never_raises(self, value):
        """Test non-string input is classified, not raised on."""
        assert decode_artifact_name(value).recognized is False

    def test_decode_does_not_validate_calendar(self):
        """Test decoding only checks the digit layout, not the date itself."""
        decoded = decode_artifact_name('x_20251399_999999.log')

        assert decoded.recognized is True
        assert decoded.timestamp == '20251399_999999'

    @pytest.mark.parametrize("logical_name,extension", [
        ('test1', '.txt'),
        ('VCP-ToolBox', '.zip'),
        ('my data', '.csv'),
        ('v1.2', '.tar'),
    ])
    def test_encode_decode_round_trip(self, logical_name, extension):
        """Test decoding a generated name returns its logical name and timestamp."""
        timestamp = format_timestamp(STAMP)
        name = encode_artifact_name(logical_name, timestamp, extension=extension)

        decoded = decode_artifact_name(name)

        assert decoded == DecodedArtifact(prefix=logical_name, timestamp=timestamp, recognized=True)
