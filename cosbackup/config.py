import os
import tempfile

from dotenv import load_dotenv


# Values already present in the environment take precedence over .env
load_dotenv()


class ConfigError(Exception):
    """Raised when a required setting is missing or malformed."""
    pass


class Config:
    """Base configuration"""

    # Tencent COS (S3-compatible API)
    TENCENTCLOUD_SECRET_ID = os.environ.get('TENCENTCLOUD_SECRET_ID')
    TENCENTCLOUD_SECRET_KEY = os.environ.get('TENCENTCLOUD_SECRET_KEY')
    COS_BUCKET_NAME = os.environ.get('COS_BUCKET_NAME')
    COS_REGION = os.environ.get('COS_REGION')
    COS_ENDPOINT_URL = os.environ.get('COS_ENDPOINT_URL')
    COS_TARGET_DIR = os.environ.get('COS_TARGET_DIR', '')

    # Backup sources (comma-separated local paths)
    SOURCEFOLDER = os.environ.get('SOURCEFOLDER', '')

    # Schedule and retention
    CLEANUP_TIME = os.environ.get('CLEANUP_TIME')
    CLEANUP_ENABLED = os.environ.get('CLEANUP_ENABLED', 'false').lower() == 'true'
    CLEANUP_DAYS = os.environ.get('CLEANUP_DAYS')
    CLEANUP_WHITELIST = os.environ.get('CLEANUP_WHITELIST', '')

    # Temp/Logs
    TEMP_DIR = os.environ.get('TEMP_DIR') or tempfile.gettempdir()
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(
        os.path.abspath(os.path.dirname(os.path.dirname(__file__))), 'data', 'logs'
    )
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    DEBUG = False


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration (no credentials or sources from the host)"""
    TESTING = True
    TENCENTCLOUD_SECRET_ID = 'testing'
    TENCENTCLOUD_SECRET_KEY = 'testing'
    COS_BUCKET_NAME = 'test-bucket'
    COS_REGION = 'us-east-1'
    COS_ENDPOINT_URL = None
    COS_TARGET_DIR = 'backups'
    SOURCEFOLDER = ''
    CLEANUP_TIME = '03:00'
    CLEANUP_ENABLED = True
    CLEANUP_DAYS = '7'
    CLEANUP_WHITELIST = ''


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}


def load_config(config_name=None, **overrides) -> dict:
    """
    Build a settings dict from a configuration class.

    Args:
        config_name: Key in ``config`` (defaults to $APP_ENV, then 'production')
        **overrides: Settings that replace the class values

    Returns:
        Dict of all upper-case settings

    Raises:
        ConfigError: If config_name is unknown
    """
    if config_name is None:
        config_name = os.environ.get('APP_ENV', 'production')

    if config_name not in config:
        raise ConfigError(
            f"Unknown configuration: {config_name}. "
            f"Valid options: {list(config.keys())}"
        )

    config_class = config[config_name]
    settings = {
        key: getattr(config_class, key)
        for key in dir(config_class)
        if key.isupper()
    }
    settings.update(overrides)
    return settings


def parse_comma_list(value) -> list:
    """
    Split a comma-separated setting into trimmed, non-empty entries.

    Used for SOURCEFOLDER and CLEANUP_WHITELIST.
    """
    if not value:
        return []

    return [item.strip() for item in value.split(',') if item.strip()]
