import os
import logging
from logging.handlers import RotatingFileHandler


def configure_logging(config: dict):
    """Configure application logging"""

    # Create logs directory if it doesn't exist
    log_dir = config['LOG_DIR']
    os.makedirs(log_dir, exist_ok=True)

    # Set log level based on environment
    if config.get('DEBUG', False):
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName(config.get('LOG_LEVEL', 'INFO'))
        if not isinstance(log_level, int):
            log_level = logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'cos-backup.log'),
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=[console_handler, file_handler], force=True)

    # botocore is very chatty at DEBUG
    logging.getLogger('botocore').setLevel(max(log_level, logging.INFO))

    logging.getLogger(__name__).info(f"Logging configured (level: {logging.getLevelName(log_level)})")


def init_app(config_name=None, **overrides) -> dict:
    """
    Load configuration and prepare the process for running backups.

    Args:
        config_name: Configuration name ('development', 'production', 'testing')
        **overrides: Settings that replace the configured values

    Returns:
        Settings dict
    """
    from cosbackup.config import load_config

    config = load_config(config_name, **overrides)

    # Configure logging
    configure_logging(config)

    # Ensure required directories exist
    os.makedirs(config['TEMP_DIR'], exist_ok=True)

    return config
