"""
Centralized Logging Configuration
Provides console logging plus an optional rotating log file
"""
import logging
import logging.handlers
from pathlib import Path


def setup_logging(config):
    """
    Setup application-wide logging with file rotation and console output

    Args:
        config: Configuration class or instance (see config.py)

    Returns:
        The configured root logger
    """
    log_level = getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO)
    log_format = config.LOG_FORMAT

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    root_logger.handlers = []

    # Console Handler (for development and debugging)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console_handler)

    log_path = None
    if getattr(config, 'LOG_TO_FILE', True):
        log_dir = Path(config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / config.LOG_FILE

        # File Handler with rotation
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

    # SQL statements are only wanted when SQL_ECHO is on
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized at {logging.getLevelName(log_level)} level")
    if log_path:
        logger.info(f"Log file: {log_path}")

    return root_logger


def get_logger(name):
    """
    Get a logger instance for a specific module

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
