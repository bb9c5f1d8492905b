# src/powerplatform_mcp/logging_setup.py
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(config):
    """
    Configures the root logger based on the settings object.

    Console output goes to stderr: stdout is reserved for the MCP stdio stream.
    """
    try:
        log_settings = config.logging
    except AttributeError:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        logging.getLogger(__name__).warning(
            "'logging' section not in config. Using basic logging."
        )
        return

    # Get the root logger
    logger = logging.getLogger()
    logger.setLevel(log_settings.level.upper())

    # Clear existing handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_settings.format)

    # 1. Console Handler (stderr)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_settings.level.upper())
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 2. File Handler (RotatingFileHandler)
    if log_settings.log_to_file:
        log_file_path = Path(log_settings.log_file)

        # Ensure the log directory exists
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=log_settings.rotation_size_mb * 1024 * 1024,  # in bytes
            backupCount=log_settings.rotation_backup_count,
        )
        file_handler.setLevel(log_settings.level.upper())
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging configured.")
