"""
Logging configuration.

Configures loguru sinks for workers and scripts.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from wallet_ledger.config.settings import Settings


def setup_logging(config: Settings | None = None, *, file_sink: bool = True) -> None:
    """Configure logger with stderr output and optional file rotation."""
    if config is None:
        from wallet_ledger.config.settings import settings as config

    logger.remove()
    logger.add(sys.stderr, level=config.log_level)

    if file_sink:
        logger.add(
            config.log_file,
            rotation=config.log_rotation,
            retention=config.log_retention,
            level=config.log_level,
            encoding="utf-8",
        )

    logger.info(f"Logging configured ({config.environment}, level {config.log_level})")
