"""Process-wide logging setup driven by the config file."""

import logging
from typing import Optional

from .config import ConfigService

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_LEVEL = "INFO"


def configure_logging(config: Optional[ConfigService] = None) -> None:
    """Apply the configured log level and format to the root logger.

    Args:
        config: Loaded config service. Defaults are used when None.
    """
    level = DEFAULT_LOG_LEVEL
    fmt = DEFAULT_LOG_FORMAT
    if config is not None:
        level = config.get("logging.level", DEFAULT_LOG_LEVEL)
        fmt = config.get("logging.format", DEFAULT_LOG_FORMAT)

    logging.basicConfig(level=getattr(logging, level), format=fmt, force=True)
    # aiohttp logs every dropped connection at DEBUG
    logging.getLogger("aiohttp").setLevel(max(logging.INFO, logging.getLogger().level))
