import sys

from loguru import logger

from focus_mode.settings import settings

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}"


def setup_logging(verbose: bool = False) -> None:
    """Console sink plus a rotating file sink; DEBUG with --verbose or settings.debug."""
    logger.remove()
    level = "DEBUG" if verbose or settings.debug else "INFO"

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        settings.log_file,
        level=level,
        format=FILE_FORMAT,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        compression=settings.log_compression,
    )
    logger.debug(f"Logging to {settings.log_file}")
