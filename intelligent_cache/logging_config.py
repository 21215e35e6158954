import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from intelligent_cache.config import CacheSettings, get_settings


def setup_logging(
    settings: CacheSettings | None = None,
    *,
    log_level: str | None = None,
    log_dir: Path | None = None,
) -> None:
    """Attach console and optional rotating-file handlers to the root logger.

    Level, format, file name and rotation come from *settings* (the shared
    :func:`get_settings` instance when omitted). *log_level* and *log_dir*
    override the matching settings for one call. Calling it again does not
    stack duplicate handlers.
    """
    settings = settings if settings is not None else get_settings()
    level_name = (log_level or settings.log_level).upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    directory = log_dir if log_dir is not None else settings.log_dir

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = logging.Formatter(settings.log_format, datefmt="%Y-%m-%d %H:%M:%S")

    # Exact type check: pytest and file handlers subclass StreamHandler
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        root_logger.addHandler(_configure(logging.StreamHandler(), level, formatter))

    if directory is None:
        return

    directory.mkdir(parents=True, exist_ok=True)
    log_file = (directory / settings.log_file_name).absolute()
    already_attached = any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file
        for h in root_logger.handlers
    )
    if not already_attached:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        root_logger.addHandler(_configure(handler, level, formatter))


def _configure(
    handler: logging.Handler, level: int, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler
