import logging
import os
from pathlib import Path


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get("RELAY_LOG_LEVEL")
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Get a named logger with standard formatting.

    Example:
        logger = get_logger(__name__)
        logger.info("relay started")

    The level defaults to RELAY_LOG_LEVEL (INFO when unset). When RELAY_LOG_DIR
    is set, records are also written to ``<RELAY_LOG_DIR>/<name>.log``.

    Returns:
        logging.Logger: Configured logger instance.
    """
    if level is None:
        level = _level_from_env()
    logger = logging.getLogger(name)

    # avoid adding duplicate handlers if called repeatedly (common in tests)
    if logger.handlers:
        logger.setLevel(level)
        return logger

    formatter = logging.Formatter(
        '%(asctime)s     || %(name)s \n%(levelname)s   || %(message)s \n',
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    log_dir = os.environ.get("RELAY_LOG_DIR")
    if log_dir:
        logs_dir = Path(log_dir)
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # unwritable log dir: keep streaming only
            logger.warning("cannot create log dir %s, streaming only", logs_dir)
        else:
            filehandler = logging.FileHandler(str(logs_dir / f"{name}.log"), encoding="utf-8")
            filehandler.setFormatter(formatter)
            logger.addHandler(filehandler)

    logger.setLevel(level)
    # stop passing records to the root logger (avoid duplicated messages)
    logger.propagate = False
    logger.debug("'%s' initialized with level %s", name, logging.getLevelName(level))
    return logger
