"""Logging configuration for the railshed command line."""

import logging
import logging.handlers
from pathlib import Path

LOG_DIR_ENV = "RAILSHED_LOG_DIR"
LOG_FILE_NAME = "railshed.log"
CONSOLE_HANDLER_NAME = "railshed-console"

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(log_dir: "str | Path", verbose: bool = False) -> Path:
    """Configure rotating file logging under log_dir/railshed.log.

    Args:
        log_dir: Directory for the log file, created if missing
        verbose: Also echo DEBUG and above to stderr

    Returns:
        Path of the log file
    """
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    logger = logging.getLogger("railshed")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # one file handler, pointing at the current log_dir
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    for h in file_handlers:
        if h.baseFilename != str(log_path.resolve()):
            logger.removeHandler(h)
            h.close()
    if not any(h.baseFilename == str(log_path.resolve()) for h in file_handlers):
        handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.setLevel(logging.INFO)
        logger.addHandler(handler)

    # the console handler is rebuilt each time so it writes to the current stderr
    for h in [h for h in logger.handlers if h.get_name() == CONSOLE_HANDLER_NAME]:
        logger.removeHandler(h)
    if verbose:
        console = logging.StreamHandler()
        console.set_name(CONSOLE_HANDLER_NAME)
        console.setFormatter(logging.Formatter("%(levelname)s %(name)s - %(message)s"))
        console.setLevel(logging.DEBUG)
        logger.addHandler(console)

    return log_path
