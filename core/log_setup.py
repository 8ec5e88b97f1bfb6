"""
core/log_setup.py
─────────────────
Configures application logging: rotating file + stdout.
"""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

import config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(log_folder: Optional[Path] = None, level: Union[str, int, None] = None) -> logging.Logger:
    """
    Configure rotating file logging: logs/frontdesk.log
    Max size: 5MB
    Backup count: 5 files
    Format: timestamp | level | module | message
    """
    root = logging.getLogger()
    level = level or config.LOG_LEVEL
    root.setLevel(level)

    # Avoid stacking handlers when called twice (tests, re-entry from main)
    for handler in list(root.handlers):
        if getattr(handler, "_frontdesk", False):
            root.removeHandler(handler)

    # 1. File Logger (stdout only if the folder is not writable)
    folder = Path(log_folder or config.LOG_FOLDER)
    try:
        folder.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            folder / "frontdesk.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler._frontdesk = True
        root.addHandler(file_handler)
    except OSError as e:
        logging.getLogger(__name__).warning("File logging disabled: %s", e)

    # 2. Stdout Logger
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    stream_handler._frontdesk = True
    root.addHandler(stream_handler)

    logger = logging.getLogger("frontdesk")
    logger.info("%s startup", config.APP_NAME)
    return logger
