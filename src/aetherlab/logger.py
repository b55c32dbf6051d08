import logging
import sys
import os
from datetime import datetime
from typing import Optional

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(levelname)s: %(message)s'


def setup_logger(
    log_dir: Optional[str] = "logs",
    log_name: str = "aether_render",
    level: int = logging.INFO
) -> logging.Logger:
    """
    Configures the root logger for a render session.

    Handlers:
    1. A timestamped '<log_name>_<YYYYmmdd_HHMMSS>.log' file inside 'log_dir'
       (skipped when log_dir is None, e.g. for notebooks and tests).
    2. The Console (Standard Output), message-only.

    Library modules never touch handlers; they only call
    logging.getLogger(__name__) and inherit whatever is set up here.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Re-running a script in the same interpreter must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    filename = None
    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = os.path.join(log_dir, f"{log_name}_{stamp}.log")

        file_handler = logging.FileHandler(filename, mode='w')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if filename:
        logger.info(f"Logging initialized. Writing to: {filename}")
    else:
        logger.info("Logging initialized (console only).")
    return logger
