"""
Logging Configuration
-------------------
Sets up logging for the intake bot: a log file under LOG_DIR plus stdout
with immediate flush, so hosted deployments see log lines as they happen.
"""

import logging
import os
import sys
from datetime import datetime

from config import LOG_DIR, LOG_FILE, LOG_LEVEL


class UnbufferedStream:
    """
    Wraps a stream and flushes it after every write.
    """

    def __init__(self, stream):
        self.stream = stream

    def write(self, data):
        self.stream.write(data)
        self.stream.flush()

    def writelines(self, datas):
        self.stream.writelines(datas)
        self.stream.flush()

    def __getattr__(self, attr):
        return getattr(self.stream, attr)


_configured = False


def setup_logging(app_version, level=None, log_file=None):
    """
    Set up logging for the application.

    Only the first call configures the root logger; later calls (another
    ``create_app()`` in the same process) leave it alone.

    Args:
        app_version: The application version string
        level: Log level name (defaults to LOG_LEVEL)
        log_file: Path of the log file (defaults to LOG_FILE)

    Returns:
        logger: The configured root logger
    """
    global _configured
    logger = logging.getLogger()
    if _configured:
        return logger

    log_file = log_file or LOG_FILE
    os.makedirs(os.path.dirname(log_file) or LOG_DIR, exist_ok=True)

    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    for handler in (logging.FileHandler(log_file), logging.StreamHandler(UnbufferedStream(sys.stdout))):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    _configured = True

    # googleapiclient logs every discovery and request at INFO
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)

    logger.info("=" * 50)
    logger.info(f"STARTING DRIVE INTAKE BOT VERSION {app_version}")
    logger.info(f"TIME: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"Log file location: {log_file}")
    logger.info("=" * 50)

    return logger
