# logging_config.py
import logging
import os
from logging.handlers import RotatingFileHandler
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_file=None, level=logging.INFO):
    """Attaches a rotating file handler to the root logger, once per process."""
    logger = logging.getLogger()

    # Avoid adding handlers multiple times (app factory may run more than once)
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return

    log_file = log_file or os.environ.get("LOG_FILE_PATH", "/tmp/greenmirror_app.log")
    logger.setLevel(level)

    # 10MB per file, keep last 5 files
    handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
