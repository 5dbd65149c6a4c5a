# core/logger.py
import json
import logging
import os

from contextvars import ContextVar
from logging import LogRecord
from logging.handlers import RotatingFileHandler

from core.settings import settings

# Set per request by main.py (request id) and core/security.py (user id)
request_id_ctx_var = ContextVar("request_id", default=None)
user_id_ctx_var = ContextVar("user_id", default=None)

LOG_DIR = settings.LOG_DIR
LOG_FILE = os.path.join(LOG_DIR, "devhabit.log")
LOG_LEVEL = settings.LOG_LEVEL
MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 5

CONTEXT_FIELDS = ("request_id", "user_id")

class JsonFormatter(logging.Formatter):
    """One JSON object per line; request context only when present."""

    def format(self, record: LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value:
                log_entry[field] = value
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)

class RequestContextFilter(logging.Filter):
    def filter(self, record: LogRecord) -> bool:
        record.request_id = request_id_ctx_var.get()
        record.user_id = user_id_ctx_var.get()
        return True

def get_logger(name: str) -> logging.Logger:
    os.makedirs(LOG_DIR, exist_ok=True)

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # Already configured

    logger.setLevel(logging.DEBUG)

    # Console: human readable, level from settings
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s [%(request_id)s] - %(message)s")
    )
    console_handler.setLevel(LOG_LEVEL)
    logger.addHandler(console_handler)

    # File: everything, as JSON lines
    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT)
    file_handler.setFormatter(JsonFormatter())
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    logger.addFilter(RequestContextFilter())

    return logger
