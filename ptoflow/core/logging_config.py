import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from ptoflow.core.config import settings

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Request, approval and ledger state changes, also written to leave_audit.log
AUDIT_LOGGERS = (
    "ptoflow.services.leave_service",
    "ptoflow.services.approval_service",
    "ptoflow.services.leave_ledger_service",
)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: str = None):
    """
    Configure application logging.

    Console and app.log get everything at LOG_LEVEL, error.log only errors,
    access.log one line per HTTP request, and leave_audit.log the lifecycle,
    approval and ledger messages.
    """
    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt=DATE_FORMAT
    ))
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt=DATE_FORMAT
    )
    root_logger.addHandler(_rotating_handler(log_path / "app.log", level, file_formatter))
    root_logger.addHandler(_rotating_handler(log_path / "error.log", logging.ERROR, file_formatter))

    # Access logs do not propagate to the root handlers
    access_logger = logging.getLogger("access")
    access_logger.setLevel(logging.INFO)
    access_logger.handlers.clear()
    access_logger.addHandler(_rotating_handler(
        log_path / "access.log",
        logging.INFO,
        logging.Formatter('%(asctime)s - %(message)s', datefmt=DATE_FORMAT),
    ))
    access_logger.propagate = False

    audit_handler = _rotating_handler(
        log_path / "leave_audit.log",
        logging.INFO,
        logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s', datefmt=DATE_FORMAT),
    )
    for name in AUDIT_LOGGERS:
        audit_logger = logging.getLogger(name)
        audit_logger.handlers.clear()
        audit_logger.addHandler(audit_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger
