"""Logging configuration"""
import logging
import sys
from contextvars import ContextVar

from app.config.settings import get_settings

# Set per request by the correlation id middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the correlation id of the request being served"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging for the API process and the Celery worker"""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler])

    # SQL echo is controlled by DB_ECHO, not by the app log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    if not verbose:
        for name in ("sqlalchemy", "alembic", "celery", "kombu", "uvicorn", "uvicorn.error", "uvicorn.access"):
            noisy = logging.getLogger(name)
            noisy.setLevel(logging.ERROR)
            noisy.propagate = False
