import logging

from app.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = LOG_LEVEL):
    """Configure root logging once; safe to call again (no duplicate handlers)."""
    root = logging.getLogger()
    if not any(getattr(h, "_servicehub", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._servicehub = True
        root.addHandler(handler)
    root.setLevel(level.upper())
    # SQL echo is too noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
