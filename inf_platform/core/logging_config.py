import logging
import sys

from inf_platform.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = None) -> None:
    """
    Configure the root logger once at startup.
    Modules log through logging.getLogger(__name__).
    """
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    # Clear old handlers (uvicorn reload re-imports main)
    if root.hasHandlers():
        root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    # SQL echo only in debug mode
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
