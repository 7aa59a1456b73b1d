# app/core/logging.py
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the service.

    Safe to call more than once (e.g. one app per test); only the level is
    updated after the first call.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())

    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
