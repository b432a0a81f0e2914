import os
import logging
from logging.handlers import TimedRotatingFileHandler


LOG_FORMAT = "%(asctime)s [%(levelname)s] in %(module)s: %(message)s"

_configured = False


def setup_logging(level: str = None, log_dir: str = None):
    """Configure the ``app`` logger tree with console and daily file output."""
    global _configured

    # uvicorn --reload imports the app more than once
    if _configured:
        return logging.getLogger("app")
    _configured = True

    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_dir = log_dir or os.getenv("LOG_DIR", "logs")
    formatter = logging.Formatter(LOG_FORMAT)

    app_logger = logging.getLogger("app")
    app_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "app.log"), when="midnight", interval=1, backupCount=14,
            encoding="utf-8", delay=True
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

        error_handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "error.log"), when="midnight", interval=1, backupCount=30,
            encoding="utf-8", delay=True
        )
        error_handler.suffix = "%Y-%m-%d"
        error_handler.setFormatter(formatter)
        error_handler.setLevel(logging.ERROR)
        app_logger.addHandler(error_handler)

    app_logger.info("Logging initialized")
    return app_logger
