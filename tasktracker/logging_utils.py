import logging
import sys

# Third-party loggers that are too chatty at INFO
_QUIET = ("sqlalchemy.engine", "httpx", "multipart")


def setup_logging(level: str = "INFO") -> None:
    """Configure process logging for the service.

    Format: time level logger message k=v ...
    """
    level = level.upper()
    root = logging.getLogger()
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        # uvicorn (or pytest) already installed handlers; only align the level
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)
