"""
Logging setup for the API process.

Everything goes to stdout through the root handler; uvicorn's loggers and the
"oralscan" tree follow the configured level. Chatty third-party loggers
(multipart form parsing, Pillow plugin discovery) are held at WARNING.
"""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_QUIET = ("multipart", "python_multipart", "PIL", "fontTools", "weasyprint")


def setup_logging(level: int | str = logging.INFO, format_string: str | None = None) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=format_string or DEFAULT_FORMAT, stream=sys.stdout, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "oralscan"):
        logging.getLogger(name).setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
