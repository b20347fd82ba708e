"""
Logging setup for the API process.

``setup_logging`` attaches handlers to the root logger once per
process; every module then logs through ``logging.getLogger(__name__)``.
``log_requests`` is an HTTP middleware that writes one line per request
to the ``service_center_api.access`` logger.
"""

import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

access_logger = logging.getLogger("service_center_api.access")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Level name such as ``"DEBUG"`` or ``"info"``.  Unknown names
        fall back to ``INFO``.
    logfile : Optional[str]
        Also write to this file; its directory is created if needed.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [logging.StreamHandler()]
    if logfile:
        path = Path(logfile).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # Request lines come from ``log_requests``; uvicorn's own access log would duplicate them.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    access_logger.info(
        "%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms
    )
    return response
