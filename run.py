"""Entry point for the Service Center API.

Starts the FastAPI application with Uvicorn.  Host and port are read
from ``HOST`` and ``PORT`` (defaults ``0.0.0.0`` and ``8000``); all
other configuration comes from the environment variables listed in
``service_center_api.app.core.config``.

Usage:
    python run.py
"""
import os

from uvicorn import Config, Server

from service_center_api.app.main import app


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    Server(config).run()


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
