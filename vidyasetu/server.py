#!/usr/bin/env python3
"""
VidyaSetu - API server launcher

Reads host and port from the [server] settings section and runs the FastAPI
app under uvicorn.
"""

import argparse

import uvicorn

from vidyasetu.core.services.logging import get_logging_service
from vidyasetu.core.services.settings_config_service import get_settings_service


def main():
    settings = get_settings_service()

    parser = argparse.ArgumentParser(description="Run the VidyaSetu API server")
    parser.add_argument("--host", default=settings.get("server", "host", "127.0.0.1"))
    parser.add_argument(
        "--port", type=int, default=settings.getint("server", "port", 5000)
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    # Installs the file and console handlers before uvicorn starts logging
    get_logging_service().log_event(
        "server", "INFO", "server.start", host=args.host, port=args.port
    )

    uvicorn.run(
        "vidyasetu.api.main:app",
        host=args.host,
        port=args.port,
        log_level="info",
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
