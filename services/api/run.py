#!/usr/bin/env python3
"""
Development server runner for Trivia Live API.

Usage:
    python run.py

Or with uvicorn directly:
    uvicorn trivia_live.main:combined_app --reload --host 0.0.0.0 --port 8000
"""
import os
import sys

import structlog
from dotenv import load_dotenv

# Add the services/api directory to path
sys.path.insert(0, os.path.dirname(__file__))

# Load environment variables
load_dotenv()

logger = structlog.get_logger()


def main():
    import uvicorn

    from trivia_live.logging_config import setup_logging

    setup_logging(os.environ.get("LOG_LEVEL", "INFO"), os.environ.get("LOG_FORMAT", "console"))

    port = int(os.environ.get("PORT", 8000))
    host = os.environ.get("HOST", "0.0.0.0")
    reload = os.environ.get("DEBUG", "false").lower() == "true"

    logger.info("starting server", url=f"http://{host}:{port}", reload=reload)
    logger.info("api docs", url=f"http://localhost:{port}/docs")

    uvicorn.run(
        "trivia_live.main:combined_app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
