#!/usr/bin/env python3
import logging
import os

import uvicorn

from logging_setup import setup_logging

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))

logger = logging.getLogger(__name__)


def run_server(host: str = HOST, port: int = PORT) -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Backend server running on http://localhost:%s", port)
    logger.info("API available at http://localhost:%s/api/todos", port)
    uvicorn.run("app:app", host=host, port=port, log_level="warning")


if __name__ == "__main__":
    run_server()
