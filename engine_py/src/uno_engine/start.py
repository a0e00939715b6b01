#!/usr/bin/env python3
"""Startup script for a UNO host"""

import logging
import os

import uvicorn


def main():
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logging.basicConfig(level=log_level.upper())
    logger = logging.getLogger("uno_engine")
    logger.info(f"Starting UNO host on {host}:{port}")
    logger.info(f"WebSocket endpoint: ws://{host}:{port}/ws/<peer_id>")

    uvicorn.run(
        "uno_engine.main:create_app_from_env",
        factory=True,
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level=log_level
    )


if __name__ == "__main__":
    main()
