#!/usr/bin/env python3
"""
Startup script for the Dareon backend server.
Runs uvicorn on dareon.main:app using HOST/PORT from settings.
"""

import logging

# Silence noisy driver logs before anything connects
for noisy_logger in [
    'pymongo', 'pymongo.pool', 'pymongo.topology', 'pymongo.connection',
    'pymongo.serverSelection', 'pymongo.command', 'motor',
    'httpcore', 'httpx', 'urllib3', 'watchfiles',
]:
    logging.getLogger(noisy_logger).setLevel(logging.WARNING)

import uvicorn

from dareon.config import settings


if __name__ == "__main__":
    print(f"Starting {settings.APP_NAME} on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(
        "dareon.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not settings.is_production,
        log_level="info",
    )
