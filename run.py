#!/usr/bin/env python3
"""
LNURL Zap Server - Entry Point

This script starts the FastAPI application using uvicorn.
"""

import uvicorn
from config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    # Run the FastAPI application
    uvicorn.run(
        "lnurl_server.main:app",
        host=settings.BIND,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
