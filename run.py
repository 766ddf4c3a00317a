#!/usr/bin/env python3
"""
Development server runner for Credentia.
"""

import uvicorn

from credentia.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    log_level = settings.log_level.lower()

    print(f"Starting Credentia on {settings.host}:{settings.port}")
    print(f"Debug mode: {settings.debug}")
    print(f"API docs available at: http://{settings.host}:{settings.port}/docs")

    uvicorn.run(
        "credentia.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=log_level,
        access_log=True
    )
