#!/usr/bin/env python3
"""
Deploy Info Service Entry Point

This script starts the Deploy Info microservice.
"""

import logging

import uvicorn
from config.settings import get_settings


def main():
    """Start the Deploy Info service."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.monitoring.log_level),
        format=settings.monitoring.log_format
    )

    uvicorn.run(
        "services.deploy_info.main:app",
        host=settings.service.host,
        port=settings.service.port,
        reload=settings.service.reload,
        log_level=settings.monitoring.log_level.lower()
    )


if __name__ == "__main__":
    main()
