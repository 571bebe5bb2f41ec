"""
Web server entry point for Local Gate.
"""

import uvicorn
from loguru import logger

from local_gate.config import settings
from local_gate.core.app import create_app
from local_gate.core.logging import setup_logging

# setup logging
setup_logging()

# create app
app = create_app()


def start_server():
    """start REST API server"""
    logger.info("=" * 70)
    logger.info("LOCAL GATE CONTEXT PACK SERVICE")
    logger.info("=" * 70)
    logger.info(f"Vault: {settings.vault_path}")
    logger.info(f"REST API: http://{settings.host}:{settings.port}/api/v1/")
    logger.info(f"Metrics: http://{settings.host}:{settings.port}/api/v1/metrics")
    logger.info("=" * 70)

    uvicorn.run(
        "local_gate.server.web:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
        access_log=settings.debug
    )


def main():
    """Main entry point for web server"""
    start_server()


if __name__ == "__main__":
    main()
