"""
Main entry point for the Fuddi Dashboard API
"""
# Load environment variables FIRST (before settings are read)
from dotenv import load_dotenv
load_dotenv()

import logging

import uvicorn
from fuddi.config import settings
from fuddi.presentation.api import create_app

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app instance (needed for uvicorn reload)
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
