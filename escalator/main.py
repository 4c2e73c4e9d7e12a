"""Chatwoot Escalator entry point."""

import uvicorn
from escalator.config.settings import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "escalator.api.app:app",
        host=settings.api_host,
        port=settings.port,
        reload=settings.debug,
    )
