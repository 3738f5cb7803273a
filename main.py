"""
Intake: client onboarding intake service
Entry point. Run with: python main.py
"""

import uvicorn

from intake.factory import create_app
from intake.core.config import get_settings

app = create_app()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.env == "development",
        log_level=settings.log_level.lower(),
    )
