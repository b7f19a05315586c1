"""Auth server entry point.

Serves the credential core over HTTP:
- Registration with user + admin passcode verification (/auth/register, /auth/verify-otp)
- Login and session tokens (/auth/login, /auth/verify)
- Password reset (/auth/forgot-password, /auth/reset-password)
- Admin user listing (/admin)

Run with: uvicorn auth_server:app --host 0.0.0.0 --port 8083
"""

import logging
import os

from api.app import create_app
from config.settings import get_settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Suppress noisy uvicorn logs
logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
