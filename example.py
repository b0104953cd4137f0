import logging
import os

import uvicorn

from insights_auth.fastapi_middleware.app import create_app
from insights_auth.shared.config import ServerSettings

logger = logging.getLogger(__name__)

# --- Configuration ---
# Read from the environment or a `.env` file:
#   GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET  GitHub OAuth App credentials
#   API_KEY                                 shared key for X-API-Key clients
#   GOOGLE_CLIENT_ID                        enables full Google ID token verification
#   FRONTEND_URL                            comma separated CORS origins
settings = ServerSettings()

app = create_app(settings)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting Global Location Insights server...")
    if not settings.github_client_id or not settings.github_client_secret:
        logger.warning("GitHub OAuth is not configured: the code exchange endpoint will answer 500.")
    if not settings.api_key:
        logger.warning("API_KEY is not set: X-API-Key requests will be rejected.")
    if not settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID is not set: Google tokens are only decoded and expiry checked.")

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
