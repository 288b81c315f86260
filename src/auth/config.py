"""
Authentication configuration.

Centralizes JobAdder OAuth settings.
"""
import os
from dotenv import load_dotenv

from src.config import PUBLIC_API_URL

load_dotenv()

# =============================================================================
# JobAdder OAuth Configuration
# =============================================================================

# OAuth client registered with JobAdder
JOBADDER_CLIENT_ID = os.environ.get("JOBADDER_CLIENT_ID", "")
JOBADDER_CLIENT_SECRET = os.environ.get("JOBADDER_CLIENT_SECRET", "")

# Identity server (authorize + token endpoints)
JOBADDER_AUTH_URL = os.environ.get("JOBADDER_AUTH_URL", "https://id.jobadder.com/connect").rstrip("/")

# Scopes requested during authorization
JOBADDER_SCOPES = os.environ.get(
    "JOBADDER_SCOPES",
    "openid profile email offline_access jobs:read jobs:write candidates:read",
)

# OAuth callback path (must match the redirect URI registered with JobAdder)
OAUTH_CALLBACK_PATH = "/api/oauth/jobadder/callback"
OAUTH_REDIRECT_URI = f"{PUBLIC_API_URL}{OAUTH_CALLBACK_PATH}"

# =============================================================================
# Token Configuration
# =============================================================================

# Tokens expiring within this many seconds are treated as expired
TOKEN_EXPIRY_MARGIN_SECONDS = int(os.environ.get("TOKEN_EXPIRY_MARGIN_SECONDS", "60"))

# Used when the token endpoint omits expires_in
DEFAULT_TOKEN_EXPIRY_SECONDS = 3600
