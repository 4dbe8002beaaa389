# catering_backend/settings/staging.py
from .production import *

# -----------------------------------------------------------------------------
# Staging Settings (Production-like with debugging capabilities)
# -----------------------------------------------------------------------------
DEBUG = os.getenv("DEBUG", "0") == "1"

# -----------------------------------------------------------------------------
# Security Settings (Relaxed for Staging)
# -----------------------------------------------------------------------------
SECURE_SSL_REDIRECT = os.getenv("FORCE_HTTPS", "0") == "1"
SESSION_COOKIE_SECURE = SECURE_SSL_REDIRECT
CSRF_COOKIE_SECURE = SECURE_SSL_REDIRECT

SECURE_HSTS_SECONDS = 3600  # 1 hour
SECURE_HSTS_INCLUDE_SUBDOMAINS = False
SECURE_HSTS_PRELOAD = False

# -----------------------------------------------------------------------------
# Logging Configuration (Staging)
# -----------------------------------------------------------------------------
LOGGING["root"]["level"] = "INFO"
LOGGING["loggers"]["orders"]["level"] = "DEBUG"
LOGGING["loggers"]["payments"]["level"] = "DEBUG"

# -----------------------------------------------------------------------------
# API Configuration (Staging)
# -----------------------------------------------------------------------------
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]
