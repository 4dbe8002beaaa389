# catering_backend/settings/__init__.py
"""
Django settings package for the catering backend.

This package provides environment-specific settings:
- development: Local development with debug enabled
- staging: Production-like environment for testing
- production: Production environment with security hardening

The module is picked from the ENVIRONMENT variable (default: development).
"""

import os

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

VALID_ENVIRONMENTS = ["development", "staging", "production"]
if ENVIRONMENT not in VALID_ENVIRONMENTS:
    raise ValueError(
        f"Invalid ENVIRONMENT '{ENVIRONMENT}'. "
        f"Must be one of: {', '.join(VALID_ENVIRONMENTS)}"
    )

if ENVIRONMENT == "production":
    from .production import *
elif ENVIRONMENT == "staging":
    from .staging import *
else:
    from .development import *


def validate_settings():
    """Validate critical settings are properly configured."""
    errors = []

    if not SECRET_KEY:
        errors.append("SECRET_KEY must be set to a secure random value")

    if not DATABASES.get("default"):
        errors.append("Database configuration is missing")

    if ENVIRONMENT == "production" and DEBUG:
        errors.append("DEBUG should be False in production")

    if ENVIRONMENT == "production" and globals().get("CORS_ALLOW_ALL_ORIGINS", False):
        errors.append("CORS_ALLOW_ALL_ORIGINS should not be True in production")

    if ENVIRONMENT == "production" and PAYMENT_CURRENCY not in ("ngn", "usd", "gbp", "eur", "ghs", "zar", "kes"):
        errors.append(f"PAYMENT_CURRENCY '{PAYMENT_CURRENCY}' is not supported by any gateway")

    if errors:
        error_msg = "\n".join([f"  - {error}" for error in errors])
        raise ValueError(f"Settings validation failed:\n{error_msg}")


validate_settings()
