"""Client-facing error messages.

Kept free of DRF imports: ``core.authentication`` is loaded while DRF
reads its settings, so it must not pull in ``rest_framework.views``.
"""
GENERIC_ERROR_MESSAGE = "An error occurred while processing your request. Please try again later."
MISSING_TOKEN_MESSAGE = "Authentication required. Bearer token missing."
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
