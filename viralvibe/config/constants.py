"""
Constants configuration

API settings, CORS configuration and accepted source-image types.
"""

# API settings
API_TITLE = "ViralVibe API"
API_DESCRIPTION = "Turn a still image and a topic into a narrated, subtitled short-form video"
API_VERSION = "1.0.0"

# CORS origins
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
]

# Source images accepted by the video model
ALLOWED_IMAGE_MIME_TYPES = [
    "image/png",
    "image/jpeg",
    "image/webp",
]

# Request body cap for export/generation payloads (audio and images travel as base64)
MAX_REQUEST_BODY_BYTES = 20 * 1024 * 1024

__all__ = [
    "API_TITLE",
    "API_DESCRIPTION",
    "API_VERSION",
    "CORS_ORIGINS",
    "ALLOWED_IMAGE_MIME_TYPES",
    "MAX_REQUEST_BODY_BYTES",
]
