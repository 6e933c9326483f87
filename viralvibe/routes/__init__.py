"""
Routes module - contains all API route handlers
"""

from .export import router as export_router
from .generation import router as generation_router
from .jobs import router as jobs_router

__all__ = [
    "export_router",
    "generation_router",
    "jobs_router",
]
