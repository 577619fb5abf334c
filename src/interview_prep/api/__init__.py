# Interview Prep API Package
"""
FastAPI adapter for the interview preparation core.

Provides REST API endpoints for:
- Creating, listing, pausing and deleting practice sessions
- Getting the next interview question
- Submitting responses for STAR-method scoring
- Progress and session review with analytics
"""

from .main import app, create_app

__all__ = [
    "app",
    "create_app",
]
