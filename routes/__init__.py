"""
API routes for ResearchStats.

Contains all FastAPI route handlers organized by functionality.
"""

from . import auth, stats

__all__ = ["auth", "stats"]
