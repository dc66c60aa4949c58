"""
API layer for the policy assistant.
"""

from .routes import router

__all__ = ["router"]
