"""
API module for Ortomat - admin HTTP interface.

Provides the privileged backup/restore endpoints over FastAPI.
"""

from .app import create_app, create_store
from .throttle import RateLimiter

__all__ = ["create_app", "create_store", "RateLimiter"]
