"""
FastAPI integration module.

Provides request scopes and Depends() helpers for using asyncscope-di with FastAPI.
"""

from .integration import (
    DEFAULT_REQUEST_SCOPE,
    ScopeMiddleware,
    create_fastapi_dependency,
    create_scoped_dependency,
)

__all__ = [
    "DEFAULT_REQUEST_SCOPE",
    "create_fastapi_dependency",
    "create_scoped_dependency",
    "ScopeMiddleware",
]
