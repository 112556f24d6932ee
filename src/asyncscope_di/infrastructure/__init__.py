"""
Infrastructure layer - External integrations.

This layer contains integrations with external frameworks and tools.
It depends on both Application and Domain layers.

The FastAPI integration needs the ``fastapi`` extra and is imported explicitly
as ``asyncscope_di.infrastructure.fastapi_integration``.
"""

from . import testing

__all__ = [
    "testing",
]
