"""
Domain layer - Core models, contracts and errors.

This layer contains the error taxonomy, the container/context-map interfaces and
the metadata models shared by the rest of the package.
It has no dependencies on other layers.
"""

from .exceptions import (
    AliasCycleError,
    CircularDependencyError,
    ContainerError,
    DeclarationError,
    InjectError,
    RegistrationError,
    RequiredDependencyError,
    ScopeError,
    UnresolvableError,
)
from .interfaces import Factory, IContainerBinder, IContainerResolver, IContextMap, IScopeMap
from .models import ROOT_SCOPE, BindMeta, ContainerConfig, DependencyMeta, DependencyResolver, Token

__all__ = [
    # Exceptions
    "ContainerError",
    "InjectError",
    "DeclarationError",
    "RequiredDependencyError",
    "UnresolvableError",
    "ScopeError",
    "AliasCycleError",
    "CircularDependencyError",
    "RegistrationError",
    # Interfaces
    "Factory",
    "IContainerBinder",
    "IContainerResolver",
    "IContextMap",
    "IScopeMap",
    # Models
    "ROOT_SCOPE",
    "Token",
    "BindMeta",
    "ContainerConfig",
    "DependencyMeta",
    "DependencyResolver",
]
