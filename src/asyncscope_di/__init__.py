"""
asyncscope-di: Dependency injection container with execution-context scopes.

Public API exports for the asyncscope-di package.
"""

# Application exports
from asyncscope_di.application.container import Container, get_default_container
from asyncscope_di.application.declarations import (
    alias,
    bind_action,
    declare_param,
    declare_property,
    factory,
    implement,
    inject,
    inject_optional,
    inject_raw,
    injectable,
    service,
    singleton,
)

# Domain exports
from asyncscope_di.domain.exceptions import (
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
from asyncscope_di.domain.models import ROOT_SCOPE, ContainerConfig, Token

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    "ContainerConfig",
    "get_default_container",
    "ROOT_SCOPE",
    "Token",
    # Declarations
    "inject",
    "inject_optional",
    "inject_raw",
    "injectable",
    "declare_param",
    "declare_property",
    "bind_action",
    "service",
    "singleton",
    "alias",
    "factory",
    "implement",
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
]
