"""
Application layer - Registration, scoping and resolution.

This layer contains the container, its registrations, the execution-context
map backing scopes and the declarative metadata helpers.
It depends only on the Domain layer.
"""

from .circular_detector import CircularDependencyDetector
from .container import Container, get_default_container
from .context_map import ContextNode, ExecutionContextMap
from .declarations import (
    InjectMarker,
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
from .metadata import MetadataStore, metadata_store
from .registrations import (
    AliasRegistration,
    ClassRegistration,
    FactoryRegistration,
    Registration,
    ValueRegistration,
)
from .scope_registry import ScopeRegistry

__all__ = [
    "Container",
    "get_default_container",
    "CircularDependencyDetector",
    "ContextNode",
    "ExecutionContextMap",
    "ScopeRegistry",
    "MetadataStore",
    "metadata_store",
    # Registrations
    "Registration",
    "ValueRegistration",
    "ClassRegistration",
    "FactoryRegistration",
    "AliasRegistration",
    # Declarations
    "InjectMarker",
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
]
