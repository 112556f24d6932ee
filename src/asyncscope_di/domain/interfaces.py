from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class Factory(Protocol):
    """Anything exposing ``create()``."""

    def create(self) -> Any: ...


class IScopeMap(ABC):
    """Associative view over one execution context.

    Reads walk up to the ancestor contexts, writes stay in this context.
    """

    @abstractmethod
    def get(self, key: Any) -> Any:
        """Return the nearest value stored for key, or None."""

    @abstractmethod
    def set(self, key: Any, value: Any) -> None:
        """Store a value in this context."""

    @abstractmethod
    def has(self, key: Any) -> bool:
        """Return whether this context or an ancestor stores key."""

    @property
    @abstractmethod
    def names(self) -> Iterable[str]:
        """Scope names carried by this context."""


class IContextMap(IScopeMap):
    """Execution-context aware map.

    ``get``/``set``/``has`` operate on the context active for the calling task.
    """

    @abstractmethod
    def has_name(self, name: str) -> bool:
        """Return whether the active context itself carries name."""

    @abstractmethod
    def parent(self, name: str) -> Optional[IScopeMap]:
        """Return the nearest strict ancestor context carrying name, if any."""

    @abstractmethod
    def alias(self, name: str) -> None:
        """Add name to the active context."""

    @abstractmethod
    def closest(self, name: str) -> IScopeMap:
        """Return the active context or nearest ancestor carrying name."""

    @abstractmethod
    def distance(self, key: Any) -> int:
        """Return hops from the active context to the nearest context storing key, -1 if none."""

    @abstractmethod
    def fork(self) -> ContextManager[IScopeMap]:
        """Open a child of the active context for the duration of a with-block."""


class IContainerResolver(ABC):
    """Abstract interface for resolving instances from a container."""

    @abstractmethod
    def get(self, id: Any, from_scope: Optional[str] = None) -> Any:
        """Resolve an identifier.

        Args:
            id: String, token or class to resolve.
            from_scope: Optional scope name to start the lookup from.

        Returns:
            The resolved instance, or None for an unbound non-class identifier.
        """

    @abstractmethod
    def fill(self, target: Any, from_scope: Optional[str] = None) -> None:
        """Inject declared properties of an existing instance.

        Properties already holding a truthy value are left untouched.

        Args:
            target: Instance to fill.
            from_scope: Optional scope name to resolve properties from.
        """


class IContainerBinder(ABC):
    """Abstract interface for registering bindings in a container.

    Every method returns the binder itself so calls can be chained.
    """

    @abstractmethod
    def set(self, id: Any, value: Any, scope: Optional[str] = None) -> "IContainerBinder":
        """Alias of bind_value."""

    @abstractmethod
    def bind_value(self, id: Any, value: Any, scope: Optional[str] = None) -> "IContainerBinder":
        """Bind an existing instance. Values are always singletons."""

    @abstractmethod
    def bind(
        self,
        id: Any,
        creator: Callable[[], Any],
        singleton: bool = False,
        scope: Optional[str] = None,
    ) -> "IContainerBinder":
        """Bind a zero-argument creator called on resolution."""

    @abstractmethod
    def bind_factory(
        self,
        id: Any,
        factory: Any,
        singleton: bool = False,
        scope: Optional[str] = None,
        factory_singleton: bool = True,
    ) -> "IContainerBinder":
        """Bind a factory instance or factory class exposing ``create()``."""

    @abstractmethod
    def bind_class(self, cls: type, singleton: bool = False, scope: Optional[str] = None) -> "IContainerBinder":
        """Bind a class under itself."""

    @abstractmethod
    def bind_class_with_id(
        self,
        id: Any,
        cls: type,
        singleton: bool = False,
        scope: Optional[str] = None,
    ) -> "IContainerBinder":
        """Bind a class under a different identifier."""

    @abstractmethod
    def bind_alias(self, id: Any, to_id: Any, scope: Optional[str] = None) -> "IContainerBinder":
        """Make id resolve whatever to_id resolves."""
