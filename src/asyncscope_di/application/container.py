import inspect
import logging
from typing import Any, Callable, ContextManager, Optional, Set, Type, TypeVar, overload

from asyncscope_di.application.context_map import ExecutionContextMap
from asyncscope_di.application.metadata import metadata_store
from asyncscope_di.application.registrations import (
    AliasRegistration,
    CallableFactory,
    ClassRegistration,
    FactoryRegistration,
    Registration,
    ValueRegistration,
)
from asyncscope_di.application.scope_registry import ScopeRegistry
from asyncscope_di.domain import (
    ContainerConfig,
    Factory,
    IContainerBinder,
    IContainerResolver,
    IContextMap,
    IScopeMap,
    RegistrationError,
    RequiredDependencyError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container(IContainerResolver, IContainerBinder):
    """Dependency injection container with execution-context scopes.

    Bindings live in the context of the task that made them and are visible to
    that task and every task it spawns. Named scopes let a binding target an
    ancestor context, or a context that does not exist yet.

    Attributes:
        _config: Container configuration.
        _scopes: Registry placing registrations into execution contexts.
        _auto_binds: Classes whose bind actions already ran.
        _auto_binding: Classes whose bind actions are running right now.
    """

    def __init__(self, config: Optional[ContainerConfig] = None, context_map: Optional[IContextMap] = None) -> None:
        """Initialize the container.

        Args:
            config: Container configuration. Defaults to ``ContainerConfig()``.
            context_map: Execution-context map to store registrations in.
                Defaults to a new ``ExecutionContextMap`` rooted at the calling context.
        """
        self._config = config or ContainerConfig()
        self._scopes = ScopeRegistry(context_map if context_map is not None else ExecutionContextMap())
        self._auto_binds: Set[type] = set()
        self._auto_binding: Set[type] = set()

        if self._config.root_scope:
            self.alias_scope(self._config.root_scope)

    @property
    def config(self) -> ContainerConfig:
        return self._config

    @property
    def scopes(self) -> ScopeRegistry:
        return self._scopes

    def _place(self, id: Any, registration: Registration, scope: Optional[str]) -> "Container":
        self._scopes.place(id, registration, scope)
        return self

    def set(self, id: Any, value: Any, scope: Optional[str] = None) -> "Container":
        """Alias of bind_value."""
        return self.bind_value(id, value, scope)

    def bind_value(self, id: Any, value: Any, scope: Optional[str] = None) -> "Container":
        """Bind an existing instance.

        Args:
            id: Identifier to bind.
            value: The instance returned on every resolution.
            scope: Optional target scope name.

        Example:
            >>> container.bind_value("config", {"debug": True})
            >>> container.get("config")
            {'debug': True}
        """
        return self._place(id, ValueRegistration(value, scope), scope)

    def bind(
        self,
        id: Any,
        creator: Callable[[], Any],
        singleton: bool = False,
        scope: Optional[str] = None,
    ) -> "Container":
        """Bind a zero-argument creator.

        Args:
            id: Identifier to bind.
            creator: Called to produce the instance.
            singleton: Reuse the first produced instance.
            scope: Optional target scope name.

        Example:
            >>> container.bind("clock", lambda: Clock(tz="UTC"), singleton=True)
        """
        registration = FactoryRegistration(factory=CallableFactory(creator), singleton=singleton, scope=scope)
        return self._place(id, registration, scope)

    def bind_factory(
        self,
        id: Any,
        factory: Any,
        singleton: bool = False,
        scope: Optional[str] = None,
        factory_singleton: bool = True,
    ) -> "Container":
        """Bind an identifier to a factory.

        A factory class is registered itself (singleton unless factory_singleton
        is False) and resolved through the container each time an instance is
        produced, so it can have dependencies of its own.

        Args:
            id: Identifier to bind.
            factory: Factory instance, or factory class, exposing ``create()``.
            singleton: Reuse the first produced instance.
            scope: Optional target scope name, also used for the factory class.
            factory_singleton: Lifetime of the factory class registration.

        Raises:
            RegistrationError: If a factory instance has no callable ``create``.

        Example:
            >>> container.bind_factory(Connection, ConnectionFactory, singleton=True)
        """
        if inspect.isclass(factory):
            factory_cls = factory
            self.bind_class(factory_cls, singleton=factory_singleton, scope=scope)
            return self.bind(id, lambda: self.get(factory_cls, scope).create(), singleton=singleton, scope=scope)

        if not isinstance(factory, Factory) or not callable(factory.create):
            raise RegistrationError(f"Factory {factory!r} has no callable create()")
        return self._place(id, FactoryRegistration(factory=factory, singleton=singleton, scope=scope), scope)

    def bind_class(self, cls: type, singleton: bool = False, scope: Optional[str] = None) -> "Container":
        """Bind a class under itself. Bind actions declared on the class are not run."""
        return self.bind_class_with_id(cls, cls, singleton, scope)

    def bind_class_with_id(
        self,
        id: Any,
        cls: type,
        singleton: bool = False,
        scope: Optional[str] = None,
    ) -> "Container":
        """Bind a class under another identifier.

        Example:
            >>> container.bind_class_with_id("repo", SqlRepo, singleton=True)
        """
        return self._place(id, ClassRegistration(target=cls, singleton=singleton, scope=scope), scope)

    def bind_alias(self, id: Any, to_id: Any, scope: Optional[str] = None) -> "Container":
        """Make id resolve whatever to_id resolves.

        Example:
            >>> container.bind_class(SmtpMailer, singleton=True)
            >>> container.bind_alias("mailer", SmtpMailer)
            >>> container.get("mailer") is container.get(SmtpMailer)
            True
        """
        return self._place(id, AliasRegistration(target_id=to_id, scope=scope), scope)

    def auto_bind(self, target: type) -> "Container":
        """Run the bind actions declared on a class, once per container.

        Args:
            target: The class whose declarations should be applied.

        Returns:
            The container.
        """
        if self.is_auto_bound(target):
            return self

        self._auto_binding.add(target)
        try:
            bind_meta = metadata_store.get_bind_meta(target)
            if bind_meta is not None:
                logger.debug("Auto-binding %s with %d action(s)", target.__name__, len(bind_meta.actions))
                for action in list(bind_meta.actions):
                    action(target, self)
        finally:
            self._auto_binding.discard(target)
            self._auto_binds.add(target)
        return self

    def is_auto_bound(self, target: type) -> bool:
        """Whether auto_bind already ran, or is running, for target."""
        return target in self._auto_binds or target in self._auto_binding

    @overload
    def get(self, id: Type[T], from_scope: Optional[str] = None) -> T: ...

    @overload
    def get(self, id: Any, from_scope: Optional[str] = None) -> Any: ...

    def get(self, id: Any, from_scope: Optional[str] = None) -> Any:
        """Resolve an identifier.

        Looks the identifier up from the context named from_scope (or the
        active context) upwards. Unbound classes are auto-bound and looked up
        again; if that produced no binding they are constructed directly, a new
        instance each time.

        Args:
            id: String, token or class to resolve.
            from_scope: Optional scope name to start the lookup from.

        Returns:
            The instance, or None for an unbound identifier that is not a class.

        Raises:
            RequiredDependencyError: If a required dependency of a constructed class is missing.
            AliasCycleError: If an alias chain loops.
            CircularDependencyError: If a class needs itself to be constructed.
            UnresolvableError: If a constructor or factory raises.

        Example:
            >>> service = container.get(UserService)
            >>> settings = container.get("settings", "app")
        """
        registration = self._scopes.lookup_map(from_scope).get(id)
        if registration is not None:
            return registration.get_instance(self, from_scope)

        if inspect.isclass(id):
            if not self.is_auto_bound(id):
                self.auto_bind(id)
                return self.get(id, from_scope)
            if not self._config.auto_construct:
                return None
            logger.debug("No binding for %s, constructing it directly", id.__name__)
            return ClassRegistration(target=id, scope=from_scope).get_instance(self, from_scope)

        return None

    def fill(self, target: Any, from_scope: Optional[str] = None) -> None:
        """Inject declared properties into an existing instance.

        Properties already holding a truthy value are kept.

        Args:
            target: Instance to fill.
            from_scope: Scope to resolve from, unless the class forces one.

        Raises:
            RequiredDependencyError: If a required property resolves to None.
        """
        cls = type(target)
        meta = metadata_store.get_dependency_meta(cls)
        if meta is None:
            return

        scope = meta.force_scope or from_scope
        for name, resolver in meta.props.items():
            if getattr(target, name, None):
                continue
            value = resolver.resolve(self, scope)
            if resolver.required and value is None:
                raise RequiredDependencyError(cls, name)
            setattr(target, name, value)

    def alias_scope(self, name: str) -> "Container":
        """Name the active execution context and flush bindings waiting for that name.

        Raises:
            ScopeError: If an ancestor context already carries the name.

        Example:
            >>> async def handle(request):
            ...     container.alias_scope("request")
            ...     container.set(Request, request)
        """
        self._scopes.alias_scope(name)
        return self

    def has_scope(self, name: str) -> bool:
        """Whether the active context or one of its ancestors carries name."""
        return self._scopes.has_scope(name)

    def distance(self, id: Any) -> int:
        """Hops from the active context to the nearest context binding id, -1 if unbound."""
        return self._scopes.distance(id)

    def fork(self) -> ContextManager[IScopeMap]:
        """Run a with-block in a fresh child of the active execution context.

        Example:
            >>> with container.fork():
            ...     container.alias_scope("job")
            ...     container.set("job.id", 42)
        """
        return self._scopes.fork()


_default_container: Optional[Container] = None


def get_default_container() -> Container:
    """Return the process-wide container, creating it on first use."""
    global _default_container
    if _default_container is None:
        _default_container = Container()
    return _default_container
