"""Application layer - Declarative dependency and bind metadata.

Dependencies are declared with injection markers:

    class Mailer:
        transport: Transport = inject()            # property, type inferred
        sender: str = inject("mail.sender")        # property, by identifier

    @injectable
    class Signup:
        def __init__(self, repo: Annotated[UserRepo, inject()]):  # constructor param 0
            self.repo = repo

Bind actions are declared with class decorators (``service``, ``singleton``,
``alias``, ``factory``, ``implement``, ``bind_action``) and run by
``Container.auto_bind`` the first time the class is resolved.
"""

import datetime
import inspect
import types
from typing import Annotated, Any, Callable, Dict, Optional, Union, get_args, get_origin, get_type_hints

from asyncscope_di.application.metadata import metadata_store
from asyncscope_di.domain import ROOT_SCOPE, DeclarationError, DependencyMeta, DependencyResolver, IContainerBinder

BUILTIN_TYPES = (
    int,
    float,
    complex,
    str,
    bytes,
    bool,
    object,
    dict,
    list,
    tuple,
    set,
    frozenset,
    datetime.date,
    datetime.datetime,
)

_MISSING = object()


class InjectMarker:
    """Declares one dependency slot.

    As a class attribute it declares a property and behaves as a descriptor
    that reads as None until the container fills the instance. Inside
    ``Annotated`` on an ``__init__`` parameter it declares a constructor
    parameter of an ``@injectable`` class.

    Attributes:
        id: Identifier to resolve. None infers it from the annotation.
        required: Whether an unresolved value is an error.
        scope: Scope forced onto every dependency of the declaring class.
        resolve_method: Custom ``(container, scope) -> value`` resolver.
    """

    def __init__(
        self,
        id: Any = None,
        *,
        required: bool = True,
        scope: Optional[str] = None,
        resolve_method: Optional[Callable[[Any, Optional[str]], Any]] = None,
    ) -> None:
        self.id = id
        self.required = required
        self.scope = scope
        self.resolve_method = resolve_method

    def __set_name__(self, owner: type, name: str) -> None:
        declare_property(owner, name, self)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return None

    def __repr__(self) -> str:
        if self.resolve_method is not None:
            return f"InjectMarker(resolve_method={self.resolve_method!r}, required={self.required})"
        return f"InjectMarker(id={self.id!r}, required={self.required}, scope={self.scope!r})"


def inject(id: Any = None, *, required: bool = True, scope: Optional[str] = None) -> Any:
    """Declare a required dependency.

    Args:
        id: Identifier to resolve. Defaults to the annotated type.
        required: Whether resolution must produce a value.
        scope: Resolve every dependency of the declaring class from this scope.

    Example:
        >>> class Report:
        ...     db: Database = inject()
        ...     settings: Settings = inject(scope="app")
    """
    return InjectMarker(id, required=required, scope=scope)


def inject_optional(id: Any = None, *, scope: Optional[str] = None) -> Any:
    """Declare a dependency that is left as None when it cannot be resolved."""
    return InjectMarker(id, required=False, scope=scope)


def inject_raw(resolve: Callable[[Any, Optional[str]], Any], *, required: bool = True) -> Any:
    """Declare a dependency resolved by a custom function.

    Args:
        resolve: Called with the container and the scope name.
        required: Whether resolution must produce a value.

    Example:
        >>> class Job:
        ...     conn: Connection = inject_raw(lambda c, scope: c.get(Pool).acquire())
    """
    return InjectMarker(required=required, resolve_method=resolve)


def _describe(cls: type, slot: Any) -> str:
    if isinstance(slot, int):
        return f"class {cls.__name__} constructor params: {slot}"
    return f"class {cls.__name__} property: {slot}"


def _dependency_type(hint: Any, cls: type, slot: Any) -> type:
    if get_origin(hint) is Annotated:
        hint = get_args(hint)[0]
    if get_origin(hint) in (Union, types.UnionType):
        members = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            hint = members[0]
            if get_origin(hint) is Annotated:
                hint = get_args(hint)[0]

    if hint is _MISSING or hint is inspect.Parameter.empty:
        raise DeclarationError(f"No identifier and no type annotation at {_describe(cls, slot)}")
    if not inspect.isclass(hint):
        raise DeclarationError(f"Annotation {hint!r} is not a class at {_describe(cls, slot)}")
    if hint in BUILTIN_TYPES:
        raise DeclarationError(f"Can not resolve basic types at {_describe(cls, slot)}")
    return hint


class _DeferredType:
    """Infers a dependency type on first use, for annotations that are forward references."""

    def __init__(self, load: Callable[[], Any], cls: type, slot: Any) -> None:
        self._load = load
        self._cls = cls
        self._slot = slot
        self._type: Optional[type] = None

    def resolve(self, container: Any, scope: Optional[str]) -> Any:
        if self._type is None:
            try:
                hint = self._load()
            except NameError as e:
                raise DeclarationError(f"Cannot evaluate annotation at {_describe(self._cls, self._slot)}: {e}") from e
            self._type = _dependency_type(hint, self._cls, self._slot)
        return container.get(self._type, scope)


def _make_resolver(marker: InjectMarker, cls: type, slot: Any, load: Callable[[], Any]) -> DependencyResolver:
    if marker.resolve_method is not None:
        return DependencyResolver(resolve=marker.resolve_method, required=marker.required)

    if marker.id is not None:
        dependency_id = marker.id
        return DependencyResolver(
            resolve=lambda container, scope: container.get(dependency_id, scope),
            required=marker.required,
        )

    try:
        hint = load()
    except NameError:
        deferred = _DeferredType(load, cls, slot)
        return DependencyResolver(resolve=deferred.resolve, required=marker.required)

    dependency = _dependency_type(hint, cls, slot)
    return DependencyResolver(
        resolve=lambda container, scope: container.get(dependency, scope),
        required=marker.required,
    )


def _record(cls: type, slot: Any, marker: InjectMarker, resolver: DependencyResolver) -> None:
    def modifier(meta: DependencyMeta) -> None:
        if marker.scope is not None:
            meta.force_scope = marker.scope
        if isinstance(slot, int):
            meta.constructor_params[slot] = resolver
        else:
            meta.props[slot] = resolver

    metadata_store.update_dependency_meta(cls, modifier)


def _init_parameters(cls: type) -> list:
    init = cls.__dict__.get("__init__")
    if init is None:
        return []
    return list(inspect.signature(init).parameters.values())[1:]


def declare_property(cls: type, name: str, marker: InjectMarker) -> None:
    """Declare a property dependency on a class.

    Args:
        cls: The declaring class.
        name: Attribute name to fill.
        marker: The dependency declaration.

    Raises:
        DeclarationError: If no identifier is given and the annotation is missing,
            not a class, or a basic value type.
    """
    if not inspect.isclass(cls):
        raise DeclarationError("Dependencies are only available at constructor parameters or properties")

    def load() -> Any:
        return inspect.get_annotations(cls, eval_str=True).get(name, _MISSING)

    _record(cls, name, marker, _make_resolver(marker, cls, name, load))


def declare_param(cls: type, index: int, marker: InjectMarker, annotation: Any = _MISSING) -> None:
    """Declare a constructor parameter dependency on a class.

    Args:
        cls: The declaring class.
        index: Parameter position, ``self`` excluded.
        marker: The dependency declaration.
        annotation: Declared type, looked up from ``__init__`` when omitted.

    Raises:
        DeclarationError: If the index does not name a regular parameter of the
            class's own ``__init__``, or the type cannot be inferred.
    """
    if not inspect.isclass(cls):
        raise DeclarationError("Dependencies are only available at constructor parameters or properties")

    parameters = _init_parameters(cls)
    if index < 0 or index >= len(parameters):
        raise DeclarationError(f"No constructor parameter at {_describe(cls, index)}")
    parameter = parameters[index]
    if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
        raise DeclarationError(f"Dependencies can not be declared on variadic {_describe(cls, index)}")

    def load() -> Any:
        if annotation is not _MISSING:
            return annotation
        hints = get_type_hints(cls.__dict__["__init__"], include_extras=True)
        return hints.get(parameter.name, _MISSING)

    _record(cls, index, marker, _make_resolver(marker, cls, index, load))


def _find_marker(hint: Any) -> Optional[InjectMarker]:
    candidates = [hint]
    if get_origin(hint) in (Union, types.UnionType):
        candidates.extend(get_args(hint))
    for candidate in candidates:
        if get_origin(candidate) is Annotated:
            markers = [arg for arg in get_args(candidate)[1:] if isinstance(arg, InjectMarker)]
            if markers:
                return markers[-1]
    return None


def injectable(cls: type) -> type:
    """Class decorator declaring dependencies written as ``Annotated[T, inject(...)]``.

    Covers ``__init__`` parameters (declared by position) and class-level
    annotations without a value (declared as properties).

    Raises:
        DeclarationError: If applied to a non-class, if a marker is used as a
            parameter default or on ``*args``/``**kwargs``, or if annotations
            cannot be evaluated.

    Example:
        >>> @injectable
        ... class Checkout:
        ...     def __init__(self, cart: Annotated[Cart, inject()], tax: Annotated[Tax, inject_optional()]):
        ...         ...
    """
    if not inspect.isclass(cls):
        raise DeclarationError("@injectable is only available on classes")

    init = cls.__dict__.get("__init__")
    if init is not None:
        try:
            hints: Dict[str, Any] = get_type_hints(init, include_extras=True)
        except NameError as e:
            raise DeclarationError(f"Cannot evaluate {cls.__name__}.__init__ annotations: {e}") from e
        for index, parameter in enumerate(_init_parameters(cls)):
            if isinstance(parameter.default, InjectMarker):
                raise DeclarationError(
                    f"Use Annotated[...] instead of a default value to inject {_describe(cls, index)}"
                )
            marker = _find_marker(hints.get(parameter.name))
            if marker is not None:
                declare_param(cls, index, marker, hints[parameter.name])

    try:
        annotations = inspect.get_annotations(cls, eval_str=True)
    except NameError as e:
        raise DeclarationError(f"Cannot evaluate {cls.__name__} annotations: {e}") from e
    for name, hint in annotations.items():
        marker = _find_marker(hint)
        if marker is not None and name not in cls.__dict__:
            declare_property(cls, name, marker)
    return cls


def bind_action(action: Callable[[type, IContainerBinder], None]) -> Callable[[type], type]:
    """Class decorator appending a custom bind action.

    Example:
        >>> @bind_action(lambda cls, binder: binder.bind_class(cls, singleton=True))
        ... class Cache:
        ...     pass
    """

    def decorator(target: type) -> type:
        metadata_store.add_bind_action(target, action)
        return target

    return decorator


def service(id: Any = None, *, singleton: bool = False, scope: Optional[str] = None) -> Callable[[type], type]:
    """Class decorator binding the class under itself, or under id when given."""
    if id is None:

        def action(cls: type, binder: IContainerBinder) -> None:
            binder.bind_class(cls, singleton=singleton, scope=scope)

    else:

        def action(cls: type, binder: IContainerBinder) -> None:
            binder.bind_class_with_id(id, cls, singleton=singleton, scope=scope)

    return bind_action(action)


def singleton(scope: Optional[str] = ROOT_SCOPE) -> Callable[[type], type]:
    """Class decorator binding the class as a singleton, by default in the root scope."""
    return service(singleton=True, scope=scope)


def alias(id: Any, from_id: Any = None, *, scope: Optional[str] = None) -> Callable[[type], type]:
    """Class decorator binding id as an alias of from_id, or of the class itself.

    Example:
        >>> @service("mailer.smtp", singleton=True)
        ... @alias("mailer", "mailer.smtp")
        ... class SmtpMailer:
        ...     pass
    """

    def action(cls: type, binder: IContainerBinder) -> None:
        binder.bind_alias(id, cls if from_id is None else from_id, scope=scope)

    return bind_action(action)


def factory(factory: Any, *, singleton: bool = False, scope: Optional[str] = None) -> Callable[[type], type]:
    """Class decorator producing the class through a factory instance or factory class."""

    def action(cls: type, binder: IContainerBinder) -> None:
        binder.bind_factory(cls, factory, singleton=singleton, scope=scope)

    return bind_action(action)


def implement(
    getter: Callable[[], type],
    *,
    singleton: bool = False,
    scope: Optional[str] = None,
) -> Callable[[type], type]:
    """Class decorator resolving an abstract class to a concrete one.

    The getter runs at auto-bind time, so the implementation may be defined
    after the abstract class.

    Example:
        >>> @implement(lambda: PostgresRepo)
        ... class Repo(ABC):
        ...     ...
    """

    def action(cls: type, binder: IContainerBinder) -> None:
        binder.bind_class_with_id(cls, getter(), singleton=singleton, scope=scope)

    return bind_action(action)
