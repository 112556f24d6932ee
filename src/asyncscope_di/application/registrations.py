"""Application layer - Registration model.

A registration knows how to produce the instance bound to one identifier and
whether that instance is cached.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from asyncscope_di.application.circular_detector import CircularDependencyDetector
from asyncscope_di.application.metadata import metadata_store
from asyncscope_di.domain import (
    AliasCycleError,
    CircularDependencyError,
    ContainerError,
    IContainerResolver,
    RegistrationError,
    RequiredDependencyError,
    UnresolvableError,
)

_construction_detector = CircularDependencyDetector(CircularDependencyError)
_alias_detector = CircularDependencyDetector(AliasCycleError)


class Registration(BaseModel, ABC):
    """Base registration with a single cache slot.

    Attributes:
        singleton: Whether the first produced instance is reused.
        scope: Scope the registration was bound for, used to resolve its dependencies.
        instance: Cached instance, meaningful only when has_instance is set.
        has_instance: Whether instance holds a cached value.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    singleton: bool = Field(default=False, description="Reuse the first produced instance.")
    scope: Optional[str] = Field(default=None, description="Scope the registration was bound for.")
    instance: Any = Field(default=None, description="Cached instance.")
    has_instance: bool = Field(default=False, description="Whether an instance is cached.")

    def get_instance(self, container: IContainerResolver, scope: Optional[str] = None) -> Any:
        """Return the cached instance or produce a new one.

        Args:
            container: Container used to resolve dependencies.
            scope: Scope the lookup started from.

        Returns:
            The instance, cached first when the registration is a singleton.
        """
        if self.has_instance:
            return self.instance
        instance = self.create_instance(container)
        if self.singleton:
            self.instance = instance
            self.has_instance = True
        return instance

    @abstractmethod
    def create_instance(self, container: IContainerResolver) -> Any:
        """Produce a new instance."""


class ValueRegistration(Registration):
    """Registration of a pre-built instance. Always a singleton."""

    def __init__(self, value: Any, scope: Optional[str] = None) -> None:
        super().__init__(singleton=True, scope=scope, instance=value, has_instance=True)

    def create_instance(self, container: IContainerResolver) -> Any:
        raise RegistrationError("Value registrations never create instances")


class ClassRegistration(Registration):
    """Registration constructing a class with constructor and property injection.

    Attributes:
        target: The class to construct.
    """

    target: type = Field(..., description="Class to construct.")

    def create_instance(self, container: IContainerResolver) -> Any:
        """Construct the class and fill its declared properties.

        Declared constructor parameters are resolved first, in parameter order,
        from the class's forced scope or this registration's scope. Properties
        are filled after the constructor returns.

        Raises:
            RequiredDependencyError: If a required constructor parameter resolves to None.
            CircularDependencyError: If constructing the class needs the class itself.
            UnresolvableError: If the constructor raises.
        """
        with _construction_detector.guard(self.target):
            values: Dict[int, Any] = {}
            meta = metadata_store.get_dependency_meta(self.target)
            if meta is not None:
                scope = meta.force_scope or self.scope
                for index in sorted(meta.constructor_params):
                    resolver = meta.constructor_params[index]
                    value = resolver.resolve(container, scope)
                    if resolver.required and value is None:
                        raise RequiredDependencyError(self.target, index)
                    values[index] = value

            args, kwargs = _bind_arguments(self.target, values)
            try:
                instance = self.target(*args, **kwargs)
            except ContainerError:
                raise
            except Exception as e:
                raise UnresolvableError(self.target, f"Failed to create instance: {e}") from e

            container.fill(instance, self.scope)
            return instance


class CallableFactory:
    """Adapts a zero-argument callable to the factory protocol."""

    __slots__ = ("_creator",)

    def __init__(self, creator: Callable[[], Any]) -> None:
        self._creator = creator

    def create(self) -> Any:
        return self._creator()

    def __repr__(self) -> str:
        return f"CallableFactory({self._creator!r})"


class FactoryRegistration(Registration):
    """Registration delegating construction to a factory's ``create()``.

    Attributes:
        factory: Object exposing ``create()``.
    """

    factory: Any = Field(..., description="Object exposing create().")

    def create_instance(self, container: IContainerResolver) -> Any:
        try:
            return self.factory.create()
        except ContainerError:
            raise
        except Exception as e:
            raise UnresolvableError(self.factory, f"Factory failed: {e}") from e


class AliasRegistration(Registration):
    """Registration forwarding every lookup to another identifier.

    Aliases never cache; the target's own registration decides the lifetime.

    Attributes:
        target_id: Identifier the alias points to.
    """

    target_id: Any = Field(..., description="Identifier resolved instead.")

    def get_instance(self, container: IContainerResolver, scope: Optional[str] = None) -> Any:
        """Resolve the target identifier from the same scope.

        Raises:
            AliasCycleError: If the alias chain comes back to an identifier it already visited.
        """
        with _alias_detector.guard(self.target_id):
            return container.get(self.target_id, scope)

    def create_instance(self, container: IContainerResolver) -> Any:
        raise RegistrationError("Alias registrations never create instances")


def _bind_arguments(cls: type, values: Dict[int, Any]) -> Tuple[List[Any], Dict[str, Any]]:
    """Map resolved values keyed by parameter position onto the constructor signature.

    Parameters that were not declared, and optional ones that resolved to None
    while having a default, are left out so their defaults apply.
    """
    if not values:
        return [], {}

    try:
        parameters = list(inspect.signature(cls).parameters.values())
    except (TypeError, ValueError):
        return [values.get(index) for index in range(max(values) + 1)], {}

    positional_only = sum(1 for param in parameters if param.kind is param.POSITIONAL_ONLY)
    last_positional = max((index for index in values if index < positional_only), default=-1)

    args: List[Any] = []
    kwargs: Dict[str, Any] = {}
    for index, param in enumerate(parameters):
        value = values.get(index)
        has_default = param.default is not param.empty
        if param.kind is param.POSITIONAL_ONLY:
            if index <= last_positional:
                args.append(param.default if value is None and has_default else value)
        elif param.kind in (param.POSITIONAL_OR_KEYWORD, param.KEYWORD_ONLY):
            if index in values and not (value is None and has_default):
                kwargs[param.name] = value
    return args, kwargs
