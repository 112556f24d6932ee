from typing import Any, List, Optional


class ContainerError(Exception):
    """Base exception for container errors.

    Attributes:
        code: Stable machine-readable error code.
    """

    code = "ERR_CONTAINER"


class InjectError(ContainerError):
    """Base exception for dependency injection errors."""

    code = "ERR_CONTAINER.INJECT"


class DeclarationError(InjectError):
    """Raised when a dependency declaration is invalid.

    This occurs when:
    - An injection marker is used outside a constructor parameter or property.
    - An inferred dependency type is a primitive or built-in value type.
    - A dependency has neither an identifier nor a usable type annotation.
    """

    code = "ERR_CONTAINER.INJECT.DECLARATION"


class RequiredDependencyError(InjectError):
    """Raised when a required dependency resolves to nothing.

    Attributes:
        target: The class whose dependency could not be satisfied.
        slot: Property name or constructor parameter index.
    """

    code = "ERR_CONTAINER.INJECT.REQUIRED"

    def __init__(self, target: type, slot: Any) -> None:
        self.target = target
        self.slot = slot
        if isinstance(slot, int):
            where = f"constructor param[{slot}]"
        else:
            where = f"property '{slot}'"
        super().__init__(f"Cannot resolve required dependency at {target.__name__} {where}")


class UnresolvableError(ContainerError):
    """Raised when an instance cannot be created.

    Attributes:
        cls: The class or identifier that could not be resolved.
        reason: Optional reason for the failure.
    """

    code = "ERR_CONTAINER.UNRESOLVABLE"

    def __init__(self, cls: Any, reason: Optional[str] = None) -> None:
        self.cls = cls
        self.reason = reason
        message = f"Cannot resolve dependency for: {getattr(cls, '__name__', repr(cls))}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class ScopeError(ContainerError):
    """Raised for invalid scope operations.

    This occurs when aliasing a scope name that an ancestor context already carries.
    """

    code = "ERR_CONTAINER.SCOPE"


class _ChainError(ContainerError):
    def __init__(self, label: str, chain: List[Any]) -> None:
        self.chain = chain
        path = " -> ".join(getattr(item, "__name__", repr(item)) for item in chain)
        super().__init__(f"{label} detected: {path}")


class AliasCycleError(_ChainError):
    """Raised when an alias chain loops back onto itself.

    Attributes:
        chain: Identifiers visited, ending with the repeated one.
    """

    code = "ERR_CONTAINER.ALIAS_CYCLE"

    def __init__(self, chain: List[Any]) -> None:
        super().__init__("Alias cycle", chain)


class CircularDependencyError(_ChainError):
    """Raised when constructing a class requires constructing itself.

    Attributes:
        chain: Classes under construction, ending with the repeated one.
    """

    code = "ERR_CONTAINER.CIRCULAR"

    def __init__(self, chain: List[Any]) -> None:
        super().__init__("Circular dependency", chain)


class RegistrationError(ContainerError):
    """Raised for invalid registrations.

    This occurs when:
    - A factory object has no callable ``create``.
    - A value registration is asked to create an instance.
    """

    code = "ERR_CONTAINER.REGISTRATION"
