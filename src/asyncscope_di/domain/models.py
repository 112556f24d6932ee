from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

ROOT_SCOPE = "root"


class Token:
    """Symbolic identifier compared by identity.

    Two tokens with the same name are still different identifiers.

    Example:
        >>> DATABASE_URL = Token("DATABASE_URL")
        >>> container.set(DATABASE_URL, "sqlite://")
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Token({self.name!r})"


class DependencyResolver(BaseModel):
    """Resolves one declared dependency slot.

    Attributes:
        resolve: Callable receiving the container and a scope name, returning the value.
        required: Whether an unresolved value is an error.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    resolve: Callable[[Any, Optional[str]], Any] = Field(
        ..., description="Function resolving the dependency from a container and scope."
    )
    required: bool = Field(default=True, description="Whether the dependency must resolve to a value.")


class DependencyMeta(BaseModel):
    """Declared dependencies of a class.

    Attributes:
        force_scope: Scope that overrides the caller scope for every dependency of the class.
        constructor_params: Resolvers keyed by constructor parameter index (``self`` excluded).
        props: Resolvers keyed by property name.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    force_scope: Optional[str] = Field(default=None, description="Scope overriding the caller scope.")
    constructor_params: Dict[int, DependencyResolver] = Field(
        default_factory=dict,
        description="Constructor parameter resolvers keyed by position.",
    )
    props: Dict[str, DependencyResolver] = Field(
        default_factory=dict,
        description="Property resolvers keyed by attribute name.",
    )


class BindMeta(BaseModel):
    """Ordered bind actions declared on a class.

    Each action receives the class and a binder and registers whatever the
    declaration asked for.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    actions: List[Callable[[type, Any], None]] = Field(
        default_factory=list, description="Bind actions in declaration order."
    )


class ContainerConfig(BaseModel):
    """Container configuration.

    Attributes:
        root_scope: Scope name aliased onto the context that creates the container.
            ``None`` leaves the creating context unnamed.
        auto_construct: Whether unbound classes are constructed on demand.
    """

    model_config = ConfigDict(frozen=True)

    root_scope: Optional[str] = Field(
        default=ROOT_SCOPE, description="Scope name given to the creating context."
    )
    auto_construct: bool = Field(
        default=True, description="Construct unbound classes when resolved."
    )
