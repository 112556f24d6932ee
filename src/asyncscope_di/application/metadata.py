"""Application layer - Process-wide per-class metadata store."""

from typing import Callable, Optional
from weakref import WeakKeyDictionary

from asyncscope_di.domain import BindMeta, DependencyMeta


class MetadataStore:
    """Keeps declared dependencies and bind actions per class.

    Records are created lazily on first declaration and are shared by every
    container in the process. Keys are weak so classes defined at runtime
    (e.g. inside functions) can still be collected.

    Attributes:
        _dependencies: Own dependency records keyed by class.
        _binds: Own bind-action lists keyed by class.
    """

    def __init__(self) -> None:
        self._dependencies: "WeakKeyDictionary[type, DependencyMeta]" = WeakKeyDictionary()
        self._binds: "WeakKeyDictionary[type, BindMeta]" = WeakKeyDictionary()

    def update_dependency_meta(self, cls: type, modifier: Callable[[DependencyMeta], None]) -> DependencyMeta:
        """Apply modifier to the class's own dependency record, creating it if needed.

        Args:
            cls: The class being declared.
            modifier: Mutates the record in place.

        Returns:
            The updated record.
        """
        meta = self._dependencies.get(cls)
        if meta is None:
            meta = DependencyMeta()
            self._dependencies[cls] = meta
        modifier(meta)
        return meta

    def get_own_dependency_meta(self, cls: type) -> Optional[DependencyMeta]:
        return self._dependencies.get(cls)

    def get_dependency_meta(self, cls: type) -> Optional[DependencyMeta]:
        """Return the effective dependency record of a class.

        Property declarations and the forced scope are merged along the MRO,
        subclasses winning. Constructor parameters come only from the class
        that defines the ``__init__`` actually called.

        Args:
            cls: The class to inspect.

        Returns:
            A merged copy, or None if no class in the MRO declared anything.
        """
        mro = getattr(cls, "__mro__", (cls,))
        owns = [klass for klass in mro if klass in self._dependencies]
        if not owns:
            return None

        merged = DependencyMeta()
        for klass in reversed(owns):
            own = self._dependencies[klass]
            if own.force_scope is not None:
                merged.force_scope = own.force_scope
            merged.props.update(own.props)

        init_owner = next((klass for klass in mro if "__init__" in vars(klass)), None)
        if init_owner is not None and init_owner in self._dependencies:
            merged.constructor_params.update(self._dependencies[init_owner].constructor_params)
        return merged

    def add_bind_action(self, cls: type, action: Callable[[type, object], None]) -> None:
        """Append a bind action to the class's own list."""
        meta = self._binds.get(cls)
        if meta is None:
            meta = BindMeta()
            self._binds[cls] = meta
        meta.actions.append(action)

    def get_bind_meta(self, cls: type) -> Optional[BindMeta]:
        """Return the class's own bind actions. Bind actions are not inherited."""
        return self._binds.get(cls)


metadata_store = MetadataStore()
