"""Application layer - Scope registry."""

import logging
from typing import Any, ContextManager, Dict, List, Optional

from asyncscope_di.application.registrations import Registration
from asyncscope_di.domain import IContextMap, IScopeMap, ScopeError

logger = logging.getLogger(__name__)


class ScopeRegistry:
    """Places registrations into execution contexts by scope name.

    Wraps an execution-context map and buffers bindings aimed at scope names
    that no active context carries yet ("lazy binds"). The buffered bindings
    are flushed into the context that first aliases the name.

    Attributes:
        _map: The execution-context map holding registrations.
        _lazy_binds: Pending registrations per scope name, in insertion order.
    """

    def __init__(self, context_map: IContextMap) -> None:
        self._map = context_map
        self._lazy_binds: Dict[str, Dict[Any, Registration]] = {}

    @property
    def context_map(self) -> IContextMap:
        return self._map

    def place(self, id: Any, registration: Registration, scope: Optional[str] = None) -> None:
        """Store a registration in the context selected by scope.

        Args:
            id: Identifier to bind.
            registration: The registration to store.
            scope: Target scope name. None targets the active context.

        The active context is used when it carries the scope name; otherwise
        the nearest ancestor carrying it; otherwise the registration waits in
        the lazy queue until the name is aliased.
        """
        if not scope or self._map.has_name(scope):
            self._map.set(id, registration)
            return

        ancestor = self._map.parent(scope)
        if ancestor is not None:
            ancestor.set(id, registration)
            return

        logger.debug("Scope %r not materialized, queueing binding for %r", scope, id)
        self._lazy_binds.setdefault(scope, {})[id] = registration

    def lookup_map(self, scope: Optional[str] = None) -> IScopeMap:
        """Return the map a lookup starts from: the context named scope, or the active one."""
        if scope:
            return self._map.closest(scope)
        return self._map

    def alias_scope(self, name: str) -> None:
        """Name the active context and flush bindings queued for that name.

        Args:
            name: Scope name to give the active context.

        Raises:
            ScopeError: If an ancestor context already carries the name.
        """
        if self._map.parent(name) is not None:
            raise ScopeError(f"Scope name '{name}' is already used by a parent context")

        self._map.alias(name)
        pending = self._lazy_binds.pop(name, None)
        if pending:
            logger.debug("Flushing %d queued binding(s) into scope %r", len(pending), name)
            for id, registration in pending.items():
                self._map.set(id, registration)

    def has_scope(self, name: str) -> bool:
        return self._map.has_name(name) or self._map.parent(name) is not None

    def distance(self, id: Any) -> int:
        return self._map.distance(id)

    def pending(self, name: str) -> List[Any]:
        """Identifiers queued for a scope name that has not been aliased yet."""
        return list(self._lazy_binds.get(name, {}))

    def fork(self) -> ContextManager[IScopeMap]:
        return self._map.fork()
