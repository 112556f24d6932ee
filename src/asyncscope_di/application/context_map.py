"""Application layer - Execution-context aware map.

Every asyncio task, and every thread running outside a task, gets its own
context node. Tasks receive theirs when they are created, through a task
factory the map installs on each event loop it runs in, so a task is always a
child of the context that spawned it. Threads, and tasks spawned on a loop
before the map first ran there, get theirs the first time they touch the map.
This gives a tree of contexts that mirrors the call/continuation structure of
the program.
"""

import asyncio
import logging
import threading
import weakref
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, Set

from asyncscope_di.domain import IContextMap, IScopeMap

logger = logging.getLogger(__name__)


def _current_owner() -> Any:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    if task is not None:
        return task
    return threading.current_thread()


class ContextNode(IScopeMap):
    """One execution context: its names, its own store and its parent.

    Attributes:
        parent: Context that was active when this one was created.
        depth: Number of ancestors.
    """

    def __init__(self, parent: Optional["ContextNode"], owner: Any) -> None:
        self.parent = parent
        self.depth = 0 if parent is None else parent.depth + 1
        self._owner = weakref.ref(owner)
        self._names: Set[str] = set()
        self._store: Dict[Any, Any] = {}

    @property
    def names(self) -> Set[str]:
        return self._names

    def owned_by(self, owner: Any) -> bool:
        return self._owner() is owner

    def ancestors(self) -> Iterator["ContextNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def get(self, key: Any) -> Any:
        node: Optional[ContextNode] = self
        while node is not None:
            if key in node._store:
                return node._store[key]
            node = node.parent
        return None

    def set(self, key: Any, value: Any) -> None:
        self._store[key] = value

    def has(self, key: Any) -> bool:
        node: Optional[ContextNode] = self
        while node is not None:
            if key in node._store:
                return True
            node = node.parent
        return False

    def has_own(self, key: Any) -> bool:
        return key in self._store

    def __repr__(self) -> str:
        return f"ContextNode(names={sorted(self._names)!r}, depth={self.depth})"


class ExecutionContextMap(IContextMap):
    """Map whose active storage follows the running task.

    The node active when the map is created becomes the root; tasks and threads
    that never saw a node of this map start as children of that root.

    Example:
        >>> cmap = ExecutionContextMap()
        >>> cmap.alias("app")
        >>> cmap.set("key", 1)
        >>> async def handler():
        ...     cmap.get("key")   # 1, inherited from the creating context
        ...     cmap.set("key", 2)  # only visible in this task and its children
    """

    def __init__(self) -> None:
        self._var: ContextVar[Optional[ContextNode]] = ContextVar(f"asyncscope_di_context_{id(self)}", default=None)
        self._loops: "weakref.WeakSet[asyncio.AbstractEventLoop]" = weakref.WeakSet()
        self._root: Optional[ContextNode] = None
        self._root = self._current()

    def _current(self) -> ContextNode:
        owner = _current_owner()
        if isinstance(owner, asyncio.Task):
            self._install(owner.get_loop())
        node = self._var.get()
        if node is None:
            node = ContextNode(self._root, owner)
            self._var.set(node)
        elif not node.owned_by(owner):
            node = ContextNode(node, owner)
            self._var.set(node)
        return node

    def _install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Chain a task factory onto loop that gives every new task its node."""
        if loop in self._loops:
            return
        self._loops.add(loop)
        previous = loop.get_task_factory()
        map_ref = weakref.ref(self)

        def task_factory(loop: asyncio.AbstractEventLoop, coro: Any, **kwargs: Any) -> "asyncio.Task[Any]":
            cmap = map_ref()
            parent = cmap._current() if cmap is not None else None
            if previous is None:
                task = asyncio.Task(coro, loop=loop, **kwargs)
            else:
                task = previous(loop, coro, **kwargs)
            if cmap is not None and parent is not None:
                cmap._adopt(task, parent)
            return task

        loop.set_task_factory(task_factory)
        logger.debug("Installed context task factory on %r", loop)

    def _adopt(self, task: "asyncio.Task[Any]", parent: ContextNode) -> None:
        if task.done():
            return
        context = task.get_context()
        node = context.get(self._var)
        if node is not None and node.owned_by(task):
            # eager tasks may already have claimed a node
            return
        context.run(self._var.set, ContextNode(parent, task))

    @property
    def root(self) -> Optional[ContextNode]:
        return self._root

    @property
    def active(self) -> ContextNode:
        """The context of the calling task."""
        return self._current()

    @property
    def names(self) -> Set[str]:
        return self._current().names

    def get(self, key: Any) -> Any:
        return self._current().get(key)

    def set(self, key: Any, value: Any) -> None:
        self._current().set(key, value)

    def has(self, key: Any) -> bool:
        return self._current().has(key)

    def has_name(self, name: str) -> bool:
        return name in self._current().names

    def parent(self, name: str) -> Optional[ContextNode]:
        for node in self._current().ancestors():
            if name in node.names:
                return node
        return None

    def alias(self, name: str) -> None:
        self._current().names.add(name)

    def closest(self, name: str) -> ContextNode:
        current = self._current()
        if name in current.names:
            return current
        found = self.parent(name)
        if found is None:
            logger.debug("No context named %r, falling back to the active context", name)
            return current
        return found

    def distance(self, key: Any) -> int:
        hops = 0
        node: Optional[ContextNode] = self._current()
        while node is not None:
            if node.has_own(key):
                return hops
            hops += 1
            node = node.parent
        return -1

    @contextmanager
    def fork(self) -> Iterator[ContextNode]:
        """Run a with-block in a fresh child of the active context.

        Example:
            >>> with cmap.fork():
            ...     cmap.alias("job")
            ...     cmap.set("key", 3)
            >>> cmap.get("key")  # back in the outer context
        """
        child = ContextNode(self._current(), _current_owner())
        token = self._var.set(child)
        try:
            yield child
        finally:
            self._var.reset(token)
