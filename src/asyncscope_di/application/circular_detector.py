"""Application layer - Resolution cycle detection."""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List

from asyncscope_di.domain import ContainerError


class CircularDependencyDetector:
    """Detects re-entrant resolution of the same key.

    Uses thread-local storage to track the current resolution stack.
    When a key appears twice in the stack, the configured error is raised
    with the cycle path.

    Attributes:
        _local: Thread-local storage for resolution stacks.
        _error: Factory building the error from the cycle path.
    """

    def __init__(self, error: Callable[[List[Any]], ContainerError]) -> None:
        """Initialize the detector.

        Args:
            error: Called with the cycle path to build the exception to raise.
        """
        self._local = threading.local()
        self._error = error

    def _get_stack(self) -> List[Any]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def push(self, key: Any) -> None:
        """Add a key to the resolution stack.

        Args:
            key: The identifier or class being resolved.

        Raises:
            ContainerError: The configured error, if the key is already in the stack.

        Example:
            >>> detector = CircularDependencyDetector(CircularDependencyError)
            >>> detector.push(ServiceA)
            >>> detector.push(ServiceB)
            >>> detector.push(ServiceA)  # Raises CircularDependencyError
        """
        stack = self._get_stack()

        if key in stack:
            # Build cycle path from first occurrence to current
            cycle_start_index = stack.index(key)
            cycle = stack[cycle_start_index:] + [key]
            raise self._error(cycle)

        stack.append(key)

    def pop(self) -> None:
        """Remove the most recent key from the resolution stack."""
        stack = self._get_stack()
        if stack:
            stack.pop()

    @contextmanager
    def guard(self, key: Any) -> Iterator[None]:
        """Keep key on the stack for the duration of a with-block."""
        self.push(key)
        try:
            yield
        finally:
            self.pop()

    def clear(self) -> None:
        """Clear the current thread's resolution stack."""
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
