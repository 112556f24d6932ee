from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from asyncscope_di.application import Container

DEFAULT_REQUEST_SCOPE = "request"


def create_fastapi_dependency(
    container: Container,
    dependency_id: Any,
    scope: Optional[str] = None,
) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that resolves from the container.

    The lookup starts from the execution context FastAPI runs the dependency
    in, so bindings made for the current request are visible.

    Args:
        container: The container to resolve from.
        dependency_id: Identifier or class to resolve.
        scope: Optional scope name to start the lookup from.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> get_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> Any:
        """Resolve the dependency from the container."""
        return container.get(dependency_id, scope)

    return dependency


def create_scoped_dependency(container: Container, dependency_id: Any) -> Callable[[Request], Any]:
    """Create a FastAPI dependency resolving from the request's scope.

    Requires the ScopeMiddleware to be installed.

    Args:
        container: The container the middleware was installed with.
        dependency_id: Identifier or class to resolve.

    Returns:
        A callable resolving from the scope named on ``request.state.di_scope``.

    Example:
        >>> app.add_middleware(ScopeMiddleware, container=container)
        >>>
        >>> get_request_context = create_scoped_dependency(container, RequestContext)
        >>>
        >>> @app.get("/process")
        >>> async def process_request(ctx: RequestContext = Depends(get_request_context)):
        ...     return {"request_id": ctx.request_id}
    """

    def scoped_dependency(request: Request) -> Any:
        """Resolve from the request's scope."""
        scope = getattr(request.state, "di_scope", None)
        if scope is None:
            raise RuntimeError("Request does not have a DI scope. Did you forget to add ScopeMiddleware?")
        return container.get(dependency_id, scope)

    return scoped_dependency


class ScopeMiddleware(BaseHTTPMiddleware):
    """Middleware running each request in its own named scope.

    For every request the middleware opens a child execution context, aliases
    it to ``scope_name``, binds the ``Request`` in it and runs the optional
    ``configure`` hook so request-specific bindings can be added. Everything
    the endpoint resolves sees those bindings; other requests do not.

    Attributes:
        container: The container to scope.
        scope_name: Name given to each request's context.
        configure: Optional hook called with the container and the request.

    Example:
        >>> def per_request(container, request):
        ...     container.bind("user", lambda: load_user(request), singleton=True)
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(ScopeMiddleware, container=container, configure=per_request)
    """

    def __init__(
        self,
        app: FastAPI,
        container: Container,
        scope_name: str = DEFAULT_REQUEST_SCOPE,
        configure: Optional[Callable[[Container, Request], None]] = None,
    ):
        """Initialize the middleware.

        Args:
            app: The FastAPI/Starlette application.
            container: The container to scope.
            scope_name: Name given to each request's context.
            configure: Optional hook adding request-specific bindings.
        """
        super().__init__(app)
        self.container = container
        self.scope_name = scope_name
        self.configure = configure

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Open the request scope and execute the endpoint inside it.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        with self.container.fork():
            self.container.alias_scope(self.scope_name)
            self.container.set(Request, request)
            if self.configure is not None:
                self.configure(self.container, request)
            request.state.di_scope = self.scope_name
            return await call_next(request)
