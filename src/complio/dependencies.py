"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from complio.errors.exceptions import AuthenticationError, AuthorizationError


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a session from the app's session factory; callers commit explicitly."""
    async with request.app.state.db_session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "trc_unknown")


def get_orchestrator(request: Request):
    return request.app.state.orchestrator


async def get_current_user(request: Request) -> dict:
    """Return the bearer token's user, or raise 401 for anonymous and invalid tokens."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in user:
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


def require_role(*roles: str):
    """Build a dependency that admits users holding any of ``roles``."""

    async def _check(user: dict = Depends(get_current_user)) -> dict:
        if not set(user.get("roles", [])) & set(roles):
            raise AuthorizationError(f"Requires one of: {', '.join(roles)}")
        return user

    return _check


RequireOperator = Depends(require_role("operator", "admin"))
RequireReviewer = Depends(require_role("reviewer", "admin"))
