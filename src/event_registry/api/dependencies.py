"""Request dependencies for session gating."""

from fastapi import Depends, HTTPException, Request, status

from event_registry.containers import AppContainer
from event_registry.domain.models import UserRecord


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def require_user(container: AppContainer = Depends(get_container)) -> UserRecord:
    """Return the signed-in user or reject the request."""
    user = container.session_service.current_user
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required",
        )
    return user


def require_admin(
    user: UserRecord = Depends(require_user),
    container: AppContainer = Depends(get_container),
) -> UserRecord:
    """Return the signed-in user if they hold the admin role."""
    if not user.has_role(container.settings.admin_role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Required role: {container.settings.admin_role}",
        )
    return user
