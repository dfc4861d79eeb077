"""FastAPI dependencies resolving shared services from application state."""

from fastapi import Request

from mobile_auth.models.internal_models import AuthenticatedIdentity
from mobile_auth.services.auth_service import AuthenticationService
from mobile_auth.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_auth_service(request: Request) -> AuthenticationService:
    return get_container(request).auth_service


def get_current_identity(request: Request) -> AuthenticatedIdentity:
    """
    Identity attached by ``BearerAuthMiddleware``.

    Routes mounted outside the middleware fall back to checking the headers
    themselves, so a protected route can never run unauthenticated.
    """
    identity = getattr(request.state, "identity", None)
    if identity is None:
        identity = get_container(request).access_gate.authenticate(request.headers)
        request.state.identity = identity
    return identity
