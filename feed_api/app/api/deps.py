"""
FastAPI dependencies that hand endpoints their collaborators.

Services are built once in ``create_app`` and stored on ``app.state``.
Endpoints receive them through these accessors instead of importing
module-level singletons, so each app instance (and each test) has its
own hub and repositories.
"""

from fastapi import Request

from ..realtime.hub import NotificationHub
from ..services.auth_service import AuthService
from ..services.pagination import PaginationService
from ..services.post_service import PostService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def get_pagination_service(request: Request) -> PaginationService:
    return request.app.state.pagination


def get_hub(request: Request) -> NotificationHub:
    return request.app.state.hub
