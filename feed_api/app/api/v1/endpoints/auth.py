"""
Authentication endpoints for API v1.

Signup, login and the caller's own status.  Login returns a bearer
token; every other route in the API expects it in the
``Authorization`` header.
"""

from fastapi import APIRouter, Depends, status

from feed_api.app.api.deps import get_auth_service
from feed_api.app.core.pipeline import RequestContext, require_caller
from feed_api.app.schemas.user import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    StatusRead,
    StatusUpdate,
    StatusUpdated,
)
from feed_api.app.services.auth_service import AuthService


router = APIRouter()


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, service: AuthService = Depends(get_auth_service)) -> SignupResponse:
    """Register a new user.  Fails with 422 if the identifier is taken."""
    user = await service.signup(payload.identifier, payload.secret, payload.name)
    return SignupResponse(message="User created", subject_id=user.id)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> LoginResponse:
    """Exchange an identifier and secret for a bearer token."""
    token, subject_id = await service.login(payload.identifier, payload.secret)
    return LoginResponse(token=token, subject_id=subject_id)


@router.get("/status", response_model=StatusRead)
async def get_status(
    ctx: RequestContext = Depends(require_caller),
    service: AuthService = Depends(get_auth_service),
) -> StatusRead:
    return StatusRead(status=await service.get_status(ctx.subject_id))


@router.put("/status", response_model=StatusUpdated)
async def update_status(
    payload: StatusUpdate,
    ctx: RequestContext = Depends(require_caller),
    service: AuthService = Depends(get_auth_service),
) -> StatusUpdated:
    new_status = await service.set_status(ctx.subject_id, payload.status)
    return StatusUpdated(message="Status updated", status=new_status)
