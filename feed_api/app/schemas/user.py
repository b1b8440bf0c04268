"""
Pydantic models for signup, login and user status.

The ``identifier`` is the login name (typically an e-mail address) and
``secret`` the password.  Secrets are only ever accepted, never
returned.
"""

from pydantic import Field

from .common import ApiModel


class SignupRequest(ApiModel):
    identifier: str = Field(..., min_length=1, max_length=255, examples=["user@example.com"])
    secret: str = Field(..., min_length=5, examples=["strongpassword"])
    name: str = Field(..., min_length=1, max_length=255, examples=["Jane Doe"])


class SignupResponse(ApiModel):
    message: str
    subject_id: int


class LoginRequest(ApiModel):
    identifier: str = Field(..., examples=["user@example.com"])
    secret: str = Field(..., examples=["strongpassword"])


class LoginResponse(ApiModel):
    """Returned by ``POST /auth/login``.  Send ``token`` as a bearer credential."""

    token: str
    subject_id: int


class StatusRead(ApiModel):
    status: str


class StatusUpdate(ApiModel):
    status: str = Field(..., min_length=1, max_length=500, examples=["Working on the feed"])


class StatusUpdated(ApiModel):
    message: str
    status: str


class OwnerSummary(ApiModel):
    id: int
    name: str
