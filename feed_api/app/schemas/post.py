"""
Pydantic models for posts.

``PostInput`` is the structural validation applied to every create and
update before anything is written.  It deliberately has no owner field:
ownership always comes from the authenticated caller.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from .common import ApiModel
from .user import OwnerSummary


class PostInput(ApiModel):
    """Fields a client may set on a post."""

    title: str = Field(..., min_length=5, examples=["A first post"])
    content: str = Field(..., min_length=5, examples=["Something worth reading"])

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class PostRead(ApiModel):
    """Schema for reading a post from the API."""

    id: int
    owner_id: int
    title: str
    content: str
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PostEnvelope(ApiModel):
    message: str
    resource: PostRead


class PostDetail(ApiModel):
    """A post together with its explicitly looked-up owner."""

    resource: PostRead
    owner: Optional[OwnerSummary] = None


class PostPage(ApiModel):
    items: List[PostRead]
    total_count: int
