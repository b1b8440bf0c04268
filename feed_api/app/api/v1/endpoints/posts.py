"""
Post endpoints for API v1.

All routes require a bearer token.  Writes accept either a JSON object
or a multipart form with ``title``, ``content`` and an optional
``image`` file.  Validation, ownership checks and notification happen
in ``PostService``; handlers here only translate HTTP to service calls.
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request, status
from starlette.datastructures import UploadFile

from feed_api.app.api.deps import get_pagination_service, get_post_service
from feed_api.app.core.errors import ValidationFailed, Violation
from feed_api.app.core.pipeline import RequestContext, require_caller
from feed_api.app.schemas.post import PostDetail, PostEnvelope, PostPage
from feed_api.app.schemas.user import OwnerSummary
from feed_api.app.services.pagination import PaginationService
from feed_api.app.services.post_service import PostService, to_read


router = APIRouter()

FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def read_post_payload(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Return the submitted fields and the uploaded image, if any."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        image = form.get("image")
        if not isinstance(image, UploadFile) or not image.filename:
            image = None
        fields = {key: value for key, value in form.items() if key != "image" and isinstance(value, str)}
        return fields, image
    try:
        body = await request.json()
    except ValueError:
        raise ValidationFailed([Violation("body", "Expected a JSON object or a multipart form")])
    if not isinstance(body, dict):
        raise ValidationFailed([Violation("body", "Expected a JSON object")])
    return body, None


@router.get("", response_model=PostPage)
async def list_posts(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    ctx: RequestContext = Depends(require_caller),
    pagination: PaginationService = Depends(get_pagination_service),
) -> PostPage:
    """List posts oldest first.

    - **page**: 1-based page number; values below 1 are read as 1.
    - **pageSize**: items per page; missing or non-positive values use
      the configured default and large values are capped.
    """
    result = await pagination.list(page, page_size)
    return PostPage(items=[to_read(record) for record in result.items], total_count=result.total_count)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    ctx: RequestContext = Depends(require_caller),
    pagination: PaginationService = Depends(get_pagination_service),
) -> PostDetail:
    record, owner = await pagination.get(post_id)
    return PostDetail(
        resource=to_read(record),
        owner=OwnerSummary(id=owner.id, name=owner.name) if owner else None,
    )


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: Request,
    ctx: RequestContext = Depends(require_caller),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    """Create a post owned by the caller.  Any owner field in the body is ignored."""
    fields, image = await read_post_payload(request)
    post = await service.create(ctx.subject_id, fields, image)
    return PostEnvelope(message="Post created", resource=post)


@router.put("/{post_id}", response_model=PostEnvelope)
async def update_post(
    post_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_caller),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    """Replace a post's title and content.  Only the owner may update."""
    fields, image = await read_post_payload(request)
    post = await service.update(ctx.subject_id, post_id, fields, image)
    return PostEnvelope(message="Post updated", resource=post)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    ctx: RequestContext = Depends(require_caller),
    service: PostService = Depends(get_post_service),
) -> None:
    """Delete a post and its image.  Only the owner may delete."""
    await service.delete(ctx.subject_id, post_id)
    return None
