"""
Business logic for posts: validate, persist, notify.

Every write walks the same states::

    Received -> Validated -> Persisted -> Notified -> Responded

A request that fails validation, targets a missing post or a post owned
by someone else ends in ``Rejected`` before anything is written.  A
request whose write fails in the store ends in ``Faulted`` and emits no
event.  Notification is a non-blocking hand-off to the hub; its outcome
never changes the response.
"""

import logging
from dataclasses import asdict
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from ..core.errors import ApiError, Forbidden, NotFound, StorageFailure, ValidationFailed, Violation
from ..realtime.hub import Action, MutationEvent, NotificationHub
from ..repositories.posts import PostRecord, PostRepository
from ..schemas.post import PostInput, PostRead
from .file_storage import ALLOWED_CONTENT_TYPES, FileStorage


logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    RECEIVED = "Received"
    VALIDATED = "Validated"
    PERSISTED = "Persisted"
    NOTIFIED = "Notified"
    RESPONDED = "Responded"
    REJECTED = "Rejected"
    FAULTED = "Faulted"


class _Mutation:
    """Tracks one write through its states for logging."""

    def __init__(self, action: Action, subject_id: int, post_id: Optional[int] = None) -> None:
        self.action = action
        self.subject_id = subject_id
        self.post_id = post_id
        self.state = MutationState.RECEIVED

    def advance(self, state: MutationState) -> None:
        logger.debug(
            "%s post=%s by=%s: %s -> %s",
            self.action.value,
            self.post_id,
            self.subject_id,
            self.state.value,
            state.value,
        )
        self.state = state

    def fail(self, error: ApiError) -> ApiError:
        self.advance(MutationState.FAULTED if isinstance(error, StorageFailure) else MutationState.REJECTED)
        return error


def to_read(record: PostRecord) -> PostRead:
    return PostRead(**asdict(record))


class PostService:
    """Mutation handler for posts.

    The hub is injected rather than looked up globally so tests can
    observe (or replace) it.
    """

    def __init__(self, posts: PostRepository, storage: FileStorage, hub: NotificationHub) -> None:
        self.posts = posts
        self.storage = storage
        self.hub = hub

    @staticmethod
    def _validate(payload: Mapping[str, Any], image: Optional[UploadFile]) -> PostInput:
        violations = []
        data = None
        try:
            data = PostInput.model_validate(dict(payload))
        except ValidationError as exc:
            violations.extend(ValidationFailed.from_pydantic(exc).violations)
        if image is not None and image.content_type not in ALLOWED_CONTENT_TYPES:
            violations.append(Violation("image", "Only png, jpg, jpeg, gif and webp images are accepted"))
        if violations:
            raise ValidationFailed(violations)
        return data

    def _notify(self, mutation: _Mutation, action: Action, resource: dict) -> None:
        self.hub.publish(MutationEvent(action=action, resource=resource))
        mutation.advance(MutationState.NOTIFIED)

    async def _load_owned(self, mutation: _Mutation, post_id: int, subject_id: int) -> PostRecord:
        record = await self.posts.get(post_id)
        if record is None:
            raise mutation.fail(NotFound(f"Post {post_id} not found"))
        if record.owner_id != subject_id:
            raise mutation.fail(Forbidden("Not authorized to modify this post"))
        return record

    async def create(
        self,
        subject_id: int,
        payload: Mapping[str, Any],
        image: Optional[UploadFile] = None,
    ) -> PostRead:
        mutation = _Mutation(Action.CREATE, subject_id)
        try:
            data = self._validate(payload, image)
        except ValidationFailed as exc:
            raise mutation.fail(exc)
        mutation.advance(MutationState.VALIDATED)

        image_url = None
        try:
            if image is not None:
                image_url = await self.storage.save(image)
            record = await self.posts.add(subject_id, data.title, data.content, image_url)
        except ApiError as exc:
            await self.storage.remove(image_url)
            raise mutation.fail(exc)
        mutation.post_id = record.id
        mutation.advance(MutationState.PERSISTED)
        logger.info("User %s created post %s", subject_id, record.id)

        post = to_read(record)
        self._notify(mutation, Action.CREATE, post.model_dump(mode="json", by_alias=True))
        mutation.advance(MutationState.RESPONDED)
        return post

    async def update(
        self,
        subject_id: int,
        post_id: int,
        payload: Mapping[str, Any],
        image: Optional[UploadFile] = None,
    ) -> PostRead:
        """Replace title and content; replace the image only if a new one is sent."""
        mutation = _Mutation(Action.UPDATE, subject_id, post_id)
        try:
            data = self._validate(payload, image)
        except ValidationFailed as exc:
            raise mutation.fail(exc)
        mutation.advance(MutationState.VALIDATED)

        try:
            existing = await self._load_owned(mutation, post_id, subject_id)
        except StorageFailure as exc:
            raise mutation.fail(exc)

        changes = {"title": data.title, "content": data.content}
        new_image = None
        try:
            if image is not None:
                new_image = await self.storage.save(image)
                changes["image_url"] = new_image
            record = await self.posts.update(post_id, changes)
        except StorageFailure as exc:
            await self.storage.remove(new_image)
            raise mutation.fail(exc)
        if record is None:
            # Deleted between the ownership check and the write.
            await self.storage.remove(new_image)
            raise mutation.fail(NotFound(f"Post {post_id} not found"))
        if new_image and existing.image_url:
            await self.storage.remove(existing.image_url)
        mutation.advance(MutationState.PERSISTED)
        logger.info("User %s updated post %s", subject_id, post_id)

        post = to_read(record)
        self._notify(mutation, Action.UPDATE, post.model_dump(mode="json", by_alias=True))
        mutation.advance(MutationState.RESPONDED)
        return post

    async def delete(self, subject_id: int, post_id: int) -> None:
        mutation = _Mutation(Action.DELETE, subject_id, post_id)
        mutation.advance(MutationState.VALIDATED)
        try:
            existing = await self._load_owned(mutation, post_id, subject_id)
            deleted = await self.posts.delete(post_id)
        except StorageFailure as exc:
            raise mutation.fail(exc)
        if not deleted:
            raise mutation.fail(NotFound(f"Post {post_id} not found"))
        await self.storage.remove(existing.image_url)
        mutation.advance(MutationState.PERSISTED)
        logger.info("User %s deleted post %s", subject_id, post_id)

        self._notify(mutation, Action.DELETE, {"id": post_id})
        mutation.advance(MutationState.RESPONDED)
