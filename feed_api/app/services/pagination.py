"""
Bounded result windows for list operations.

``page`` is 1-based and anything below 1 is read as 1.  The window is
fetched in creation order, so walking pages 1..N over an unchanged
collection returns every item exactly once.

``total_count`` is a separate query.  Under concurrent writes it may
disagree with the window it is returned with; clients treat it as an
estimate for page navigation.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.errors import NotFound
from ..repositories.posts import PostRecord, PostRepository
from ..repositories.users import UserRecord


@dataclass(frozen=True)
class Page:
    items: List[PostRecord]
    total_count: int


def page_window(page: int, page_size: int) -> Tuple[int, int]:
    """Return ``(offset, limit)`` for a 1-based ``page``."""
    page = max(page, 1)
    return (page - 1) * page_size, page_size


class PaginationService:
    """Paginated listing and single-post reads."""

    def __init__(self, posts: PostRepository, default_page_size: int = 10, max_page_size: int = 100) -> None:
        self.posts = posts
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None or page_size <= 0:
            return self.default_page_size
        return min(page_size, self.max_page_size)

    async def list(self, page: Optional[int] = 1, page_size: Optional[int] = None) -> Page:
        size = self.clamp_page_size(page_size)
        offset, limit = page_window(page or 1, size)
        items = await self.posts.list_window(offset, limit)
        total = await self.posts.count()
        return Page(items=items, total_count=total)

    async def get(self, post_id: int) -> Tuple[PostRecord, Optional[UserRecord]]:
        """Return a post and its owner, resolved by explicit lookup."""
        record = await self.posts.get(post_id)
        if record is None:
            raise NotFound(f"Post {post_id} not found")
        owner = await self.posts.get_owner(record)
        return record, owner
