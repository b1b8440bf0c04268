"""
Typed access to the document store.

Repositories are the only code that issues SQL.  They return plain
record dataclasses, never rows, and raise ``StorageFailure`` when the
store itself fails.  References between records are plain ids; joining
them is an explicit call such as ``PostRepository.get_owner``.
"""

from .posts import PostRecord, PostRepository
from .users import UserRecord, UserRepository

__all__ = ["PostRecord", "PostRepository", "UserRecord", "UserRepository"]
