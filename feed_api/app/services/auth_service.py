"""
Business logic for signup, login and user status.

Login checks the presented secret against the stored PBKDF2 hash and,
on success, returns a freshly issued token.  The same subject may hold
any number of valid tokens at once (one per device); nothing tracks or
limits outstanding tokens.
"""

import logging
import secrets
from typing import Optional, Tuple

from ..core.errors import NotFound, Unauthenticated
from ..core.security import TokenIssuer, hash_password_async, verify_password_async
from ..repositories.users import UserRecord, UserRepository


logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserRepository, issuer: TokenIssuer, hash_iterations: int) -> None:
        self.users = users
        self.issuer = issuer
        self.hash_iterations = hash_iterations
        self._decoy_hash: Optional[str] = None

    async def signup(self, identifier: str, secret: str, name: str) -> UserRecord:
        """Create a user.  Raises ``ValidationFailed`` if ``identifier`` is taken."""
        logger.info("Registering user %s", identifier)
        password_hash = await hash_password_async(secret, self.hash_iterations)
        return await self.users.add(identifier.strip(), name.strip(), password_hash)

    async def login(self, identifier: str, secret: str) -> Tuple[str, int]:
        """Return ``(token, subject_id)`` or raise ``Unauthenticated``.

        Unknown identifiers and wrong secrets produce the same error.  An
        unknown identifier is still checked against a decoy hash so both
        cases cost one PBKDF2 run.
        """
        user = await self.users.get_by_identifier(identifier.strip())
        if user is None:
            await verify_password_async(secret, await self._get_decoy_hash())
            logger.info("Failed login for %s", identifier)
            raise Unauthenticated("Invalid credentials")
        if not await verify_password_async(secret, user.password_hash):
            logger.info("Failed login for %s", identifier)
            raise Unauthenticated("Invalid credentials")
        token = self.issuer.issue(user.id)
        logger.info("User %s logged in", user.id)
        return token, user.id

    async def _get_decoy_hash(self) -> str:
        if self._decoy_hash is None:
            self._decoy_hash = await hash_password_async(secrets.token_hex(16), self.hash_iterations)
        return self._decoy_hash

    async def get_status(self, subject_id: int) -> str:
        user = await self.users.get(subject_id)
        if user is None:
            raise NotFound("User not found")
        return user.status

    async def set_status(self, subject_id: int, status: str) -> str:
        status = status.strip()
        if not await self.users.set_status(subject_id, status):
            raise NotFound("User not found")
        return status
