"""
Password hashing and JWT issuing/validation.

Tokens are compact HS256 JSON Web Tokens built with HMAC-SHA256 and
base64url encoding.  Each token embeds the subject id (``sub``), the
issue time (``iat``) and an absolute expiry (``exp``).  Expiry is never
extended: a token is valid only while its signature verifies against the
current secret *and* the current time is before ``exp``.

Passwords are hashed with PBKDF2-HMAC-SHA256 and a random 16-byte salt.
The stored string records the algorithm, the iteration count, the salt
and the digest, separated by ``$``::

    pbkdf2_sha256$100000$<salt hex>$<digest hex>

so that raising the configured work factor does not break existing
hashes.  Hashing is CPU-bound; async callers should run it through
``hash_password_async``/``verify_password_async`` so the event loop is not
blocked.
"""

import asyncio
import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Callable, Dict, Optional


PASSWORD_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 100_000


class InvalidToken(Exception):
    """Raised by ``TokenIssuer.validate`` for any unusable token."""


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC-SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


class TokenIssuer:
    """Mint and validate signed, time-bounded identity tokens.

    Parameters
    ----------
    secret : str
        Shared signing secret.  Read once at startup and never mutated.
    default_ttl : int
        Lifetime in seconds used when ``issue`` is called without ``ttl``.
    clock : Callable[[], float]
        Source of the current UNIX time.  Tests inject a fake clock to
        move past the expiry without sleeping.
    """

    algorithm = "HS256"

    def __init__(
        self,
        secret: str,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("A non-empty signing secret is required")
        self._secret = secret
        self.default_ttl = default_ttl
        self._clock = clock

    def issue(self, subject_id: Any, ttl: Optional[int] = None) -> str:
        """Return a token for ``subject_id`` valid for ``ttl`` seconds."""
        now = int(self._clock())
        lifetime = self.default_ttl if ttl is None else ttl
        claims = {"sub": str(subject_id), "iat": now, "exp": now + lifetime}
        header = {"alg": self.algorithm, "typ": "JWT"}
        header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        payload_b64 = _b64_url_encode(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        signature_b64 = _b64_url_encode(_sign(signing_input, self._secret))
        return f"{header_b64}.{payload_b64}.{signature_b64}"

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify ``token`` and return its claims.

        Raises ``InvalidToken`` if the token is malformed, the signature
        does not verify, the header names another algorithm or the token
        has expired.
        """
        parts = token.split(".")
        if len(parts) != 3:
            raise InvalidToken("malformed token")
        header_b64, payload_b64, signature_b64 = parts
        try:
            actual_sig = _b64_url_decode(signature_b64)
            header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
            claims = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            raise InvalidToken("undecodable token") from exc

        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, self._secret)
        # Constant-time comparison to prevent timing attacks
        if not hmac.compare_digest(expected_sig, actual_sig):
            raise InvalidToken("bad signature")
        if not isinstance(header, dict) or header.get("alg") != self.algorithm:
            raise InvalidToken("unexpected algorithm")
        if not isinstance(claims, dict):
            raise InvalidToken("claims must be an object")
        try:
            expires_at = int(claims["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken("missing expiry") from exc
        if self._clock() >= expires_at:
            raise InvalidToken("token expired")
        return claims

    def validate(self, token: str) -> int:
        """Return the subject id embedded in a valid ``token``."""
        claims = self.decode(token)
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken("missing subject") from exc


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256.

    A 16-byte random salt is generated for each password.

    Parameters
    ----------
    password : str
        The plain text password to hash.
    iterations : int
        PBKDF2 work factor recorded in the result.

    Returns
    -------
    str
        ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{PASSWORD_SCHEME}${iterations}${salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored hash string.

    A mismatch is a normal ``False`` result.  Malformed or empty stored
    hashes also yield ``False``; this function never raises.
    """
    try:
        scheme, iterations, salt_hex, hash_hex = hashed_password.split("$")
        if scheme != PASSWORD_SCHEME:
            return False
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
        dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, int(iterations))
    except (AttributeError, ValueError):
        return False
    return hmac.compare_digest(dk, stored_hash)


async def hash_password_async(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    return await asyncio.to_thread(hash_password, password, iterations)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)
