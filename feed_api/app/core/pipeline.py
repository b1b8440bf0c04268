"""
Request-processing stages and the dispatcher that runs them.

A protected route declares the ordered list of stages it needs.  Each
stage receives the ``RequestContext`` built so far and returns either
``Continue`` (optionally carrying an enriched context) or
``ShortCircuit`` with the error that ends the request.  The dispatcher,
``StagePipeline``, runs stages in order, stops at the first short
circuit and raises its error for the boundary responder to render.

The authentication gate is the two-stage pipeline ``AUTH_STAGES``:

1. ``extract_bearer`` reads ``Authorization: Bearer <token>``.
2. ``resolve_subject`` validates the token and attaches the subject id.

No database lookup happens here.  The subject embedded in a valid
token is trusted until the token expires; revoking access early
requires rotating the signing secret.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from fastapi import Request

from .errors import ApiError, Unauthenticated
from .security import InvalidToken, TokenIssuer


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """What the stages know about the current request."""

    request: Request
    token: Optional[str] = None
    subject_id: Optional[int] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.subject_id is not None


@dataclass(frozen=True)
class Continue:
    context: RequestContext


@dataclass(frozen=True)
class ShortCircuit:
    error: ApiError


StageResult = Union[Continue, ShortCircuit]
Stage = Callable[[RequestContext], Awaitable[StageResult]]


async def extract_bearer(ctx: RequestContext) -> StageResult:
    header = ctx.request.headers.get("authorization")
    if not header:
        return ShortCircuit(Unauthenticated("Not authenticated"))
    scheme, _, credentials = header.partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != "bearer" or not credentials:
        return ShortCircuit(Unauthenticated("Not authenticated"))
    return Continue(replace(ctx, token=credentials))


async def resolve_subject(ctx: RequestContext) -> StageResult:
    issuer: TokenIssuer = ctx.request.app.state.token_issuer
    try:
        subject_id = issuer.validate(ctx.token or "")
    except InvalidToken as exc:
        logger.info("Rejected token on %s: %s", ctx.request.url.path, exc)
        return ShortCircuit(Unauthenticated("Invalid or expired token"))
    return Continue(replace(ctx, subject_id=subject_id))


class StagePipeline:
    """Run ``stages`` in order; usable directly as a FastAPI dependency."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        self.stages = list(stages)

    async def run(self, ctx: RequestContext) -> RequestContext:
        for stage in self.stages:
            result = await stage(ctx)
            if isinstance(result, ShortCircuit):
                raise result.error
            ctx = result.context
        return ctx

    async def __call__(self, request: Request) -> RequestContext:
        return await self.run(RequestContext(request=request))


AUTH_STAGES = (extract_bearer, resolve_subject)

require_caller = StagePipeline(AUTH_STAGES)
