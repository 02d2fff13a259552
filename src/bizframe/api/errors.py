"""
Error handling — maps bizframe errors to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bizframe.core.errors import BizFrameError, ErrorCategory
from bizframe.core.logging import get_logger

logger = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.SERVICE: 500,
    ErrorCategory.RESOURCE: 404,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.DATABASE: 503,
    ErrorCategory.LIFECYCLE: 500,
    ErrorCategory.INTERNAL: 500,
}


class ProblemDetail(BaseModel):
    """RFC 7807 problem body."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str = ""
    instance: str = ""
    category: str = ""
    context: dict = Field(default_factory=dict)


def status_for_category(category: ErrorCategory) -> int:
    return CATEGORY_TO_STATUS.get(category, 500)


async def bizframe_exception_handler(request: Request, exc: BizFrameError) -> JSONResponse:
    """Render any :class:`BizFrameError` as a problem response."""
    status = status_for_category(exc.category)
    logger.error("request_failed", path=request.url.path, status=status, **exc.to_dict())
    debug = getattr(request.app.state, "debug", False)
    body = ProblemDetail(
        title=exc.__class__.__name__,
        status=status,
        detail=exc.message if debug or status < 500 else "The request could not be completed.",
        instance=str(request.url),
        category=exc.category.value,
        context=exc.context.to_dict() if debug else {},
    )
    return JSONResponse(status_code=status, content=body.model_dump())
