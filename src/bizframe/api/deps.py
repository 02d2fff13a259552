"""
FastAPI dependency injection — process singletons and the per-request registry.

Usage in routers::

    from bizframe.api.deps import Registry

    @router.get("/orders/{order_id}")
    def show_order(order_id: int, registry: Registry):
        if not registry.allow_access("Orders.View"):
            raise HTTPException(403)
        conn = registry.db_connection()
        ...

The session id travels in the cookie named by ``settings.session_cookie``.
Requests without a valid cookie get a fresh id and the cookie is set on
the response. The registry is closed (session persisted, connections
closed) after the endpoint returns or raises.

Tags:
    bizframe, api, dependency-injection, singletons, request-scope

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request, Response

from bizframe.core.factory import ObjectCatalog, default_catalog
from bizframe.core.registry import ServiceRegistry, request_scope
from bizframe.core.resources import ResourceResolver
from bizframe.core.session import SessionBackend, create_session_backend
from bizframe.core.settings import BizFrameSettings
from bizframe.core.settings import get_settings as _load_settings

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")

# ── Singletons ───────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> BizFrameSettings:
    """Cached settings — loaded once per process."""
    return _load_settings()


@lru_cache(maxsize=1)
def get_catalog() -> ObjectCatalog:
    """Object catalog shared by every request."""
    return default_catalog(get_settings())


@lru_cache(maxsize=1)
def get_session_backend() -> SessionBackend:
    return create_session_backend(get_settings())


@lru_cache(maxsize=1)
def get_resolver() -> ResourceResolver:
    """Shared resolver, so the in-memory compiled cache outlives requests."""
    return ResourceResolver(get_settings())


# ── Session id (per-request) ─────────────────────────────────────────────


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def get_session_id(
    request: Request,
    response: Response,
    settings: Annotated[BizFrameSettings, Depends(get_settings)],
) -> str:
    """Session id from the cookie, or a new one set on the response."""
    session_id = request.cookies.get(settings.session_cookie, "")
    if not _SESSION_ID_RE.match(session_id):
        session_id = new_session_id()
        response.set_cookie(
            settings.session_cookie,
            session_id,
            max_age=settings.session_ttl_seconds,
            httponly=True,
            samesite="lax",
        )
    return session_id


# ── Registry (per-request) ───────────────────────────────────────────────


def get_registry(
    request: Request,
    session_id: Annotated[str, Depends(get_session_id)],
    settings: Annotated[BizFrameSettings, Depends(get_settings)],
    catalog: Annotated[ObjectCatalog, Depends(get_catalog)],
    backend: Annotated[SessionBackend, Depends(get_session_backend)],
    resolver: Annotated[ResourceResolver, Depends(get_resolver)],
) -> Generator[ServiceRegistry, None, None]:
    """Yield a :class:`ServiceRegistry` for the request lifespan."""
    with request_scope(
        session_id,
        settings=settings,
        catalog=catalog,
        session_backend=backend,
        resolver=resolver,
        form_inputs=dict(request.query_params),
    ) as registry:
        yield registry


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[BizFrameSettings, Depends(get_settings)]
SessionId = Annotated[str, Depends(get_session_id)]
Registry = Annotated[ServiceRegistry, Depends(get_registry)]
