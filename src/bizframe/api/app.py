"""FastAPI application factory with the bizframe registry wired in."""

from __future__ import annotations

from fastapi import FastAPI

from bizframe import __version__
from bizframe.api.deps import (
    Registry,
    get_catalog,
    get_resolver,
    get_session_backend,
    get_settings,
)
from bizframe.api.errors import bizframe_exception_handler
from bizframe.core.errors import BizFrameError
from bizframe.core.factory import ObjectCatalog, default_catalog
from bizframe.core.logging import configure_logging
from bizframe.core.resources import ResourceResolver
from bizframe.core.session import SessionBackend, create_session_backend
from bizframe.core.settings import BizFrameSettings


def create_app(
    *,
    settings: BizFrameSettings | None = None,
    catalog: ObjectCatalog | None = None,
    session_backend: SessionBackend | None = None,
    debug: bool = False,
) -> FastAPI:
    """Build a FastAPI app whose endpoints can depend on :data:`Registry`.

    Parameters
    ----------
    settings : BizFrameSettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    catalog : ObjectCatalog | None
        Application services. Defaults to :func:`default_catalog`.
    session_backend : SessionBackend | None
        Defaults to the backend selected by ``settings.session_backend``.
    debug : bool
        Include error messages and context in problem responses.
    """
    settings = settings or get_settings()
    catalog = catalog or default_catalog(settings)
    session_backend = session_backend or create_session_backend(settings)
    resolver = ResourceResolver(settings)

    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")

    app = FastAPI(title="bizframe", version=__version__)
    app.state.settings = settings
    app.state.debug = debug

    # Override DI so endpoints use the provided singletons
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_session_backend] = lambda: session_backend
    app.dependency_overrides[get_resolver] = lambda: resolver

    app.add_exception_handler(BizFrameError, bizframe_exception_handler)

    @app.get("/health")
    def health(registry: Registry) -> dict[str, str]:
        return {"status": "ok", "version": registry.version()}

    return app
