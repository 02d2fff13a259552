"""
Request-scoped service registry.

:class:`ServiceRegistry` is the one coordination point application code
talks to during a request. It lazily builds the framework subsystems,
hands out services and objects by name, owns the request's session store
and database connections, and tears all of it down exactly once.

Manifesto:
    One registry per request, nothing global.

    - **Lazy subsystems:** Built on first use, never rebuilt, never replaced
    - **Name-based lookup:** ``get_service("accessService")`` not imports
    - **Guaranteed teardown:** Session persisted and connections closed
      on every exit path
    - **Explicit scope:** ``request_scope()`` binds the registry to the
      current context; ``current_registry()`` finds it

Architecture:
    ::

        request_scope(session_id)
            │
            ▼
        ServiceRegistry ──restore──► SessionStore ◄──► SessionBackend
            │
            ├── get(Subsystem.OBJECT_FACTORY) ─► ObjectFactory ─► ObjectCatalog
            ├── get(Subsystem.CONFIGURATION)  ─► Configuration (config.toml)
            ├── get(Subsystem.CLIENT_PROXY)   ─► ClientProxy
            ├── get(Subsystem.TYPE_MANAGER)   ─► TypeManager
            ├── connections ─► DatabaseConnectionManager ─► DriverStrategy
            └── resources   ─► ResourceResolver (compiled cache)
            │
            ▼
        close(): persist session once, close connections

Examples:
    >>> with request_scope("a1b2c3") as registry:
    ...     registry.current_view_name = "demo.OrderView"
    ...     conn = registry.db_connection()
    ...     allowed = registry.allow_access("Orders.Edit")

Tags:
    registry, dependency-injection, lazy-initialization, request-scope,
    lifecycle, bizframe

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from pathlib import Path
from typing import Any

from bizframe import __version__
from bizframe.core.client import ClientProxy
from bizframe.core.configuration import Configuration
from bizframe.core.connections import Connector, DatabaseConnectionManager
from bizframe.core.errors import LifecycleError, ServiceNotFound
from bizframe.core.factory import ObjectCatalog, ObjectFactory, default_catalog
from bizframe.core.logging import LogContext, get_logger
from bizframe.core.profiles import InitProfileProvider, ProfileProvider, wrap_profile_service
from bizframe.core.resources import ResourceKind, ResourceResolver
from bizframe.core.session import SessionBackend, SessionStore, create_session_backend
from bizframe.core.settings import BizFrameSettings, get_settings
from bizframe.core.types import TypeManager

logger = get_logger(__name__)

VIEW_NAME_KEY = "CVN"
VIEW_SET_KEY = "CVS"


class Subsystem(str, Enum):
    """Lazily built framework subsystems, one slot each."""

    OBJECT_FACTORY = "object_factory"
    CONFIGURATION = "configuration"
    CLIENT_PROXY = "client_proxy"
    TYPE_MANAGER = "type_manager"


def qualify_service_name(name: str, default_package: str = "service") -> str:
    """Prefix unqualified names with the default package.

    >>> qualify_service_name("Log")
    'service.Log'
    >>> qualify_service_name("shop.OrderService")
    'shop.OrderService'
    """
    if "." in name:
        return name
    return f"{default_package}.{name}"


class ServiceRegistry:
    """Per-request façade over the framework subsystems.

    Constructing a registry restores the session mapping for
    ``session_id`` immediately; everything else is built on first use.

    Args:
        session_id: Session identity of the request.
        settings: Application settings (default: :func:`get_settings`).
        catalog: Named object providers (default: :func:`default_catalog`).
        session_backend: Where session payloads live.
        connector: Database connector override, mainly for tests.
        resolver: Shared :class:`ResourceResolver`; sharing it across
            requests shares its in-memory compiled cache.
        form_inputs: Submitted form values exposed through the client proxy.
    """

    def __init__(
        self,
        session_id: str,
        *,
        settings: BizFrameSettings | None = None,
        catalog: ObjectCatalog | None = None,
        session_backend: SessionBackend | None = None,
        connector: Connector | None = None,
        resolver: ResourceResolver | None = None,
        form_inputs: Mapping[str, Any] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._catalog = catalog or default_catalog(self._settings)
        self._resolver = resolver or ResourceResolver(self._settings)
        self._connector = connector
        self._form_inputs = form_inputs

        self._subsystems: dict[Subsystem, Any] = {}
        self._connections: DatabaseConnectionManager | None = None
        self._profile_provider: ProfileProvider | None = None
        self._view_name = ""
        self._view_set = ""
        self._closed = False

        self._session = SessionStore(session_backend or create_session_backend(self._settings))
        self._session.restore(session_id)

    # ── Subsystems (lazy) ────────────────────────────────────────

    def get(self, kind: Subsystem | str) -> Any:
        """Singleton for ``kind``, constructed on the first call only."""
        kind = Subsystem(kind)
        instance = self._subsystems.get(kind)
        if instance is None:
            instance = self._build(kind)
            self._subsystems[kind] = instance
            logger.debug("subsystem_created", subsystem=kind.value)
        return instance

    def _build(self, kind: Subsystem) -> Any:
        if kind is Subsystem.OBJECT_FACTORY:
            return ObjectFactory(self._catalog, self)
        if kind is Subsystem.CONFIGURATION:
            return Configuration.from_file(self._settings.config_file)
        if kind is Subsystem.CLIENT_PROXY:
            return ClientProxy(self._form_inputs)
        return TypeManager()

    @property
    def settings(self) -> BizFrameSettings:
        return self._settings

    @property
    def object_factory(self) -> ObjectFactory:
        return self.get(Subsystem.OBJECT_FACTORY)

    @property
    def configuration(self) -> Configuration:
        return self.get(Subsystem.CONFIGURATION)

    @property
    def client_proxy(self) -> ClientProxy:
        return self.get(Subsystem.CLIENT_PROXY)

    @property
    def type_manager(self) -> TypeManager:
        return self.get(Subsystem.TYPE_MANAGER)

    @property
    def session(self) -> SessionStore:
        return self._session

    @property
    def resources(self) -> ResourceResolver:
        return self._resolver

    @property
    def connections(self) -> DatabaseConnectionManager:
        if self._connections is None:
            self._connections = DatabaseConnectionManager(self.configuration, connector=self._connector)
        return self._connections

    # ── Services & objects ───────────────────────────────────────

    def get_service(self, name: str, new: bool = False) -> Any:
        """Service by name; unqualified names live in the default package."""
        return self.get_object(qualify_service_name(name, self._settings.default_package), new)

    def get_object(self, name: str, new: bool = False) -> Any:
        return self.object_factory.get_object(name, new)

    def allow_access(self, resource_action: str) -> bool:
        """Ask the ACL service. A missing ACL service raises ``ServiceNotFound``."""
        service = self.get_service(self._settings.acl_service)
        return bool(service.allow_access(resource_action))

    # ── Profiles & macros ────────────────────────────────────────

    @property
    def profile_provider(self) -> ProfileProvider:
        if self._profile_provider is None:
            service = self.get_service(self._settings.profile_service)
            self._profile_provider = wrap_profile_service(service, self._settings.profile_mode)
        return self._profile_provider

    def init_user_profile(self, user_id: Any) -> Any:
        return self.profile_provider.init_profile(user_id, self._session)

    def get_user_profile(self, attribute: str | None = None) -> Any:
        """Profile attribute (whole profile for ``None``).

        Without a profile service the profile stored in the session under
        ``_USER_PROFILE`` is read directly.
        """
        try:
            provider = self.profile_provider
        except ServiceNotFound:
            provider = InitProfileProvider(None)
        return provider.attribute(attribute, self._session)

    def get_profile_name(self, account_id: Any) -> Any:
        return self.profile_provider.profile_name(account_id)

    def macro_value(self, var: str, key: str) -> Any:
        """Value of ``@var:key``. Only the ``profile`` macro is defined."""
        if var == "profile":
            return self.get_user_profile(key)
        return None

    def expand_macro(self, expression: str) -> Any:
        """Evaluate a ``@var:key`` reference (``"@profile:ROLE"``)."""
        if not expression.startswith("@") or ":" not in expression:
            return None
        var, _, key = expression[1:].partition(":")
        return self.macro_value(var, key)

    # ── View context ─────────────────────────────────────────────

    @property
    def current_view_name(self) -> str:
        if not self._view_name:
            self._view_name = self._session.get_var(VIEW_NAME_KEY) or ""
        return self._view_name

    @current_view_name.setter
    def current_view_name(self, value: str) -> None:
        self._view_name = value
        self._session.set_var(VIEW_NAME_KEY, value)

    @property
    def current_view_set(self) -> str:
        if not self._view_set:
            self._view_set = self._session.get_var(VIEW_SET_KEY) or ""
        return self._view_set

    @current_view_set.setter
    def current_view_set(self, value: str) -> None:
        self._view_set = value
        self._session.set_var(VIEW_SET_KEY, value)

    # ── Database ─────────────────────────────────────────────────

    def db_connection(self, name: str | None = None) -> Any:
        return self.connections.connection(name)

    def quote_identifier(self, identifier: str, name: str | None = None) -> str:
        return self.connections.quote_identifier(identifier, name)

    # ── Resources ────────────────────────────────────────────────

    def path_for(self, name: str, kind: ResourceKind = ResourceKind.METADATA) -> Path:
        return self._resolver.path_for(name, kind)

    def load_structured(self, source: Path | str) -> Any:
        return self._resolver.load_structured(source)

    def message_for(self, msg_id: str, params: Any = ()) -> str:
        return self._resolver.message_for(msg_id, params)

    # ── Logging ──────────────────────────────────────────────────

    def log(self, priority: int, subject: str, message: str) -> None:
        self.get_service(self._settings.log_service).log(priority, subject, message)

    def log_error(self, priority: int, subject: str, message: str, file_name: str | None = None) -> None:
        self.get_service(self._settings.log_service).log_error(priority, subject, message, file_name)

    # ── Lifecycle ────────────────────────────────────────────────

    @staticmethod
    def version() -> str:
        return __version__

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Persist the session and close connections. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            factory: ObjectFactory | None = self._subsystems.get(Subsystem.OBJECT_FACTORY)
            if factory is not None:
                factory.sync_session()
            self._session.persist()
        finally:
            if self._connections is not None:
                self._connections.close_all()
            logger.debug("registry_closed", session_id=self._session.session_id)

    def __enter__(self) -> ServiceRegistry:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


# ── Request scope ────────────────────────────────────────────────

_current: ContextVar[ServiceRegistry | None] = ContextVar("bizframe_registry", default=None)


@contextmanager
def request_scope(session_id: str, **kwargs: Any) -> Iterator[ServiceRegistry]:
    """Build a registry for one request and tear it down on exit.

    Keyword arguments are passed to :class:`ServiceRegistry`. Entering and
    exiting may happen in different contexts (FastAPI runs sync generator
    dependencies in the threadpool), so teardown never depends on the
    context variable reset succeeding.
    """
    registry = ServiceRegistry(session_id, **kwargs)
    token = _current.set(registry)
    try:
        with LogContext(session_id=session_id):
            yield registry
    finally:
        try:
            registry.close()
        finally:
            try:
                _current.reset(token)
            except ValueError:
                # Token belongs to the entering context.
                _current.set(None)


def current_registry() -> ServiceRegistry:
    """The registry bound by the enclosing :func:`request_scope`."""
    registry = _current.get()
    if registry is None:
        raise LifecycleError("No service registry bound to the current request")
    return registry


__all__ = [
    "VIEW_NAME_KEY",
    "VIEW_SET_KEY",
    "Subsystem",
    "qualify_service_name",
    "ServiceRegistry",
    "request_scope",
    "current_registry",
]
