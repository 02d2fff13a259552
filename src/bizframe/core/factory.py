"""Object catalog and per-request object factory.

Manifesto:
    Services and business objects are found by name, not by import.
    Providers register once per process; every request gets its own
    factory that caches the instances it built.

Tags:
    factory, registry, service-discovery, entry-points, bizframe

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any

from bizframe.core.errors import ServiceNotFound
from bizframe.core.logging import LogService, get_logger
from bizframe.core.settings import BizFrameSettings

if TYPE_CHECKING:
    from bizframe.core.registry import ServiceRegistry

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "bizframe.objects"
SESSION_OBJECT_PREFIX = "__object__:"

Provider = Callable[["ServiceRegistry"], Any]


@dataclass(frozen=True)
class ObjectProvider:
    """A named constructor. ``session_scoped`` objects survive across requests."""

    name: str
    func: Provider
    session_scoped: bool = False


class ObjectCatalog:
    """Process-wide map of qualified object names to providers.

    Names not registered explicitly are looked up in the
    ``bizframe.objects`` entry-point group, so installed packages can
    contribute services without being imported first.
    """

    def __init__(self):
        self._providers: dict[str, ObjectProvider] = {}

    def register(self, name: str, func: Provider, *, session_scoped: bool = False) -> None:
        if name in self._providers:
            raise ValueError(f"Object '{name}' is already registered")
        self._providers[name] = ObjectProvider(name, func, session_scoped)
        logger.debug("object_registered", name=name, session_scoped=session_scoped)

    def provides(self, name: str, *, session_scoped: bool = False) -> Callable[[Provider], Provider]:
        """Decorator form of :meth:`register`.

        Example:
            @catalog.provides("service.accessService")
            def access_service(registry):
                return RoleAccessService(registry.configuration)
        """

        def decorator(func: Provider) -> Provider:
            self.register(name, func, session_scoped=session_scoped)
            return func

        return decorator

    def lookup(self, name: str) -> ObjectProvider | None:
        provider = self._providers.get(name)
        if provider is not None:
            return provider

        for ep in entry_points(group=ENTRY_POINT_GROUP, name=name):
            target = ep.load()
            session_scoped = bool(getattr(target, "session_scoped", False))
            provider = ObjectProvider(name, target, session_scoped)
            self._providers[name] = provider
            logger.debug("object_discovered", name=name, entry_point=ep.value)
            return provider
        return None

    def names(self) -> list[str]:
        return sorted(self._providers)

    def clear(self) -> None:
        """Clear catalog (for testing)."""
        self._providers.clear()


class ObjectFactory:
    """Builds and caches named objects for one request."""

    def __init__(self, catalog: ObjectCatalog, registry: ServiceRegistry):
        self._catalog = catalog
        self._registry = registry
        self._instances: dict[str, Any] = {}
        self._session_scoped: set[str] = set()

    def get_object(self, name: str, new: bool = False) -> Any:
        """Return the instance for ``name``, constructing it when needed.

        ``new=True`` always builds a fresh instance that is neither cached nor
        stored in the session. Session-scoped objects are taken from the
        session mapping when present and stored back into it when built.
        """
        if not new and name in self._instances:
            return self._instances[name]

        provider = self._catalog.lookup(name)
        if provider is None:
            raise ServiceNotFound(name)

        session = self._registry.session
        key = SESSION_OBJECT_PREFIX + name
        if provider.session_scoped and not new and session.has_var(key):
            instance = session.get_var(key)
        else:
            instance = provider.func(self._registry)
            if provider.session_scoped and not new:
                session.set_var(key, instance)

        if not new:
            self._instances[name] = instance
            if provider.session_scoped:
                self._session_scoped.add(name)
        return instance

    def cached_names(self) -> list[str]:
        return list(self._instances)

    def sync_session(self) -> int:
        """Write cached session-scoped instances back into the session mapping.

        Instances may have been mutated in place since they were stored, so
        they are re-set before the session is persisted.
        """
        session = self._registry.session
        for name in self._session_scoped:
            session.set_var(SESSION_OBJECT_PREFIX + name, self._instances[name])
        return len(self._session_scoped)


def default_catalog(settings: BizFrameSettings) -> ObjectCatalog:
    """Catalog with the bundled services (currently the logging service)."""
    catalog = ObjectCatalog()
    catalog.register(
        f"{settings.default_package}.{settings.log_service}",
        lambda registry: LogService(registry.settings.log_dir),
    )
    return catalog


__all__ = [
    "ENTRY_POINT_GROUP",
    "SESSION_OBJECT_PREFIX",
    "ObjectProvider",
    "ObjectCatalog",
    "ObjectFactory",
    "default_catalog",
]
