"""bizframe core -- the per-request registry and the subsystems behind it.

Architecture::

    Layer 1 -- Errors, Logging, Settings
        errors.py          Typed error hierarchy (BizFrameError ...)
        logging.py         structlog setup + LogService
        settings.py        BizFrameSettings (BIZFRAME_* env vars)

    Layer 2 -- Subsystems
        configuration.py   config.toml database definitions
        drivers.py         Driver strategies (PDO_MYSQL, sqlite, pgsql)
        connections.py     One connection per logical database name
        resources.py       Layered resource lookup + compiled cache
        session.py         SessionStore + memory/file/redis backends
        factory.py         ObjectCatalog + per-request ObjectFactory
        profiles.py        Profile service providers
        client.py          ClientProxy action queue
        types.py           TypeManager value formatting

    Layer 3 -- Facade
        registry.py        ServiceRegistry, request_scope, current_registry
"""

from bizframe.core.errors import (
    BizFrameError,
    ConfigurationError,
    ConnectionError,
    LifecycleError,
    ResourceNotFound,
    ServiceNotFound,
)
from bizframe.core.logging import LogPriority
from bizframe.core.registry import (
    ServiceRegistry,
    Subsystem,
    current_registry,
    request_scope,
)
from bizframe.core.resources import ResourceKind
from bizframe.core.settings import BizFrameSettings, get_settings

__all__ = [
    "BizFrameError",
    "ConfigurationError",
    "ConnectionError",
    "LifecycleError",
    "ResourceNotFound",
    "ServiceNotFound",
    "LogPriority",
    "ServiceRegistry",
    "Subsystem",
    "current_registry",
    "request_scope",
    "ResourceKind",
    "BizFrameSettings",
    "get_settings",
]
