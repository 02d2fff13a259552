"""
Session store — restore at request start, persist once at request end.

The store holds the named object mapping of one session identity for the
duration of one request. The mapping is read through a
:class:`SessionBackend` when the registry is constructed and written back
exactly once at teardown.

Manifesto:
    - **Read once, write once:** No partial writes during the request
    - **Skip clean writes:** An untouched session is not rewritten
    - **Pluggable backends:** Memory for tests, files by default, Redis
      for multi-host deployments

Architecture:
    ::

        SessionBackend (Protocol)
        ├── InMemorySessionBackend   — single process, tests
        ├── FileSessionBackend       — one file per session id (default)
        └── RedisSessionBackend      — shared, TTL-bound

        SessionStore phases:
            UNINITIALIZED ──restore()──► RESTORED ──set_var()──► MUTATED
                                             │                     │
                                             └──────persist()──────┴──► PERSISTED

Concurrency:
    Two requests for the same session that both mutate and persist race;
    the last writer wins. No locking is done at this layer.

Tags:
    session, persistence, lifecycle, redis, bizframe

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import os
import pickle
import re
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from bizframe.core.errors import ConfigurationError, LifecycleError
from bizframe.core.logging import get_logger
from bizframe.core.settings import BizFrameSettings

logger = get_logger(__name__)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class SessionBackend(Protocol):
    """Storage for pickled session payloads keyed by session id."""

    def load(self, session_id: str) -> bytes | None:
        """Return the stored payload, or ``None`` when the session is new."""
        ...

    def save(self, session_id: str, payload: bytes) -> None:
        ...

    def delete(self, session_id: str) -> None:
        ...


# ------------------------------------------------------------------ #
# Backends
# ------------------------------------------------------------------ #


class InMemorySessionBackend:
    """Process-local backend; sessions vanish with the process."""

    def __init__(self):
        self._store: dict[str, bytes] = {}

    def load(self, session_id: str) -> bytes | None:
        return self._store.get(session_id)

    def save(self, session_id: str, payload: bytes) -> None:
        self._store[session_id] = payload

    def delete(self, session_id: str) -> None:
        self._store.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._store


class FileSessionBackend:
    """One file per session id under ``directory``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so a concurrent reader sees either the
    old or the new payload.
    """

    def __init__(self, directory: Path | str):
        self._directory = Path(directory)

    def _path(self, session_id: str) -> Path:
        if not _SESSION_ID_RE.match(session_id):
            raise LifecycleError(f"Invalid session id: {session_id!r}")
        return self._directory / f"sess_{session_id}"

    def load(self, session_id: str) -> bytes | None:
        try:
            return self._path(session_id).read_bytes()
        except FileNotFoundError:
            return None

    def save(self, session_id: str, payload: bytes) -> None:
        target = self._path(session_id)
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)


class RedisSessionBackend:
    """Redis-backed sessions with a sliding TTL.

    Requires ``redis`` package (install via ``pip install bizframe-core[redis]``).
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        ttl_seconds: int = 1440,
        prefix: str = "bizframe:session:",
    ):
        try:
            import redis
        except ImportError as exc:
            msg = (
                "Redis session backend requires 'redis' package. "
                "Install with: pip install bizframe-core[redis]"
            )
            raise ImportError(msg) from exc

        self._client = redis.from_url(url, decode_responses=False)
        self._ttl = ttl_seconds
        self._prefix = prefix

    def load(self, session_id: str) -> bytes | None:
        # Reading refreshes the TTL; clean requests never call save().
        return self._client.getex(self._prefix + session_id, ex=self._ttl)

    def save(self, session_id: str, payload: bytes) -> None:
        self._client.setex(self._prefix + session_id, self._ttl, payload)

    def delete(self, session_id: str) -> None:
        self._client.delete(self._prefix + session_id)


def create_session_backend(settings: BizFrameSettings) -> SessionBackend:
    """Build the backend selected by ``settings.session_backend``."""
    if settings.session_backend == "memory":
        return InMemorySessionBackend()
    if settings.session_backend == "file":
        return FileSessionBackend(settings.session_dir)
    if settings.session_backend == "redis":
        return RedisSessionBackend(settings.redis_url, ttl_seconds=settings.session_ttl_seconds)
    raise ConfigurationError(f"Unknown session backend: {settings.session_backend}")


# ------------------------------------------------------------------ #
# Store
# ------------------------------------------------------------------ #


class SessionPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESTORED = "restored"
    MUTATED = "mutated"
    PERSISTED = "persisted"


class SessionStore:
    """Named object mapping of one session, for one request.

    Example:
        store = SessionStore(FileSessionBackend("/srv/app/session"))
        store.restore("a1b2c3")
        store.set_var("CVN", "demo.OrderView")
        store.persist()
    """

    def __init__(self, backend: SessionBackend):
        self._backend = backend
        self._data: dict[str, Any] = {}
        self._session_id: str | None = None
        self._phase = SessionPhase.UNINITIALIZED
        self._dirty = False

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def dirty(self) -> bool:
        return self._dirty

    def restore(self, session_id: str) -> None:
        """Load the persisted mapping for ``session_id`` (empty when new)."""
        if self._phase is not SessionPhase.UNINITIALIZED:
            raise LifecycleError(f"Session already restored: {self._session_id}").with_context(
                session_id=self._session_id
            )

        payload = self._backend.load(session_id)
        data: dict[str, Any] = {}
        if payload:
            try:
                loaded = pickle.loads(payload)
            except Exception as exc:
                logger.warning("session_payload_unreadable", session_id=session_id, error=str(exc))
            else:
                if isinstance(loaded, dict):
                    data = loaded
                else:
                    logger.warning(
                        "session_payload_unreadable",
                        session_id=session_id,
                        error=f"expected dict, got {type(loaded).__name__}",
                    )

        self._session_id = session_id
        self._data = data
        self._phase = SessionPhase.RESTORED
        logger.debug("session_restored", session_id=session_id, keys=len(data))

    # ── Variables ───────────────────────────────────────────────────

    def get_var(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def has_var(self, name: str) -> bool:
        return name in self._data

    def set_var(self, name: str, value: Any) -> None:
        self._check_writable()
        self._data[name] = value
        self.mark_dirty()

    def del_var(self, name: str) -> None:
        self._check_writable()
        if name in self._data:
            del self._data[name]
            self.mark_dirty()

    def mark_dirty(self) -> None:
        """Flag the mapping as changed (for in-place mutation of stored objects)."""
        self._check_writable()
        self._dirty = True
        self._phase = SessionPhase.MUTATED

    def items(self) -> dict[str, Any]:
        """Shallow copy of the current mapping."""
        return dict(self._data)

    # ── Persistence ─────────────────────────────────────────────────

    def persist(self, session_id: str | None = None, objects: dict[str, Any] | None = None) -> bool:
        """Write the mapping back through the backend.

        Args:
            session_id: Override the id restored at construction.
            objects: Explicit mapping to write instead of the current one.

        Returns:
            ``True`` when a write happened, ``False`` when it was skipped
            because nothing changed.
        """
        if self._phase is SessionPhase.PERSISTED:
            raise LifecycleError("Session already persisted").with_context(session_id=self._session_id)
        if self._phase is SessionPhase.UNINITIALIZED and session_id is None:
            raise LifecycleError("Session persisted before restore")

        target = session_id or self._session_id
        if objects is None and not self._dirty:
            self._phase = SessionPhase.PERSISTED
            logger.debug("session_persist_skipped", session_id=target)
            return False

        mapping = dict(self._data if objects is None else objects)
        self._backend.save(target, pickle.dumps(mapping, protocol=pickle.HIGHEST_PROTOCOL))
        self._phase = SessionPhase.PERSISTED
        self._dirty = False
        logger.debug("session_persisted", session_id=target, keys=len(mapping))
        return True

    def _check_writable(self) -> None:
        if self._phase is SessionPhase.PERSISTED:
            raise LifecycleError("Session modified after persist").with_context(
                session_id=self._session_id
            )


__all__ = [
    "SessionBackend",
    "InMemorySessionBackend",
    "FileSessionBackend",
    "RedisSessionBackend",
    "create_session_backend",
    "SessionPhase",
    "SessionStore",
]
