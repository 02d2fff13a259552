"""
Resource resolution and the compiled-artifact cache.

Logical names are dotted (``demo.BOEvent``). Resolving one walks a layered
set of search roots and returns the first file that exists; loading a
structured file goes through a two-level compiled cache so the parse cost
is paid once per source change rather than once per request.

Manifesto:
    Overrides should be a matter of dropping a file in the right place.

    - **Layered lookup:** Module override beats package dir beats shared dir
    - **Compile once:** Parsed forms are reused until the source changes
    - **Atomic artifacts:** Readers never see a half-written cache file

Architecture:
    ::

        path_for("demo.BOEvent", ResourceKind.METADATA)
            │
            ├─► <module_dir>/demo/BOEvent.xml        (module override)
            ├─► <metadata_dir>/demo/BOEvent.xml      (package dir for the kind)
            ├─► <shared_dir>/demo/BOEvent.xml        (shared)
            └─► <shared_dir>/BOEvent.xml             (shared, bare name)

        load_structured(path)
            │
            ├─► memory:  {path: (mtime_ns, value)}           fresh? → value
            ├─► disk:    <cache_dir>/modules_demo_BOEvent.xml  fresh? → unpickle
            └─► parse (.xml | .yaml | .yml | .json | .toml)
                  └─► write artifact atomically, stamp with source mtime

Examples:
    >>> resolver = ResourceResolver(BizFrameSettings(app_dir="/srv/app"))
    >>> resolver.compiled_path(Path("/srv/app/modules/demo/BOEvent.xml")).name
    'modules_demo_BOEvent.xml'

Tags:
    resources, metadata, cache, compiled-cache, lookup, bizframe

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import copy
import json
import os
import pickle
import tempfile
import tomllib
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from bizframe.core.errors import BizFrameError, ErrorCategory, ResourceNotFound
from bizframe.core.logging import get_logger
from bizframe.core.settings import BizFrameSettings

logger = get_logger(__name__)

_MISSING = object()


class ResourceKind(Enum):
    """Kinds of named resources: (file extension, settings attribute of the package dir)."""

    METADATA = (".xml", "metadata_dir")
    TEMPLATE = (".tpl", "template_dir")
    LIBRARY = (".py", "library_dir")
    MESSAGE = (".yaml", "message_dir")

    @property
    def extension(self) -> str:
        return self.value[0]

    @property
    def settings_attr(self) -> str:
        return self.value[1]


# ── Parsers ──────────────────────────────────────────────────────────


def _element_to_dict(element: ET.Element) -> Any:
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return text

    result: dict[str, Any] = dict(element.attrib)
    for child in children:
        value = _element_to_dict(child)
        if child.tag in result:
            existing = result[child.tag]
            if not isinstance(existing, list):
                result[child.tag] = [existing]
            result[child.tag].append(value)
        else:
            result[child.tag] = value
    if text:
        result["_text"] = text
    return result


def _parse_xml(source: Path) -> Any:
    root = ET.parse(source).getroot()
    return {root.tag: _element_to_dict(root)}


def _parse_yaml(source: Path) -> Any:
    with source.open(encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _parse_json(source: Path) -> Any:
    with source.open(encoding="utf-8") as handle:
        return json.load(handle)


def _parse_toml(source: Path) -> Any:
    return tomllib.loads(source.read_text(encoding="utf-8"))


_PARSERS = {
    ".xml": _parse_xml,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".json": _parse_json,
    ".toml": _parse_toml,
}


class ResourceResolver:
    """Resolve logical names to files and load structured files through the compiled cache.

    One resolver is normally shared by every request of a process; the
    in-memory cache level is then shared too.
    """

    def __init__(self, settings: BizFrameSettings):
        self._settings = settings
        self._memory: dict[Path, tuple[int, Any]] = {}

    @property
    def settings(self) -> BizFrameSettings:
        return self._settings

    # ── Lookup ──────────────────────────────────────────────────────

    def candidates(self, name: str, kind: ResourceKind = ResourceKind.METADATA) -> list[Path]:
        """Every path :meth:`path_for` would try, in search order."""
        segments = name.split(".")
        if not name or any(
            not seg or seg == ".." or "/" in seg or "\\" in seg for seg in segments
        ):
            raise ResourceNotFound(name, message=f"Invalid resource name: {name!r}")

        relative = Path(*segments[:-1], segments[-1] + kind.extension)
        kind_dir: Path = getattr(self._settings, kind.settings_attr)
        shared = self._settings.shared_dir

        paths = [
            self._settings.module_dir / relative,
            kind_dir / relative,
            shared / relative,
        ]
        if len(segments) > 1:
            paths.append(shared / relative.name)
        return paths

    def path_for(self, name: str, kind: ResourceKind = ResourceKind.METADATA) -> Path:
        """Return the first existing file for ``name``; raise :class:`ResourceNotFound` otherwise."""
        searched = self.candidates(name, kind)
        for path in searched:
            if path.is_file():
                return path
        raise ResourceNotFound(name, searched=searched)

    # ── Compiled cache ──────────────────────────────────────────────

    def compiled_path(self, source: Path | str) -> Path:
        """Cache location of the compiled artifact for ``source``."""
        source = Path(source).resolve()
        try:
            key = source.relative_to(self._settings.app_dir).as_posix()
        except ValueError:
            key = source.as_posix()
        return self._settings.cache_dir / key.replace("/", "_").replace(":", "_")

    def load_structured(self, source: Path | str) -> Any:
        """Parsed content of ``source``, reusing a compiled form when it is fresh."""
        source = Path(source).resolve()
        try:
            source_mtime = source.stat().st_mtime_ns
        except FileNotFoundError:
            raise ResourceNotFound(str(source), searched=[source]) from None

        # Callers get a private copy; the cached value is shared across requests.
        cached = self._memory.get(source)
        if cached is not None and cached[0] >= source_mtime:
            return copy.deepcopy(cached[1])

        artifact = self.compiled_path(source)
        value = self._read_artifact(artifact, source, source_mtime)
        if value is _MISSING:
            value = self._parse(source)
            self._write_artifact(artifact, source, value, source_mtime)

        self._memory[source] = (source_mtime, value)
        return copy.deepcopy(value)

    def _parse(self, source: Path) -> Any:
        parser = _PARSERS.get(source.suffix.lower())
        if parser is None:
            raise BizFrameError(
                f"No parser for {source.suffix or 'extensionless'} file: {source}",
                category=ErrorCategory.RESOURCE,
            ).with_context(resource=str(source))
        try:
            value = parser(source)
        except (OSError, ET.ParseError, yaml.YAMLError, ValueError) as exc:
            raise BizFrameError(
                f"Cannot parse {source}: {exc}",
                category=ErrorCategory.RESOURCE,
                cause=exc,
            ).with_context(resource=str(source)) from exc
        logger.debug("resource_compiled", path=str(source))
        return value

    def _read_artifact(self, artifact: Path, source: Path, source_mtime: int) -> Any:
        """Unpickle a fresh artifact compiled from ``source``, else ``_MISSING``.

        Flattened names can collide (``a/b_c.xml`` and ``a_b/c.xml``), so the
        artifact records the source path it was compiled from.
        """
        try:
            if artifact.stat().st_mtime_ns < source_mtime:
                return _MISSING
            with artifact.open("rb") as handle:
                payload = pickle.load(handle)
        except FileNotFoundError:
            return _MISSING
        except (OSError, pickle.UnpicklingError, EOFError, AttributeError, ValueError) as exc:
            logger.warning("compiled_artifact_unreadable", path=str(artifact), error=str(exc))
            return _MISSING

        if not (isinstance(payload, tuple) and len(payload) == 2 and payload[0] == str(source)):
            logger.debug("compiled_artifact_mismatch", path=str(artifact), source=str(source))
            return _MISSING
        return payload[1]

    def _write_artifact(self, artifact: Path, source: Path, value: Any, source_mtime: int) -> None:
        try:
            artifact.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=artifact.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as handle:
                    pickle.dump((str(source), value), handle, protocol=pickle.HIGHEST_PROTOCOL)
                os.utime(tmp_name, ns=(source_mtime, source_mtime))
                os.replace(tmp_name, artifact)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("compiled_artifact_write_failed", path=str(artifact), error=str(exc))

    def clear_cache(self) -> int:
        """Drop both cache levels. Returns the number of artifact files removed."""
        self._memory.clear()
        cache_dir = self._settings.cache_dir
        if not cache_dir.is_dir():
            return 0
        removed = 0
        for path in cache_dir.iterdir():
            if path.is_file():
                path.unlink()
                removed += 1
        logger.info("compiled_cache_cleared", removed=removed)
        return removed

    # ── Messages ────────────────────────────────────────────────────

    def message_for(
        self,
        msg_id: str,
        params: tuple[Any, ...] | list[Any] | dict[str, Any] = (),
        catalog: str = "messages",
    ) -> str:
        """Look up ``msg_id`` in a message catalog and substitute ``params``.

        Unknown ids come back unchanged. Dotted ids fall back to a nested
        lookup (``"error.not_found"`` → ``catalog["error"]["not_found"]``).
        """
        messages = self.load_structured(self.path_for(catalog, ResourceKind.MESSAGE)) or {}

        text = messages.get(msg_id) if isinstance(messages, dict) else None
        if text is None and "." in msg_id:
            node: Any = messages
            for part in msg_id.split("."):
                node = node.get(part) if isinstance(node, dict) else None
            text = node
        if text is None:
            return msg_id

        text = str(text)
        if not params:
            return text
        try:
            return text % (params if isinstance(params, dict) else tuple(params))
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("message_format_failed", msg_id=msg_id, error=str(exc))
            return text


__all__ = [
    "ResourceKind",
    "ResourceResolver",
]
