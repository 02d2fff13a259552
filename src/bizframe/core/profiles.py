"""User profile providers.

The profile service is an application object reached by name. Two service
shapes exist, and which one an application uses is declared up front
(``BIZFRAME_PROFILE_MODE``) rather than discovered by probing methods:

- ``init``: the service builds a profile with ``init_profile(user_id)``;
  the profile is stored in the session and attribute lookups read it
  from there.
- ``read_only``: the service answers ``get_profile(arg)`` for both the
  initial load and every attribute lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bizframe.core.session import SessionStore

PROFILE_SESSION_KEY = "_USER_PROFILE"


class ProfileProvider(ABC):
    """Adapter between the registry and an application profile service."""

    def __init__(self, service: Any):
        self.service = service

    @abstractmethod
    def init_profile(self, user_id: Any, session: SessionStore) -> Any:
        """Load the profile for ``user_id`` and store it in the session."""

    @abstractmethod
    def attribute(self, name: str | None, session: SessionStore) -> Any:
        """One profile attribute, or the whole profile when ``name`` is ``None``."""

    def profile_name(self, account_id: Any) -> Any:
        """Display name of the profile behind ``account_id``."""
        return self.service.get_profile_name(account_id)


class InitProfileProvider(ProfileProvider):
    def init_profile(self, user_id: Any, session: SessionStore) -> Any:
        profile = self.service.init_profile(user_id)
        session.set_var(PROFILE_SESSION_KEY, profile)
        return profile

    def attribute(self, name: str | None, session: SessionStore) -> Any:
        profile = session.get_var(PROFILE_SESSION_KEY)
        if name is None:
            return profile
        if isinstance(profile, dict):
            return profile.get(name, "")
        return ""


class ReadOnlyProfileProvider(ProfileProvider):
    def init_profile(self, user_id: Any, session: SessionStore) -> Any:
        profile = self.service.get_profile(user_id)
        session.set_var(PROFILE_SESSION_KEY, profile)
        return profile

    def attribute(self, name: str | None, session: SessionStore) -> Any:
        return self.service.get_profile(name)


PROFILE_PROVIDERS: dict[str, type[ProfileProvider]] = {
    "init": InitProfileProvider,
    "read_only": ReadOnlyProfileProvider,
}


def wrap_profile_service(service: Any, mode: str) -> ProfileProvider:
    """Wrap ``service`` in the provider for ``mode``; providers pass through."""
    if isinstance(service, ProfileProvider):
        return service
    return PROFILE_PROVIDERS[mode](service)


__all__ = [
    "PROFILE_SESSION_KEY",
    "ProfileProvider",
    "InitProfileProvider",
    "ReadOnlyProfileProvider",
    "PROFILE_PROVIDERS",
    "wrap_profile_service",
]
