"""Client proxy — queue of browser-side actions for the current request.

Application code does not write responses. It asks the proxy to redirect,
show a message, update a form or run a script; the front controller
renders the queued actions (``render()``) into whatever response format it
speaks.

Example:
    >>> proxy = ClientProxy({"fld_name": "ACME"})
    >>> proxy.form_input("fld_name")
    'ACME'
    >>> proxy.show_error("Name is required")
    >>> proxy.render()
    {'actions': [{'type': 'error', 'message': 'Name is required'}]}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClientAction:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.payload}


class ClientProxy:
    """Collects client actions and exposes submitted form inputs."""

    def __init__(self, form_inputs: Mapping[str, Any] | None = None):
        self._inputs: dict[str, Any] = dict(form_inputs or {})
        self._actions: list[ClientAction] = []

    # ── Form inputs ─────────────────────────────────────────────────

    def form_input(self, name: str, default: Any = None) -> Any:
        return self._inputs.get(name, default)

    def form_inputs(self) -> dict[str, Any]:
        return dict(self._inputs)

    def set_form_inputs(self, inputs: Mapping[str, Any]) -> None:
        self._inputs = dict(inputs)

    # ── Actions ─────────────────────────────────────────────────────

    def redirect(self, url: str) -> None:
        self._actions.append(ClientAction("redirect", {"url": url}))

    def show_error(self, message: str) -> None:
        self._actions.append(ClientAction("error", {"message": message}))

    def show_message(self, message: str) -> None:
        self._actions.append(ClientAction("message", {"message": message}))

    def update_form(self, form: str, html: str) -> None:
        self._actions.append(ClientAction("update_form", {"form": form, "html": html}))

    def run_script(self, script: str) -> None:
        self._actions.append(ClientAction("script", {"script": script}))

    @property
    def actions(self) -> list[ClientAction]:
        return list(self._actions)

    @property
    def has_redirect(self) -> bool:
        return any(action.type == "redirect" for action in self._actions)

    def render(self) -> dict[str, Any]:
        """Serializable form of the queued actions."""
        return {"actions": [action.to_dict() for action in self._actions]}

    def clear(self) -> None:
        self._actions.clear()


__all__ = [
    "ClientAction",
    "ClientProxy",
]
