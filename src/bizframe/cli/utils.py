"""
CLI utility helpers — consoles and settings loading.
"""

from __future__ import annotations

from rich.console import Console

from bizframe.core.settings import BizFrameSettings, get_settings

console = Console()
err_console = Console(stderr=True)


def load_settings() -> BizFrameSettings:
    """Settings for CLI commands (``BIZFRAME_*`` environment and ``.env``)."""
    return get_settings()
