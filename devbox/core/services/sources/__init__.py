"""
Repository sources — entry lines, pins, signing keys.

    from devbox.core.services.sources import SourceRegistry
"""

from devbox.core.services.sources.keys import SigningKeyInstaller, fetch_url
from devbox.core.services.sources.pins import render_pin
from devbox.core.services.sources.registry import FOREIGN_PIN_ID, SourceEntry, SourceRegistry

__all__ = [
    "FOREIGN_PIN_ID",
    "SigningKeyInstaller",
    "SourceEntry",
    "SourceRegistry",
    "fetch_url",
    "render_pin",
]
