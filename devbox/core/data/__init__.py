"""
Static data — release codenames and the built-in workstation plan.

    from devbox.core.data import DEFAULT_PLAN, foreign_release_markers
"""

from devbox.core.data.default_plan import DEFAULT_PLAN
from devbox.core.data.releases import (
    BACKPORT_MARKER,
    DEBIAN_RELEASES,
    foreign_release_markers,
    is_foreign_version,
)

__all__ = [
    "BACKPORT_MARKER",
    "DEBIAN_RELEASES",
    "DEFAULT_PLAN",
    "foreign_release_markers",
    "is_foreign_version",
]
