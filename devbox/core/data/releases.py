"""
Release data — Debian codenames and foreign-release markers.

Pure data plus one pure helper. No I/O.
"""

from __future__ import annotations

# codename -> major version
DEBIAN_RELEASES: dict[str, int] = {
    "buster": 10,
    "bullseye": 11,
    "bookworm": 12,
    "trixie": 13,
    "forky": 14,
    "duke": 15,
}

# Backport versions carry "~bpo<major>+N"; without a known major only the
# bare prefix can be matched.
BACKPORT_MARKER = "~bpo"


def foreign_release_markers(local_release_tag: str) -> list[str]:
    """Version-string markers that betray a package from another release.

    For ``bookworm`` this is ``["trixie", "deb13", "~bpo13"]``: the next
    release's codename, its ``debNN`` revision suffix and its backports.
    Backports built for the local release (``~bpo12`` on bookworm) are not
    foreign. Unknown codenames (rolling distributions) only get the bare
    backport marker.
    """
    major = DEBIAN_RELEASES.get(local_release_tag.lower())
    if major is None:
        return [BACKPORT_MARKER]

    markers: list[str] = []
    for codename, version in DEBIAN_RELEASES.items():
        if version == major + 1:
            markers.append(codename)
            markers.append(f"deb{version}")
            markers.append(f"{BACKPORT_MARKER}{version}")
    return markers


def is_foreign_version(version: str, markers: list[str]) -> bool:
    """Whether ``version`` carries any of ``markers``."""
    return any(m in version for m in markers)
