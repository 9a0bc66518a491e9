"""
Failure classification — map package-manager stderr to error types.

Parses stderr from failed apt/zypper calls for known patterns and
raises the matching ``ProvisionError`` subclass. Unknown failures
become ``CommandError`` with the stderr tail attached.
"""

from __future__ import annotations

import re

from devbox.adapters.shell.command import CommandResult, format_argv
from devbox.core.errors import (
    CommandError,
    PackageConflictError,
    PackageNotFoundError,
    ProvisionError,
    TransientNetworkError,
)

# ── apt ─────────────────────────────────────────────────────────

_APT_NOT_FOUND = [
    re.compile(r"Unable to locate package (\S+)"),
    re.compile(r"Package '?(\S+?)'? has no installation candidate"),
    re.compile(r"Version '[^']+' for '(\S+)' was not found"),
]
_APT_CONFLICT = [
    re.compile(r"held broken packages"),
    re.compile(r"Unmet dependencies"),
    re.compile(r"^\s*(\S+) : (?:Depends|Breaks|Conflicts):", re.MULTILINE),
    re.compile(r"Packages were downgraded and -y was used without --allow-downgrades"),
]
_APT_CONFLICT_PKG = re.compile(r"^\s*(\S+) : (?:Depends|Breaks|Conflicts):", re.MULTILINE)
_APT_NETWORK = [
    re.compile(r"Temporary failure resolving"),
    re.compile(r"Failed to fetch"),
    re.compile(r"Could not resolve"),
    re.compile(r"Could not connect to"),
    re.compile(r"Some index files failed to download"),
    re.compile(r"Connection failed"),
]

# ── zypper ──────────────────────────────────────────────────────

_ZYPPER_NOT_FOUND = [
    re.compile(r"'(\S+?)' not found in package names"),
    re.compile(r"No provider of '(\S+?)' found"),
    re.compile(r"Package '(\S+?)' not found"),
]
_ZYPPER_CONFLICT = [
    re.compile(r"^Problem:", re.MULTILINE),
    re.compile(r"is locked"),
]
_ZYPPER_NETWORK = [
    re.compile(r"Download \(curl\) error"),
    re.compile(r"Valid metadata not found"),
    re.compile(r"Could not resolve host"),
    re.compile(r"Timeout exceeded when accessing"),
]

# zypper exit codes (man zypper): 104 = capability not found,
# 106 = some repos refresh failed.
_ZYPPER_EXIT_NOT_FOUND = 104
_ZYPPER_EXIT_REPOS_SKIPPED = 106


def _names(patterns: list[re.Pattern[str]], text: str) -> list[str]:
    found: list[str] = []
    for pat in patterns:
        for m in pat.finditer(text):
            if m.groups() and m.group(1) not in found:
                found.append(m.group(1))
    return found


def _matches(patterns: list[re.Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def classify_apt_failure(result: CommandResult) -> ProvisionError:
    """Turn a failed apt-get/dpkg result into a typed error."""
    text = f"{result.stderr}\n{result.stdout[-2000:]}"
    cmd = format_argv(result.argv)

    missing = _names(_APT_NOT_FOUND, text)
    if missing:
        return PackageNotFoundError(
            f"Unknown package(s): {', '.join(missing)}", packages=missing,
        )
    if _matches(_APT_CONFLICT, text):
        offenders = _names([_APT_CONFLICT_PKG], text)
        detail = f": {', '.join(offenders)}" if offenders else ""
        return PackageConflictError(
            f"Held or pinned constraint violated{detail}", packages=offenders,
        )
    if _matches(_APT_NETWORK, text):
        return TransientNetworkError(f"Repository unreachable during: {cmd}")

    return CommandError(
        f"Command failed (exit {result.returncode}): {cmd}",
        returncode=result.returncode,
        stderr=result.stderr,
    )


def classify_zypper_failure(result: CommandResult) -> ProvisionError:
    """Turn a failed zypper/rpm result into a typed error."""
    text = f"{result.stderr}\n{result.stdout[-2000:]}"
    cmd = format_argv(result.argv)

    missing = _names(_ZYPPER_NOT_FOUND, text)
    if missing or result.returncode == _ZYPPER_EXIT_NOT_FOUND:
        return PackageNotFoundError(
            f"Unknown package(s): {', '.join(missing) or '?'}", packages=missing,
        )
    if _matches(_ZYPPER_CONFLICT, text):
        return PackageConflictError("Dependency problem or package lock")
    if _matches(_ZYPPER_NETWORK, text) or result.returncode == _ZYPPER_EXIT_REPOS_SKIPPED:
        return TransientNetworkError(f"Repository unreachable during: {cmd}")

    return CommandError(
        f"Command failed (exit {result.returncode}): {cmd}",
        returncode=result.returncode,
        stderr=result.stderr,
    )
