"""
Repository line handling — pure text functions.

Only *active* lines are ever compared or rewritten: a line is active
when it starts with the ``deb`` keyword followed by whitespace.
Comments, blank lines, ``deb-src`` and anything malformed pass
through untouched. No I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

_ACTIVE = re.compile(r"^deb\s")

# Components that travel with another one, in canonical order.
COMPANION_COMPONENTS: dict[str, tuple[str, ...]] = {
    "non-free": ("non-free-firmware",),
}


def is_active(line: str) -> bool:
    """Whether ``line`` declares a live repository entry.

    The line ending is not whitespace here: a bare ``deb`` is malformed.
    """
    return bool(_ACTIVE.match(strip_eol(line)))


def normalize(line: str) -> str:
    """Whitespace-collapsed form used for duplicate detection.

    Field order and case are kept: two lines that differ only in
    the order of their fields are distinct entries.
    """
    return " ".join(line.split())


def split_lines(text: str) -> list[str]:
    """Split keeping line endings, so untouched lines survive byte-for-byte."""
    return text.splitlines(keepends=True)


def strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def has_active_entries(lines: Iterable[str]) -> bool:
    return any(is_active(line) for line in lines)


@dataclass
class FileDedup:
    """Per-file outcome of a deduplication pass."""

    path: Path
    kept: list[str]
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed)

    @property
    def empty(self) -> bool:
        """No active entries left."""
        return not has_active_entries(self.kept)


def plan_deduplication(files: Iterable[tuple[Path, str]]) -> list[FileDedup]:
    """Decide which active lines survive across ``files``.

    ``files`` must already be in processing order. The first
    occurrence of each normalized active line wins; later copies, in
    the same or a later file, are dropped.
    """
    seen: set[str] = set()
    plans: list[FileDedup] = []
    for path, text in files:
        plan = FileDedup(path=path, kept=[])
        for line in split_lines(text):
            if is_active(line):
                norm = normalize(line)
                if norm in seen:
                    plan.removed.append(norm)
                    continue
                seen.add(norm)
            plan.kept.append(line)
        plans.append(plan)
    return plans


def _word(token: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\S){re.escape(token)}(?!\S)")


def ensure_components(line: str, component: str) -> str:
    """Return ``line`` with ``component`` (and its companions) present.

    Missing tokens are inserted before the first companion that is
    already there, otherwise appended, so ``main non-free-firmware``
    plus ``non-free`` becomes ``main non-free non-free-firmware``.
    The rest of the line keeps its original spacing. Inactive lines
    and lines that already carry every token come back unchanged.
    """
    if not is_active(line):
        return line

    wanted = [component, *COMPANION_COMPONENTS.get(component, ())]
    body = strip_eol(line)
    eol = line[len(body):]

    for token in wanted:
        if _word(token).search(body):
            continue
        later = wanted[wanted.index(token) + 1:]
        anchors = [m for t in later if (m := _word(t).search(body))]
        if anchors:
            first = min(anchors, key=lambda m: m.start())
            body = f"{body[:first.start()]}{token} {body[first.start():]}"
        else:
            body = f"{body.rstrip()} {token}"
    return body + eol
