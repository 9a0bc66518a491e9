"""
Pin rendering — apt preferences stanzas (pure).

Output is a function of the rule alone, never of installed versions,
so writing it is idempotent and safe to do preventively.
"""

from __future__ import annotations

from devbox.core.models.source import PinRule


def pin_expression(release_tag: str) -> str:
    """``bookworm`` → ``release n=bookworm``; ``a=stable`` kept as ``release a=stable``."""
    tag = release_tag.strip()
    if tag.startswith("release "):
        return tag
    if "=" in tag:
        return f"release {tag}"
    return f"release n={tag}"


def _stanza(packages: list[str], pin: str, priority: int) -> list[str]:
    return [
        f"Package: {' '.join(packages)}",
        f"Pin: {pin}",
        f"Pin-Priority: {priority}",
    ]


def render_pin(rule: PinRule) -> str:
    """Render ``rule`` as the full text of its preferences file.

    Combined rules produce one stanza. ``per_package`` rules produce
    one stanza per package, blank-line separated, after the comment
    header.
    """
    pin = pin_expression(rule.release_tag)
    lines = [f"# {c}" if not c.startswith("#") else c for c in rule.comment]

    if rule.per_package:
        for package in rule.package_patterns:
            if lines:
                lines.append("")
            lines.extend(_stanza([package], pin, rule.priority))
    else:
        lines.extend(_stanza(rule.package_patterns, pin, rule.priority))

    return "\n".join(lines) + "\n"
