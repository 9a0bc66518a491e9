"""Shell adapters — command execution, file writes and service control."""

from devbox.adapters.shell.command import CommandResult, CommandRunner, format_argv
from devbox.adapters.shell.filesystem import FileWriter, read_text
from devbox.adapters.shell.service import ServiceManager

__all__ = [
    "CommandResult",
    "CommandRunner",
    "FileWriter",
    "ServiceManager",
    "format_argv",
    "read_text",
]
