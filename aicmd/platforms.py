"""
Platform detection and the platform adapter.

Everything that differs between Unix-like systems and Windows (shell
detection, the command interpreter and the controlling terminal device)
lives behind `PlatformAdapter`, so the rest of the code can be tested with
a fake adapter.
"""

import logging
import os
import platform
import sys

from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, TextIO

logger = logging.getLogger(__name__)

DEFAULT_UNIX_SHELL = "bash"
DEFAULT_WINDOWS_SHELL = "powershell"

_OS_NAMES = {
    "Linux": "Linux",
    "Darwin": "macOS",
    "Windows": "Windows",
}


def detect_os(system: Optional[str] = None) -> str:
    """Maps the running platform to Linux, macOS or Windows (or the raw name)."""
    if system is None:
        system = platform.system()
    return _OS_NAMES.get(system, system)


class PlatformAdapter(ABC):
    terminal_device: str = ""

    def __init__(
        self,
        os_name: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        stdin: Optional[TextIO] = None,
    ):
        self.os_name = os_name if os_name is not None else detect_os()
        self.environ = environ if environ is not None else os.environ
        self._stdin = stdin

    @property
    def stdin(self) -> TextIO:
        return self._stdin if self._stdin is not None else sys.stdin

    @abstractmethod
    def shell_name(self) -> str:
        """The name of the user's shell. Never empty."""

    @abstractmethod
    def interpreter_args(self, command: str) -> List[str]:
        """The argv that runs `command` through the platform's command interpreter."""

    def read_terminal_line(self) -> str:
        """
        Reads one line from the controlling terminal, bypassing a piped stdin.

        Falls back to stdin when the terminal device can't be opened (no
        controlling terminal, e.g. CI). Raises EOFError when nothing could be
        read at all.
        """
        try:
            with open(self.terminal_device, "r", encoding="utf-8") as terminal:
                line = terminal.readline()
        except OSError as e:
            logger.debug("Cannot open %s (%s), reading from stdin", self.terminal_device, e)
            line = self.stdin.readline()

        if not line:
            raise EOFError
        return line.strip()


class UnixPlatform(PlatformAdapter):
    terminal_device = "/dev/tty"

    def shell_name(self) -> str:
        shell_path = self.environ.get("SHELL", "")
        name = shell_path.split("/")[-1]
        return name or DEFAULT_UNIX_SHELL

    def interpreter_args(self, command: str) -> List[str]:
        return ["sh", "-c", command]


class WindowsPlatform(PlatformAdapter):
    terminal_device = "CONIN$"

    def shell_name(self) -> str:
        if "PSVersionTable" in self.environ:
            return "powershell"
        if "powershell" in self.environ.get("TERM_PROGRAM", "").lower():
            return "powershell"
        if "cmd" in self.environ.get("ComSpec", "").lower():
            return "cmd"
        return DEFAULT_WINDOWS_SHELL

    def interpreter_args(self, command: str) -> List[str]:
        return ["cmd", "/C", command]


def current_platform(
    os_name: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> PlatformAdapter:
    """Selects the adapter for the running (or the given) OS."""
    if os_name is None:
        os_name = detect_os()
    if os_name == "Windows":
        return WindowsPlatform(os_name, environ)
    return UnixPlatform(os_name, environ)


def detect_shell(
    environ: Optional[Mapping[str, str]] = None, os_name: Optional[str] = None
) -> str:
    """Detects the user's shell name, e.g. `zsh`, `bash`, `powershell` or `cmd`."""
    return current_platform(os_name, environ).shell_name()
