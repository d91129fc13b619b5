"""Environment checks that run before any package operation."""

import os
import shlex
import shutil
import subprocess
import sys
from typing import List, Optional

from flatpakmigrator.errors import MigratorError
from flatpakmigrator.errors_catalog import actionable_error
from flatpakmigrator.models import PreflightResult

TERMINALS = ("konsole", "gnome-terminal", "xterm")


class PreflightService:
    """Detects an interactive terminal and privilege elevation."""

    def __init__(
        self,
        logger,
        console,
        command_runner=None,
        environ=None,
        which=shutil.which,
        subprocess_module=subprocess,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.environ = os.environ if environ is None else environ
        self.which = which
        self.subprocess = subprocess_module

    def has_display(self) -> bool:
        return bool(self.environ.get("DISPLAY") or self.environ.get("WAYLAND_DISPLAY"))

    def ensure_interactive_terminal(self, argv: List[str], stdin_isatty: Optional[bool] = None) -> PreflightResult:
        if stdin_isatty is None:
            stdin_isatty = sys.stdin.isatty()
        if stdin_isatty:
            return PreflightResult(ok=True)

        if self.has_display():
            command = shlex.join(self.relaunch_argv(argv))
            for terminal in TERMINALS:
                if not self.which(terminal):
                    continue
                self.console.print(f"[yellow]Relaunching in {terminal}...[/yellow]")
                self.logger.info("Relaunching in %s: %s", terminal, command)
                self.subprocess.Popen(self._terminal_command(terminal, command))
                return PreflightResult(ok=True, relaunched=True, message=terminal)

        return PreflightResult(ok=False, message=actionable_error("no_terminal"))

    @staticmethod
    def relaunch_argv(argv: List[str]) -> List[str]:
        # `python -m flatpakmigrator` leaves the non-executable __main__.py in argv[0].
        if argv and argv[0].endswith("__main__.py"):
            return [sys.executable, "-m", "flatpakmigrator"] + list(argv[1:])
        return list(argv)

    @staticmethod
    def _terminal_command(terminal: str, command: str) -> List[str]:
        if terminal == "konsole":
            return ["konsole", "--noclose", "-e", "/bin/bash", "-c", command]
        if terminal == "gnome-terminal":
            return ["gnome-terminal", "--", "bash", "-c", f"{command}; exec bash"]
        return [terminal, "-hold", "-e", "/bin/bash", "-c", command]

    def ensure_privileges(self) -> PreflightResult:
        if os.geteuid() == 0:
            return PreflightResult(ok=True)

        self.console.print(
            "[yellow]This tool requires elevated privileges. Please enter your password.[/yellow]"
        )
        try:
            result = self.command_runner.run(["sudo", "-v"], check=False)
        except MigratorError as exc:
            self.logger.debug("sudo is unavailable: %s", exc)
            return PreflightResult(ok=False, message=actionable_error("privileges"))

        if result.returncode != 0:
            return PreflightResult(ok=False, message=actionable_error("privileges"))
        return PreflightResult(ok=True, needs_sudo=True)
