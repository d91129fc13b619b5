"""Package mutation service: removals, installs and repository setup."""

from typing import List

from flatpakmigrator.errors import MigratorError
from flatpakmigrator.models import OperationResult, PackageSource


class PackageMutationService:
    """Runs mutating package-manager commands and reports them as results.

    No method raises for a failed command; the caller decides whether a
    failure is fatal.
    """

    def __init__(self, command_runner, logger, remote_name: str = "flathub", use_sudo: bool = False):
        self.command_runner = command_runner
        self.logger = logger
        self.remote_name = remote_name
        self.use_sudo = use_sudo

    def remove_legacy(self, source: PackageSource, identifier: str) -> OperationResult:
        if source == PackageSource.APT:
            return self._run(["apt", "remove", "--purge", "-y", identifier])
        if source == PackageSource.SNAP:
            return self._run(["snap", "remove", identifier])
        return OperationResult(ok=False, message=f"Cannot remove from source: {source.value}")

    def install_target(self, target_id: str) -> OperationResult:
        return self._run(["flatpak", "install", "-y", self.remote_name, target_id], elevate=False)

    def install_system(self, package_name: str) -> OperationResult:
        return self._run(["apt", "install", "-y", package_name])

    def refresh_index(self) -> OperationResult:
        return self._run(["apt", "update"])

    def add_remote(self, url: str) -> OperationResult:
        return self._run(
            ["flatpak", "remote-add", "--if-not-exists", self.remote_name, url],
            elevate=False,
        )

    def autoremove(self) -> OperationResult:
        return self._run(["apt", "autoremove", "-y"])

    def _run(self, cmd: List[str], elevate: bool = True) -> OperationResult:
        if elevate and self.use_sudo:
            cmd = ["sudo"] + cmd

        try:
            result = self.command_runner.run(cmd, check=False, capture_output=True)
        except MigratorError as exc:
            self.logger.warning("%s", exc)
            return OperationResult(ok=False, message=str(exc))

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"Command failed ({result.returncode}): {' '.join(cmd)}"
            if stderr:
                message = f"{message}\n{stderr}"
            return OperationResult(ok=False, message=message)

        return OperationResult(ok=True)
