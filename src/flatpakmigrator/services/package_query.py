"""Read-only package presence queries for apt, snap and Flatpak."""

from flatpakmigrator.errors import MigratorError
from flatpakmigrator.models import PackageSource


class PackageQueryService:
    """Answers whether an application is installed under a given source.

    Snap and Flatpak lookups match the identifier as a substring of the
    installed list, so a name contained in another package's name reports
    as installed. Callers rely on this loose match for skip decisions.
    """

    def __init__(self, command_runner, logger):
        self.command_runner = command_runner
        self.logger = logger

    def is_installed_via(self, source: PackageSource, identifier: str) -> bool:
        if source == PackageSource.APT:
            return self._apt_installed(identifier)
        if source == PackageSource.SNAP:
            return identifier in self._list_output(["snap", "list"])
        if source == PackageSource.FLATPAK:
            return identifier in self._list_output(["flatpak", "list", "--app"])
        raise MigratorError(f"Unsupported package source: {source}")

    def _apt_installed(self, package_name: str) -> bool:
        result = self.command_runner.run(
            ["dpkg", "-s", package_name],
            check=False,
            capture_output=True,
        )
        installed = result.returncode == 0
        self.logger.debug("apt package %s installed: %s", package_name, installed)
        return installed

    def _list_output(self, cmd) -> str:
        result = self.command_runner.run(cmd, check=True, capture_output=True)
        return result.stdout or ""
