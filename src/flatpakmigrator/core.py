import logging
from typing import Iterable, Optional

from rich.console import Console

from .catalog import DEFAULT_CATALOG
from .errors import AlreadyRunningError, FatalStepError, MigratorError
from .errors_catalog import actionable_error
from .models import CatalogEntry, MigrationOutcome, OutcomePhase, PackageSource, RunOptions
from .services.command_runner import CommandRunner
from .services.package_mutation import PackageMutationService
from .services.package_query import PackageQueryService
from .services.preflight import PreflightService
from .services.report import ReportService
from .services.retry import RetryPolicy
from .services.run_guard import DEFAULT_LOCK_FILE, RunGuard

console = Console()
logger = logging.getLogger("flatpakmigrator")

DEFAULT_REMOTE_NAME = "flathub"
DEFAULT_REMOTE_URL = "https://flathub.org/repo/flathub.flatpakrepo"

_SOURCE_LABELS = {
    PackageSource.APT: "apt",
    PackageSource.SNAP: "Snap",
}


class FlatpakMigrator:
    def __init__(
        self,
        install_only_missing: bool = False,
        catalog: Optional[Iterable[CatalogEntry]] = None,
        lock_file: Optional[str] = None,
        report_file: Optional[str] = None,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 2.0,
        remote_name: str = DEFAULT_REMOTE_NAME,
        remote_url: str = DEFAULT_REMOTE_URL,
    ):
        self.options = RunOptions(install_only_missing=install_only_missing)
        self.catalog = list(catalog) if catalog is not None else list(DEFAULT_CATALOG)
        self.lock_file = lock_file or DEFAULT_LOCK_FILE
        self.report_file = report_file
        self.remote_name = remote_name
        self.remote_url = remote_url
        self.removed_packages = False

        self.command_runner = CommandRunner(logger=logger)
        self.run_guard = RunGuard(lock_file=self.lock_file, logger=logger)
        self.preflight_service = PreflightService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.query_service = PackageQueryService(command_runner=self.command_runner, logger=logger)
        self.mutation_service = PackageMutationService(
            command_runner=self.command_runner,
            logger=logger,
            remote_name=self.remote_name,
        )
        self.retry_policy = RetryPolicy(
            logger=logger,
            max_attempts=retry_attempts,
            delay_seconds=retry_delay_seconds,
        )
        self.report = ReportService(logger=logger, console=console)

    def ensure_privileges(self):
        result = self.preflight_service.ensure_privileges()
        if not result.ok:
            raise MigratorError(result.message)
        self.mutation_service.use_sudo = result.needs_sudo

    def refresh_package_index(self):
        console.print("[cyan]Updating package list...[/cyan]")
        if not self.mutation_service.refresh_index().ok:
            raise MigratorError(actionable_error("index_refresh"))

    def ensure_flatpak_runtime(self):
        console.print("[cyan]Checking if Flatpak is installed...[/cyan]")
        if self.query_service.is_installed_via(PackageSource.APT, "flatpak"):
            self._record("Flatpak", OutcomePhase.SYSTEM_PRESENT, "Flatpak was already installed", PackageSource.APT)
            return

        console.print("[yellow]Flatpak is not installed. Installing Flatpak...[/yellow]")
        if not self.mutation_service.install_system("flatpak").ok:
            raise MigratorError(actionable_error("runtime_install"))
        self._record("Flatpak", OutcomePhase.INSTALLED_SYSTEM, "Installed Flatpak", PackageSource.APT)

    def add_remote(self):
        console.print(f"[cyan]Adding {self.remote_name} repository if not already added...[/cyan]")
        if not self.mutation_service.add_remote(self.remote_url).ok:
            self._fail(
                self.remote_name,
                f"Failed to add {self.remote_name} repository",
                actionable_error("remote_add", remote=self.remote_name, url=self.remote_url),
            )
        self._record(
            self.remote_name,
            OutcomePhase.CONFIGURED,
            f"Added {self.remote_name} repository (if not already present)",
            PackageSource.FLATPAK,
        )

    def is_target_installed(self, entry: CatalogEntry) -> bool:
        return self.query_service.is_installed_via(PackageSource.FLATPAK, entry.target_package_id)

    def remove_legacy(self, entry: CatalogEntry, source: PackageSource):
        if not self.query_service.is_installed_via(source, entry.legacy_package_name):
            return

        label = _SOURCE_LABELS[source]
        name = entry.display_name
        console.print(f"[yellow]{name} is installed via {label}. Removing it...[/yellow]")
        result = self.mutation_service.remove_legacy(source, entry.legacy_package_name)
        if not result.ok:
            logger.debug(result.message)
            self._fail(
                name,
                f"Failed to remove {label} version of {name}",
                actionable_error("legacy_removal", source=label, name=name),
                source=source,
            )

        self._record(name, OutcomePhase.REMOVED_LEGACY, f"Removed {label} version of {name}", source)
        self.removed_packages = True

    def migrate_entry(self, entry: CatalogEntry):
        """Moves one application to Flatpak.

        Legacy removal failures raise FatalStepError. A failed install is
        recorded and the run goes on with the next entry.
        """
        name = entry.display_name

        if self.options.install_only_missing and self.is_target_installed(entry):
            console.print(f"[cyan]{name} is already installed. Skipping.[/cyan]")
            self._record(name, OutcomePhase.SKIPPED, f"Skipped {name}: already installed via Flatpak", PackageSource.FLATPAK)
            return

        console.print(f"[cyan]Checking if {name} is installed...[/cyan]")
        self.remove_legacy(entry, PackageSource.APT)
        self.remove_legacy(entry, PackageSource.SNAP)

        if self.is_target_installed(entry):
            self._record(name, OutcomePhase.ALREADY_PRESENT, f"{name} was already installed via Flatpak", PackageSource.FLATPAK)
            return

        console.print(f"[yellow]{name} is not installed via Flatpak. Installing...[/yellow]")
        result = self.retry_policy.with_retry(
            lambda: self.mutation_service.install_target(entry.target_package_id),
            name,
        )
        if result.ok:
            self._record(name, OutcomePhase.INSTALLED_TARGET, f"Installed {name} via Flatpak", PackageSource.FLATPAK)
        else:
            self._record(name, OutcomePhase.FAILED, result.message, PackageSource.FLATPAK)

    def install_system_utility(self, entry: CatalogEntry):
        name = entry.display_name
        console.print(f"[cyan]Checking if {name} is installed...[/cyan]")
        if self.query_service.is_installed_via(PackageSource.APT, entry.legacy_package_name):
            self._record(name, OutcomePhase.SYSTEM_PRESENT, f"{name} was already installed via apt", PackageSource.APT)
            return

        console.print(f"[yellow]{name} is not installed. Installing via apt...[/yellow]")
        if not self.mutation_service.install_system(entry.legacy_package_name).ok:
            self._fail(
                name,
                f"Failed to install {name} via apt",
                actionable_error("system_install", name=name, package=entry.legacy_package_name),
                source=PackageSource.APT,
            )
        self._record(name, OutcomePhase.INSTALLED_SYSTEM, f"Installed {name} via apt", PackageSource.APT)

    def cleanup_dependencies(self):
        if not self.removed_packages:
            return

        console.print("[cyan]Removing unused dependencies...[/cyan]")
        if not self.mutation_service.autoremove().ok:
            self._fail("apt", "Failed to auto-remove dependencies", actionable_error("autoremove"))
        self._record("apt", OutcomePhase.CONFIGURED, "Auto-removed unused dependencies", PackageSource.APT)

    def _record(self, name: str, phase: OutcomePhase, detail: str, source: Optional[PackageSource] = None):
        self.report.record(MigrationOutcome(display_name=name, phase=phase, detail=detail, source=source))

    def _fail(self, name: str, detail: str, message: str, source: Optional[PackageSource] = None):
        outcome = MigrationOutcome(display_name=name, phase=OutcomePhase.FAILED, detail=detail, source=source)
        self.report.record(outcome)
        raise FatalStepError(message, outcome=outcome)

    def _migrate_catalog(self):
        self.ensure_privileges()
        self.refresh_package_index()
        self.ensure_flatpak_runtime()
        self.add_remote()

        total_steps = len(self.catalog)
        for current_step, entry in enumerate(self.catalog, start=1):
            console.print(
                f"[cyan]Step {current_step}/{total_steps}: Installing {entry.display_name}...[/cyan]"
            )
            if entry.apt_only:
                self.install_system_utility(entry)
            else:
                self.migrate_entry(entry)

        self.cleanup_dependencies()

    def run(self) -> int:
        try:
            logger.info("Starting FlatpakMigrator...")
            with self.run_guard:
                self._migrate_catalog()
        except AlreadyRunningError as exc:
            console.print(f"[bold red]Already running:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except MigratorError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1

        self.report.render()
        if self.report_file and self.report.write_json(self.report_file):
            logger.info("Report written to %s", self.report_file)
        return 0
