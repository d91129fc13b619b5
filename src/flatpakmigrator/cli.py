import logging
import os
import sys

import click
from rich.logging import RichHandler

from .core import DEFAULT_REMOTE_NAME, DEFAULT_REMOTE_URL, FlatpakMigrator, console
from .errors import MigratorError
from .services.config_loader import ConfigLoader
from .services.preflight import PreflightService


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--install-only-missing",
    is_flag=True,
    default=None,
    help="Skip applications whose Flatpak is already installed.",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .flatpakmigrator.yml if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--lock-file",
    required=False,
    type=click.Path(),
    help="Path to the single-instance lock file (default: /tmp/flatpak_app_installer.lock).",
)
@click.option(
    "--report-file",
    required=False,
    type=click.Path(),
    help="Write the final summary as JSON to this path.",
)
@click.option(
    "--no-relaunch",
    is_flag=True,
    default=False,
    help="Do not check for an interactive terminal or relaunch in one.",
)
def main(install_only_missing, config, verbose, log_file, lock_file, report_file, no_relaunch):
    """Replace apt and Snap installs of desktop applications with Flatpaks."""
    logger = logging.getLogger("flatpakmigrator")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".flatpakmigrator.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except MigratorError as exc:
        raise click.ClickException(str(exc)) from exc

    install_only_missing = bool(
        _resolve_option(install_only_missing, config_values, "install_only_missing", default=False)
    )
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    lock_file = _resolve_option(lock_file, config_values, "lock_file")
    report_file = _resolve_option(report_file, config_values, "report_file")
    catalog = config_values.get("catalog")
    retry_attempts = config_values.get("retry_attempts", 3)
    retry_delay_seconds = config_values.get("retry_delay_seconds", 2.0)
    remote_name = config_values.get("remote_name", DEFAULT_REMOTE_NAME)
    remote_url = config_values.get("remote_url", DEFAULT_REMOTE_URL)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    if not no_relaunch:
        preflight = PreflightService(logger=logger, console=console)
        terminal = preflight.ensure_interactive_terminal(sys.argv)
        if not terminal.ok:
            raise click.ClickException(terminal.message)
        if terminal.relaunched:
            raise SystemExit(0)

    migrator = FlatpakMigrator(
        install_only_missing=install_only_missing,
        catalog=catalog,
        lock_file=lock_file,
        report_file=report_file,
        retry_attempts=retry_attempts,
        retry_delay_seconds=retry_delay_seconds,
        remote_name=remote_name,
        remote_url=remote_url,
    )

    raise SystemExit(migrator.run())


if __name__ == "__main__":
    main()
