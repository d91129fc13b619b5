"""Configuration loader for FlatpakMigrator."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from flatpakmigrator.catalog import parse_catalog
from flatpakmigrator.errors import MigratorError


class ConfigLoader:
    """Loads and type-checks the YAML file that provides CLI defaults.

    A `catalog` list is returned already parsed into CatalogEntry objects.
    """

    FLAG_KEYS = {"install_only_missing", "verbose"}
    PATH_KEYS = {"log_file", "lock_file", "report_file"}
    NAME_KEYS = {"remote_name", "remote_url"}
    SUPPORTED_KEYS = FLAG_KEYS | PATH_KEYS | NAME_KEYS | {
        "retry_attempts",
        "retry_delay_seconds",
        "catalog",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise MigratorError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise MigratorError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise MigratorError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise MigratorError(f"Unknown configuration keys: {unknown_list}")

        return {key: self._validate(key, value) for key, value in parsed.items()}

    def _validate(self, key: str, value: Any) -> Any:
        if key in self.FLAG_KEYS:
            if not isinstance(value, bool):
                raise MigratorError(f"Config key '{key}' must be true or false, got {value!r}.")
            return value

        if key in self.PATH_KEYS or key in self.NAME_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise MigratorError(f"Config key '{key}' must be a non-empty string.")
            return value.strip()

        if key == "retry_attempts":
            # bool is an int subclass; `retry_attempts: yes` is a mistake.
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise MigratorError(f"Config key 'retry_attempts' must be a positive integer, got {value!r}.")
            return value

        if key == "retry_delay_seconds":
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise MigratorError(
                    f"Config key 'retry_delay_seconds' must be a non-negative number, got {value!r}."
                )
            return float(value)

        return parse_catalog(value)
