"""Actionable error catalog for FlatpakMigrator."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "already_running": {
        "what": "Another migration run is in progress (lock file {path} exists).",
        "next": "Wait for the other run to finish, or remove {path} if no run is active.",
    },
    "no_terminal": {
        "what": "No supported terminal found.",
        "next": "Run flatpak-migrator from an interactive terminal.",
    },
    "privileges": {
        "what": "Failed to obtain sudo privileges.",
        "next": "Run as root or make sure your user can use `sudo`.",
    },
    "index_refresh": {
        "what": "Failed to update the apt package list.",
        "next": "Check your network connection and apt sources, then run `sudo apt update`.",
    },
    "runtime_install": {
        "what": "Failed to install Flatpak.",
        "next": "Install it manually with `sudo apt install flatpak` and retry.",
    },
    "remote_add": {
        "what": "Failed to add the {remote} Flatpak repository.",
        "next": "Check that {url} is reachable, then retry.",
    },
    "legacy_removal": {
        "what": "Failed to remove {source} version of {name}.",
        "next": "Remove it manually and run the migration again.",
    },
    "autoremove": {
        "what": "Failed to auto-remove dependencies.",
        "next": "Run `sudo apt autoremove` manually to finish the cleanup.",
    },
    "system_install": {
        "what": "Failed to install {name} via apt.",
        "next": "Install it manually with `sudo apt install {package}` and retry.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
