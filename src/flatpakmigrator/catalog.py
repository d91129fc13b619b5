"""Applications migrated by default, and parsing of a configured catalog."""

from typing import Any, Dict, List

from .errors import MigratorError
from .models import CatalogEntry

DEFAULT_CATALOG: List[CatalogEntry] = [
    CatalogEntry("org.kde.yakuake", "yakuake", "Yakuake"),
    CatalogEntry("org.qbittorrent.qBittorrent", "qbittorrent", "qBittorrent"),
    CatalogEntry("org.libretro.RetroArch", "retroarch", "RetroArch"),
    CatalogEntry("net.pcsx2.PCSX2", "pcsx2", "PCSX2"),
    CatalogEntry("org.mozilla.firefox", "firefox", "Firefox"),
    CatalogEntry("com.valvesoftware.Steam", "steam", "Steam"),
    CatalogEntry("org.kde.kate", "kate", "Kate"),
    CatalogEntry("org.kde.gwenview", "gwenview", "Gwenview"),
    CatalogEntry("org.kde.spectacle", "spectacle", "Spectacle"),
    CatalogEntry("org.kde.okular", "okular", "Okular"),
    CatalogEntry("org.videolan.VLC", "vlc", "VLC"),
    CatalogEntry("org.kde.krita", "krita", "Krita"),
    # No Flatpak build exists; kept on apt.
    CatalogEntry("grsync", "grsync", "Grsync", apt_only=True),
]

_REQUIRED_FIELDS = ("target_package_id", "legacy_package_name", "display_name")


def parse_catalog(items: List[Dict[str, Any]]) -> List[CatalogEntry]:
    if not isinstance(items, list) or not items:
        raise MigratorError("Config key 'catalog' must be a non-empty list of applications.")

    entries: List[CatalogEntry] = []
    seen_ids = set()
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise MigratorError(f"Catalog item #{index} must be a mapping.")

        missing = [field for field in _REQUIRED_FIELDS if not item.get(field)]
        if missing:
            raise MigratorError(f"Catalog item #{index} is missing: {', '.join(missing)}")

        unknown = sorted(set(item) - set(_REQUIRED_FIELDS) - {"apt_only"})
        if unknown:
            raise MigratorError(f"Catalog item #{index} has unknown keys: {', '.join(unknown)}")

        target_id = str(item["target_package_id"])
        if target_id in seen_ids:
            raise MigratorError(f"Duplicate target_package_id in catalog: {target_id}")
        seen_ids.add(target_id)

        entries.append(
            CatalogEntry(
                target_package_id=target_id,
                legacy_package_name=str(item["legacy_package_name"]),
                display_name=str(item["display_name"]),
                apt_only=bool(item.get("apt_only", False)),
            )
        )
    return entries
