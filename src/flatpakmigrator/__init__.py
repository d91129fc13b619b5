"""
FlatpakMigrator - replace apt and Snap applications with their Flatpak builds
"""

__version__ = "1.3.0"

from .core import FlatpakMigrator
from .errors import MigratorError

__all__ = ["FlatpakMigrator", "MigratorError"]
