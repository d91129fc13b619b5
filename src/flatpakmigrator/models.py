"""Shared domain models for FlatpakMigrator."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PackageSource(str, Enum):
    APT = "apt"
    SNAP = "snap"
    FLATPAK = "flatpak"


class OutcomePhase(str, Enum):
    REMOVED_LEGACY = "removed-legacy"
    INSTALLED_TARGET = "installed-target"
    ALREADY_PRESENT = "already-present"
    SKIPPED = "skipped"
    FAILED = "failed"
    INSTALLED_SYSTEM = "installed-system"
    SYSTEM_PRESENT = "system-present"
    CONFIGURED = "configured"


@dataclass(frozen=True)
class CatalogEntry:
    """One application to migrate, identified under each package source."""

    target_package_id: str
    legacy_package_name: str
    display_name: str
    apt_only: bool = False


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of a single orchestration step."""

    display_name: str
    phase: OutcomePhase
    detail: str
    source: Optional[PackageSource] = None


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    message: str = ""
    attempts: int = 1


@dataclass(frozen=True)
class RunOptions:
    install_only_missing: bool = False


@dataclass(frozen=True)
class PreflightResult:
    """Outcome of an environment capability check."""

    ok: bool
    message: str = ""
    relaunched: bool = False
    needs_sudo: bool = False
