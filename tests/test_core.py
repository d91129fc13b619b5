import json

import pytest

from flatpakmigrator.core import FlatpakMigrator
from flatpakmigrator.models import CatalogEntry, OperationResult, OutcomePhase, PackageSource, PreflightResult

CATALOG = [
    CatalogEntry("org.kde.kate", "kate", "Kate"),
    CatalogEntry("org.videolan.VLC", "vlc", "VLC"),
    CatalogEntry("grsync", "grsync", "Grsync", apt_only=True),
]


class FakeSystem:
    """In-memory package state shared by the fake query and mutation services."""

    def __init__(self, apt=(), snap=(), flatpak=(), fail_remove=(), fail_install=(), fail=()):
        self.installed = {
            PackageSource.APT: set(apt) | {"flatpak"},
            PackageSource.SNAP: set(snap),
            PackageSource.FLATPAK: set(flatpak),
        }
        self.fail_remove = set(fail_remove)
        self.fail_install = set(fail_install)
        self.fail = set(fail)
        self.queries = []
        self.mutations = []
        self.use_sudo = False

    def is_installed_via(self, source, identifier):
        self.queries.append((source, identifier))
        return identifier in self.installed[source]

    def _result(self, key):
        if key in self.fail:
            return OperationResult(ok=False, message=f"{key} failed")
        return OperationResult(ok=True)

    def remove_legacy(self, source, identifier):
        self.mutations.append(("remove", source, identifier))
        if identifier in self.fail_remove:
            return OperationResult(ok=False, message="removal failed")
        self.installed[source].discard(identifier)
        return OperationResult(ok=True)

    def install_target(self, target_id):
        self.mutations.append(("install", target_id))
        if target_id in self.fail_install:
            return OperationResult(ok=False, message="network error")
        self.installed[PackageSource.FLATPAK].add(target_id)
        return OperationResult(ok=True)

    def install_system(self, package_name):
        self.mutations.append(("install_system", package_name))
        result = self._result(package_name)
        if result.ok:
            self.installed[PackageSource.APT].add(package_name)
        return result

    def refresh_index(self):
        self.mutations.append(("refresh_index",))
        return self._result("refresh_index")

    def add_remote(self, url):
        self.mutations.append(("add_remote", url))
        return self._result("add_remote")

    def autoremove(self):
        self.mutations.append(("autoremove",))
        return self._result("autoremove")

    def entry_mutations(self):
        return [m for m in self.mutations if m[0] in ("remove", "install", "install_system")]


class FakePreflight:
    def __init__(self, ok=True):
        self.ok = ok

    def ensure_privileges(self):
        if not self.ok:
            return PreflightResult(ok=False, message="Failed to obtain sudo privileges.")
        return PreflightResult(ok=True, needs_sudo=True)


@pytest.fixture
def lock_file(tmp_path):
    return tmp_path / "flatpak_app_installer.lock"


def build_migrator(system, lock_file, sleeps=None, preflight_ok=True, **kwargs):
    migrator = FlatpakMigrator(catalog=CATALOG, lock_file=str(lock_file), **kwargs)
    migrator.query_service = system
    migrator.mutation_service = system
    migrator.preflight_service = FakePreflight(ok=preflight_ok)
    migrator.retry_policy.sleep = (sleeps if sleeps is not None else []).append
    return migrator


def phases_for(migrator, name):
    return [o.phase for o in migrator.report.outcomes if o.display_name == name]


def test_fully_migrated_entries_are_skipped_without_mutations(lock_file):
    system = FakeSystem(apt={"grsync"}, flatpak={"org.kde.kate", "org.videolan.VLC"})
    migrator = build_migrator(system, lock_file, install_only_missing=True)

    assert migrator.run() == 0

    assert phases_for(migrator, "Kate") == [OutcomePhase.SKIPPED]
    assert phases_for(migrator, "VLC") == [OutcomePhase.SKIPPED]
    assert system.entry_mutations() == []
    assert ("autoremove",) not in system.mutations


def test_legacy_installs_are_removed_before_flatpak_install(lock_file):
    system = FakeSystem(apt={"kate", "grsync"}, snap={"kate"})
    migrator = build_migrator(system, lock_file)

    assert migrator.run() == 0

    assert phases_for(migrator, "Kate") == [
        OutcomePhase.REMOVED_LEGACY,
        OutcomePhase.REMOVED_LEGACY,
        OutcomePhase.INSTALLED_TARGET,
    ]
    assert system.mutations.index(("remove", PackageSource.APT, "kate")) < system.mutations.index(
        ("install", "org.kde.kate")
    )
    assert "kate" not in system.installed[PackageSource.APT]
    assert "kate" not in system.installed[PackageSource.SNAP]
    assert "org.kde.kate" in system.installed[PackageSource.FLATPAK]
    assert system.mutations.count(("autoremove",)) == 1
    assert system.mutations[-1] == ("autoremove",)
    assert system.use_sudo is True


def test_second_run_only_reports_present_entries(lock_file):
    system = FakeSystem(apt={"vlc"}, snap={"kate"})

    assert build_migrator(system, lock_file).run() == 0
    second = build_migrator(system, lock_file)
    assert second.run() == 0

    phases = {o.phase for o in second.report.outcomes}
    assert OutcomePhase.REMOVED_LEGACY not in phases
    assert phases_for(second, "Kate") == [OutcomePhase.ALREADY_PRESENT]
    assert phases_for(second, "VLC") == [OutcomePhase.ALREADY_PRESENT]
    assert phases_for(second, "Grsync") == [OutcomePhase.SYSTEM_PRESENT]


def test_install_retry_exhaustion_records_one_failure_and_continues(lock_file):
    system = FakeSystem(fail_install={"org.kde.kate"})
    sleeps = []
    migrator = build_migrator(system, lock_file, sleeps=sleeps)

    assert migrator.run() == 0

    assert system.mutations.count(("install", "org.kde.kate")) == 3
    assert sleeps == [2.0, 2.0]
    assert phases_for(migrator, "Kate") == [OutcomePhase.FAILED]
    assert phases_for(migrator, "VLC") == [OutcomePhase.INSTALLED_TARGET]
    assert len(migrator.report.failures) == 1


def test_held_lock_exits_without_package_operations(lock_file):
    lock_file.write_text("4242\n", encoding="utf-8")
    system = FakeSystem()
    migrator = build_migrator(system, lock_file)

    assert migrator.run() == 1

    assert system.queries == []
    assert system.mutations == []
    assert lock_file.exists()


def test_lock_is_released_after_success_and_after_fatal_error(lock_file):
    assert build_migrator(FakeSystem(), lock_file).run() == 0
    assert not lock_file.exists()

    assert build_migrator(FakeSystem(fail={"refresh_index"}), lock_file).run() == 1
    assert not lock_file.exists()


def test_removal_failure_stops_before_next_entry_and_skips_report(lock_file, monkeypatch):
    system = FakeSystem(apt={"kate", "vlc"}, fail_remove={"kate"})
    migrator = build_migrator(system, lock_file)
    rendered = {"value": False}
    monkeypatch.setattr(migrator.report, "render", lambda: rendered.__setitem__("value", True))

    assert migrator.run() == 1

    assert phases_for(migrator, "Kate") == [OutcomePhase.FAILED]
    assert all(identifier not in ("vlc", "org.videolan.VLC") for _, identifier in system.queries)
    assert ("install", "org.kde.kate") not in system.mutations
    assert ("autoremove",) not in system.mutations
    assert rendered["value"] is False
    assert not lock_file.exists()


@pytest.mark.parametrize("failing_step", ["refresh_index", "add_remote", "autoremove", "grsync"])
def test_fatal_setup_and_cleanup_failures_exit_one(lock_file, failing_step):
    system = FakeSystem(apt={"kate"}, fail={failing_step})
    migrator = build_migrator(system, lock_file)

    assert migrator.run() == 1


def test_privilege_failure_exits_before_package_operations(lock_file):
    system = FakeSystem()
    migrator = build_migrator(system, lock_file, preflight_ok=False)

    assert migrator.run() == 1
    assert system.mutations == []


def test_flatpak_runtime_is_installed_when_missing(lock_file):
    system = FakeSystem()
    system.installed[PackageSource.APT].discard("flatpak")
    migrator = build_migrator(system, lock_file)

    assert migrator.run() == 0

    assert system.mutations[1] == ("install_system", "flatpak")
    assert phases_for(migrator, "Flatpak") == [OutcomePhase.INSTALLED_SYSTEM]


def test_apt_only_utility_is_installed_via_apt_without_flatpak(lock_file):
    system = FakeSystem()
    migrator = build_migrator(system, lock_file)

    assert migrator.run() == 0

    assert ("install_system", "grsync") in system.mutations
    assert ("install", "grsync") not in system.mutations
    assert phases_for(migrator, "Grsync") == [OutcomePhase.INSTALLED_SYSTEM]


def test_report_file_is_written_on_completion(lock_file, tmp_path):
    report_file = tmp_path / "report.json"
    migrator = build_migrator(FakeSystem(), lock_file, report_file=str(report_file))

    assert migrator.run() == 0

    data = json.loads(report_file.read_text(encoding="utf-8"))
    assert data["counts"]["installed"] == 3
    assert data["counts"]["failed"] == 0


def test_unwritable_report_file_does_not_fail_completed_run(lock_file, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    migrator = build_migrator(FakeSystem(), lock_file, report_file=str(blocker / "sub" / "report.json"))

    assert migrator.run() == 0
    assert not lock_file.exists()
