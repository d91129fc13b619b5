"""Single-instance lock for migration runs."""

import atexit
import os
import signal
from typing import Dict

from flatpakmigrator.errors import AlreadyRunningError
from flatpakmigrator.errors_catalog import actionable_error

DEFAULT_LOCK_FILE = "/tmp/flatpak_app_installer.lock"


class RunGuard:
    """Owns the lock file of the active run.

    Used as a context manager, the lock is released when the scope ends,
    at interpreter exit, and on SIGINT or SIGTERM (which then exit with
    status 1).
    """

    HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, lock_file: str, logger):
        self.lock_file = lock_file
        self.logger = logger
        self.acquired = False
        self._previous_handlers: Dict[int, object] = {}

    def acquire(self):
        try:
            fd = os.open(self.lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            raise AlreadyRunningError(actionable_error("already_running", path=self.lock_file)) from exc

        self.acquired = True
        with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
            file_obj.write(f"{os.getpid()}\n")
        self.logger.debug("Acquired lock file: %s", self.lock_file)

    def release(self):
        if not self.acquired:
            return

        self.acquired = False
        try:
            os.remove(self.lock_file)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning("Could not remove lock file %s: %s", self.lock_file, exc)
            return
        self.logger.debug("Released lock file: %s", self.lock_file)

    def _handle_signal(self, signum, _frame):
        self.logger.warning("Received signal %s. Releasing lock and exiting.", signum)
        self.release()
        raise SystemExit(1)

    def __enter__(self):
        # Handlers are in place before the lock file exists.
        atexit.register(self.release)
        for signum in self.HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        try:
            self.acquire()
        except BaseException:
            self._restore_handlers()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self._restore_handlers()
        self.release()
        return False

    def _restore_handlers(self):
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        atexit.unregister(self.release)
