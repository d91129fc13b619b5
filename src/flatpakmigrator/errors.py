"""Domain errors for FlatpakMigrator."""


class MigratorError(RuntimeError):
    """Raised when the migration cannot continue safely."""


class AlreadyRunningError(MigratorError):
    """Raised when another run already holds the lock file."""


class FatalStepError(MigratorError):
    """Raised when a step failed in a way that makes continuing unsafe."""

    def __init__(self, message: str, outcome=None):
        super().__init__(message)
        self.outcome = outcome
