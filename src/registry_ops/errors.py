"""Exception hierarchy for deployment and management operations.

Every fatal condition raised by registry-ops derives from
``RegistryOpsError``. The CLI entry points catch the base class, print a
labeled message and exit non-zero.

Usage:
    from registry_ops.errors import PortConflictError, RegistryOpsError

    try:
        sequence.run()
    except RegistryOpsError as e:
        console.print(f"[red]{e}[/red]")
"""


class RegistryOpsError(Exception):
    """Base class for all registry-ops failures."""

    pass


class ConfigError(RegistryOpsError):
    """Raised when configuration values are malformed."""

    pass


class EnvironmentMismatchError(RegistryOpsError):
    """Raised when the host platform does not match the expected signature."""

    pass


class MissingDependencyError(RegistryOpsError):
    """Raised when a required tool is absent and could not be installed."""

    pass


class PortConflictError(RegistryOpsError):
    """Raised when a required port is already bound by another process."""

    def __init__(self, port: int, message: str | None = None):
        self.port = port
        super().__init__(message or f"Port {port} is already in use")


class ReadinessTimeoutError(RegistryOpsError):
    """Raised when the service does not respond within the polling budget."""

    def __init__(self, message: str, attempts: int = 0, logs: str = ""):
        self.attempts = attempts
        self.logs = logs
        super().__init__(message)


class VerificationError(RegistryOpsError):
    """Raised when a post-deployment verification check fails."""

    def __init__(self, check: str, detail: str = "", logs: str = ""):
        self.check = check
        self.detail = detail
        self.logs = logs
        message = f"Verification failed: {check}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UserDeclinedError(RegistryOpsError):
    """Raised when an interactive confirmation is not affirmed."""

    pass


class NotADeploymentDirError(RegistryOpsError):
    """Raised when the working directory lacks the deployment marker file."""

    pass


class BackupError(RegistryOpsError):
    """Raised when a backup cannot be created, found, or restored."""

    pass


class CommandError(RegistryOpsError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, argv: list[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed with exit code {returncode}: {' '.join(self.argv)}"
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class LaunchError(CommandError):
    """Raised when the background launch command exits with a failure."""

    def __init__(self, argv: list[str], returncode: int, logs: str = ""):
        super().__init__(argv, returncode)
        self.logs = logs
