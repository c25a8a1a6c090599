"""Exception hierarchy for BOMGuard."""


class BomGuardError(Exception):
    """Base class for all BOMGuard errors."""


class ConfigurationError(BomGuardError):
    """A repository cannot be processed as configured.

    Raised for unsupported package types, missing patterns and missing
    project versions. Never retried automatically.
    """

    def __init__(self, repo_key: str, message: str):
        super().__init__(message)
        self.repo_key = repo_key
        self.message = message


class RemoteServiceError(BomGuardError):
    """A call to the BOM scanning service failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class HostRepositoryError(BomGuardError):
    """A call to the host repository manager failed."""


class MalformedStateError(BomGuardError):
    """Persisted properties are inconsistent and need operator action."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class DownloadBlockedError(BomGuardError):
    """A download was refused."""

    status_code = 403

    def __init__(self, path: str, reason: str):
        super().__init__(reason)
        self.path = path
        self.reason = reason
