"""Core exceptions for envpurge."""


class EnvPurgeError(Exception):
    """Base exception for all envpurge errors."""

    def __init__(self, message: str, details: dict = None):
        """Initialize the exception."""
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RepositoryError(EnvPurgeError):
    """Raised when repository operations fail."""

    pass


class DirtyWorkingTreeError(RepositoryError):
    """Raised when the working tree has uncommitted changes."""

    pass


class BranchExistsError(RepositoryError):
    """Raised when the backup branch name is already taken."""

    pass


class ProvisioningError(EnvPurgeError):
    """Raised when the history-rewrite tool cannot be installed."""

    pass


class CleanupError(EnvPurgeError):
    """Raised when cleanup operations fail."""

    pass


class RewriteError(CleanupError):
    """Raised when the history rewrite tool fails."""

    pass


class ResidualSecretFileError(CleanupError):
    """Raised when the secrets file still appears in history."""

    pass


class ResidualSecretPatternError(CleanupError):
    """Raised when a key prefix still appears in history."""

    pass


class PublishError(EnvPurgeError):
    """Raised when publishing fails."""

    pass


class ConfigurationError(EnvPurgeError):
    """Raised when configuration is invalid."""

    pass
