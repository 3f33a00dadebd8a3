"""Error taxonomy for envsync operations."""


class EnvSyncError(Exception):
    """Base class for all envsync errors."""
    pass


class InvalidInput(EnvSyncError):
    """Raised when an operation's arguments are unusable (same source/target, empty selection)."""
    pass


class UnknownEnvironment(EnvSyncError):
    """Raised when an environment id is not in the registry."""

    def __init__(self, env_id: str):
        super().__init__(f"Unknown environment: '{env_id}'")
        self.env_id = env_id


class InvalidSelection(EnvSyncError):
    """Raised when a selection references names that cannot be copied from the source."""

    def __init__(self, names):
        self.names = sorted(names)
        super().__init__(
            f"Selection contains names that are not copyable from the source: {', '.join(self.names)}"
        )


class StoreUnavailable(EnvSyncError):
    """Raised when a secret store call fails for any reason other than a missing entry."""
    pass


class NotFound(EnvSyncError):
    """Raised when a secret or secret version does not exist."""
    pass


class ValidationError(EnvSyncError):
    """Raised when a required secret value is missing or empty."""
    pass


class NothingToEdit(EnvSyncError):
    """Raised when the edit load phase could not read any secret."""
    pass
