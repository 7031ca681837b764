"""Error types raised by the backup pipeline."""


class BackupError(Exception):
    """Base class for every failure the backup pipeline reports."""
    pass


class ConfigError(BackupError):
    """Missing or invalid configuration, or a path that cannot be resolved."""
    pass


class TraversalError(BackupError):
    """Walking the vault directory tree failed."""
    pass


class ArchiveIOError(BackupError):
    """Opening, reading or writing a file while building the archive failed."""
    pass


class StorageError(BackupError):
    """Base class for object storage failures."""
    pass


class StorageAuthError(StorageError):
    """Authentication or authorization against object storage failed."""
    pass


class StorageAPIError(StorageError):
    """An object storage request failed."""
    pass
