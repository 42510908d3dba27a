"""Custom exceptions for smart file sorter."""


class SmartFileSorterError(Exception):
    """Base exception for smart file sorter errors."""
    pass


class ConfigurationError(SmartFileSorterError):
    """Raised when there's an error in configuration."""
    pass


class FolderConflictError(ConfigurationError):
    """Raised when a file occupies a path that must be a folder."""

    def __init__(self, path: str):
        super().__init__(f"Path exists but is not a folder: {path}")
        self.path = path


class FileOperationError(SmartFileSorterError):
    """Raised when file operations fail."""
    pass


class MetadataError(SmartFileSorterError):
    """Raised when a document's metadata cannot be read."""
    pass
