"""Exception types raised while scanning a repository."""


class GitTodosError(Exception):
    """Base class for all gittodos errors."""


class ProviderUnavailable(GitTodosError, ValueError):
    """The history provider cannot be used (missing path, not a repository, bad revision)."""


class FileUnreadable(GitTodosError):
    """A single file cannot be read or decoded."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"Cannot read file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class FileNotFoundInHistory(FileUnreadable):
    """A file does not exist at the requested revision."""


class BlameUnresolved(GitTodosError):
    """A line cannot be attributed to any commit."""

    def __init__(self, path: str, line_number: int) -> None:
        self.path = path
        self.line_number = line_number
        super().__init__(f"No blame entry for {path}:{line_number}")


class TagResolutionAmbiguous(GitTodosError):
    """Tag data returned by the provider is inconsistent."""
