"""Skill subsystem exceptions."""

from __future__ import annotations

from pathlib import Path


class SkillError(Exception):
    """Base exception for all skill-related errors.

    All custom exceptions in skillbase inherit from this class, allowing
    callers to catch all skill errors with a single handler.

    Attributes:
        message: Human-readable error message.
    """

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}({self.message!r})"


class SkillNotFoundError(SkillError):
    """Raised when a skill directory does not exist.

    Attributes:
        name: Skill name that was not found.
        path: Filesystem path that was checked.
    """

    def __init__(self, name: str, path: str | Path) -> None:
        """Initialize the error.

        Args:
            name: Skill name that was not found.
            path: Filesystem path that was checked.
        """
        self.name = name
        self.path = Path(path)
        super().__init__(f'Skill "{name}" not found at path: {self.path}')

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (type(self), (self.name, str(self.path)))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}(name={self.name!r}, path={str(self.path)!r})"


class SkillExistsError(SkillError):
    """Raised when creating or installing a skill whose directory is taken.

    Attributes:
        name: Skill name that already exists.
        path: Existing skill directory.
    """

    def __init__(self, name: str, path: str | Path) -> None:
        """Initialize the error.

        Args:
            name: Skill name that already exists.
            path: Existing skill directory.
        """
        self.name = name
        self.path = Path(path)
        super().__init__(f'Skill "{name}" already exists at {self.path}')

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (type(self), (self.name, str(self.path)))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}(name={self.name!r}, path={str(self.path)!r})"


class SkillPolicyError(SkillError):
    """Raised when an input is rejected before a filesystem or network operation.

    Covers disallowed skill names, invalid GitHub owner/repo/path segments,
    and non-HTTPS install sources.

    Attributes:
        value: The rejected input value.
    """

    def __init__(self, message: str, value: str = "") -> None:
        """Initialize the error.

        Args:
            message: Human-readable reason for the rejection.
            value: The rejected input value.
        """
        self.value = value
        super().__init__(message)

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (type(self), (self.message, self.value))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}({self.message!r}, value={self.value!r})"


class SkillInstallError(SkillError):
    """Raised when installing a skill from a remote source fails.

    Attributes:
        name: Skill name being installed.
        detail: Description of the failure.
        cause: Original exception that caused the failure.
    """

    def __init__(self, name: str, detail: str, cause: Exception | None = None) -> None:
        """Initialize the error.

        Args:
            name: Skill name being installed.
            detail: Description of the failure.
            cause: Original exception that caused the failure.
        """
        self.name = name
        self.detail = detail
        self.cause = cause
        super().__init__(f'Failed to install skill "{name}": {detail}')

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (_rebuild_skill_install_error, (self.name, self.detail, self.cause))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"detail={self.detail!r}, cause={self.cause!r})"
        )


class RegistryFetchError(SkillError):
    """Raised when a registry manifest cannot be fetched or is malformed.

    Attributes:
        url: Registry URL that was requested.
        detail: Description of the failure.
    """

    def __init__(self, url: str, detail: str) -> None:
        """Initialize the error.

        Args:
            url: Registry URL that was requested.
            detail: Description of the failure.
        """
        self.url = url
        self.detail = detail
        super().__init__(detail)

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (type(self), (self.url, self.detail))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}(url={self.url!r}, detail={self.detail!r})"


class StorageError(SkillError):
    """Raised by storage engines on unregistered tables or key violations.

    Attributes:
        table: Fully qualified table name (``namespace.table``).
    """

    def __init__(self, table: str, detail: str) -> None:
        """Initialize the error.

        Args:
            table: Fully qualified table name.
            detail: Description of the failure.
        """
        self.table = table
        self.detail = detail
        super().__init__(f"{table}: {detail}")

    def __reduce__(self) -> tuple:
        """Support pickling by returning constructor arguments."""
        return (type(self), (self.table, self.detail))

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{type(self).__name__}(table={self.table!r}, detail={self.detail!r})"


def _rebuild_skill_install_error(
    name: str,
    detail: str,
    cause: Exception | None,
) -> SkillInstallError:
    """Rebuild a SkillInstallError from pickled arguments."""
    return SkillInstallError(name, detail, cause=cause)
