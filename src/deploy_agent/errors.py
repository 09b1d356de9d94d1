"""Error taxonomy for project registry operations.

Every failure the registry surfaces is a ``DeployAgentError`` subclass tagged
with an ``ErrorKind``. Callers branch on ``kind`` (or the class) rather than
on message text; ``context`` carries the offending field, UUID or path.
"""

from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    INVALID_CONFIGURATION = "invalid_configuration"
    INVALID_UUID = "invalid_uuid"
    NOT_FOUND = "not_found"
    FILE_EXISTS = "file_exists"
    FILE_NOT_FOUND = "file_not_found"
    PARSE_ERROR = "parse_error"


class DeployAgentError(Exception):
    """Base class for all registry errors."""

    kind: ErrorKind

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class InvalidConfigurationError(DeployAgentError):
    """Raised when a project fails structural validation."""

    kind = ErrorKind.INVALID_CONFIGURATION

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid configuration: {field}: {reason}", field=field, reason=reason)
        self.field = field
        self.reason = reason


class InvalidUUIDError(DeployAgentError):
    """Raised when an empty or malformed UUID is supplied."""

    kind = ErrorKind.INVALID_UUID

    def __init__(self, uuid: str):
        super().__init__(f"Invalid UUID: {uuid!r}", uuid=uuid)
        self.uuid = uuid


class ProjectNotFoundError(DeployAgentError):
    """Raised when no project matches a UUID."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, uuid: str):
        super().__init__(f"Project with UUID {uuid} not found", uuid=uuid)
        self.uuid = uuid


class ConfigFileExistsError(DeployAgentError):
    """Raised when saving over an existing file without overwrite."""

    kind = ErrorKind.FILE_EXISTS

    def __init__(self, path: Path):
        super().__init__(f"Configuration file already exists: {path}", path=str(path))
        self.path = path


class ConfigFileNotFoundError(DeployAgentError):
    """Raised when the configuration file does not exist."""

    kind = ErrorKind.FILE_NOT_FOUND

    def __init__(self, path: Path):
        super().__init__(f"Configuration file not found: {path}", path=str(path))
        self.path = path


class ConfigParseError(DeployAgentError):
    """Raised when the configuration file cannot be parsed."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Failed to parse configuration file {path}: {reason}",
            path=str(path),
            reason=reason,
        )
        self.path = path
        self.reason = reason
