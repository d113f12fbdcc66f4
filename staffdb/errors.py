from typing import Optional


class BootstrapError(Exception):
    """Base class for fatal startup failures."""


class ConfigError(BootstrapError):
    """A required setting is missing or cannot be used."""

    MISSING = "missing"
    INVALID = "invalid"

    def __init__(self, key: str, reason: str = MISSING, detail: Optional[str] = None):
        self.key = key
        self.reason = reason
        self.detail = detail
        message = f"{key} is {reason}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConnectError(BootstrapError):
    """The data store could not be reached or refused the connection."""

    def __init__(self, uri: str, cause: BaseException):
        self.uri = uri
        self.cause = cause
        super().__init__(f"could not connect to {uri}: {cause}")
