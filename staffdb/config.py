import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from staffdb.errors import ConfigError


URI_SCHEMES = ("mongodb://", "mongodb+srv://")
DEFAULT_DB_NAME = "test"
DEFAULT_PORT = 3000
MAX_PORT = 65535
DEFAULT_HOST = "127.0.0.1"
DEFAULT_TIMEOUT_MS = 5000
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    db_name: Optional[str] = None
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    server_selection_timeout_ms: int = DEFAULT_TIMEOUT_MS
    tls_allow_invalid_certificates: bool = False
    log_level: str = "INFO"

    @property
    def redacted_uri(self) -> str:
        return redact_uri(self.mongo_uri)


def redact_uri(uri: str) -> str:
    """Hide the password part of a connection string so it can be logged."""
    scheme, sep, rest = uri.partition("://")
    if not sep or "@" not in rest.split("/", 1)[0]:
        return uri
    credentials, _, hosts = rest.partition("@")
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:****@{hosts}"


def _get_int(env: Mapping[str, str], key: str, default: int, maximum: Optional[int] = None) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(key, ConfigError.INVALID, f"expected an integer, got {raw!r}")
    if value <= 0:
        raise ConfigError(key, ConfigError.INVALID, f"expected a positive integer, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(key, ConfigError.INVALID, f"expected at most {maximum}, got {value}")
    return value


def _get_log_level(env: Mapping[str, str]) -> str:
    level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigError("LOG_LEVEL", ConfigError.INVALID, f"expected one of {', '.join(LOG_LEVELS)}")
    return level


def load_configuration(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the process environment.

    When no mapping is given, a `.env` file in the working directory is loaded
    first (existing environment variables win). Raises ConfigError when
    MONGO_URI is absent or empty, or when a numeric setting does not parse.
    The database is left unset unless DB_NAME is given; the connection then
    uses the one named in the URI.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    mongo_uri = (environ.get("MONGO_URI") or "").strip()
    if not mongo_uri:
        raise ConfigError("MONGO_URI")
    if not mongo_uri.startswith(URI_SCHEMES):
        raise ConfigError(
            "MONGO_URI", ConfigError.INVALID, "must start with mongodb:// or mongodb+srv://"
        )

    return Settings(
        mongo_uri=mongo_uri,
        db_name=(environ.get("DB_NAME") or "").strip() or None,
        port=_get_int(environ, "PORT", DEFAULT_PORT, maximum=MAX_PORT),
        host=(environ.get("HOST") or "").strip() or DEFAULT_HOST,
        server_selection_timeout_ms=_get_int(environ, "MONGO_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        tls_allow_invalid_certificates=(environ.get("MONGO_TLS_INSECURE") or "").strip().lower()
        in _TRUE_VALUES,
        log_level=_get_log_level(environ),
    )
