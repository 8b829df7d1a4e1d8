"""Config management for the UAT admin.

Reads `config.ini` from DATA_DIR (beside main.py by default). Admin secrets may
also come from the environment, which takes precedence over the file.
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
import sys
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__)

MIN_SECRET_BYTES = 32


class ConfigurationError(Exception):
    """Required configuration is missing or unusable. Fatal at startup."""


def _get_project_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parents[1]


PROJECT_ROOT = _get_project_root()

# DATA_DIR holds all persistent state (config.ini, uat.db, uat.log).
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"


@dataclasses.dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclasses.dataclass(frozen=True)
class AdminAuthConfig:
    """The single admin password and the HMAC signing secret."""

    password: str = ""
    session_secret: str = ""
    cookie_secure: bool = False

    def validate(self) -> None:
        if not self.password:
            raise ConfigurationError("Admin password is not configured (ADMIN_PASSWORD)")
        if not self.session_secret:
            raise ConfigurationError(
                "Session signing secret is not configured (ADMIN_SESSION_SECRET)"
            )
        if self.password == self.session_secret:
            raise ConfigurationError("Session signing secret must differ from the admin password")
        if len(self.session_secret.encode("utf-8")) < MIN_SECRET_BYTES:
            logger.warning(
                f"Session signing secret is shorter than {MIN_SECRET_BYTES} bytes; "
                "generate one with `uat init`"
            )


@dataclasses.dataclass
class UatConfig:
    server: ServerConfig
    admin: AdminAuthConfig
    database_file: Optional[pathlib.Path] = None

    @property
    def server_host(self) -> str:
        return self.server.host

    @property
    def server_port(self) -> int:
        return self.server.port

    @property
    def database_path(self) -> pathlib.Path:
        return self.database_file or DATA_DIR / "uat.db"


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(config_path: Optional[pathlib.Path] = None) -> UatConfig:
    """Load configuration from config.ini and the environment.

    The file is optional: a container can be configured from environment
    variables alone. Secrets are not validated here, see `get_config`.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
    else:
        logger.debug(f"Config file not found at {path}, using environment only")

    server = ServerConfig(
        host=parser.get("server", "host", fallback="0.0.0.0"),
        port=parser.getint("server", "port", fallback=8080),
    )

    password = (
        os.environ.get("ADMIN_PASSWORD") or parser.get("admin", "password", fallback="")
    ).strip()
    session_secret = (
        os.environ.get("ADMIN_SESSION_SECRET")
        or parser.get("admin", "session_secret", fallback="")
    ).strip()
    cookie_secure = _parse_bool(
        os.environ.get("ADMIN_COOKIE_SECURE")
        or parser.get("admin", "cookie_secure", fallback="false"),
        False,
    )

    db_path = parser.get("database", "path", fallback="").strip()

    return UatConfig(
        server=server,
        admin=AdminAuthConfig(
            password=password,
            session_secret=session_secret,
            cookie_secure=cookie_secure,
        ),
        database_file=pathlib.Path(db_path).expanduser() if db_path else None,
    )


_cached_config: Optional[UatConfig] = None


def get_config() -> UatConfig:
    """Return the cached config singleton. Loads and validates on first call."""
    global _cached_config
    if _cached_config is None:
        config = load_config()
        config.admin.validate()
        _cached_config = config
    return _cached_config


def reset_config_cache() -> None:
    """Clear the cached config (useful for tests)."""
    global _cached_config
    _cached_config = None


def write_config(
    config_path: pathlib.Path,
    password: str,
    session_secret: str,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> pathlib.Path:
    """Write a config.ini with the given admin credentials."""
    parser = configparser.ConfigParser()
    parser["server"] = {
        "host": host,
        "port": str(port),
    }
    parser["admin"] = {
        "password": password,
        "session_secret": session_secret,
        "cookie_secure": "false",
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)
    os.chmod(config_path, 0o600)
    return config_path
