"""
thruster: Configuration
=========================

What:  The per-server ``Config`` entity, its YAML loader, and process-level
       ``Settings`` read from the environment.
How:   ``Config`` is a frozen pydantic model, so it cannot be mutated once a
       Server holds it. ``load_config()`` reads a YAML document and validates it
       into a ``Config``. ``Settings`` uses pydantic-settings (``THRUSTER_*``
       environment variables or a ``.env`` file).

YAML layout:
    hostname: localhost
    port: 8888
    tls: true
    certificate: /etc/certificate1        # or inline PEM, or {kind, value}
    public_key: /etc/public_key
    http_auth:
      - username: admin
        password: "12345"
"""

import logging
from pathlib import Path
from typing import Literal, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from thruster.exceptions import ConfigError

logger = logging.getLogger(__name__)


class HTTPAuth(BaseModel):
    """A single Basic-Auth principal."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str


def new_http_auth(username: str, password: str) -> HTTPAuth:
    return HTTPAuth(username=username, password=password)


class CertificateSource(BaseModel):
    """
    Explicit certificate/key material.

    kind="path":   ``value`` is a filesystem path handed to the TLS listener.
    kind="inline": ``value`` is PEM content, written to a temp file at start.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["path", "inline"]
    value: str


CertificateValue = Union[str, CertificateSource]


class Config(BaseModel):
    """
    Static server configuration: bind address, TLS material, credentials.

    ``certificate`` and ``public_key`` hold either a plain string (a path when
    shorter than 500 characters, inline PEM otherwise) or a ``CertificateSource``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    hostname: str = ""
    port: int = Field(default=0, ge=0, le=65535)
    tls: bool = False
    certificate: CertificateValue = ""
    public_key: CertificateValue = ""
    http_auth: Tuple[HTTPAuth, ...] = ()

    @field_validator("http_auth", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        # An empty `http_auth:` key in YAML parses as None.
        return () if v is None else v

    @property
    def address(self) -> str:
        return f"{self.hostname}:{self.port}"

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Config":
        return load_config(path)


def load_config(path: Union[str, Path]) -> Config:
    """
    Read a YAML file into a Config.

    Raises:
        ConfigError: the file is unreadable, not valid YAML, not a mapping,
                     or does not match the Config schema.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            message=f"cannot read config file {path}: {e}",
            context={"path": str(path)},
        ) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(
            message=f"invalid YAML in {path}: {e}",
            context={"path": str(path)},
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            message=f"config file {path} must contain a mapping",
            context={"path": str(path), "type": type(data).__name__},
        )

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            message=f"invalid config in {path}: {e}",
            context={"path": str(path), "errors": e.errors()},
        ) from e

    logger.debug(
        "Loaded config from %s (address=%s, tls=%s, credentials=%d)",
        path, config.address, config.tls, len(config.http_auth),
    )
    return config


class Settings(BaseSettings):
    """
    Process-level settings loaded from ``THRUSTER_*`` environment variables.

    These tune the ambient behaviour of every Server in the process (logging,
    request tracing); per-server behaviour lives in ``Config``.
    """

    # Let Server.run() install its stdout handler on the root logger
    configure_logging: bool = Field(default=False)

    # DEBUG, INFO, WARNING, ERROR or CRITICAL
    log_level: str = Field(default="INFO")

    # Per-request access logging through RequestLoggingMiddleware
    access_log: bool = Field(default=True)

    # Header carrying the correlation id in and out
    request_id_header: str = Field(default="X-Request-ID")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_prefix": "THRUSTER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()
