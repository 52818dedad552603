"""Receiver configuration using pydantic-settings.

This module defines the HookSettings class that reads configuration from
environment variables with the HOOKSCRIPT_ prefix. Command line flags
override the environment: the CLI passes them as keyword arguments.

The shared secret is held as a SecretStr so it never shows up in reprs or
logs.
"""

from pathlib import Path
from typing import Any, Optional, Tuple

import structlog
from pydantic import SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PLAIN_PORT = 8080
DEFAULT_TLS_PORT = 8443

# Logged in place of the secret; says nothing about its length
REDACTED = "<redacted>"


class ConfigurationError(Exception):
    """Raised when the startup configuration is missing or invalid."""


def parse_address(value: str) -> Tuple[str, int]:
    """Split a ``host:port`` address. An empty host means all interfaces.

    Raises:
        ValueError: If the address has no port or the port is out of range.
    """
    host, separator, port_text = value.rpartition(":")
    if not separator:
        raise ValueError(f"address {value!r} must be host:port")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"address {value!r} has an invalid port") from None
    if not 1 <= port <= 65535:
        raise ValueError("port must be between 1 and 65535")
    host = host.strip("[]") or DEFAULT_HOST
    return host, port


class HookSettings(BaseSettings):
    """Webhook receiver configuration.

    All environment variables are prefixed with HOOKSCRIPT_ (e.g.,
    HOOKSCRIPT_SECRET).

    Required fields:
    - secret: Shared secret the sender signs deliveries with
    - script: Path to the template script evaluated for every event
    """

    model_config = SettingsConfigDict(
        env_prefix="HOOKSCRIPT_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Webhook Configuration
    # -------------------------------------------------------------------------
    secret: SecretStr

    script: Path

    # Path the webhook endpoint is served on
    webhook_path: str = "/"

    # -------------------------------------------------------------------------
    # Listener Configuration
    # -------------------------------------------------------------------------
    # TLS certificate and key, both or neither
    cert: Optional[Path] = None
    key: Optional[Path] = None

    # host:port to listen on; the default port depends on TLS
    addr: Optional[str] = None

    # -------------------------------------------------------------------------
    # Logging and Debugging
    # -------------------------------------------------------------------------
    # Append log output to this file instead of stderr
    log_file: Optional[Path] = None

    log_level: str = "INFO"

    log_json: bool = False

    # Dump raw deliveries and trace exec calls
    debug: bool = False

    # Directory debug dumps are written to
    dump_dir: Path = Path("testdata")

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        """Validate that the secret is not empty."""
        if not v.get_secret_value().strip():
            raise ValueError("secret cannot be empty")
        return v

    @field_validator("addr")
    @classmethod
    def validate_addr(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the address is host:port."""
        if v is not None:
            parse_address(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("webhook_path must start with /")
        return v

    @model_validator(mode="after")
    def validate_tls_pair(self) -> "HookSettings":
        """Validate that the certificate and key are given together."""
        if (self.cert is None) != (self.key is None):
            raise ValueError("cert and key must be given together")
        return self

    @property
    def tls_enabled(self) -> bool:
        return self.cert is not None

    @property
    def listen_address(self) -> Tuple[str, int]:
        """The (host, port) to listen on, with the plaintext or TLS default."""
        if self.addr:
            return parse_address(self.addr)
        port = DEFAULT_TLS_PORT if self.tls_enabled else DEFAULT_PLAIN_PORT
        return DEFAULT_HOST, port

    def secret_bytes(self) -> bytes:
        return self.secret.get_secret_value().encode("utf-8")


def get_settings(**overrides: Any) -> HookSettings:
    """Create and return a HookSettings instance.

    Reads configuration from environment variables. Keyword arguments that
    are not None take precedence over the environment.

    Returns:
        HookSettings: Configured settings instance.

    Raises:
        ConfigurationError: If required fields are missing or invalid.
    """
    values = {name: value for name, value in overrides.items() if value is not None}
    try:
        return HookSettings(**values)
    except ValidationError as exc:
        # Only locations and messages: input values may contain the secret
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from None


def log_configuration(settings: HookSettings) -> None:
    """Log configuration values with the secret redacted."""
    host, port = settings.listen_address
    logger.info(
        "configuration",
        secret=REDACTED,
        script=str(settings.script),
        host=host,
        port=port,
        tls=settings.tls_enabled,
        webhook_path=settings.webhook_path,
        log_file=str(settings.log_file) if settings.log_file else None,
        debug=settings.debug,
        dump_dir=str(settings.dump_dir),
    )
