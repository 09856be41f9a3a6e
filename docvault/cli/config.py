"""Configuration management for docvault using pydantic-settings.

Handles store selection, signing key loading and verification policy
following pydantic-settings best practices with BaseSettings. The signing
key is read once here and injected into the custody client.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

from docvault.sdk.custody import CustodyClient
from docvault.sdk.errors import ConfigError
from docvault.sdk.signing import Ed25519Signer, HmacSigner, Signer
from docvault.sdk.sql_store import SqlStore
from docvault.sdk.store import KeyValueStore, MemoryStore

MIN_SECRET_LENGTH = 32


class DocVaultConfig(BaseSettings):
    """docvault configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix='DOCVAULT_',
        env_file='.env',
        env_file_encoding='utf-8',
        secrets_dir='/run/secrets'
    )

    database_url: str = Field(
        default="sqlite:///docvault.db",
        description="SQLAlchemy URL of the shared record store, or 'memory://'"
    )
    signing_scheme: Literal["hmac", "ed25519"] = Field(
        default="hmac",
        description="Credential signing scheme"
    )
    signing_secret: SecretStr | None = Field(
        default=None,
        description="Shared HMAC secret for the hmac scheme"
    )
    ed25519_seed: SecretStr | None = Field(
        default=None,
        description="32-byte Ed25519 seed (64-char hex) for the ed25519 scheme"
    )
    allow_resubmit_rejected: bool = Field(
        default=True,
        description="Allow rejected documents to be submitted again"
    )
    credential_validity_days: int = Field(
        default=365,
        description="Credential lifetime in days"
    )
    verification_base_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the public verification page"
    )
    log_level: str = Field(default="WARNING", description="Logging level")

    @field_validator('credential_validity_days')
    @classmethod
    def validate_validity_days(cls, v: int) -> int:
        """Validate credential lifetime is positive."""
        if v <= 0:
            raise ValueError("Credential validity must be positive")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


def validate_config(config: DocVaultConfig) -> None:
    """Validate configuration completeness for signing operations."""
    if config.signing_scheme == "hmac":
        if not config.signing_secret:
            raise ConfigError("Signing secret required. Set DOCVAULT_SIGNING_SECRET environment variable.")
        if len(config.signing_secret.get_secret_value()) < MIN_SECRET_LENGTH:
            raise ConfigError(f"Signing secret must be at least {MIN_SECRET_LENGTH} characters")
        return

    if not config.ed25519_seed:
        raise ConfigError("Ed25519 seed required. Set DOCVAULT_ED25519_SEED environment variable.")
    seed = config.ed25519_seed.get_secret_value()
    try:
        if len(bytes.fromhex(seed)) != 32:
            raise ValueError
    except ValueError:
        raise ConfigError("Ed25519 seed must be 64 hex characters")


def create_store(config: DocVaultConfig) -> KeyValueStore:
    """Create the record store from configuration."""
    if config.database_url.startswith("memory://"):
        return MemoryStore()
    return SqlStore(config.database_url)


def create_signer(config: DocVaultConfig) -> Signer:
    """Load the signing key once from configuration."""
    validate_config(config)
    if config.signing_scheme == "ed25519":
        return Ed25519Signer.from_seed(config.ed25519_seed.get_secret_value())  # type: ignore[union-attr]
    return HmacSigner(config.signing_secret.get_secret_value())  # type: ignore[union-attr]


def create_client(config: DocVaultConfig) -> CustodyClient:
    """Create a fully wired custody client."""
    return CustodyClient(
        create_store(config),
        create_signer(config),
        allow_resubmit_rejected=config.allow_resubmit_rejected,
        validity_days=config.credential_validity_days,
        verification_base_url=config.verification_base_url,
    )


def configure_logging(config: DocVaultConfig) -> None:
    """Route library logging through rich at the configured level."""
    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
