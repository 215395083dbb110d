"""Document portal settings (conventional Pydantic v2)."""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---- Defaults ---------------------------------------------------------------

DEFAULT_DATABASE_URL = "sqlite:///./data/db/docportal.sqlite"
DEFAULT_CORS_ORIGINS: list[str] = ["http://localhost:3000"]
DEFAULT_SOURCE_PREFIX = "Recepcion/Muestreo/"
DEFAULT_DESTINATION_PREFIX = "Recepcion/Muestreo/Resultado/"
DEFAULT_DOCUMENTS_PREFIX = "Recepcion/"
DEFAULT_DOCUMENTS_ARCHIVE_PREFIX = "Recepcion/Archivo/"
DEFAULT_DEMO_BUCKET = "rgpdintcomer-des-deltasmile-servinform"

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})

COGNITO_HOST_TEMPLATE = "https://cognito-idp.{region}.amazonaws.com"

ScopeMatch = Literal["prefix", "segment"]
GrantDefaultPolicy = Literal["most_recent", "require_selection"]
TokenVerification = Literal["auto", "jwks", "unverified"]
StorageBackend = Literal["s3", "memory"]


# ---- Helpers ----------------------------------------------------------------


def normalize_log_format(value: str, *, env_var: str = "DOCPORTAL_LOG_FORMAT") -> str:
    normalized = value.strip().lower()
    if normalized not in ALLOWED_LOG_FORMATS:
        allowed = ", ".join(sorted(ALLOWED_LOG_FORMATS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def _folder_prefix(value: str) -> str:
    """Strip leading slashes and guarantee exactly one trailing slash."""

    stripped = value.strip().lstrip("/")
    if not stripped:
        return ""
    return stripped.rstrip("/") + "/"


# ---- Settings ---------------------------------------------------------------


class Settings(BaseSettings):
    """FastAPI settings loaded from DOCPORTAL_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOCPORTAL_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        enable_decoding=False,
        str_strip_whitespace=True,
    )

    # Core
    app_name: str = "Document Portal API"
    app_version: str = "0.1.0"
    api_docs_enabled: bool = True
    log_format: str = "console"
    log_level: str = "INFO"
    request_log_level: str | None = None
    database_log_level: str | None = None
    server_cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    database_sqlite_busy_timeout_ms: int = Field(30_000, ge=0)
    database_migrate_on_startup: bool = True

    # Storage
    storage_backend: StorageBackend = "s3"
    aws_region: str = "eu-west-1"
    s3_endpoint_url: str | None = None
    storage_request_timeout_seconds: float = Field(10.0, gt=0)
    storage_connect_timeout_seconds: float = Field(5.0, gt=0)
    storage_health_bucket: str | None = None

    # Storage layout
    source_prefix: str = DEFAULT_SOURCE_PREFIX
    destination_prefix: str = DEFAULT_DESTINATION_PREFIX
    documents_prefix: str = DEFAULT_DOCUMENTS_PREFIX
    documents_archive_prefix: str = DEFAULT_DOCUMENTS_ARCHIVE_PREFIX
    manifest_document_column: str = "idDocumento"
    manifest_extensions: list[str] = Field(default_factory=lambda: [".csv"])

    # Authorization policy
    scope_match: ScopeMatch = "prefix"
    grant_default_policy: GrantDefaultPolicy = "most_recent"
    auto_provision_identities: bool = False

    # Processing
    processing_document_concurrency: int = Field(1, ge=1, le=64)
    processing_lease_ttl_seconds: float = Field(300.0, gt=0)

    # Identity provider
    auth_token_verification: TokenVerification = "auto"
    cognito_region: str | None = None
    cognito_user_pool_id: str | None = None
    cognito_client_id: str | None = None
    cognito_client_secret: SecretStr | None = None
    auth_jwks_url: str | None = None
    auth_issuer: str | None = None
    auth_audience: str | None = None
    auth_jwks_cache_size: int = Field(5, ge=1)
    auth_jwks_cache_ttl_seconds: int = Field(600, ge=1)
    auth_clock_skew_seconds: int = Field(0, ge=0)
    auth_login_url: str | None = None
    auth_login_timeout_seconds: float = Field(10.0, gt=0)
    auth_login_api_key: SecretStr | None = None

    # Demo seed
    demo_bucket: str = DEFAULT_DEMO_BUCKET

    # ---- Validators ----

    @field_validator("server_cors_origins", "manifest_extensions", mode="before")
    @classmethod
    def _parse_list(cls, value: object) -> object:
        if value is None:
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    return parsed
            return [item.strip() for item in raw.split(",") if item.strip()]
        if isinstance(value, tuple):
            return list(value)
        return value

    @field_validator(
        "source_prefix",
        "destination_prefix",
        "documents_prefix",
        "documents_archive_prefix",
        mode="after",
    )
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return _folder_prefix(value)

    @field_validator("manifest_extensions", mode="after")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for item in value:
            ext = item.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in normalized:
                normalized.append(ext)
        return normalized

    @field_validator(
        "scope_match",
        "grant_default_policy",
        "auth_token_verification",
        "storage_backend",
        mode="before",
    )
    @classmethod
    def _lower_literal(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.log_format = normalize_log_format(self.log_format)

        normalized_log_level = normalize_log_level(self.log_level, env_var="DOCPORTAL_LOG_LEVEL")
        if normalized_log_level is None:
            raise ValueError("DOCPORTAL_LOG_LEVEL must not be empty.")
        self.log_level = normalized_log_level
        self.request_log_level = normalize_log_level(
            self.request_log_level,
            env_var="DOCPORTAL_REQUEST_LOG_LEVEL",
        )
        self.database_log_level = normalize_log_level(
            self.database_log_level,
            env_var="DOCPORTAL_DATABASE_LOG_LEVEL",
        )

        if self.destination_prefix and self.destination_prefix == self.source_prefix:
            raise ValueError(
                "DOCPORTAL_DESTINATION_PREFIX must differ from DOCPORTAL_SOURCE_PREFIX."
            )
        if self.documents_archive_prefix == self.documents_prefix:
            raise ValueError(
                "DOCPORTAL_DOCUMENTS_ARCHIVE_PREFIX must differ from DOCPORTAL_DOCUMENTS_PREFIX."
            )
        if self.auth_token_verification == "jwks" and self.jwks_url is None:
            raise ValueError(
                "DOCPORTAL_AUTH_TOKEN_VERIFICATION=jwks requires DOCPORTAL_AUTH_JWKS_URL "
                "or DOCPORTAL_COGNITO_REGION + DOCPORTAL_COGNITO_USER_POOL_ID."
            )
        return self

    # ---- Derived values ----

    @property
    def effective_request_log_level(self) -> str:
        return self.request_log_level or self.log_level

    @property
    def cognito_issuer(self) -> str | None:
        if not self.cognito_region or not self.cognito_user_pool_id:
            return None
        host = COGNITO_HOST_TEMPLATE.format(region=self.cognito_region)
        return f"{host}/{self.cognito_user_pool_id}"

    @property
    def issuer(self) -> str | None:
        return self.auth_issuer or self.cognito_issuer

    @property
    def audience(self) -> str | None:
        return self.auth_audience or self.cognito_client_id

    @property
    def jwks_url(self) -> str | None:
        if self.auth_jwks_url:
            return self.auth_jwks_url
        issuer = self.cognito_issuer
        if issuer is None:
            return None
        return f"{issuer}/.well-known/jwks.json"

    @property
    def verifies_signatures(self) -> bool:
        if self.auth_token_verification == "unverified":
            return False
        return self.jwks_url is not None

    @property
    def cognito_endpoint(self) -> str | None:
        if not self.cognito_region:
            return None
        return COGNITO_HOST_TEMPLATE.format(region=self.cognito_region) + "/"


def _create_settings_accessors(
    settings_type: type[Settings],
) -> tuple[Callable[[], Settings], Callable[[], Settings]]:
    @lru_cache(maxsize=1)
    def _build() -> Settings:
        return settings_type()

    def get_settings() -> Settings:
        return _build()

    def reload_settings() -> Settings:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


get_settings, reload_settings = _create_settings_accessors(Settings)


__all__ = [
    "DEFAULT_DATABASE_URL",
    "GrantDefaultPolicy",
    "ScopeMatch",
    "Settings",
    "StorageBackend",
    "TokenVerification",
    "get_settings",
    "normalize_log_format",
    "normalize_log_level",
    "reload_settings",
]
