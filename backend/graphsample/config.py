"""
Application configuration loader and validation.

The service is driven from a single ``config.yaml`` file.  Secrets are never
expected to live in that file: the Azure credentials can be supplied through
the ``AZURE_TENANT_ID``, ``AZURE_CLIENT_ID`` and ``AZURE_CLIENT_SECRET``
environment variables, which take precedence over the file contents.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

ENV_OVERRIDES = {
    "AZURE_TENANT_ID": "tenant_id",
    "AZURE_CLIENT_ID": "client_id",
    "AZURE_CLIENT_SECRET": "client_secret",
}


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class AzureConfig(_FrozenModel):
    tenant_id: str
    client_id: str
    client_secret: str = Field(repr=False)
    authority_url: Optional[AnyHttpUrl] = None
    graph_scopes: List[str] = Field(
        default_factory=lambda: ["https://graph.microsoft.com/.default"]
    )

    @field_validator("tenant_id", "client_id", "client_secret")
    @classmethod
    def require_value(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("graph_scopes")
    @classmethod
    def require_scopes(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one scope is required")
        return value

    @property
    def authority(self) -> str:
        if self.authority_url:
            return str(self.authority_url).rstrip("/")
        return f"https://login.microsoftonline.com/{self.tenant_id}"


class GraphConfig(_FrozenModel):
    base_url: AnyHttpUrl = Field(
        default="https://graph.microsoft.com/v1.0", validate_default=True
    )
    timeout_seconds: float = Field(default=10.0, gt=0)
    page_size: int = Field(default=100, ge=1, le=999)
    security_enabled_only: bool = False

    @property
    def base(self) -> str:
        return str(self.base_url).rstrip("/")


class MembershipConfig(_FrozenModel):
    default_user_id: str = "john@contoso.com"
    max_concurrency: int = Field(default=4, ge=1)
    max_memberships_per_user: Optional[int] = Field(default=None, ge=1)


class TokenCacheConfig(_FrozenModel):
    refresh_skew_seconds: int = Field(default=300, ge=0)


class ServerConfig(_FrozenModel):
    cors_allowed_origins: List[str] = Field(default_factory=list)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        value_upper = value.upper()
        if value_upper not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return value_upper


class AppConfig(_FrozenModel):
    azure: AzureConfig
    graph: GraphConfig = GraphConfig()
    membership: MembershipConfig = MembershipConfig()
    token_cache: TokenCacheConfig = TokenCacheConfig()
    server: ServerConfig = ServerConfig()


def _apply_env_overrides(raw_config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    azure = dict(raw_config.get("azure") or {})
    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            azure[field_name] = value
    merged = dict(raw_config)
    merged["azure"] = azure
    return merged


def load_config(path: Path | str, environ: Mapping[str, str] | None = None) -> AppConfig:
    """
    Load the application configuration from yaml.

    Parameters
    ----------
    path:
        Path to a YAML file.  Relative paths are resolved relative to the caller.
    environ:
        Mapping used for the credential overrides, ``os.environ`` by default.
    """

    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Configuration file not found: {path_obj}")

    with path_obj.open("r", encoding="utf-8") as file:
        raw_config = yaml.safe_load(file) or {}

    merged = _apply_env_overrides(raw_config, os.environ if environ is None else environ)
    return AppConfig.model_validate(merged)
