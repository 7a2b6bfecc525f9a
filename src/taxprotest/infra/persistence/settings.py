"""Persistence configuration.

Environment variables use the ``SUPABASE_`` prefix for the hosted backend
(e.g., ``SUPABASE_URL``, ``SUPABASE_SERVICE_ROLE_KEY``) and the
``PERSISTENCE_`` prefix for backend selection (``PERSISTENCE_BACKEND``).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Connection settings for the hosted Supabase project.

    Attributes:
        url: Project URL, e.g. ``https://abcd.supabase.co``.
        anon_key: Public anon key, used for customer signup.
        service_role_key: Service role key, used for table access, identity
            removal and function invocation.
        db_schema: Postgres schema exposed through PostgREST.
        timeout: HTTP timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(default="", description="Supabase project URL")
    anon_key: str = Field(default="", repr=False, description="Public anon API key")
    service_role_key: str = Field(
        default="",
        repr=False,
        description="Service role API key (server-side only)",
    )
    db_schema: str = Field(default="public", description="Schema exposed via PostgREST")
    timeout: float = Field(default=10.0, ge=0.5, le=120.0, description="HTTP timeout in seconds")

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.url and self.service_role_key)


class PersistenceSettings(BaseSettings):
    """Backend selection.

    ``memory`` keeps everything in process and is the default so a fresh
    checkout runs without credentials; deployments set ``supabase``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PERSISTENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["supabase", "memory"] = Field(default="memory")

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v


@lru_cache(maxsize=1)
def get_supabase_settings() -> SupabaseSettings:
    """Get cached Supabase settings instance."""
    return SupabaseSettings()


@lru_cache(maxsize=1)
def get_persistence_settings() -> PersistenceSettings:
    """Get cached persistence settings instance."""
    return PersistenceSettings()
