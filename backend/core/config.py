from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str

    # Tokens are issued by the external auth service; we only verify them.
    jwt_secret_key: str = Field(
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret", "JWT_SECRET_KEY", "JWT_SECRET")
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("jwt_algorithm", "JWT_ALGORITHM"))

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )

    # Exam wizard defaults
    exam_default_term: str = Field(
        default="2025-26",
        validation_alias=AliasChoices("exam_default_term", "EXAM_DEFAULT_TERM"),
    )
    exam_terms: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["2024-25", "2025-26", "2026-27"],
        validation_alias=AliasChoices("exam_terms", "EXAM_TERMS"),
    )
    exam_default_max_marks: int = Field(
        default=100,
        gt=0,
        validation_alias=AliasChoices("exam_default_max_marks", "EXAM_DEFAULT_MAX_MARKS"),
    )
    exam_default_duration_hours: float = Field(
        default=2.0,
        gt=0,
        validation_alias=AliasChoices("exam_default_duration_hours", "EXAM_DEFAULT_DURATION_HOURS"),
    )

    # In-memory wizard drafts; the oldest one is evicted past this limit.
    max_open_wizards: int = Field(
        default=200,
        ge=1,
        validation_alias=AliasChoices("max_open_wizards", "MAX_OPEN_WIZARDS"),
    )

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator("exam_terms", mode="before")
    @classmethod
    def _split_exam_terms(cls, v):
        # EXAM_TERMS=2024-25,2025-26
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

    @field_validator("exam_default_term")
    @classmethod
    def _normalize_exam_default_term(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("EXAM_DEFAULT_TERM must not be empty")
        return v


settings = Settings()
