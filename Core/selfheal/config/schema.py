from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from selfheal.core.metadata import ActionKind


class HealingConfig(BaseModel):
    """Process-wide tuning for the healer; built once per session."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_url: str = "http://127.0.0.1:8000"
    max_candidates: int = Field(default=200, gt=0)
    wait_seconds: float = Field(default=5, ge=0)
    confidence_threshold: float = Field(default=0.05, ge=0)
    current_action: ActionKind = ActionKind.OTHER
    enable_dom_fallback: bool = True
    allow_verified_override: bool = True
    enable_intent_gate: bool = True
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    call_timeout_seconds: float = Field(default=20.0, gt=0)

    @field_validator("service_url")
    @classmethod
    def normalize_service_url(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError("service_url must be an http(s) URL")
        return normalized

    @field_validator("current_action", mode="before")
    @classmethod
    def parse_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def validate_timeouts(self) -> HealingConfig:
        if self.call_timeout_seconds < self.connect_timeout_seconds:
            raise ValueError("call_timeout_seconds must not be shorter than connect_timeout_seconds")
        return self


class EnvironmentConfig(BaseModel):
    base_url: str = ""
    browser: str = "chrome"
    default_timeout_seconds: int = 10
    headless: bool = False

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {"chrome", "firefox"}:
            raise ValueError(f"Unsupported browser: {value}")
        return normalized


class SuiteConfig(BaseModel):
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    healing: HealingConfig = Field(default_factory=HealingConfig)
