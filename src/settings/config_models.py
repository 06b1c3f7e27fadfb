"""Pydantic configuration models for the credibility ledger."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from credibility.rules import ScoringRules

VALID_LLM_PROVIDERS = {"auto", "gemini", "claude"}


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None
    max_tokens: int = 1000

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    ledger_db: Path = Path("~/.social_capital/ledger.db")
    export_dir: Path = Path("~/.social_capital/exports")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.ledger_db = self.ledger_db.expanduser()
        self.export_dir = self.export_dir.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


class ScoringConfig(BaseModel):
    """Overrides for the scoring engine constants."""

    truth_bonus: float = 0.06
    fiction_penalty: float = 0.12
    fatigue_step: float = 0.15
    interest_rate: float = 0.05
    overuse_window: int = 20
    overuse_threshold: int = 3
    overuse_risk_weight: float = 0.15
    rejection_penalty: float = 0.25
    rejection_debt: int = 3
    bankruptcy_threshold: float = 0.25

    @field_validator(
        "truth_bonus",
        "fiction_penalty",
        "fatigue_step",
        "interest_rate",
        "overuse_risk_weight",
        "rejection_penalty",
    )
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Scoring rates must be non-negative, got {v}")
        return v

    @field_validator("overuse_window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"overuse_window must be at least 1, got {v}")
        return v

    @field_validator("bankruptcy_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"bankruptcy_threshold must be 0-1, got {v}")
        return v

    def to_rules(self) -> ScoringRules:
        return ScoringRules(**self.model_dump())


class GenerationConfig(BaseModel):
    """Prompt-building limits for excuse generation."""

    history_context: int = 5  # most recent records shown to the model
    context_max_chars: int = 1000


class RetryConfig(BaseModel):
    """Retry/backoff configuration."""

    max_attempts: int = 3
    min_wait: float = 2.0
    llm_max_wait: float = 30.0


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class AppConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        key = self.llm.api_key
        if key and key.startswith("${") and key.endswith("}"):
            self.llm.api_key = os.getenv(key[2:-1], "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
