"""
Configuration settings for the quizcycle engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///quizcycle.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Learning Cycle (topic progress)
    # ========================================
    learning_cycle_days: int = Field(
        default=10,
        description="Days of inactivity after which topic progress is reset",
    )
    learning_min_questions: int = Field(
        default=20,
        description="Minimum attempts at a difficulty before formal level-up",
    )
    learning_pass_threshold: float = Field(
        default=70.0,
        description="Accuracy (percent) required for proficiency at a difficulty",
    )
    learning_difficulty_progression_threshold: float = Field(
        default=80.0,
        description="Accuracy (percent) required for formal level-up",
    )

    # ========================================
    # SM-2 Spaced Repetition
    # ========================================
    sm2_initial_ease: float = Field(
        default=2.5,
        description="Ease factor for newly exposed questions",
    )
    sm2_minimum_ease: float = Field(
        default=1.3,
        description="Ease factor floor",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Interval (days) after the first repetition",
    )
    sm2_second_interval: int = Field(
        default=6,
        description="Interval (days) after the second repetition",
    )
    sm2_correct_ease_bonus: float = Field(
        default=0.1,
        description="Ease factor increase on a correct answer",
    )
    sm2_incorrect_ease_penalty: float = Field(
        default=0.2,
        description="Ease factor decrease on an incorrect answer",
    )

    # ========================================
    # Session Momentum
    # ========================================
    momentum_accuracy_weight: float = Field(
        default=0.7,
        description="Weight of accuracy in the momentum score",
    )
    momentum_speed_weight: float = Field(
        default=0.3,
        description="Weight of response speed in the momentum score",
    )
    momentum_flow_threshold: float = Field(
        default=70.0,
        description="Momentum score at or above which the learner is in flow",
    )
    momentum_struggle_threshold: float = Field(
        default=30.0,
        description="Momentum score at or below which the learner is struggling",
    )

    # ========================================
    # Selection & Evaluation
    # ========================================
    selection_due_overfetch: int = Field(
        default=2,
        description="Over-fetch factor for due questions before topic filtering",
    )
    evaluation_similarity_threshold: float = Field(
        default=80.0,
        description="Similarity score at or above which a free-text answer is correct",
    )
    quiz_max_question_count: int = Field(
        default=50,
        description="Maximum questions per quiz session",
    )

    # ========================================
    # LLM (OpenAI-compatible chat completions)
    # ========================================
    llm_api_key: str = Field(
        default="",
        description="API key for the chat completions endpoint",
    )
    llm_api_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Chat completions endpoint URL",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for question generation and answer evaluation",
    )
    llm_temperature: float = Field(
        default=0.7,
        description="Sampling temperature",
    )
    llm_max_tokens: int = Field(
        default=1000,
        description="Maximum tokens per completion",
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="Request timeout for LLM calls",
    )
    llm_retry_attempts: int = Field(
        default=2,
        description="Retries after the first failed LLM call",
    )

    # ========================================
    # Content
    # ========================================
    content_file: str | None = Field(
        default=None,
        description="JSON export mapping topic -> {filename: text}",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def has_llm_configured(self) -> bool:
        """Check if an LLM API key is available."""
        return bool(self.llm_api_key)

    def get_sm2_config(self) -> dict[str, Any]:
        """Get SM-2 scheduling parameters as a dictionary."""
        return {
            "initial_ease": self.sm2_initial_ease,
            "minimum_ease": self.sm2_minimum_ease,
            "first_interval": self.sm2_first_interval,
            "second_interval": self.sm2_second_interval,
            "correct_bonus": self.sm2_correct_ease_bonus,
            "incorrect_penalty": self.sm2_incorrect_ease_penalty,
        }

    def get_learning_config(self) -> dict[str, Any]:
        """Get learning-cycle thresholds as a dictionary."""
        return {
            "cycle_days": self.learning_cycle_days,
            "min_questions": self.learning_min_questions,
            "pass_threshold": self.learning_pass_threshold,
            "progression_threshold": self.learning_difficulty_progression_threshold,
        }

    def get_momentum_config(self) -> dict[str, Any]:
        """Get session momentum weights and thresholds as a dictionary."""
        return {
            "accuracy_weight": self.momentum_accuracy_weight,
            "speed_weight": self.momentum_speed_weight,
            "flow_threshold": self.momentum_flow_threshold,
            "struggle_threshold": self.momentum_struggle_threshold,
        }

    def get_llm_config(self) -> dict[str, Any]:
        """Get LLM client configuration as a dictionary."""
        return {
            "api_key": self.llm_api_key,
            "api_url": self.llm_api_url,
            "model": self.llm_model,
            "temperature": self.llm_temperature,
            "max_tokens": self.llm_max_tokens,
            "timeout": self.llm_timeout_seconds,
            "retry_attempts": self.llm_retry_attempts,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
