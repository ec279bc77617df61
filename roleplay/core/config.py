"""
Application settings management.

Settings are loaded from environment variables with .env file support.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    data_dir: Path = Field(
        default=Path("data"), description="Directory for database and other data files"
    )

    # ==========================================================================
    # Database
    # ==========================================================================

    database_path: Path = Field(
        default=Path("data/training.db"), description="Path to SQLite database file"
    )

    # ==========================================================================
    # LLM Configuration (feedback synthesis)
    # ==========================================================================

    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )
    llm_feedback_model: str = Field(
        default="claude-sonnet-4-6", description="Model used for feedback synthesis"
    )
    llm_feedback_timeout: float = Field(
        default=90.0,
        gt=0,
        description="Feedback synthesis timeout in seconds (analysis is slow)",
    )
    llm_feedback_max_tokens: int = Field(default=4096, ge=256, le=32768)

    # ==========================================================================
    # Client Configuration
    # ==========================================================================

    api_base_url: str = Field(
        default="http://localhost:8000", description="Backend URL used by clients"
    )
    api_timeout: float = Field(
        default=120.0, gt=0, description="Client request timeout in seconds"
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # ==========================================================================
    # Logging
    # ==========================================================================

    log_level: str = Field(
        default="INFO", description="Minimum level for structlog and stdlib output"
    )
    logs_dir: Path = Field(
        default=Path("logs"), description="Directory for per-process log files"
    )
    log_files_to_keep: int = Field(
        default=5, ge=1, description="Most recent log files retained on startup"
    )


# ============================================================================
# Training Configuration (from YAML)
# ============================================================================


class SessionConfig(BaseModel):
    """Conversation limits for a single persona engagement."""

    turn_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Completed user/ai exchanges before a conversation ends",
    )


class ReflectionConfig(BaseModel):
    """Strategy reflection validation."""

    min_length: int = Field(
        default=50, ge=1, description="Minimum characters in a strategy reflection"
    )


class FeedbackConfig(BaseModel):
    """Feedback synthesis configuration."""

    min_turns_for_partial: int = Field(
        default=3,
        ge=0,
        description="Turns required to synthesize feedback for an unfinished conversation",
    )


class MonitorConfig(BaseModel):
    """Background conversation polling (voice mode)."""

    poll_interval_seconds: float = Field(default=2.0, gt=0)


class TrainingConfig(BaseModel):
    """
    Complete training configuration loaded from training_config.yaml.

    The turn limit and the reflection minimum length are behavioral
    constants of the workflow; they live here so they can change without
    touching the state machine.
    """

    session: SessionConfig = Field(default_factory=SessionConfig)
    reflection: ReflectionConfig = Field(default_factory=ReflectionConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)


def load_training_config(config_path: Optional[Path] = None) -> TrainingConfig:
    """
    Load training configuration from YAML file.

    Args:
        config_path: Path to training_config.yaml. If None, uses default path.

    Returns:
        TrainingConfig with validated settings

    Raises:
        pydantic.ValidationError: If config validation fails
    """
    if config_path is None:
        # Default path: config/training_config.yaml relative to project root
        current = Path(__file__).resolve().parent.parent.parent
        check_path = current / "config" / "training_config.yaml"
        if check_path.exists():
            config_path = check_path
        else:
            cwd_config = Path.cwd() / "config" / "training_config.yaml"
            if not cwd_config.exists():
                return TrainingConfig()
            config_path = cwd_config

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return TrainingConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return TrainingConfig()

    return TrainingConfig(**config_data)


# Global settings instance
settings = Settings()

# Global training config instance
training_config = load_training_config()
