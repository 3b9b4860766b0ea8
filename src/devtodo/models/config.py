"""Configuration models."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMConfig(BaseModel):
    """Configuration for the task classification endpoint."""

    base_url: str = Field("http://172.17.0.1:4000", description="OpenAI-compatible endpoint (LiteLLM proxy)")
    api_key: Optional[str] = Field(None, description="API key for the endpoint")
    model: str = Field("chatgpt-4o-latest", description="Model name")
    max_tokens: int = Field(350, description="Maximum tokens for a classification")
    temperature: float = Field(0.2, description="Temperature for classification")
    timeout_seconds: float = Field(30.0, description="Budget for a single classification attempt")
    concurrency: int = Field(5, description="Classifications in flight per batch")


class ExtractionConfig(BaseModel):
    """Tunables for chat task extraction.

    The numeric defaults were chosen empirically and are kept for
    compatibility with existing extracted-task documents.
    """

    max_candidates: int = Field(50, description="Most recent candidate messages considered per run")
    min_message_length: int = Field(20, description="Messages must be longer than this to be candidates")
    id_prefix_chars: int = Field(500, description="Message prefix hashed into the task id")
    original_message_chars: int = Field(1500, description="Stored length of the source message")
    classifier_input_chars: int = Field(1500, description="Message length sent to the classifier")
    max_attempts: int = Field(2, description="Classification attempts before falling back")
    fallback_title_chars: int = Field(80, description="Title length when classification fails")
    max_title_chars: int = Field(150, description="Maximum classified title length")
    recent_session_seconds: int = Field(3600, description="Todo files modified within this window are recent")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with DEVTODO_ (e.g., DEVTODO_DATA_DIR).
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVTODO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Path("./data")
    database_url: Optional[str] = None
    claude_data_path: Path = Path("/app/claude-data")

    # LLM Settings
    litellm_url: str = "http://172.17.0.1:4000"
    litellm_api_key: Optional[str] = None
    llm_model: str = "chatgpt-4o-latest"
    llm_max_tokens: int = 350
    llm_temperature: float = 0.2
    classification_timeout: float = 30.0
    classification_concurrency: int = 5

    # Caching
    enable_caching: bool = True
    cache_dir: Optional[Path] = None

    # Scheduling
    extraction_interval_seconds: float = 600.0
    extraction_initial_delay: float = 5.0
    actions_poll_seconds: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @property
    def extracted_tasks_path(self) -> Path:
        """Location of the extracted-task document."""
        return self.data_dir / "extracted-tasks.json"

    def resolved_database_url(self) -> str:
        """Database URL, defaulting to a SQLite file in the data directory."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'devtodo.db'}"

    def resolved_cache_dir(self) -> Path:
        return self.cache_dir or self.data_dir / "cache"

    def llm_config(self) -> LLMConfig:
        """Build the LLM configuration from flat settings."""
        return LLMConfig(
            base_url=self.litellm_url,
            api_key=self.litellm_api_key,
            model=self.llm_model,
            max_tokens=self.llm_max_tokens,
            temperature=self.llm_temperature,
            timeout_seconds=self.classification_timeout,
            concurrency=self.classification_concurrency,
        )
