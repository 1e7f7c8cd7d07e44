"""Configuration models for the application."""
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Get project root directory (2 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent.absolute()

DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'mention_digest.db'}"


class SlackConfig(BaseModel):
    """Slack API configuration settings."""
    user_token: str = Field(default="", description="Slack user token (search and thread reads)")
    bot_token: Optional[str] = Field(default=None, description="Slack bot token used for DM delivery")


class AzureOpenAIConfig(BaseModel):
    """Azure OpenAI configuration settings."""
    api_key: str = Field(default="", description="Azure OpenAI API key")
    endpoint: str = Field(default="", description="Azure OpenAI endpoint URL")
    llm_deployment: str = Field(default="", description="Deployment name for LLM model")
    llm_model: str = Field(default="gpt-4o", description="Model served by the LLM deployment")
    llm_api_version: str = Field(
        default="2024-02-01",
        description="API version for LLM service"
    )


class DigestConfig(BaseModel):
    """Settings for a single mention digest run."""
    model_config = ConfigDict(protected_namespaces=())

    lookback_days: int = Field(default=4, ge=1, description="Days of mentions to search")
    max_results: int = Field(default=40, ge=1, description="Maximum search matches per run")
    thread_limit: int = Field(default=200, ge=1, description="Maximum messages fetched per thread")
    excluded_usernames: List[str] = Field(
        default_factory=lambda: ["devrev"],
        description="Integration usernames whose messages are never treated as mentions"
    )
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker cap per stage; None runs one worker per mention"
    )
    call_timeout: float = Field(default=60.0, gt=0, description="Timeout in seconds for each external call")
    stage_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline in seconds for a whole fan-out stage"
    )
    model_id: Optional[str] = Field(
        default=None,
        description="Model used for summaries; defaults to the Azure LLM model"
    )
    prompt_path: Optional[str] = Field(default=None, description="Override for the summary prompt file")


class DatabaseConfig(BaseModel):
    """Installed users database settings."""
    url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy database URL")
    token_encryption_key: Optional[str] = Field(default=None, description="Secret used to encrypt access tokens")


class AppConfig(BaseModel):
    """Main application configuration."""
    slack: SlackConfig = Field(default_factory=SlackConfig)
    azure_openai: AzureOpenAIConfig = Field(default_factory=AzureOpenAIConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @property
    def model_id(self) -> str:
        """Model identifier used for every summarization call."""
        return self.digest.model_id or self.azure_openai.llm_model
