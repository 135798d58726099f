"""Configuration management for specreactions."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from specreactions.github_client import ThrottleConfig
from specreactions.models import MIN_REACTION_COUNT, RECENT_REACTION_DAYS

DEFAULT_REGISTRY = "https://w3c.github.io/browser-specs/index.json"


class Settings(BaseSettings):
    """Application settings from environment variables and config files."""

    model_config = SettingsConfigDict(
        env_prefix="SPECREACTIONS_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("SPECREACTIONS_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    registry_source: str = DEFAULT_REGISTRY
    output_path: Path = Path("issues.json")
    min_reaction_count: int = MIN_REACTION_COUNT
    recent_reaction_days: int = RECENT_REACTION_DAYS
    per_page: int = Field(default=100, ge=1, le=100)
    issue_state: str = "all"
    max_rate_limit_retries: int = 2
    max_secondary_rate_limit_retries: int = 0
    request_timeout: float = 30.0
    backoff_base: float = 1.0

    def throttle_config(self) -> ThrottleConfig:
        """Build the retry policy for the GitHub client.

        Returns:
            ThrottleConfig with the configured rate-limit retry budget.
        """
        return ThrottleConfig(
            max_rate_limit_retries=self.max_rate_limit_retries,
            max_secondary_rate_limit_retries=self.max_secondary_rate_limit_retries,
            backoff_base=self.backoff_base,
        )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings loaded from environment and config files.
    """
    return Settings()
