"""Configuration management for the PRD Kernel."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prd_kernel.models.knowledge import ContextLimits


class Settings(BaseSettings):
    """Kernel settings loaded from `PRD_KERNEL_*` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRD_KERNEL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: Optional[str] = Field(
        default=None, description="Explicit log level; overrides the ENV default"
    )

    # Context selection bounds
    CONTEXT_MAX_FOCUS_NODES: int = Field(
        default=25, ge=1, description="Max nodes taken from a single focused section"
    )
    CONTEXT_LIMIT_ACTORS: int = Field(default=5, ge=0)
    CONTEXT_LIMIT_COMPETITORS: int = Field(default=3, ge=0)
    CONTEXT_LIMIT_GLOSSARY: int = Field(default=5, ge=0)
    CONTEXT_LIMIT_GOALS: int = Field(default=5, ge=0)
    CONTEXT_LIMIT_MILESTONES: int = Field(default=5, ge=0)
    CONTEXT_LIMIT_REQUIREMENTS: int = Field(default=8, ge=0)

    def context_limits(self) -> ContextLimits:
        return ContextLimits(
            max_focus_nodes=self.CONTEXT_MAX_FOCUS_NODES,
            actors=self.CONTEXT_LIMIT_ACTORS,
            competitors=self.CONTEXT_LIMIT_COMPETITORS,
            glossary=self.CONTEXT_LIMIT_GLOSSARY,
            goals=self.CONTEXT_LIMIT_GOALS,
            milestones=self.CONTEXT_LIMIT_MILESTONES,
            requirements=self.CONTEXT_LIMIT_REQUIREMENTS,
        )

    def resolved_log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.ENV == "dev" else "INFO"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
