"""Configuration models."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositoryConfig(BaseModel):
    """Configuration for one project to analyze."""

    name: str = Field(..., description="Project name")
    repo_path: Path = Field(..., description="Path to the Git repository")
    feed_path: Optional[Path] = Field(None, description="Smell feed file or directory")
    url: Optional[str] = Field(None, description="Project URL stored alongside the project")
    revision: str = Field("HEAD", description="Revision whose history is analyzed")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "name": "my-app",
                "repo_path": "/path/to/repo",
                "feed_path": "/path/to/smells.json",
                "url": "https://github.com/owner/my-app",
                "revision": "HEAD",
            }
        }


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with SMELLTRACK_ (e.g., SMELLTRACK_DATABASE_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="SMELLTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Path("./smelltrack.sqlite")
    batch_size: int = Field(1000, description="Commits persisted per batch")

    # Processing
    max_workers: int = Field(4, description="Projects analyzed concurrently")

    # Duplication checking
    similarity_threshold: float = Field(
        0.75, description="Minimum class name word overlap for a renamed class to match"
    )
    rename_similarity: int = Field(50, description="Minimum git rename score, in percent")
    source_extensions: List[str] = Field(
        default_factory=lambda: [".java", ".kt", ".py", ".js", ".ts", ".go", ".rs", ".cs"],
        description="Renames are only tracked between these file types",
    )

    # Logging
    log_level: str = "INFO"
