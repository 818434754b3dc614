"""
Reference layer settings with environment variable support.

Configuration is loaded from environment variables with optional .env file.
DOC_PATHS is a comma-separated, ordered list of reference documents; when it
is empty the single DEFAULT_DOC_PATH document is indexed instead.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DOC_PATH = "public/documents/2024_National_Custodial_Specification_October_2024-1.pdf"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Document sources
    doc_paths: str = Field(default="", alias="DOC_PATHS")
    default_doc_path: str = Field(default=DEFAULT_DOC_PATH, alias="DEFAULT_DOC_PATH")

    # Retrieval behavior
    context_char_budget: int = Field(default=6000, ge=1, alias="CONTEXT_CHAR_BUDGET")
    context_top_k: int = Field(default=8, ge=1, alias="CONTEXT_TOP_K")
    chunk_chars: int = Field(default=900, ge=1, alias="CHUNK_CHARS")

    # Diagnostics
    scan_max_pages: int = Field(default=5, ge=1, alias="SCAN_MAX_PAGES")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def configured_doc_paths(self, base_dir: Optional[Path] = None) -> list[Path]:
        """
        Resolve the ordered list of document locations.

        Relative entries resolve against ``base_dir`` (the current working
        directory by default).
        """
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        entries = [p.strip() for p in self.doc_paths.split(",") if p.strip()]
        if not entries:
            entries = [self.default_doc_path]

        resolved = []
        for entry in entries:
            path = Path(entry).expanduser()
            resolved.append(path if path.is_absolute() else base / path)
        return resolved


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
