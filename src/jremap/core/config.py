"""Global configuration for jremap.

This module provides centralized configuration management with support for
environment variables and sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class RemapperConfig(BaseSettings):
    """jremap configuration settings.

    Values can be overridden via environment variables with JREMAP_ prefix.
    Example: JREMAP_WORKERS=8 overrides workers.
    """

    # Unit processing
    workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Number of compilation units remapped in parallel",
    )
    file_glob: str = Field(
        default="*.java",
        description="Glob used to discover source files under the source root",
    )
    source_encoding: str = Field(
        default="utf-8",
        description="Encoding used to decode identifiers from source files",
    )

    # Output
    copy_resources: bool = Field(
        default=False,
        description="Copy non-source files from the source root to the output root",
    )
    rename_files: bool = Field(
        default=True,
        description="Rename a file when its top-level type of the same name is renamed",
    )

    model_config = {
        "env_prefix": "JREMAP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_config() -> RemapperConfig:
    """Get cached configuration instance.

    Returns:
        RemapperConfig singleton instance.
    """
    return RemapperConfig()


def reload_config() -> RemapperConfig:
    """Reload configuration (clears cache).

    Returns:
        Fresh RemapperConfig instance.
    """
    get_config.cache_clear()
    return get_config()
