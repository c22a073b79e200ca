"""Configuration management."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from easypack.core.constants import DEFAULT_COPY_CHUNK_SIZE, DEFAULT_MAX_GAP_SIZE


class EasypackConfig(BaseModel):
    """Settings for the easypack command line and convenience API."""

    log_level: str = Field("WARNING", description="Log level name (DEBUG, INFO, ...)")
    log_json: bool = Field(False, description="Render logs as JSON instead of console text")
    copy_chunk_size: int = Field(
        DEFAULT_COPY_CHUNK_SIZE,
        ge=1,
        description="Chunk size (bytes) when streaming files in and out of containers",
    )
    max_gap_size: int = Field(
        DEFAULT_MAX_GAP_SIZE,
        ge=0,
        description="Largest gap (bytes) merged into one read by batch lookups",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "EasypackConfig":
        base = cls()
        return cls(
            log_level=os.getenv("EASYPACK_LOG_LEVEL", base.log_level),
            # coerced by pydantic: 1/0, yes/no, on/off, true/false
            log_json=os.getenv("EASYPACK_LOG_JSON", "false"),
            copy_chunk_size=int(
                os.getenv("EASYPACK_COPY_CHUNK_SIZE", str(base.copy_chunk_size))
            ),
            max_gap_size=int(os.getenv("EASYPACK_MAX_GAP_SIZE", str(base.max_gap_size))),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "EasypackConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    @classmethod
    def load(cls, path: Optional[str] = None) -> "EasypackConfig":
        """YAML file when given, environment otherwise."""
        if path:
            return cls.from_yaml(path)
        return cls.from_env()


__all__ = ["EasypackConfig"]
