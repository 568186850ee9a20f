"""
Configuration management for the backup worker.

Uses Pydantic Settings for environment variable handling and validation,
seeded from an optional config.yaml file.
"""

import json
import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("LOGBACKUP_CONFIG_FILE")

    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/logbackup
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


def _parse_json_value(v: Any) -> Any:
    """Accept JSON-encoded strings coming from environment variables."""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return v
    return v


class MaskRule(BaseModel):
    """
    Partial masking rule for one field.

    Example: value "1234567890" with visible_start=2, visible_end=2
    renders as "12******90".
    """

    visible_start: int = Field(default=0, ge=0, description="Characters kept at the start")
    visible_end: int = Field(default=0, ge=0, description="Characters kept at the end")


class PathSettings(BaseSettings):
    """Filesystem locations."""

    input_path: Path = Field(default=Path("./logs"), description="Directory holding source log files")
    output_path: Path = Field(default=Path("./backup"), description="Directory receiving backup files")
    state_path: Path = Field(default=Path("./state/offsets.json"), description="Checkpoint table file")

    class Config:
        env_prefix = "LOGBACKUP_PATHS_"


class WorkerSettings(BaseSettings):
    """Cycle scheduling configuration."""

    interval_seconds: float = Field(default=15, gt=0, description="Delay between backup cycles")
    max_parallel_files: int = Field(default=4, ge=1, description="Files processed concurrently per cycle")
    shutdown_grace_seconds: float = Field(default=10, ge=0, description="Wait for in-flight files on stop")

    class Config:
        env_prefix = "LOGBACKUP_WORKER_"


class ProcessingSettings(BaseSettings):
    """Line transformation and masking rules."""

    full_mask: List[str] = Field(
        default=["password", "secret", "token"],
        description="Fields replaced entirely with the redaction token"
    )
    partial_mask: Dict[str, MaskRule] = Field(
        default_factory=dict,
        description="Fields masked in the middle, keeping visible start/end characters"
    )
    skip_if_contains: List[str] = Field(
        default_factory=list,
        description="Records containing any of these fields are dropped"
    )
    skip_fields: List[str] = Field(
        default_factory=list,
        description="Fields removed from every record"
    )
    log_level_field: Optional[str] = Field(default="level", description="Field holding the log level")
    log_level_mappings: Dict[str, str] = Field(
        default={
            "trace": "TRACE",
            "debug": "DEBUG",
            "info": "INFO",
            "information": "INFO",
            "warn": "WARN",
            "warning": "WARN",
            "error": "ERROR",
            "err": "ERROR",
            "fatal": "FATAL",
            "critical": "FATAL",
        },
        description="Case-insensitive log level normalization table"
    )
    redaction_token: str = Field(default="********", description="Replacement for fully masked fields")
    mask_char: str = Field(default="*", min_length=1, max_length=1, description="Partial mask character")
    checkpoint_per_line: bool = Field(
        default=False,
        description="Save the checkpoint after every consumed line instead of once per file"
    )

    @field_validator("full_mask", "skip_if_contains", "skip_fields", mode="before")
    def parse_field_list(cls, v: Any) -> Any:
        """Parse field lists from JSON strings if needed."""
        return _parse_json_value(v)

    @field_validator("partial_mask", "log_level_mappings", mode="before")
    def parse_field_mapping(cls, v: Any) -> Any:
        """Parse field mappings from JSON strings if needed."""
        return _parse_json_value(v)

    class Config:
        env_prefix = "LOGBACKUP_PROCESSING_"


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    admin_token: str = Field(default="", description="Bearer token for admin endpoints")

    class Config:
        env_prefix = "LOGBACKUP_SECURITY_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    disk_free_min_ratio: float = Field(default=0.10, ge=0, le=1, description="Minimum disk free ratio")

    # Component settings
    paths: PathSettings = Field(default_factory=PathSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    class Config:
        env_prefix = "LOGBACKUP_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "LOGBACKUP_HOST",
        ("server", "port"): "LOGBACKUP_PORT",
        ("server", "debug"): "LOGBACKUP_DEBUG",
        ("server", "log_level"): "LOGBACKUP_LOG_LEVEL",
        ("server", "disk_free_min_ratio"): "LOGBACKUP_DISK_FREE_MIN_RATIO",
        ("paths", "input"): "LOGBACKUP_PATHS_INPUT_PATH",
        ("paths", "output"): "LOGBACKUP_PATHS_OUTPUT_PATH",
        ("paths", "state"): "LOGBACKUP_PATHS_STATE_PATH",
        ("worker", "interval_seconds"): "LOGBACKUP_WORKER_INTERVAL_SECONDS",
        ("worker", "max_parallel_files"): "LOGBACKUP_WORKER_MAX_PARALLEL_FILES",
        ("worker", "shutdown_grace_seconds"): "LOGBACKUP_WORKER_SHUTDOWN_GRACE_SECONDS",
        ("processing", "log_level_field"): "LOGBACKUP_PROCESSING_LOG_LEVEL_FIELD",
        ("processing", "redaction_token"): "LOGBACKUP_PROCESSING_REDACTION_TOKEN",
        ("processing", "mask_char"): "LOGBACKUP_PROCESSING_MASK_CHAR",
        ("processing", "checkpoint_per_line"): "LOGBACKUP_PROCESSING_CHECKPOINT_PER_LINE",
        ("security", "admin_token"): "LOGBACKUP_SECURITY_ADMIN_TOKEN",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # Structured processing rules travel as JSON strings
    json_mappings = {
        "full_mask": "LOGBACKUP_PROCESSING_FULL_MASK",
        "partial_mask": "LOGBACKUP_PROCESSING_PARTIAL_MASK",
        "skip_if_contains": "LOGBACKUP_PROCESSING_SKIP_IF_CONTAINS",
        "skip_fields": "LOGBACKUP_PROCESSING_SKIP_FIELDS",
        "log_level_mappings": "LOGBACKUP_PROCESSING_LOG_LEVEL_MAPPINGS",
    }

    processing = config_data.get("processing") or {}
    for key, env_var in json_mappings.items():
        if env_var not in os.environ:
            value = processing.get(key)
            if value is not None:
                os.environ[env_var] = json.dumps(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
