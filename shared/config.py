"""
Type-safe configuration for the workflow editor using Pydantic Settings.

This module provides a centralized, type-safe configuration system
that loads from environment variables and .env files.

Usage:
    from shared.config import config

    client = WorkflowClient(base_url=config.workflow_api_base_url)
"""
import logging
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EditorConfig(BaseSettings):
    """
    Central configuration for the workflow editor.

    All configuration is loaded from environment variables or .env file.
    Provides type safety and validation at startup.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ============================================================================
    # Workflow API
    # ============================================================================

    workflow_api_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        description="Base URL of the workflow store (GET/PUT /workflows/{id} live under it)",
    )
    workflow_api_key: Optional[str] = Field(
        default=None,
        description="API key sent as x-api-key when no credential getter is supplied",
    )
    workflow_api_timeout: float = Field(default=30.0, description="HTTP timeout in seconds for workflow requests")

    # ============================================================================
    # Credential parameter defaults
    # ============================================================================

    bitwarden_client_id_aws_secret_key: str = Field(
        default="SKYVERN_BITWARDEN_CLIENT_ID",
        description="Secret key name holding the Bitwarden client id for new credential parameters",
    )
    bitwarden_client_secret_aws_secret_key: str = Field(
        default="SKYVERN_BITWARDEN_CLIENT_SECRET",
        description="Secret key name holding the Bitwarden client secret for new credential parameters",
    )
    bitwarden_master_password_aws_secret_key: str = Field(
        default="SKYVERN_BITWARDEN_MASTER_PASSWORD",
        description="Secret key name holding the Bitwarden master password for new credential parameters",
    )

    # ============================================================================
    # Logging
    # ============================================================================

    log_level: str = Field(default="INFO", description="Default level for loggers created by shared.logger")

    @field_validator("workflow_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def log_level_value(self) -> int:
        """Numeric logging level."""
        return logging.getLevelName(self.log_level)


# ============================================================================
# Global Config Instance
# ============================================================================

config = EditorConfig()
