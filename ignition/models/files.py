"""
File models for Ignition.

Models representing the local JSON files in the .ignition/ directory
(besides project.json, which holds ProjectData).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ignition.constants import (
    DEFAULT_AI_MODEL,
    DEFAULT_AUDIT_LOG_PATH,
    DEFAULT_BACKOFF_BASE,
    DEFAULT_LOW_RATE_LIMIT_THRESHOLD,
    DEFAULT_MAX_RATE_LIMIT_WAIT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PROJECT_FILE_PATH,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_API_URL,
)


class ConfigFile(BaseModel):
    """Model for config.json file.

    Connection and behaviour settings. Secrets are preferably supplied
    through the environment; ``github_token`` and ``gemini_api_key`` are
    fallbacks only.
    """

    schema_version: str = "1.0.0"

    # GitHub settings
    repo_url: str = ""
    file_path: str = DEFAULT_PROJECT_FILE_PATH
    audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    github_token: Optional[str] = Field(default=None, repr=False)
    api_url: str = GITHUB_API_URL

    # HTTP behaviour
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff_base: float = Field(default=DEFAULT_BACKOFF_BASE, ge=0)
    max_rate_limit_wait: float = Field(default=DEFAULT_MAX_RATE_LIMIT_WAIT, ge=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    low_rate_limit_threshold: int = Field(default=DEFAULT_LOW_RATE_LIMIT_THRESHOLD, ge=0)

    # AI settings
    ai_model: str = DEFAULT_AI_MODEL
    gemini_api_key: Optional[str] = Field(default=None, repr=False)

    # Audit settings
    audit_mirror_enabled: bool = False


class StateFile(BaseModel):
    """Model for state.json file.

    Remembers the last known remote blob SHA of the project file so that
    saves can detect concurrent writes. ``needs_reload`` is set when a save
    was rejected as stale and stays set until the project is loaded again.
    """

    project_sha: Optional[str] = None
    needs_reload: bool = False
    last_loaded_at: Optional[datetime] = None
    last_saved_at: Optional[datetime] = None
