# Assumptions:
# - Configuration management using environment variables (OKTA_ prefix)
# - Pydantic Settings for validation
# - Audience may be given comma-separated or as a JSON list

import json
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class VerifierSettings(BaseSettings):
    """Verifier settings"""

    model_config = SettingsConfigDict(env_prefix="OKTA_", env_file=".env", case_sensitive=False, extra="ignore")

    # Authorization server
    issuer: str
    keys_url: str | None = None

    # Claims policy
    audience: Annotated[list[str], NoDecode] = ["api://default"]
    client_id: str | None = None
    leeway: int = 120
    validate_aud: bool = True
    validate_exp: bool = True
    validate_nbf: bool = False

    # Key set retrieval
    http_timeout: float = 10.0
    http_max_retries: int = 0
    cache_enabled: bool = False
    cache_dir: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("audience", mode="before")
    @classmethod
    def _split_audience(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


def get_settings() -> VerifierSettings:
    """Load settings from the environment"""
    return VerifierSettings()
