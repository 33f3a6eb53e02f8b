"""Configuration from environment variables.

Values are read with ``os.getenv`` after loading an optional ``.env``
file. Every setting has a default, so an empty environment yields a
working (fully offline-degraded) configuration.

Example .env:
    GOOGLE_VISION_API_KEY=...
    OPENAI_API_KEY=sk-...
    SCANLYF_LOG_LEVEL=DEBUG
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    """Runtime settings for the analysis pipeline."""

    model_config = ConfigDict(frozen=True)

    google_vision_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_vision_model: str = "gpt-4o-mini"
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"

    retry_max: int = Field(3, ge=0, description="Retries after the first attempt")
    retry_initial_delay_s: float = Field(1.0, ge=0)
    retry_backoff: float = Field(2.0, ge=1)
    breaker_threshold: int = Field(5, ge=1, description="Failures before opening")
    breaker_reset_s: float = Field(30.0, gt=0, description="Open -> half-open delay")
    call_timeout_s: float = Field(60.0, gt=0, description="Hard timeout per call")
    pending_ttl_s: float = Field(900.0, gt=0, description="Confirmation window")

    log_level: str = "INFO"
    log_json: bool = False


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build settings from the environment.

    Args:
        env_file: Explicit .env path (default: search from the working dir)

    Raises:
        pydantic.ValidationError: If a numeric variable is malformed or
            out of range
    """
    load_dotenv(env_file)
    return Settings(
        google_vision_api_key=os.getenv("GOOGLE_VISION_API_KEY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_vision_model=os.getenv("OPENAI_VISION_MODEL", "gpt-4o-mini"),
        openfoodfacts_base_url=os.getenv(
            "OPENFOODFACTS_BASE_URL", "https://world.openfoodfacts.org"
        ),
        retry_max=os.getenv("SCANLYF_RETRY_MAX", "3"),
        retry_initial_delay_s=os.getenv("SCANLYF_RETRY_INITIAL_DELAY_S", "1.0"),
        retry_backoff=os.getenv("SCANLYF_RETRY_BACKOFF", "2.0"),
        breaker_threshold=os.getenv("SCANLYF_BREAKER_THRESHOLD", "5"),
        breaker_reset_s=os.getenv("SCANLYF_BREAKER_RESET_S", "30"),
        call_timeout_s=os.getenv("SCANLYF_CALL_TIMEOUT_S", "60"),
        pending_ttl_s=os.getenv("SCANLYF_PENDING_TTL_S", "900"),
        log_level=os.getenv("SCANLYF_LOG_LEVEL", "INFO").upper(),
        log_json=_get_bool("SCANLYF_LOG_JSON", False),
    )
