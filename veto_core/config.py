"""Client settings, loaded from the environment with sane local defaults."""
from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Environment variable -> settings field
ENV_FIELDS = {
    "VETO_API_BASE_URL": "api_base_url",
    "VETO_WS_URL": "ws_url",
    "VETO_REQUEST_TIMEOUT": "request_timeout",
    "VETO_CREDENTIALS_PATH": "credentials_path",
    "VETO_TRANSITION_DWELL": "transition_dwell",
    "VETO_TRANSITION_FADE": "transition_fade",
}


class ClientSettings(BaseModel):
    api_base_url: str = Field("http://localhost:8080/api", min_length=1)
    ws_url: str = Field("ws://localhost:8080/ws", min_length=1)
    request_timeout: float = Field(10.0, gt=0, le=300)
    credentials_path: Optional[str] = None

    # Transition reveal timings (seconds)
    transition_dwell: float = Field(2.5, gt=0, le=60)
    transition_fade: float = Field(0.6, gt=0, le=60)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return v

    @field_validator("ws_url")
    @classmethod
    def validate_ws_scheme(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("ws_url must be a ws(s) URL")
        return v

    model_config = ConfigDict(frozen=True)


def load_settings(environ: Mapping[str, str] | None = None) -> ClientSettings:
    """Build settings from VETO_* environment variables.

    Raises:
        ValueError: If any provided value is invalid
    """
    env = os.environ if environ is None else environ
    values = {}
    for var, field in ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        values[field] = raw.strip()
    try:
        settings = ClientSettings(**values)
    except ValidationError as e:
        raise ValueError(f"Invalid client settings: {e}")
    logger.debug(f"Loaded settings: api={settings.api_base_url} ws={settings.ws_url}")
    return settings
