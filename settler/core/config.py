from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from settler.core.errors import ConfigError


class AuthConfig(BaseModel):
    """
    Authentication policy, fixed for the lifetime of an engine.

    - max_attempts: consecutive bad credentials tolerated before lockout
    - session_timeout_seconds: inactivity window before a session expires
    - audit_path: optional hash-chained JSONL mirror of the audit trail
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(default=5, ge=1, le=1000)
    session_timeout_seconds: float = Field(default=15 * 60, gt=0)
    audit_path: Optional[str] = None


def validate_auth_config(raw: Dict[str, Any]) -> AuthConfig:
    try:
        return AuthConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigError("Invalid authentication config.", errors=str(e)) from e


def load_auth_config(path: str) -> AuthConfig:
    if not os.path.exists(path):
        return AuthConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError("Authentication config is not valid JSON.", path=path, error=str(e)) from e
    if not isinstance(obj, dict):
        raise ConfigError("Authentication config must be a JSON object.", path=path)
    return validate_auth_config(obj)
