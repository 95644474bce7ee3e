from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

load_dotenv()


class Settings(BaseModel):
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=1913)
    LOG_LEVEL: str = Field(default="DEBUG")
    VERIFY_TIMEOUT_SECONDS: float = Field(default=5.0)
    DELIVERY_TIMEOUT_SECONDS: float = Field(default=5.0)
    DELIVERY_CONCURRENCY: int = Field(default=8, ge=1)
    DEFAULT_LEASE_SECONDS: int = Field(default=3600, ge=0)
    DEFAULT_TOPIC: str = Field(default="a-topic")
    # off: every publish goes to every subscriber, whatever its topic
    PUBLISH_FILTER_BY_TOPIC: bool = Field(default=False)
    SHUTDOWN_GRACE_SECONDS: int = Field(default=5)


def _load_settings(existing: Settings | None = None) -> Settings:
    values: dict[str, Any] = {}
    for name, field in Settings.model_fields.items():
        env_value = os.getenv(name)
        if env_value is None:
            if existing is not None and hasattr(existing, name):
                values[name] = getattr(existing, name)
                continue
            values[name] = field.get_default(call_default_factory=True)
        elif env_value == "" and name == "PORT":
            values[name] = field.get_default(call_default_factory=True)
        else:
            values[name] = env_value

    try:
        return Settings(**values)
    except ValidationError as exc:
        bad = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        raise RuntimeError(
            f"Invalid environment variables: {', '.join(bad)}"
        ) from exc


settings = _load_settings()


def reload_settings() -> Settings:
    global settings
    fresh = _load_settings(settings)
    settings.__dict__.update(fresh.__dict__)
    return settings
