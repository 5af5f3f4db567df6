import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


class LogLevel(StrEnum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class Settings(BaseModel):
    api_base_url: str = Field(validation_alias="API_BASE_URL")
    sensor_id: str = Field(validation_alias="SENSOR_ID")

    refresh_secs: int = Field(default=30, gt=0, validation_alias="REFRESH_SECS")
    target_points: int = Field(default=500, gt=0, validation_alias="TARGET_POINTS")
    resize_debounce_ms: int = Field(default=250, ge=0, validation_alias="RESIZE_DEBOUNCE_MS")
    request_timeout_secs: float = Field(default=10.0, gt=0, validation_alias="REQUEST_TIMEOUT_SECS")

    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias="LOG_LEVEL")


ENV_KEYS: Final[tuple[str, ...]] = (
    "API_BASE_URL",
    "SENSOR_ID",
    "REFRESH_SECS",
    "TARGET_POINTS",
    "RESIZE_DEBOUNCE_MS",
    "REQUEST_TIMEOUT_SECS",
    "LOG_LEVEL",
)
REQUIRED_KEYS: Final[tuple[str, ...]] = ("API_BASE_URL", "SENSOR_ID")


def load_settings() -> Settings:
    # Load .env if present (does nothing if file missing)
    load_dotenv()
    data: dict[str, str] = {key: os.environ[key] for key in ENV_KEYS if key in os.environ}
    if "LOG_LEVEL" in data:
        data["LOG_LEVEL"] = data["LOG_LEVEL"].upper()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        missing = [k for k in REQUIRED_KEYS if k not in data]
        if missing:
            raise RuntimeError(f"Missing required configuration: {', '.join(missing)}") from e
        raise
