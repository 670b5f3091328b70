import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings

from hooklistener.core.exceptions import ConfigError
from hooklistener.schemas.task import FailurePolicy, TaskTemplateSet
from hooklistener.schemas.webhook import WebhookProvider

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    PROJECT_NAME: str = "WebhookListener"
    HOST: str = "0.0.0.0"
    PORT: int = 3420
    WEBHOOK_PATH: str = "/"
    LOG_LEVEL: str = "INFO"

    # Listener config file lookup
    CONFIG_FILE: str = "WebhookListener.conf"
    CONFIG_PATHS: List[str] = [
        "/etc/WebhookListener/",
        "/usr/local/etc/WebhookListener/",
        ".",
    ]

    # Task execution
    CMDSHELL: str = "/bin/sh"
    KEEP: bool = False
    TASK_TIMEOUT: Optional[float] = None

    model_config = {
        "env_file": ".env"
    }


@lru_cache
def get_settings():
    return Settings()


class ProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    secret_token: Optional[str] = Field(default=None, alias="secretToken")


class ListenerConfig(BaseModel):
    """Validated listener configuration, read-only once the server starts"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = "0.0.0.0"
    port: int = 3420
    cmdshell: str = "/bin/sh"
    keep: bool = False
    task_timeout: Optional[float] = None
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE
    tasks: TaskTemplateSet = Field(default_factory=dict)

    gitlab: ProviderConfig = Field(default_factory=ProviderConfig)
    github: ProviderConfig = Field(default_factory=ProviderConfig)
    bitbucket: ProviderConfig = Field(default_factory=ProviderConfig)

    def provider_config(self, provider: WebhookProvider) -> ProviderConfig:
        return getattr(self, provider.value)


def read_config_file(paths: List[str], filename: str) -> Optional[dict]:
    """Return the parsed content of the first readable config file, if any"""
    for directory in paths:
        path = Path(directory) / filename
        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            continue
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e
    return None


def load_listener_config(settings: Optional[Settings] = None) -> ListenerConfig:
    settings = settings or get_settings()
    values = {
        "host": settings.HOST,
        "port": settings.PORT,
        "cmdshell": settings.CMDSHELL,
        "keep": settings.KEEP,
        "task_timeout": settings.TASK_TIMEOUT,
    }

    file_values = read_config_file(settings.CONFIG_PATHS, settings.CONFIG_FILE)
    if file_values is None:
        logger.error(f"can't read config file: {settings.CONFIG_FILE}")
    elif not isinstance(file_values, dict):
        raise ConfigError(f"Config file {settings.CONFIG_FILE} must hold a JSON object")
    else:
        logger.info(f"loading config file: {settings.CONFIG_FILE}")
        values.update(file_values)

    try:
        return ListenerConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid listener configuration: {e}") from e


settings = get_settings()
