import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env values must be in os.environ before app.yaml is interpolated
load_dotenv(Path.cwd() / ".env")

# $NAME references inside app.yaml values
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

CONFIG_FILENAME = "app.yaml"


def interpolate_env_vars(value):
    """Substitute $NAME references in strings, lists and dicts from os.environ."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the path of the app.yaml in the working directory."""
    return Path.cwd() / CONFIG_FILENAME


def load_app_config() -> dict:
    """Read app.yaml and resolve its $NAME references; raises if the file is missing."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"{CONFIG_FILENAME} not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f)

    return interpolate_env_vars(config or {})


class FontsConfig(BaseModel):
    """Font provisioning configuration."""

    enabled: bool = True
    manifest_path: str = "app/fonts.css"
    fonts_dir: str = "fonts"
    request_timeout: float = 30.0
    startup_timeout: float = 300.0
    user_agent: str | None = None


class S3Config(BaseModel):
    """S3-compatible bucket configuration for the remote store."""

    bucket: str = ""
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    prefix: str = ""
    acl: str | None = None
    public_url: str | None = None
    presign_ttl: int = 3600


class RemoteStoreConfig(BaseModel):
    """Which remote backend to use.

    ``backend`` is ``memory``, ``s3`` or a ``module:ClassName`` import spec.
    ``name`` is the value of the ``?storage=`` selector that opts a request
    into remote storage.
    """

    backend: str = "memory"
    name: str = "remote"
    s3: S3Config = S3Config()


class StorageConfig(BaseModel):
    """Local and remote asset storage configuration."""

    local_enabled: bool = True
    remote_enabled: bool = False
    local_path: str = "uploads"
    base_segment: str = "users"
    default_username: str = "anonymous"
    retention_days: float = 7
    sweep_interval: float = 24 * 60 * 60
    sweep_category: str = "preview"
    remote: RemoteStoreConfig = RemoteStoreConfig()


class LogfireConfig(BaseModel):
    """Optional Pydantic Logfire observability."""

    enabled: bool = False
    service_name: str = "textlayer"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    debug: bool = False
    public_url: str | None = None
    processor: str = "textlayer.lib.imaging:PillowImageProcessor"

    # Retention override, mirrors storage.retention_days
    image_retention_days: float | None = None

    fonts: FontsConfig = FontsConfig()
    storage: StorageConfig = StorageConfig()
    logfire: LogfireConfig = Field(default_factory=LogfireConfig)


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide Settings from .env, the environment and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        app_config = {}

    updates = {}

    if "fonts" in app_config:
        updates["fonts"] = FontsConfig(**app_config["fonts"])

    if "storage" in app_config:
        updates["storage"] = StorageConfig(**app_config["storage"])

    if "logfire" in app_config:
        updates["logfire"] = LogfireConfig(**app_config["logfire"])

    for key in ("debug", "public_url", "processor"):
        if key in app_config:
            updates[key] = app_config[key]

    # IMAGE_RETENTION_DAYS wins over the YAML value
    if base_settings.image_retention_days is not None:
        storage = updates.get("storage", base_settings.storage)
        updates["storage"] = storage.model_copy(
            update={"retention_days": base_settings.image_retention_days}
        )

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
