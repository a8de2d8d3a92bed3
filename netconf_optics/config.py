"""Configuration management for the NETCONF optics exporter."""

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_VAR = re.compile(r"\$\{([^}]+)\}")


class ServerConfig(BaseModel):
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = Field(default=4000, ge=1, le=65535)


class NetconfConfig(BaseModel):
    """Settings applied to every NETCONF session."""
    subsystem: str = "netconf"
    connect_timeout: int = Field(default=10, ge=1, le=300)


class HostConfig(BaseModel):
    """A device registered at startup."""
    host: str
    port: int = Field(default=830, ge=1, le=65535)
    user: str = "admin"
    password: str = ""


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


class Config(BaseModel):
    """Main configuration class."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    netconf: NetconfConfig = Field(default_factory=NetconfConfig)
    hosts: List[HostConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _substitute(match: "re.Match[str]") -> str:
    name = match.group(1)
    value = os.getenv(name)
    if value is None:
        logger.warning(f"Environment variable {name} is not set, using an empty value")
        return ""
    return value


def expand_env_vars(obj: Any) -> Any:
    """Replace ``${VAR}`` placeholders in every string of a parsed YAML tree.

    An unset variable expands to the empty string.
    """
    if isinstance(obj, dict):
        return {key: expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [expand_env_vars(item) for item in obj]
    if isinstance(obj, str):
        return ENV_VAR.sub(_substitute, obj)
    return obj


def load_config(config_path: str = "config.yaml", env_file: str = ".env") -> Config:
    """Read the YAML configuration, filling placeholders from the environment.

    ``env_file`` is loaded first when it exists, so its variables are visible
    to the placeholders. An empty YAML file gives the defaults.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        pydantic.ValidationError: a value is out of range.
    """
    if Path(env_file).is_file():
        load_dotenv(env_file)

    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    raw = yaml.safe_load(path.read_text()) or {}
    logger.debug(f"Loaded configuration from {path}")
    return Config.model_validate(expand_env_vars(raw))
