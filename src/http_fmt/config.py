"""Configuration loading (``http-fmt.yaml``)."""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from http_fmt.errors import ConfigError
from http_fmt.parser.base import DEFAULT_HTTP_VERSION, DEFAULT_METHOD

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "http-fmt.yaml"

CONFIG_HEADER = """\
# http-fmt configuration
#
# defaults.http_method   method used for request lines without one
# defaults.http_version  HTTP version used for request lines without one
"""


class Defaults(BaseModel):
    http_method: str = DEFAULT_METHOD
    http_version: str = DEFAULT_HTTP_VERSION


class Config(BaseModel):
    defaults: Defaults = Field(default_factory=Defaults)


def load_config(path: Path | None = None) -> Config:
    """Load the configuration file, falling back to defaults when it is absent.

    Raises:
        ConfigError: If the file cannot be read or is not a valid configuration.
    """
    path = path or Path.cwd() / CONFIG_FILENAME
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return Config()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"{path}: cannot read config: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from e


def render_default_config() -> str:
    body = yaml.safe_dump(Config().model_dump(), sort_keys=False, default_flow_style=False)
    return CONFIG_HEADER + body


def write_default_config(path: Path) -> None:
    path.write_text(render_default_config(), encoding="utf-8")
