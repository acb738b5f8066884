from typing import Any

import toml
from pydantic import BaseModel, Field

from gitlab_config.utils.exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://gitlab.com"
DEFAULT_DOCS_REF = "master"
DEFAULT_PAGE_SIZE = 100
DEFAULT_COMMENT_WIDTH = 80

_config: dict[str, Any] = {}


class GitLabSettings(BaseModel):
    """Everything needed to talk to the GitLab API and its documentation."""

    project: str
    url: str = DEFAULT_BASE_URL
    token: str = Field(repr=False)
    docs_ref: str = DEFAULT_DOCS_REF
    page_size: int = DEFAULT_PAGE_SIZE
    comment_width: int = DEFAULT_COMMENT_WIDTH
    timeout: float = 30


def get_config() -> dict[str, Any]:
    return _config


def init(config: dict[str, Any]) -> dict[str, Any]:
    global _config  # noqa: PLW0603
    _config = config
    return _config


def init_from_toml(configfile: str) -> dict[str, Any]:
    try:
        return init(toml.load(configfile))
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigurationError(
            f"cannot load configuration file {configfile}: {e!s}"
        ) from e


def read(section: str, field: str) -> Any:
    """Read a value from the loaded TOML config, None when it is not set."""
    return get_config().get(section, {}).get(field)
