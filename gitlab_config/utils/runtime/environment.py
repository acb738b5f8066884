import logging
import os

from gitlab_config.utils import config

GITLAB_CONFIG_FILE = "GITLAB_CONFIG_FILE"
GITLAB_CONFIG_LOG_LEVEL = "GITLAB_CONFIG_LOG_LEVEL"

LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def log_fmt(dry_run: bool | None = None) -> str:
    log_fmt = (
        "[%(asctime)s] [%(levelname)s] [DRY-RUN] "
        if dry_run
        else "[%(asctime)s] [%(levelname)s] "
    )

    log_fmt += "[%(filename)s:%(funcName)s:%(lineno)d] - %(message)s"

    return log_fmt


def init_env(
    log_level: str | None = None,
    config_file: str | None = None,
    dry_run: bool | None = None,
) -> None:
    # store env configs in environment variables. this way child processes
    # (like sops) inherit them.
    if log_level:
        os.environ[GITLAB_CONFIG_LOG_LEVEL] = log_level
    if config_file:
        os.environ[GITLAB_CONFIG_FILE] = config_file

    # init loglevel
    logging.basicConfig(
        format=log_fmt(dry_run=dry_run),
        datefmt=LOG_DATEFMT,
        level=getattr(logging, os.environ.get(GITLAB_CONFIG_LOG_LEVEL, "INFO")),
        force=True,
    )

    # the config file is optional, command line options and environment
    # variables take precedence over it
    config_file = os.environ.get(GITLAB_CONFIG_FILE)
    if config_file:
        config.init_from_toml(config_file)
