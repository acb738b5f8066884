import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import click

from gitlab_config import get as get_command
from gitlab_config import set as set_command
from gitlab_config.sections.base import Context
from gitlab_config.status import ExitCodes
from gitlab_config.utils import (
    config,
    git,
    sops,
)
from gitlab_config.utils.config import (
    DEFAULT_BASE_URL,
    DEFAULT_DOCS_REF,
    GitLabSettings,
)
from gitlab_config.utils.docs import Documentation
from gitlab_config.utils.exceptions import (
    ConfigurationError,
    GitLabConfigError,
)
from gitlab_config.utils.gitlab_api import GitLabApi
from gitlab_config.utils.runtime.environment import init_env
from gitlab_config.utils.sops import (
    DEFAULT_ENC_COMMENT,
    DEFAULT_ENC_SUFFIX,
)

DEFAULT_CONFIG_FILE = ".gitlab-conf.yml"
DEFAULT_AVATAR_FILE = ".gitlab-avatar.img"
TOML_SECTION = "gitlab"


def config_file(function: Callable) -> Callable:
    help_msg = "Path to configuration file in toml format."
    function = click.option(
        "--config",
        "configfile",
        default=lambda: os.environ.get("GITLAB_CONFIG_FILE"),
        help=help_msg,
    )(function)
    return function


def log_level(function: Callable) -> Callable:
    function = click.option(
        "--log-level",
        help="log-level of the command. Defaults to INFO.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    )(function)
    return function


def gitlab_options(function: Callable) -> Callable:
    function = click.option(
        "--project",
        "-p",
        help="Project ID or path. Defaults to the project of the origin remote.",
        default=lambda: os.environ.get("CI_PROJECT_ID"),
    )(function)
    function = click.option(
        "--base",
        "-B",
        help=f"Base URL of GitLab. Defaults to {DEFAULT_BASE_URL}.",
        default=lambda: os.environ.get("CI_SERVER_URL"),
    )(function)
    function = click.option(
        "--token",
        "-t",
        help="GitLab API token.",
        default=lambda: os.environ.get("GITLAB_API_TOKEN"),
    )(function)
    function = click.option(
        "--docs",
        "-D",
        help=(
            "Git reference of GitLab's API documentation used to discover "
            f"editable fields. Defaults to {DEFAULT_DOCS_REF}."
        ),
        default=lambda: os.environ.get("DOCS_GIT_REF"),
    )(function)
    function = click.option(
        "--chdir",
        "-C",
        help="Change to this directory before doing anything.",
        default=lambda: os.environ.get("CI_PROJECT_DIR"),
    )(function)
    return function


def dry_run(function: Callable) -> Callable:
    help_msg = (
        "If `true`, it will only print the planned actions "
        "that would be performed, without executing them."
    )

    function = click.option("--dry-run/--no-dry-run", default=False, help=help_msg)(
        function
    )
    return function


def enc_suffix(function: Callable) -> Callable:
    help_msg = "Suffix of fields which hold values to be encrypted by sops."
    function = click.option(
        "--enc-suffix", default=DEFAULT_ENC_SUFFIX, show_default=True, help=help_msg
    )(function)
    return function


def error_chain(e: BaseException) -> str:
    messages = []
    current: BaseException | None = e
    while current is not None:
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__
    return ": ".join(messages)


def run_command(func: Callable, *args: Any) -> Any:
    try:
        return func(*args)
    except GitLabConfigError as e:
        logging.error(error_chain(e))
        sys.exit(ExitCodes.ERROR)


def resolve_settings(options: dict[str, Any]) -> GitLabSettings:
    """
    Settings from command line options and environment variables, falling
    back to the [gitlab] table of the configuration file.
    """

    def option(name: str, field: str) -> Any:
        value = options.get(name)
        return value if value else config.read(TOML_SECTION, field)

    token = option("token", "token")
    if not token:
        raise ConfigurationError(
            "GitLab API token is required, use --token or GITLAB_API_TOKEN"
        )
    project = option("project", "project") or git.infer_project()
    return GitLabSettings(
        project=str(project),
        url=(option("base", "url") or DEFAULT_BASE_URL).rstrip("/"),
        token=token,
        docs_ref=option("docs", "docs_ref") or DEFAULT_DOCS_REF,
    )


def build_context(options: dict[str, Any], **kwargs: Any) -> Context:
    settings = resolve_settings(options)
    logging.debug(["project", settings.project])
    return Context(
        api=GitLabApi(settings),
        docs=Documentation(settings.docs_ref, timeout=settings.timeout),
        settings=settings,
        **kwargs,
    )


@click.group()
@config_file
@gitlab_options
@log_level
@click.pass_context
def root(
    ctx: click.Context,
    configfile: str | None,
    project: str | None,
    base: str | None,
    token: str | None,
    docs: str | None,
    chdir: str | None,
    log_level: str | None,
) -> None:
    """Manage the configuration of a GitLab project as a YAML document."""
    ctx.ensure_object(dict)
    if chdir:
        os.chdir(chdir)
    run_command(init_env, log_level, configfile)
    ctx.obj["options"] = {
        "project": project,
        "base": base,
        "token": token,
        "docs": docs,
    }


@root.command("get", short_help="Write the project's configuration to a file.")
@click.option(
    "--output",
    "-o",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help='Output file, "-" for stdout.',
)
@click.option(
    "--avatar",
    "-a",
    default=DEFAULT_AVATAR_FILE,
    show_default=True,
    help="Avatar file, the extension is replaced by the avatar's.",
)
@click.option(
    "--enc-comment",
    default=DEFAULT_ENC_COMMENT,
    show_default=True,
    help="Comment added to values to be encrypted by sops.",
)
@enc_suffix
@click.pass_context
def get_configuration(
    ctx: click.Context, output: str, avatar: str, enc_comment: str, enc_suffix: str
) -> None:
    def _get() -> None:
        command_ctx = build_context(
            ctx.obj["options"],
            avatar_path=avatar,
            enc_comment=enc_comment,
            enc_suffix=enc_suffix,
        )
        with command_ctx.api:
            get_command.run(command_ctx, output)

    run_command(_get)


@root.command("set", short_help="Update the project to match a configuration file.")
@click.option(
    "--input",
    "-i",
    "source",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help='Input file, "-" for stdin.',
)
@enc_suffix
@dry_run
@click.pass_context
def set_configuration(
    ctx: click.Context, source: str, enc_suffix: str, dry_run: bool
) -> None:
    if dry_run:
        # only the log format changes
        run_command(init_env, None, None, dry_run)

    def _set() -> None:
        command_ctx = build_context(
            ctx.obj["options"], dry_run=dry_run, enc_suffix=enc_suffix
        )
        with command_ctx.api:
            set_command.run(command_ctx, source)

    run_command(_set)


@root.command(
    "sops",
    short_help="Run sops with the given arguments.",
    context_settings={"ignore_unknown_options": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def sops_command(args: tuple[str, ...]) -> None:
    sys.exit(run_command(sops.run, list(args)))

