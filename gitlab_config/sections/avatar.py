import logging
import os
import posixpath
from urllib.parse import urlparse

from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    Section,
)
from gitlab_config.utils.docs import download_file
from gitlab_config.utils.exceptions import (
    ConfigurationError,
    ProjectionError,
)
from gitlab_config.utils.ruamel import FILE_MODE

# a reasonable subset of extensions GitLab accepts for avatars
AVATAR_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".ico")
NO_AVATAR = ""


def check_avatar_extension(ext: str) -> None:
    if ext not in AVATAR_EXTENSIONS:
        raise ConfigurationError(f'invalid avatar extension "{ext}"')


def avatar_path(path: str, ext: str) -> str:
    """Replace the extension of path with ext."""
    return os.path.splitext(path)[0] + ext


class AvatarSection(Section):
    key = "avatar"
    title = "avatar"

    def fetch(self, ctx: Context) -> FetchedSection:
        url = ctx.project.get("avatar_url")
        if url is None:
            return FetchedSection(NO_AVATAR)
        if not isinstance(url, str):
            raise ProjectionError("project", "avatar_url", "is not a string")

        ext = posixpath.splitext(urlparse(url).path)[1]
        check_avatar_extension(ext)
        # TODO: private avatars need an authenticated download, see
        # https://gitlab.com/gitlab-org/gitlab/-/issues/25498
        data = download_file(url, timeout=ctx.settings.timeout)

        path = avatar_path(ctx.avatar_path, ext)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise ConfigurationError(f'failed to save avatar to "{path}"') from e
        return FetchedSection(path)

    def apply(self, ctx: Context, value: str) -> None:
        if value == NO_AVATAR:
            logging.info(["delete_avatar", ctx.settings.project])
            if not ctx.dry_run:
                ctx.api.put(
                    ctx.api.project_path,
                    "failed to delete project avatar",
                    data={"avatar": None},
                )
            return

        check_avatar_extension(os.path.splitext(value)[1])
        logging.info(["upload_avatar", value])
        if ctx.dry_run:
            return
        try:
            with open(value, "rb") as f:
                ctx.api.put(
                    ctx.api.project_path,
                    "failed to upload project avatar",
                    files={"avatar": (os.path.basename(value), f)},
                    file=value,
                )
        except OSError as e:
            raise ConfigurationError(f'failed to open avatar file "{value}"') from e
