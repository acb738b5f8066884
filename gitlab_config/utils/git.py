import re
import subprocess
from urllib.parse import urlparse

from gitlab_config.utils.exceptions import ConfigurationError

SCP_LIKE_URL = re.compile(r"^(?:[^@/]+@)?[^:/]+:(?!//)(?P<path>.+)$")


class GitError(ConfigurationError):
    pass


def remote_url(wd: str = ".", remote: str = "origin") -> str:
    cmd = ["git", "config", "--get", f"remote.{remote}.url"]
    try:
        result = subprocess.run(
            cmd, cwd=wd, capture_output=True, text=True, check=False
        )
    except OSError as e:
        raise GitError(f"git config failed: {e}") from e
    if result.returncode != 0:
        raise GitError(f'cannot get URL of remote "{remote}" in {wd}')
    return result.stdout.strip()


def project_path(url: str) -> str:
    """
    Extract the "namespace/project" path from a git remote URL, supporting
    both URLs (https://gitlab.com/group/project.git) and scp-like syntax
    (git@gitlab.com:group/project.git).
    """
    match = SCP_LIKE_URL.match(url)
    path = match.group("path") if match else urlparse(url).path
    path = path.strip("/").removesuffix(".git")
    if "/" not in path:
        raise GitError(f'cannot infer project from remote URL "{url}"')
    return path


def infer_project(wd: str = ".") -> str:
    return project_path(remote_url(wd))
