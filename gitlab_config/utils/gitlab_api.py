import logging
from collections.abc import Mapping
from typing import (
    Any,
    BinaryIO,
    Self,
)

from gitlab import (
    Gitlab,
    GitlabError,
    GitlabHttpError,
)
from gitlab.utils import EncodedId
from requests import Session

from gitlab_config.utils.config import GitLabSettings
from gitlab_config.utils.exceptions import RemoteOperationError

FORBIDDEN = 403


class GitLabApi:
    """
    Access to a single GitLab project through the REST API.

    Records are exchanged as plain decoded JSON, so that fields which are not
    (yet) known to python-gitlab's object model pass through unchanged. Every
    failure is raised as RemoteOperationError naming the purpose of the call.
    """

    def __init__(
        self,
        settings: GitLabSettings,
        session: Session | None = None,
        gl: Gitlab | None = None,
    ):
        self.settings = settings
        self.session = session or Session()
        self.gl = gl or Gitlab(
            settings.url,
            private_token=settings.token,
            timeout=settings.timeout,
            session=self.session,
            per_page=settings.page_size,
            retry_transient_errors=True,
        )
        self.project_path = f"/projects/{EncodedId(settings.project)}"

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.cleanup()

    def __str__(self) -> str:
        return f"{self.settings.url}{self.project_path}"

    def cleanup(self) -> None:
        """
        Close session.
        """
        self.session.close()

    def path(self, *parts: str | int) -> str:
        """Path of a project's sub-resource, with parts URL-encoded."""
        return "/".join([self.project_path, *(str(EncodedId(p)) for p in parts)])

    def get(self, path: str, purpose: str, **details: Any) -> Any:
        try:
            return self.gl.http_get(path)
        except GitlabError as e:
            raise RemoteOperationError(purpose, **details) from e

    def list_all(
        self,
        path: str,
        purpose: str,
        query_data: Mapping[str, Any] | None = None,
        allow_forbidden_first_page: bool = False,
    ) -> list[dict[str, Any]]:
        """
        List all items at path, following pagination.

        With allow_forbidden_first_page, a 403 response for the first page
        returns an empty list (e.g., CI/CD variables when CI/CD is disabled).
        The same response for a later page is an error.
        """
        query = {"per_page": self.settings.page_size, **(query_data or {})}
        try:
            # the first page is fetched when the list is created
            items = self.gl.http_list(path, query_data=query, iterator=True)
        except GitlabHttpError as e:
            if allow_forbidden_first_page and e.response_code == FORBIDDEN:
                logging.debug(["forbidden", path])
                return []
            raise RemoteOperationError(purpose, page=1) from e
        except GitlabError as e:
            raise RemoteOperationError(purpose, page=1) from e

        result = []
        try:
            for item in items:
                result.append(item)
        except GitlabError as e:
            raise RemoteOperationError(purpose, page=items.current_page) from e
        return result

    def post(
        self,
        path: str,
        purpose: str,
        data: Mapping[str, Any] | None = None,
        **details: Any,
    ) -> Any:
        try:
            return self.gl.http_post(path, post_data=data)
        except GitlabError as e:
            raise RemoteOperationError(purpose, **details) from e

    def put(
        self,
        path: str,
        purpose: str,
        data: Mapping[str, Any] | None = None,
        query_data: Mapping[str, Any] | None = None,
        files: Mapping[str, tuple[str, BinaryIO]] | None = None,
        **details: Any,
    ) -> Any:
        try:
            return self.gl.http_put(
                path, query_data=query_data, post_data=data, files=files
            )
        except GitlabError as e:
            raise RemoteOperationError(purpose, **details) from e

    def patch(
        self,
        path: str,
        purpose: str,
        data: Mapping[str, Any] | None = None,
        **details: Any,
    ) -> Any:
        try:
            return self.gl.http_patch(path, post_data=data)
        except GitlabError as e:
            raise RemoteOperationError(purpose, **details) from e

    def delete(
        self,
        path: str,
        purpose: str,
        query_data: Mapping[str, Any] | None = None,
        **details: Any,
    ) -> None:
        try:
            self.gl.http_delete(path, query_data=query_data)
        except GitlabError as e:
            raise RemoteOperationError(purpose, **details) from e

    def get_project(self) -> dict[str, Any]:
        return self.get(self.project_path, "failed to get project")
