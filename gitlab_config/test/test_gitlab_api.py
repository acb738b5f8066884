from unittest.mock import MagicMock

import pytest
from gitlab import (
    GitlabGetError,
    GitlabHttpError,
)

from gitlab_config.utils.config import GitLabSettings
from gitlab_config.utils.exceptions import RemoteOperationError
from gitlab_config.utils.gitlab_api import GitLabApi


class FailingList:
    current_page = 2

    def __iter__(self):
        yield {"id": 1}
        raise GitlabHttpError("boom", 500)


@pytest.fixture
def gl() -> MagicMock:
    return MagicMock()


@pytest.fixture
def api(settings: GitLabSettings, gl: MagicMock) -> GitLabApi:
    return GitLabApi(settings, session=MagicMock(), gl=gl)


def test_project_path(api: GitLabApi) -> None:
    assert api.project_path == "/projects/group%2Fproject"
    assert str(api) == "https://gitlab.com/projects/group%2Fproject"


def test_path(api: GitLabApi) -> None:
    assert api.path("labels", 1) == "/projects/group%2Fproject/labels/1"
    assert (
        api.path("protected_branches", "release/*")
        == "/projects/group%2Fproject/protected_branches/release%2F%2A"
    )


def test_get_error(api: GitLabApi, gl: MagicMock) -> None:
    gl.http_get.side_effect = GitlabGetError("not found", 404)
    with pytest.raises(RemoteOperationError) as e:
        api.get("/projects/1/push_rule", "failed to get push rules")
    assert e.value.purpose == "failed to get push rules"
    assert isinstance(e.value.__cause__, GitlabGetError)


def test_list_all(api: GitLabApi, gl: MagicMock) -> None:
    gl.http_list.return_value = iter([{"id": 1}, {"id": 2}])
    items = api.list_all("/projects/1/labels", "failed", query_data={"a": 1})
    assert items == [{"id": 1}, {"id": 2}]
    gl.http_list.assert_called_once_with(
        "/projects/1/labels", query_data={"per_page": 100, "a": 1}, iterator=True
    )


def test_list_all_forbidden_first_page(api: GitLabApi, gl: MagicMock) -> None:
    gl.http_list.side_effect = GitlabHttpError("forbidden", 403)
    assert api.list_all("/v", "failed", allow_forbidden_first_page=True) == []
    with pytest.raises(RemoteOperationError) as e:
        api.list_all("/v", "failed")
    assert e.value.details == {"page": 1}


def test_list_all_error_on_later_page(api: GitLabApi, gl: MagicMock) -> None:
    gl.http_list.return_value = FailingList()
    with pytest.raises(RemoteOperationError, match=r"failed \(page=2\)"):
        api.list_all("/v", "failed", allow_forbidden_first_page=True)


def test_mutations(api: GitLabApi, gl: MagicMock) -> None:
    api.post("/p", "failed", data={"a": 1})
    api.put("/p", "failed", data={"b": 2})
    api.patch("/p", "failed", data={"c": 3})
    api.delete("/p", "failed", query_data={"filter": {"environment_scope": "*"}})
    gl.http_post.assert_called_once_with("/p", post_data={"a": 1})
    gl.http_put.assert_called_once_with(
        "/p", query_data=None, post_data={"b": 2}, files=None
    )
    gl.http_patch.assert_called_once_with("/p", post_data={"c": 3})
    gl.http_delete.assert_called_once_with(
        "/p", query_data={"filter": {"environment_scope": "*"}}
    )


def test_delete_error(api: GitLabApi, gl: MagicMock) -> None:
    gl.http_delete.side_effect = GitlabHttpError("gone", 410)
    with pytest.raises(
        RemoteOperationError, match=r"failed to delete label \(label=1\)"
    ):
        api.delete("/p", "failed to delete label", label=1)


def test_closes_session(api: GitLabApi) -> None:
    with api:
        pass
    api.session.close.assert_called_once_with()
