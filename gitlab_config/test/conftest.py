from unittest.mock import create_autospec

import pytest

from gitlab_config.sections.base import Context
from gitlab_config.test.fixtures import Fixtures
from gitlab_config.utils.config import GitLabSettings
from gitlab_config.utils.docs import Documentation
from gitlab_config.utils.gitlab_api import GitLabApi

PROJECT_PATH = "/projects/group%2Fproject"


@pytest.fixture
def docs_fixtures() -> Fixtures:
    return Fixtures("docs")


@pytest.fixture
def settings() -> GitLabSettings:
    return GitLabSettings(project="group/project", token="secret")


@pytest.fixture
def api() -> GitLabApi:
    api = create_autospec(GitLabApi, instance=True)
    api.project_path = PROJECT_PATH
    api.path.side_effect = lambda *parts: "/".join(
        [PROJECT_PATH, *(str(p) for p in parts)]
    )
    return api


@pytest.fixture
def docs(docs_fixtures: Fixtures) -> Documentation:
    docs = create_autospec(Documentation, instance=True)
    docs.get.side_effect = lambda name: docs_fixtures.get(f"{name}.md")
    return docs


@pytest.fixture
def ctx(api: GitLabApi, docs: Documentation, settings: GitLabSettings) -> Context:
    return Context(api=api, docs=docs, settings=settings)
