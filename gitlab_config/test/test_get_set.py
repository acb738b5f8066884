import logging
import os
from typing import Any

import pytest
from pytest_mock import MockerFixture

from gitlab_config import get as get_command
from gitlab_config import set as set_command
from gitlab_config.sections.base import (
    Context,
    FetchedSection,
    Section,
)
from gitlab_config.utils import sops
from gitlab_config.utils.exceptions import ConfigurationError
from gitlab_config.utils.ruamel import load


class StaticSection(Section):
    def __init__(self, key: str, fetched: FetchedSection | None = None) -> None:
        self.key = key
        self.title = key.replace("_", " ")
        self.fetched = fetched
        self.applied: list[Any] = []

    def fetch(self, ctx: Context) -> FetchedSection:
        assert self.fetched is not None
        return self.fetched

    def apply(self, ctx: Context, value: Any) -> None:
        self.applied.append(value)


@pytest.fixture
def sections(mocker: MockerFixture) -> dict[str, StaticSection]:
    sections = {
        "labels": StaticSection(
            "labels",
            FetchedSection(
                [{"comment:name": "The name of the label.", "id": 1, "name": "bug"}],
                "Project labels.",
            ),
        ),
        "variables": StaticSection(
            "variables",
            FetchedSection(
                [{"key": "TOKEN", "value_sops": "secret", "environment_scope": "*"}],
                sensitive=True,
            ),
        ),
    }
    mocker.patch.object(get_command, "SECTIONS", list(sections.values()))
    mocker.patch.object(set_command, "SECTIONS", list(sections.values()))
    return sections


def write(tmp_path: Any, content: str) -> str:
    path = os.path.join(tmp_path, ".gitlab-conf.yml")
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def test_get(ctx: Context, sections: dict, tmp_path: Any, caplog: Any) -> None:
    output = os.path.join(tmp_path, ".gitlab-conf.yml")
    with caplog.at_level(logging.INFO):
        configuration = get_command.run(ctx, output)

    assert configuration.managed() == ["labels", "variables"]
    with open(output, encoding="utf-8") as f:
        text = f.read()
    assert "# Project labels." in text
    assert "# The name of the label." in text
    assert load(text) == {
        "labels": [{"id": 1, "name": "bug"}],
        "variables": [
            {"key": "TOKEN", "value_sops": "secret", "environment_scope": "*"}
        ],
    }
    assert "Getting labels..." in caplog.text
    assert (
        "gitlab-config sops --encrypt --encrypted-suffix _sops "
        f"--in-place {output}" in caplog.text
    )


def test_get_not_sensitive(
    ctx: Context, sections: dict, tmp_path: Any, caplog: Any
) -> None:
    sections["variables"].fetched = FetchedSection([])
    get_command.run(ctx, os.path.join(tmp_path, "out.yml"))
    assert "sensitive" not in caplog.text


def test_set(ctx: Context, sections: dict, tmp_path: Any) -> None:
    source = write(
        tmp_path,
        "# Project labels.\n"
        "labels:\n"
        "  - id: 1\n"
        "    name: bug\n"
        "    comment:color: the color\n",
    )
    set_command.run(ctx, source)
    assert sections["labels"].applied == [[{"id": 1, "name": "bug"}]]
    assert sections["variables"].applied == []


def test_set_empty_section(ctx: Context, sections: dict, tmp_path: Any) -> None:
    set_command.run(ctx, write(tmp_path, "labels: []\nvariables: null\n"))
    assert sections["labels"].applied == [[]]
    assert sections["variables"].applied == []


def test_set_encrypted(
    ctx: Context, sections: dict, tmp_path: Any, mocker: MockerFixture
) -> None:
    decrypt = mocker.patch.object(
        sops,
        "_decrypt",
        return_value=(
            "variables:\n"
            "  - key: TOKEN\n"
            "    value_sops: secret\n"
            "sops:\n"
            "  version: 3.8.1\n"
        ),
    )
    content = (
        "variables:\n"
        "  - key: TOKEN\n"
        "    value_sops: ENC[AES256_GCM,data:abc]\n"
        "sops:\n"
        "  version: 3.8.1\n"
    )
    set_command.run(ctx, write(tmp_path, content))
    decrypt.assert_called_once_with(content)
    assert sections["variables"].applied == [[{"key": "TOKEN", "value": "secret"}]]


def test_set_invalid_configuration(ctx: Context, sections: dict, tmp_path: Any) -> None:
    with pytest.raises(ConfigurationError, match="invalid configuration"):
        set_command.run(ctx, write(tmp_path, "labels: {}\n"))
    assert sections["labels"].applied == []


def test_set_missing_file(ctx: Context, sections: dict, tmp_path: Any) -> None:
    with pytest.raises(ConfigurationError, match="cannot read configuration"):
        set_command.run(ctx, os.path.join(tmp_path, "missing.yml"))
