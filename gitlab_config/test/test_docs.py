import pytest
import requests
from pytest_mock import MockerFixture

from gitlab_config.test.fixtures import Fixtures
from gitlab_config.utils import docs
from gitlab_config.utils.docs import (
    Documentation,
    extract_table,
    inline_text,
    split_row,
)
from gitlab_config.utils.exceptions import (
    RemoteOperationError,
    SchemaError,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("plain text", "plain text"),
        ("`name`", "name"),
        ("`allowed_to_push` **(PREMIUM ALL)**", "allowed_to_push (PREMIUM ALL)"),
        ("[CSS color names](https://example.com/colors)", "CSS color names"),
        ("_(Deprecated)_ Use `x` instead", "(Deprecated) Use x instead"),
        ("see <https://example.com>", "see https://example.com"),
        ("a <br> b<!-- hidden -->", "a  b"),
        ("`` a `b` c ``", "a `b` c"),
        ("`**not bold**`", "**not bold**"),
        (r"escaped \* star", "escaped * star"),
    ],
)
def test_inline_text(text: str, expected: str) -> None:
    assert inline_text(text) == expected


def test_split_row() -> None:
    assert split_row("| `a` | b \\| c | d |") == ["a", "b | c", "d"]


def test_split_row_without_outer_pipes() -> None:
    assert split_row("a | b") == ["a", "b"]


def test_extract_table() -> None:
    fxt = Fixtures("docs")
    table = extract_table(fxt.get("labels.md"), "Create a new label")
    assert table.header == ["Attribute", "Type", "Required", "Description"]
    assert [row[0] for row in table.rows] == [
        "id",
        "name",
        "color",
        "description",
        "priority",
    ]


def test_extract_table_nested_heading() -> None:
    fxt = Fixtures("docs")
    table = extract_table(fxt.get("merge_request_approvals.md"), "Get configuration")
    assert table.rows == [
        [
            "id",
            "integer or string",
            "Yes",
            "The ID or URL-encoded path of a project.",
        ]
    ]


def test_extract_table_first_heading_wins() -> None:
    document = """
## Heading

| A | B |
|---|---|
| 1 | 2 |

## Heading

| A | B |
|---|---|
| 3 | 4 |
"""
    assert extract_table(document, "Heading").rows == [["1", "2"]]


def test_extract_table_normalizes_rows() -> None:
    document = """
# Heading

| A | B | C |
|---|---|---|
| 1 |
| 1 | 2 | 3 | 4 |
"""
    assert extract_table(document, "Heading").rows == [
        ["1", "", ""],
        ["1", "2", "3"],
    ]


def test_extract_table_ends_at_blank_line() -> None:
    document = """
# Heading

| A | B |
|---|---|
| 1 | 2 |

| 3 | 4 |
"""
    assert extract_table(document, "Heading").rows == [["1", "2"]]


def test_extract_table_ignores_code_blocks() -> None:
    document = """
```markdown
# Heading

| A | B |
|---|---|
| 0 | 0 |
```

# Heading

```plaintext
| X | Y |
|---|---|
```

| A | B |
|---|---|
| 1 | 2 |
"""
    assert extract_table(document, "Heading").rows == [["1", "2"]]


def test_extract_table_heading_markup() -> None:
    document = """
## Create a `label` [link](https://example.com) ##

| A |
|---|
| 1 |
"""
    assert extract_table(document, "Create a label link").rows == [["1"]]


def test_extract_table_missing_heading() -> None:
    with pytest.raises(SchemaError, match='heading "Missing" not found'):
        extract_table("# Heading\n", "Missing")


def test_extract_table_missing_table() -> None:
    with pytest.raises(SchemaError, match="table after heading"):
        extract_table("# Heading\n\nJust text | with a pipe.\n", "Heading")


def test_documentation_url() -> None:
    assert (
        Documentation("v16.0.0-ee").url("labels")
        == "https://gitlab.com/gitlab-org/gitlab/-/raw/v16.0.0-ee/doc/api/labels.md"
    )


def test_documentation_get_is_cached(mocker: MockerFixture) -> None:
    download = mocker.patch.object(docs, "download_file", return_value=b"# Labels")
    documentation = Documentation("master")
    assert documentation.get("labels") == "# Labels"
    assert documentation.get("labels") == "# Labels"
    download.assert_called_once_with(documentation.url("labels"), timeout=30)


def test_download_file_error(mocker: MockerFixture) -> None:
    mocker.patch.object(
        docs, "_get", side_effect=requests.exceptions.HTTPError("404 Not Found")
    )
    with pytest.raises(RemoteOperationError) as e:
        docs.download_file("https://example.com/missing.md")
    assert e.value.details == {"url": "https://example.com/missing.md"}


def test_documentation_get_invalid_encoding(mocker: MockerFixture) -> None:
    mocker.patch.object(docs, "download_file", return_value=b"# Labels \xff\xfe")
    with pytest.raises(SchemaError, match="is not UTF-8"):
        Documentation("master").get("labels")
