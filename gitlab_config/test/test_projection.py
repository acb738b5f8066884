import pytest

from gitlab_config.utils.exceptions import ProjectionError
from gitlab_config.utils.projection import (
    cast_floats_to_ints,
    convert_nested_objects_to_ids,
    describe_keys,
    project,
    remove_field,
    remove_field_suffix,
    rename_field,
    strip_comments,
)


def test_cast_floats_to_ints() -> None:
    value = {"id": 1.0, "ratio": 0.5, "levels": [{"access_level": 40.0}], "ok": True}
    cast_floats_to_ints(value)
    assert value == {
        "id": 1,
        "ratio": 0.5,
        "levels": [{"access_level": 40}],
        "ok": True,
    }
    assert isinstance(value["id"], int)


def test_rename_field_recursive() -> None:
    value = {"a": 1, "nested": [{"a": 2}, {"b": 3}]}
    rename_field(value, "a", "c")
    assert value == {"c": 1, "nested": [{"c": 2}, {"b": 3}]}


def test_remove_field_recursive() -> None:
    value = {"id": 1, "levels": [{"id": 2, "access_level": 40}]}
    remove_field(value, "id")
    assert value == {"levels": [{"access_level": 40}]}


def test_remove_field_suffix() -> None:
    value = [{"key": "A", "value_sops": "x", "nested": {"b_sops": 1}}]
    remove_field_suffix(value, "_sops")
    assert value == [{"key": "A", "value": "x", "nested": {"b": 1}}]


def test_remove_field_suffix_empty() -> None:
    value = {"value_sops": "x"}
    remove_field_suffix(value, "")
    assert value == {"value_sops": "x"}


def test_describe_keys() -> None:
    record = {"name": "bug", "color": "#ff0000"}
    describe_keys(record, {"name": "The name. Type: string"})
    assert record == {
        "name": "bug",
        "color": "#ff0000",
        "comment:name": "The name. Type: string",
    }


def test_convert_nested_objects_to_ids() -> None:
    users = [{"id": 5, "name": "Jane"}, {"id": 7}]
    assert convert_nested_objects_to_ids("approval_rules", "users", users) == [
        "comment:Jane",
        5,
        7,
    ]


def test_convert_nested_objects_to_ids_null() -> None:
    assert convert_nested_objects_to_ids("approval_rules", "users", None) == []


def test_convert_nested_objects_to_ids_missing_id() -> None:
    with pytest.raises(ProjectionError, match='field "users.id" is missing'):
        convert_nested_objects_to_ids("approval_rules", "users", [{"name": "Jane"}])


def test_convert_nested_objects_to_ids_not_a_list() -> None:
    with pytest.raises(ProjectionError, match="is not a list but dict"):
        convert_nested_objects_to_ids("approval_rules", "users", {"id": 1})


def test_strip_comments() -> None:
    value = {
        "comment:name": "The name",
        "comment:": "whole record",
        "name": "rule",
        "user_ids": ["comment:Jane", 5, 7],
        "nested": [{"comment:": "x", "id": 1}],
    }
    strip_comments(value)
    assert value == {"name": "rule", "user_ids": [5, 7], "nested": [{"id": 1}]}


def test_project() -> None:
    record = {
        "id": 3.0,
        "name": "main",
        "web_url": "https://gitlab.com/group/project",
        "push_access_levels": [
            {"id": 1, "access_level": 40.0, "access_level_description": "Maintainers"}
        ],
    }
    result = project(
        "protected_branches",
        record,
        {"name": "", "allowed_to_push": ""},
        renames={"push_access_levels": "allowed_to_push"},
        keep=["id"],
        comment_field="access_level_description",
        required={"name": str},
    )
    assert result is record
    assert record == {
        "id": 3,
        "name": "main",
        "allowed_to_push": [
            {"id": 1, "access_level": 40, "comment:": "Maintainers"}
        ],
    }


def test_project_missing_required() -> None:
    with pytest.raises(ProjectionError) as e:
        project(
            "labels",
            {"name": "bug"},
            {"name": "", "id": ""},
            required={"id": int},
            index=2,
        )
    assert str(e.value) == 'labels at index 2: field "id" is missing'


def test_project_required_rejects_bool() -> None:
    with pytest.raises(ProjectionError, match="has invalid type bool"):
        project("labels", {"id": True}, {"id": ""}, required={"id": int})
