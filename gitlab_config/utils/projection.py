"""
Helpers to project records returned by GitLab's API onto the fields which can
be edited through the API.

Records are arbitrary structures decoded from JSON (dicts, lists and scalars)
and all helpers which modify them do so in place, recursively.
"""

from collections.abc import Iterable
from typing import Any

from gitlab_config.utils.exceptions import (
    ProjectionError,
    type_name,
)

COMMENT_PREFIX = "comment:"


def _children(value: Any) -> Iterable[Any]:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return list(value)
    return []


def cast_floats_to_ints(value: Any) -> None:
    """
    Cast integral floats to ints anywhere in value. Floats with a fractional
    part are left as they are.
    """
    if isinstance(value, dict):
        items: Iterable[tuple[Any, Any]] = list(value.items())
    elif isinstance(value, list):
        items = list(enumerate(value))
    else:
        return
    for key, item in items:
        if isinstance(item, float) and item.is_integer():
            value[key] = int(item)
        else:
            cast_floats_to_ints(item)


def rename_field(value: Any, old: str, new: str) -> None:
    """Rename field old to new anywhere in value."""
    for child in _children(value):
        rename_field(child, old, new)
    if isinstance(value, dict) and old in value:
        value[new] = value.pop(old)


def remove_field(value: Any, field: str) -> None:
    """Remove field anywhere in value."""
    for child in _children(value):
        remove_field(child, field)
    if isinstance(value, dict):
        value.pop(field, None)


def remove_field_suffix(value: Any, suffix: str) -> None:
    """Remove suffix from field names anywhere in value."""
    if not suffix:
        return
    for child in _children(value):
        remove_field_suffix(child, suffix)
    if isinstance(value, dict):
        for key in [k for k in value if isinstance(k, str) and k.endswith(suffix)]:
            value[key[: -len(suffix)]] = value.pop(key)


def retain_fields(
    record: dict[str, Any], descriptions: dict[str, str], keep: Iterable[str] = ()
) -> None:
    """
    Remove top-level fields of record which are not in descriptions, i.e.,
    which cannot be edited through the API. Fields in keep are retained
    regardless.
    """
    keep = set(keep)
    for key in list(record):
        if key not in descriptions and key not in keep:
            del record[key]


def describe_keys(record: dict[str, Any], descriptions: dict[str, str]) -> None:
    """Add a comment for every field of record found in descriptions."""
    for key in list(record):
        if key in descriptions:
            record[COMMENT_PREFIX + key] = descriptions[key]


def convert_nested_objects_to_ids(kind: str, field: str, value: Any) -> list[Any]:
    """
    Convert a list of objects to a list of their IDs. When an object has a
    name, the name is added as a comment entry before its ID.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProjectionError(kind, field, f"is not a list but {type_name(value)}")

    ids: list[Any] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ProjectionError(
                kind, field, f"item is not an object but {type_name(item)}", index=i
            )
        if "name" in item:
            if not isinstance(item["name"], str):
                raise ProjectionError(
                    kind,
                    f"{field}.name",
                    f"is not a string but {type_name(item['name'])}",
                    index=i,
                )
            ids.append(COMMENT_PREFIX + item["name"])
        if "id" not in item:
            raise ProjectionError(kind, f"{field}.id", "is missing", index=i)
        ids.append(item["id"])
    return ids


def strip_comments(value: Any) -> None:
    """Remove all comment fields and comment list entries anywhere in value."""
    if isinstance(value, dict):
        for key in [
            k for k in value if isinstance(k, str) and k.startswith(COMMENT_PREFIX)
        ]:
            del value[key]
    elif isinstance(value, list):
        value[:] = [
            item
            for item in value
            if not (isinstance(item, str) and item.startswith(COMMENT_PREFIX))
        ]
    for child in _children(value):
        strip_comments(child)


def require_field(
    kind: str,
    record: dict[str, Any],
    field: str,
    types: type | tuple[type, ...],
    index: int | None = None,
) -> Any:
    """Return record[field], checking that it is present and of one of types."""
    if field not in record:
        raise ProjectionError(kind, field, "is missing", index=index)
    value = record[field]
    # bool is a subclass of int but never a valid identity
    if isinstance(value, bool) or not isinstance(value, types):
        raise ProjectionError(
            kind,
            field,
            f"has invalid type {type_name(value)}",
            index=index,
            value=value,
        )
    return value


def project(
    kind: str,
    record: dict[str, Any],
    descriptions: dict[str, str],
    renames: dict[str, str] | None = None,
    keep: Iterable[str] = (),
    comment_field: str | None = None,
    required: dict[str, type | tuple[type, ...]] | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """
    Project a record read from GitLab onto editable fields.

    Args:
        kind: Kind of the record, used in error messages.
        record: The raw record, modified in place.
        descriptions: Editable fields and their descriptions.
        renames: Fields to copy into a differently named field before
            filtering, for fields which are named differently when read.
        keep: Fields to keep even if they are not in descriptions.
        comment_field: Field (anywhere in the record) promoted into a comment
            for the item which contains it.
        required: Fields which must be present after projection, with their
            types.
        index: Position of the record in its list, used in error messages.

    Returns:
        The projected record.

    Raises:
        ProjectionError: If a required field is missing or of wrong type.
    """
    cast_floats_to_ints(record)
    for old, new in (renames or {}).items():
        if old in record:
            record[new] = record[old]
    retain_fields(record, descriptions, keep)
    if comment_field:
        rename_field(record, comment_field, COMMENT_PREFIX)
    for field, types in (required or {}).items():
        require_field(kind, record, field, types, index=index)
    return record
