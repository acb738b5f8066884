import datetime
import os
import sys
import textwrap
from typing import (
    IO,
    Any,
)

from ruamel import yaml
from ruamel.yaml.comments import (
    CommentedMap,
    CommentedSeq,
)
from ruamel.yaml.error import YAMLError

from gitlab_config.utils.exceptions import ConfigurationError
from gitlab_config.utils.projection import COMMENT_PREFIX

FILE_MODE = 0o600
INDENT = 2
STDIO = "-"


def create_ruamel_instance(
    preserve_quotes: bool = True,
    explicit_start: bool = False,
    width: int = 4096,
    pure: bool = False,
) -> yaml.YAML:
    ruamel_instance = yaml.YAML(pure=pure)

    ruamel_instance.preserve_quotes = preserve_quotes
    ruamel_instance.explicit_start = explicit_start
    ruamel_instance.width = width
    ruamel_instance.indent(mapping=INDENT, sequence=INDENT * 2, offset=INDENT)

    return ruamel_instance


def wrap_comment(comment: Any, width: int) -> str:
    """Wrap every line of comment at width, never breaking words."""
    lines = []
    for line in str(comment).rstrip("\n").split("\n"):
        wrapped = textwrap.wrap(
            line, width=width, break_long_words=False, break_on_hyphens=False
        )
        lines.extend(wrapped or [""])
    return "\n".join(lines)


def _join(*comments: str | None) -> str | None:
    parts = [c for c in comments if c]
    return "\n".join(parts) if parts else None


def annotate(
    value: Any, width: int, column: int = 0, in_sequence: bool = False
) -> tuple[Any, str | None]:
    """
    Convert plain data into ruamel's commented data, moving annotations into
    comments.

    In a mapping, a "comment:<key>" field becomes a comment before <key> and a
    bare "comment:" field a comment for the mapping itself. In a sequence, a
    "comment:<text>" string becomes a comment before the next item.

    Returns the converted value and, when in_sequence, the comment for the
    value itself, which the containing sequence places before the item.
    Otherwise the comment for the mapping is placed before its first key.
    """
    if isinstance(value, dict):
        comments = {
            key[len(COMMENT_PREFIX) :]: comment
            for key, comment in value.items()
            if isinstance(key, str) and key.startswith(COMMENT_PREFIX)
        }
        own = wrap_comment(comments[""], width) if comments.get("") else None
        data = CommentedMap()
        for key, item in value.items():
            if isinstance(key, str) and key.startswith(COMMENT_PREFIX):
                continue
            data[key], _ = annotate(item, width, column + INDENT)
            before = wrap_comment(comments[key], width) if comments.get(key) else None
            if not in_sequence and len(data) == 1:
                before = _join(own, before)
            if before:
                data.yaml_set_comment_before_after_key(
                    key, before=before, indent=column
                )
        return data, own if in_sequence else None

    if isinstance(value, list):
        data = CommentedSeq()
        pending: str | None = None
        for item in value:
            if isinstance(item, str) and item.startswith(COMMENT_PREFIX):
                pending = _join(pending, item[len(COMMENT_PREFIX) :])
                continue
            converted, own = annotate(item, width, column + INDENT, in_sequence=True)
            data.append(converted)
            before = _join(pending, own)
            pending = None
            if before:
                data.yaml_set_comment_before_after_key(
                    len(data) - 1, before=wrap_comment(before, width), indent=column
                )
        return data, None

    return value, None


def dump(value: Any, stream: IO[str], width: int) -> None:
    data, _ = annotate(value, width)
    create_ruamel_instance().dump(data, stream)


def write_document(value: Any, output: str, width: int) -> None:
    """
    Write value as YAML with annotations as comments to file output, or to
    stdout when output is "-".
    """
    if output == STDIO:
        dump(value, sys.stdout, width)
        return
    try:
        fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            dump(value, f, width)
    except OSError as e:
        raise ConfigurationError(f'cannot write configuration to "{output}"') from e


def _plain(value: Any) -> Any:
    # values are sent as JSON, so timestamps stay strings
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def load(data: str) -> Any:
    """Parse YAML into plain data. Comments are dropped."""
    try:
        return _plain(yaml.YAML(typ="safe", pure=True).load(data))
    except YAMLError as e:
        raise ConfigurationError(f"cannot parse configuration: {e}") from e


def read_document(source: str) -> str:
    """Read the document from file source, or from stdin when source is "-"."""
    try:
        if source == STDIO:
            return sys.stdin.read()
        with open(source, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ConfigurationError(f'cannot read configuration from "{source}"') from e
