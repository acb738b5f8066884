"""
Access to GitLab's API documentation.

GitLab documents the attributes each API endpoint accepts in Markdown tables
like the following one:

    ## Create a new label

    | Attribute | Type    | Required | Description           |
    |-----------|---------|----------|-----------------------|
    | `name`    | string  | yes      | The name of the label |

This module downloads those documents and extracts such tables, so that the
set of editable fields does not have to be hardcoded.
"""

import re
from dataclasses import dataclass

import requests
from sretoolbox.utils import retry

from gitlab_config.utils.exceptions import (
    RemoteOperationError,
    SchemaError,
)

DOCS_URL = "https://gitlab.com/gitlab-org/gitlab/-/raw/{ref}/doc/api/{name}.md"
TIMEOUT = 30

HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
DELIMITER_CELL_RE = re.compile(r"^:?-+:?$")
CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")

COMMENT_RE = re.compile(r"<!--.*?-->")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
REF_LINK_RE = re.compile(r"\[([^\]]*)\]\[[^\]]*\]")
AUTOLINK_RE = re.compile(r"<((?:https?|ftp)://[^>\s]+)>")
HTML_TAG_RE = re.compile(r"</?[A-Za-z][^>]*>")
CODE_SPAN_RE = re.compile(r"(`+)(.+?)\1", re.DOTALL)
EMPHASIS_RES = [
    re.compile(r"\*\*(.+?)\*\*"),
    re.compile(r"(?<!\w)__(.+?)__(?!\w)"),
    re.compile(r"\*(.+?)\*"),
    re.compile(r"(?<!\w)_(.+?)_(?!\w)"),
    re.compile(r"~~(.+?)~~"),
]
ESCAPE_RE = re.compile(r"\\([!-/:-@\[-`{-~])")


@dataclass
class Table:
    header: list[str]
    rows: list[list[str]]


@retry(exceptions=(requests.exceptions.ConnectionError, requests.exceptions.Timeout))
def _get(url: str, timeout: float) -> bytes:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


def download_file(url: str, timeout: float = TIMEOUT) -> bytes:
    try:
        return _get(url, timeout)
    except requests.exceptions.RequestException as e:
        raise RemoteOperationError("failed to download file", url=url) from e


class Documentation:
    """
    GitLab's API documentation at a given git reference.

    Every document is downloaded at most once per instance, as the same
    document (e.g., projects.md) describes more than one section.
    """

    def __init__(self, ref: str, timeout: float = TIMEOUT) -> None:
        self.ref = ref
        self.timeout = timeout
        self._documents: dict[str, str] = {}

    def url(self, name: str) -> str:
        return DOCS_URL.format(ref=self.ref, name=name)

    def get(self, name: str) -> str:
        if name not in self._documents:
            data = download_file(self.url(name), timeout=self.timeout)
            try:
                self._documents[name] = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SchemaError(f"document {self.url(name)} is not UTF-8") from e
        return self._documents[name]


def _plain(text: str) -> str:
    text = ESCAPE_RE.sub(r"\1", text)
    for emphasis in EMPHASIS_RES:
        text = emphasis.sub(r"\1", text)
    return text


def inline_text(text: str) -> str:
    """
    Render inline Markdown to its text content: markup, links targets and
    raw HTML are dropped, the content of code spans is kept as-is.
    """
    text = COMMENT_RE.sub("", text)
    text = IMAGE_RE.sub(r"\1", text)
    text = LINK_RE.sub(r"\1", text)
    text = REF_LINK_RE.sub(r"\1", text)
    text = AUTOLINK_RE.sub(r"\1", text)
    text = HTML_TAG_RE.sub("", text)

    parts = []
    position = 0
    for match in CODE_SPAN_RE.finditer(text):
        parts.append(_plain(text[position : match.start()]))
        code = match.group(2)
        if len(code) > 1 and code.startswith(" ") and code.endswith(" "):
            code = code[1:-1]
        parts.append(code)
        position = match.end()
    parts.append(_plain(text[position:]))
    return "".join(parts).strip()


def split_row(line: str) -> list[str]:
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]
    return [inline_text(cell.replace("\\|", "|")) for cell in CELL_SPLIT_RE.split(line)]


def _is_delimiter(line: str) -> bool:
    if "-" not in line:
        return False
    line = line.strip().strip("|")
    cells = [c.strip() for c in CELL_SPLIT_RE.split(line)]
    return all(DELIMITER_CELL_RE.match(c) for c in cells)


def _lines_outside_code(document: str) -> list[str | None]:
    """Lines of the document, with lines inside fenced code blocks as None."""
    lines: list[str | None] = []
    fence: str | None = None
    for line in document.splitlines():
        match = FENCE_RE.match(line)
        if fence is None and match:
            fence = match.group(1)
            lines.append(None)
        elif fence is not None:
            if match and match.group(1)[0] == fence[0] and len(
                match.group(1)
            ) >= len(fence):
                fence = None
            lines.append(None)
        else:
            lines.append(line)
    return lines


def extract_table(document: str, heading: str) -> Table:
    """
    Find the first heading with text equal to heading and return the first
    table which follows it. Rows are normalized to the number of header
    columns, like GitHub Flavored Markdown does.
    """
    lines = _lines_outside_code(document)

    start = None
    for i, line in enumerate(lines):
        if line is None:
            continue
        match = HEADING_RE.match(line)
        if match and inline_text(match.group(2)) == heading:
            start = i + 1
            break
    if start is None:
        raise SchemaError(f'heading "{heading}" not found')

    for i in range(start, len(lines) - 1):
        line, next_line = lines[i], lines[i + 1]
        if line is None or next_line is None:
            continue
        if "|" not in line or not _is_delimiter(next_line):
            continue
        header = split_row(line)
        rows = []
        for row_line in lines[i + 2 :]:
            if row_line is None or not row_line.strip() or "|" not in row_line:
                break
            row = split_row(row_line)
            row = (row + [""] * len(header))[: len(header)]
            rows.append(row)
        return Table(header=header, rows=rows)

    raise SchemaError(f'table after heading "{heading}" not found')
