from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictInt,
    StrictStr,
    ValidationError,
)

from gitlab_config.utils.exceptions import ConfigurationError
from gitlab_config.utils.projection import (
    COMMENT_PREFIX,
    remove_field_suffix,
    strip_comments,
)
from gitlab_config.utils.sops import METADATA_KEY

Record = dict[str, Any]

# order in which sections are read, written and applied
SECTION_KEYS = (
    "project",
    "avatar",
    "shared_with_groups",
    "forked_from_project",
    "labels",
    "protected_branches",
    "protected_tags",
    "variables",
    "pipeline_schedules",
    "approvals",
    "approval_rules",
    "push_rules",
)


class Configuration(BaseModel):
    """
    GitLab project's configuration.

    A section which is None is not managed: it is omitted from the document
    and left untouched in GitLab. An empty section is managed and makes the
    GitLab side empty as well (e.g., labels: [] deletes all labels).

    Records are kept as plain mappings and passed almost as-is to the API, so
    fields GitLab adds are supported without changes here.
    """

    model_config = ConfigDict(extra="forbid")

    project: Record | None = None
    avatar: StrictStr | None = None
    shared_with_groups: list[Record] | None = None
    forked_from_project: StrictInt | None = None
    labels: list[Record] | None = None
    protected_branches: list[Record] | None = None
    protected_tags: list[Record] | None = None
    variables: list[Record] | None = None
    pipeline_schedules: list[Record] | None = None
    approvals: Record | None = None
    approval_rules: list[Record] | None = None
    push_rules: Record | None = None

    @classmethod
    def parse(cls, data: Any) -> "Configuration":
        """
        Build the configuration from a parsed document. Top-level comment
        fields and sops metadata are ignored.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"configuration is not a mapping but {type(data).__name__}"
            )
        data = {
            key: value
            for key, value in data.items()
            if key != METADATA_KEY
            and not (isinstance(key, str) and key.startswith(COMMENT_PREFIX))
        }
        try:
            configuration = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e
        for key in SECTION_KEYS:
            strip_comments(getattr(configuration, key))
        return configuration

    def managed(self) -> list[str]:
        return [key for key in SECTION_KEYS if getattr(self, key) is not None]

    def remove_field_suffix(self, suffix: str) -> None:
        """Remove suffix from field names in every section."""
        for key in SECTION_KEYS:
            remove_field_suffix(getattr(self, key), suffix)

    def to_document(self, comments: dict[str, str] | None = None) -> dict[str, Any]:
        """
        Plain data for the document, with unmanaged sections omitted and
        section comments as "comment:<section>" fields.
        """
        comments = comments or {}
        document: dict[str, Any] = {}
        for key in SECTION_KEYS:
            value = getattr(self, key)
            if value is None:
                continue
            if comments.get(key):
                document[COMMENT_PREFIX + key] = comments[key]
            document[key] = value
        return document
