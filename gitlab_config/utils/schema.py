"""
Editable fields of each section, extracted from GitLab's API documentation.

Every function returns a mapping between a field name and its description
(which includes the field type). Only fields found in these mappings are kept
when reading the configuration from GitLab, so the mappings define what can
be configured.
"""

import re
import textwrap
from collections.abc import Callable

from gitlab_config.utils.docs import (
    Documentation,
    extract_table,
)
from gitlab_config.utils.exceptions import SchemaError

Descriptions = dict[str, str]
KeyMapper = Callable[[str], str]

EXPECTED_HEADER = ["Attribute", "Type", "Required", "Description"]
DEPRECATED_MARKER = "(Deprecated"
TIER_SUFFIX_RE = re.compile(
    r"\s+\((?:FREE|PREMIUM|ULTIMATE)(?: (?:SELF|SAAS|ALL|DEDICATED))?\)$"
)


def parse_table(
    document: str, heading: str, key_mapper: KeyMapper | None = None
) -> Descriptions:
    """
    Parse the first table after the heading into a mapping between fields
    (attributes) and their descriptions.

    key_mapper can further transform field names. When it returns an empty
    string, the field is skipped.
    """
    table = extract_table(document, heading)
    if table.header != EXPECTED_HEADER:
        raise SchemaError(f'invalid header after heading "{heading}": {table.header}')

    descriptions: Descriptions = {}
    for attribute, type_, _, description in table.rows:
        # deprecated fields
        if DEPRECATED_MARKER in description:
            continue
        key = TIER_SUFFIX_RE.sub("", attribute)
        # "id" documents the project ID in the path
        if key == "id":
            continue
        if key_mapper is not None:
            key = key_mapper(key)
        if not key:
            continue
        if key in descriptions:
            raise SchemaError(f'duplicate key "{key}" after heading "{heading}"')

        if description:
            if not description.endswith((".", ")")):
                description += "."
            description += " "
        descriptions[key] = f"{description}Type: {type_}"

    return descriptions


def drop_keys(*keys: str) -> KeyMapper:
    return lambda key: "" if key in keys else key


def rename_keys(**renames: str) -> KeyMapper:
    return lambda key: renames.get(key, key)


def copy_identity(
    descriptions: Descriptions, edit_descriptions: Descriptions, field: str
) -> None:
    """Copy the description of the edit path parameter field into "id"."""
    try:
        descriptions["id"] = edit_descriptions[field]
    except KeyError:
        raise SchemaError(f'"{field}" field is missing in descriptions') from None


def require(descriptions: Descriptions, *fields: str) -> Descriptions:
    for field in fields:
        if field not in descriptions:
            raise SchemaError(f'"{field}" field is missing in descriptions')
    return descriptions


def format_descriptions(descriptions: Descriptions, width: int) -> str:
    """
    Format descriptions as a comment block describing fields, one field per
    paragraph sorted by field name, wrapped at width.
    """
    output = ""
    for key in sorted(descriptions):
        output += (
            textwrap.fill(
                f"{key}: {descriptions[key]}",
                width=width,
                break_long_words=False,
                break_on_hyphens=False,
            )
            + "\n"
        )
    return output


# projects.md


def parse_project_documentation(document: str) -> Descriptions:
    # the edit API uses different names than the get API for these
    return parse_table(
        document,
        "Edit project",
        rename_keys(
            public_builds="public_jobs",
            container_expiration_policy_attributes="container_expiration_policy",
        ),
    )


def parse_shared_with_groups_documentation(document: str) -> Descriptions:
    return require(
        parse_table(document, "Share project with group"), "group_id", "group_access"
    )


def parse_push_rules_documentation(document: str) -> Descriptions:
    return parse_table(document, "Edit project push rule")


# labels.md


def parse_labels_documentation(document: str) -> Descriptions:
    descriptions = parse_table(document, "Create a new label")
    edit_descriptions = parse_table(document, "Edit an existing label")
    copy_identity(descriptions, edit_descriptions, "label_id")
    return require(descriptions, "name")


# protected_branches.md


def parse_protected_branches_documentation(document: str) -> Descriptions:
    # everything is configured through "allowed_to_*" lists
    key_mapper = drop_keys(
        "push_access_level", "merge_access_level", "unprotect_access_level"
    )
    descriptions = parse_table(document, "Protect repository branches", key_mapper)
    descriptions.update(
        parse_table(document, "Update a protected branch", key_mapper)
    )
    return require(descriptions, "name")


# protected_tags.md


def parse_protected_tags_documentation(document: str) -> Descriptions:
    # everything is configured through "allowed_to_create"
    return require(
        parse_table(
            document, "Protect repository tags", drop_keys("create_access_level")
        ),
        "name",
    )


# project_level_variables.md


def parse_variables_documentation(document: str) -> Descriptions:
    return require(parse_table(document, "Create a variable"), "key")


# pipeline_schedules.md


def parse_pipeline_schedules_documentation(document: str) -> Descriptions:
    descriptions = parse_table(document, "Create a new pipeline schedule")
    edit_descriptions = parse_table(document, "Edit a pipeline schedule")
    copy_identity(descriptions, edit_descriptions, "pipeline_schedule_id")
    del edit_descriptions["pipeline_schedule_id"]
    descriptions.update(edit_descriptions)

    variable_descriptions = parse_pipeline_schedule_variables_documentation(document)
    descriptions["variables"] = (
        "Variables passed to pipelines run by the schedule, with fields "
        + ", ".join(sorted(variable_descriptions))
        + ". Type: array"
    )
    return require(descriptions, "description")


def parse_pipeline_schedule_variables_documentation(document: str) -> Descriptions:
    return require(
        parse_table(
            document,
            "Create a new pipeline schedule variable",
            drop_keys("pipeline_schedule_id"),
        ),
        "key",
    )


# merge_request_approvals.md


def parse_approvals_documentation(document: str) -> Descriptions:
    return parse_table(document, "Change configuration")


def parse_approval_rules_documentation(document: str) -> Descriptions:
    # "usernames" duplicates "user_ids" and "report_type" is deprecated
    key_mapper = drop_keys("usernames", "report_type")
    descriptions = parse_table(document, "Create project-level rule", key_mapper)
    edit_descriptions = parse_table(document, "Update project-level rule", key_mapper)
    copy_identity(descriptions, edit_descriptions, "approval_rule_id")
    return require(descriptions, "name")


def get_project_descriptions(docs: Documentation) -> Descriptions:
    return parse_project_documentation(docs.get("projects"))


def get_shared_with_groups_descriptions(docs: Documentation) -> Descriptions:
    return parse_shared_with_groups_documentation(docs.get("projects"))


def get_push_rules_descriptions(docs: Documentation) -> Descriptions:
    return parse_push_rules_documentation(docs.get("projects"))


def get_labels_descriptions(docs: Documentation) -> Descriptions:
    return parse_labels_documentation(docs.get("labels"))


def get_protected_branches_descriptions(docs: Documentation) -> Descriptions:
    return parse_protected_branches_documentation(docs.get("protected_branches"))


def get_protected_tags_descriptions(docs: Documentation) -> Descriptions:
    return parse_protected_tags_documentation(docs.get("protected_tags"))


def get_variables_descriptions(docs: Documentation) -> Descriptions:
    return parse_variables_documentation(docs.get("project_level_variables"))


def get_pipeline_schedules_descriptions(docs: Documentation) -> Descriptions:
    return parse_pipeline_schedules_documentation(docs.get("pipeline_schedules"))


def get_pipeline_schedule_variables_descriptions(docs: Documentation) -> Descriptions:
    return parse_pipeline_schedule_variables_documentation(
        docs.get("pipeline_schedules")
    )


def get_approvals_descriptions(docs: Documentation) -> Descriptions:
    return parse_approvals_documentation(docs.get("merge_request_approvals"))


def get_approval_rules_descriptions(docs: Documentation) -> Descriptions:
    return parse_approval_rules_documentation(docs.get("merge_request_approvals"))
